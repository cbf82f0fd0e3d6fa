"""Transaction Coordinator — one atomic unit of work around a VersionedUserStore.

Invariants:
    - atomically() opens exactly one session and one transaction per unit
    - Normal exit commits; ANY exception (domain error, timeout, cancellation,
      driver failure) rolls back every statement in the unit before propagating
    - PingUError passes through unchanged; SQLAlchemy errors are mapped to DatabaseError
    - Units are never nested: services open one unit and hand its store down

Design Decisions:
    - session.begin() as the transaction scope: rollback on BaseException comes for
      free, so a cancelled request can't leave a half-applied pairing behind
    - Store is constructed per unit: it can't outlive the transaction it belongs to
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pingu.core.errors import DatabaseError, PingUError
from pingu.infrastructure.user_store import UserStore

logger = logging.getLogger(__name__)


class TransactionCoordinator:
    """Runs store operations as all-or-nothing units."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        query_timeout_seconds: float = 5.0,
    ):
        self._session_factory = session_factory
        self._query_timeout_seconds = query_timeout_seconds

    @asynccontextmanager
    async def atomically(self) -> AsyncIterator[UserStore]:
        """Yield a store bound to a fresh transaction; commit on success."""
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    yield UserStore(session, self._query_timeout_seconds)
            except PingUError as e:
                logger.info(
                    f"Unit rolled back: {e.code}",
                    extra={"error_code": e.code, "operation": e.context.operation},
                )
                raise
            except IntegrityError as e:
                logger.error(f"DB integrity error: {e}")
                raise DatabaseError("Integrity constraint violated", "commit") from e
            except OperationalError as e:
                logger.error(f"DB operational error: {e}")
                raise DatabaseError("Connection or operational error", "execute") from e
            except DBAPIError as e:
                logger.error(f"DB driver error: {e}")
                raise DatabaseError("Database driver error", "query") from e
            except SQLAlchemyError as e:
                logger.error(f"SQLAlchemy error: {e}")
                raise DatabaseError("Database operation failed", "unknown") from e
