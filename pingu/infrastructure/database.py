"""Database Session Manager — async connection pool, coordinator factory and health checks.

Invariants:
    - One engine per process; connection pool uses pool_pre_ping for stale connections
    - All writes go through TransactionCoordinator (auto-rollback, error mapping)

Design Decisions:
    - Singleton db_manager initialized on startup: FastAPI lifespan manages lifecycle
      (no global import side effects)
    - expire_on_commit=False: prevents lazy-load issues in async context
"""

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)

from pingu.infrastructure.transaction import TransactionCoordinator

logger = logging.getLogger(__name__)


class DatabaseSessionManager:
    """Owns the async engine and hands out transaction coordinators."""

    def __init__(
        self,
        database_url: str,
        pool_size: int = 20,
        max_overflow: int = 10,
        query_timeout_seconds: float = 5.0,
    ):
        engine_kwargs: dict = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_recycle=3600,
            )
        self.engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._query_timeout_seconds = query_timeout_seconds

    def coordinator(self) -> TransactionCoordinator:
        return TransactionCoordinator(
            self._session_factory, self._query_timeout_seconds,
        )

    async def health_check(self) -> bool:
        """Check database connectivity (for readiness probes)."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def close(self) -> None:
        await self.engine.dispose()


# Singleton (initialized on startup)
db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    return db_manager


def get_coordinator() -> TransactionCoordinator:
    """FastAPI dependency for the transaction coordinator."""
    if not db_manager:
        raise RuntimeError("Database not initialized")
    return db_manager.coordinator()
