"""Versioned User Store — compare-and-update persistence over single users rows.

Invariants:
    - Bound to one AsyncSession whose transaction is owned by TransactionCoordinator;
      the store never commits or rolls back on its own
    - Every statement runs under asyncio.timeout(timeout_seconds); expiry raises
      StorageTimeoutError
    - compare_and_update advances version by exactly 1 in SQL and refreshes updated_at;
      a stale expected_version matches no row and nothing is written; delete is
      version-checked the same way
    - A CAS miss is classified by a follow-up probe in the same transaction:
      row absent -> ResourceNotFoundError, row present -> VersionConflictError
    - Unique violations map to DuplicateKeyError by constraint name, never by error text

Design Decisions:
    - Core statements against User.__table__ with RETURNING: one round-trip per CAS and
      no identity-map state to keep in sync with the snapshot the caller holds
    - Drivers that don't expose constraint names (sqlite3) fall back to probing the
      unique columns, which still avoids parsing driver messages
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pingu.core.domain_types import INITIAL_VERSION, UniqueField, UserId, Version
from pingu.core.errors import (
    DuplicateKeyError,
    ErrorContext,
    ResourceNotFoundError,
    StorageTimeoutError,
    VersionConflictError,
)
from pingu.core.user_snapshot import Increment, NewUser, User
from pingu.models.user import User as UserModel
from pingu.models.user_invitation import UserInvitation

logger = logging.getLogger(__name__)

_users = UserModel.__table__
_invitations = UserInvitation.__table__

UNIQUE_CONSTRAINTS: dict[str, UniqueField] = {
    "users_username_key": UniqueField.USERNAME,
    "users_email_key": UniqueField.EMAIL,
}

# Columns a caller may mutate; id, version and timestamps are owned by the store.
MUTABLE_COLUMNS = frozenset({
    "username", "email", "pinged", "last_pinged_at", "verified",
    "pinged_partner_count", "partner_id",
})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_domain(row: RowMapping) -> User:
    partner_id = row["partner_id"]
    return User(
        id=UserId(row["id"]),
        username=row["username"],
        email=row["email"],
        password_hash=row["password_hash"],
        pinged=bool(row["pinged"]),
        last_pinged_at=row["last_pinged_at"],
        verified=bool(row["verified"]),
        pinged_partner_count=int(row["pinged_partner_count"]),
        partner_id=UserId(partner_id) if partner_id is not None else None,
        version=Version(row["version"]),
        updated_at=row["updated_at"],
        created_at=row["created_at"],
    )


def violated_constraint(exc: IntegrityError) -> str | None:
    """Constraint name from the driver's structured error, if it reports one.

    asyncpg errors carry `constraint_name` (reached through the adapted
    exception's __cause__); psycopg exposes it on `diag`.
    """
    orig = exc.orig
    for err in (orig, getattr(orig, "__cause__", None)):
        if err is None:
            continue
        name = getattr(err, "constraint_name", None)
        if name:
            return name
        name = getattr(getattr(err, "diag", None), "constraint_name", None)
        if name:
            return name
    return None


class UserStore:
    """Versioned entity store for the users table."""

    def __init__(self, session: AsyncSession, timeout_seconds: float = 5.0):
        self._session = session
        self._timeout_seconds = timeout_seconds

    async def _execute(self, statement, operation: str, user_id: int | None = None):
        try:
            async with asyncio.timeout(self._timeout_seconds):
                return await self._session.execute(statement)
        except TimeoutError:
            logger.error(
                f"Storage {operation} exceeded {self._timeout_seconds}s",
                extra={"operation": operation, "user_id": user_id},
            )
            raise StorageTimeoutError(
                self._timeout_seconds,
                ErrorContext(user_id=user_id, operation=operation),
            )

    # ─── Reads ────────────────────────────────────────────────────

    async def get(self, user_id: UserId) -> User:
        result = await self._execute(
            select(_users).where(_users.c.id == user_id), "get", user_id,
        )
        row = result.mappings().one_or_none()
        if row is None:
            raise ResourceNotFoundError(
                "User", str(user_id), ErrorContext(user_id=user_id, operation="get"),
            )
        return _to_domain(row)

    async def get_version(self, user_id: UserId) -> Version:
        version = await self._current_version(user_id)
        if version is None:
            raise ResourceNotFoundError(
                "User", str(user_id),
                ErrorContext(user_id=user_id, operation="get_version"),
            )
        return version

    async def _current_version(self, user_id: UserId) -> Version | None:
        result = await self._execute(
            select(_users.c.version).where(_users.c.id == user_id),
            "get_version", user_id,
        )
        version = result.scalar_one_or_none()
        return Version(version) if version is not None else None

    # ─── Compare-and-update ───────────────────────────────────────

    async def compare_and_update(
        self,
        user_id: UserId,
        expected_version: Version,
        mutation: Mapping[str, Any],
    ) -> User:
        """Apply `mutation` iff the row is still at `expected_version`."""
        unknown = set(mutation) - MUTABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot mutate columns: {sorted(unknown)}")

        values: dict[str, Any] = {
            name: self._render(name, value) for name, value in mutation.items()
        }
        values["version"] = _users.c.version + 1
        values["updated_at"] = _utcnow()

        statement = (
            update(_users)
            .where(_users.c.id == user_id)
            .where(_users.c.version == expected_version)
            .values(**values)
            .returning(*_users.c)
        )
        result = await self._execute(statement, "compare_and_update", user_id)
        row = result.mappings().one_or_none()
        if row is None:
            await self._raise_cas_miss(user_id, expected_version)
        return _to_domain(row)

    @staticmethod
    def _render(name: str, value: Any) -> Any:
        if isinstance(value, Increment):
            return _users.c[name] + value.amount
        return value

    async def _raise_cas_miss(
        self,
        user_id: UserId,
        expected_version: Version,
        operation: str = "compare_and_update",
    ) -> None:
        ctx = ErrorContext(user_id=user_id, operation=operation)
        current = await self._current_version(user_id)
        if current is None:
            raise ResourceNotFoundError("User", str(user_id), ctx)
        logger.warning(
            f"Version conflict on user {user_id}: expected {expected_version}, "
            f"found {current}",
            extra={"user_id": user_id, "operation": operation},
        )
        ctx.debug_info = {"current_version": current}
        raise VersionConflictError(user_id, expected_version, ctx)

    # ─── Create / update / delete ─────────────────────────────────

    async def create(self, new_user: NewUser) -> User:
        now = _utcnow()
        statement = (
            insert(_users)
            .values(
                username=new_user.username,
                email=new_user.email,
                password_hash=new_user.password_hash,
                version=INITIAL_VERSION,
                created_at=now,
                updated_at=now,
            )
            .returning(*_users.c)
        )
        try:
            result = await self._execute(statement, "create")
        except IntegrityError as e:
            field = await self._duplicate_field(
                e, new_user.username, new_user.email,
            )
            if field is None:
                raise
            raise DuplicateKeyError(
                field.value, ErrorContext(operation="create"),
            ) from e
        user = _to_domain(result.mappings().one())
        logger.info(f"Created user {user.id}", extra={"user_id": user.id})
        return user

    async def update_profile(
        self, user: User, username: str | None = None, email: str | None = None,
    ) -> User:
        """CAS update of username/email; omitted fields keep the snapshot's value."""
        mutation = {
            "username": username if username is not None else user.username,
            "email": email if email is not None else user.email,
        }
        try:
            return await self.compare_and_update(user.id, user.version, mutation)
        except IntegrityError as e:
            field = await self._duplicate_field(
                e, mutation["username"], mutation["email"], exclude_id=user.id,
            )
            if field is None:
                raise
            raise DuplicateKeyError(
                field.value,
                ErrorContext(user_id=user.id, operation="update_profile"),
            ) from e

    async def delete(self, user_id: UserId, expected_version: Version) -> None:
        """Delete the row iff it is still at `expected_version`."""
        statement = (
            delete(_users)
            .where(_users.c.id == user_id)
            .where(_users.c.version == expected_version)
        )
        result = await self._execute(statement, "delete", user_id)
        if result.rowcount == 0:
            await self._raise_cas_miss(user_id, expected_version, "delete")
        logger.info(f"Deleted user {user_id}", extra={"user_id": user_id})

    async def create_invitation(
        self, user_id: UserId, token_hash: str, expires_at: datetime,
    ) -> None:
        await self._execute(
            insert(_invitations).values(
                token=token_hash, user_id=user_id, expires_at=expires_at,
            ),
            "create_invitation", user_id,
        )

    # ─── Duplicate-key classification ─────────────────────────────

    async def _duplicate_field(
        self,
        exc: IntegrityError,
        username: str,
        email: str,
        exclude_id: UserId | None = None,
    ) -> UniqueField | None:
        name = violated_constraint(exc)
        if name is not None:
            return UNIQUE_CONSTRAINTS.get(name)
        # Email first, matching the order registration reports collisions in.
        for field, column, value in (
            (UniqueField.EMAIL, _users.c.email, email),
            (UniqueField.USERNAME, _users.c.username, username),
        ):
            statement = select(_users.c.id).where(column == value)
            if exclude_id is not None:
                statement = statement.where(_users.c.id != exclude_id)
            result = await self._execute(statement.limit(1), "probe_unique")
            if result.scalar_one_or_none() is not None:
                return field
        return None
