"""Boundary Protocols — contracts between core/services and the storage shell.

Invariants:
    - Services NEVER import SQLAlchemy — they see only these Protocol types
    - A VersionedUserStore is bound to exactly one open transaction
    - compare_and_update raises VersionConflictError on a stale version and
      ResourceNotFoundError on a missing row — never one for the other

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - UnitOfWorkFactory.atomically() is the only way to obtain a store, so every
      store call is inside a transaction scope by construction
"""

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Any, Mapping, Protocol

from pingu.core.domain_types import UserId, Version
from pingu.core.user_snapshot import NewUser, User


class VersionedUserStore(Protocol):
    """Contract for versioned user persistence — implemented by infrastructure."""
    async def get(self, user_id: UserId) -> User: ...
    async def get_version(self, user_id: UserId) -> Version: ...
    async def compare_and_update(
        self,
        user_id: UserId,
        expected_version: Version,
        mutation: Mapping[str, Any],
    ) -> User: ...
    async def create(self, new_user: NewUser) -> User: ...
    async def delete(self, user_id: UserId, expected_version: Version) -> None: ...
    async def update_profile(
        self, user: User, username: str | None = None, email: str | None = None,
    ) -> User: ...
    async def create_invitation(
        self, user_id: UserId, token_hash: str, expires_at: datetime,
    ) -> None: ...


class UnitOfWorkFactory(Protocol):
    """Contract for the transaction coordinator."""
    def atomically(self) -> AbstractAsyncContextManager[VersionedUserStore]: ...
