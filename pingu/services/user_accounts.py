"""User Accounts — lookup, profile update and deletion of single accounts.

Invariants:
    - Profile updates are compare-and-update against the caller's snapshot version
    - An update that names no field writes nothing and returns the snapshot as-is
    - Deletion is compare-and-delete against the version whose partner_id was checked,
      so a pairing that commits in between turns into VersionConflictError
    - A user with a partner link can't be deleted (the partner's link would dangle)
"""

import logging

from pingu.core.domain_types import UserId
from pingu.core.errors import ErrorContext, StillPartneredError
from pingu.core.repository_protocols import UnitOfWorkFactory
from pingu.core.user_snapshot import User

logger = logging.getLogger(__name__)


class UserAccounts:
    """Single-row account operations."""

    def __init__(self, coordinator: UnitOfWorkFactory):
        self._coordinator = coordinator

    async def get(self, user_id: UserId) -> User:
        async with self._coordinator.atomically() as store:
            return await store.get(user_id)

    async def update_profile(
        self, user: User, username: str | None = None, email: str | None = None,
    ) -> User:
        if username is None and email is None:
            return user
        async with self._coordinator.atomically() as store:
            return await store.update_profile(user, username=username, email=email)

    async def delete(self, user_id: UserId) -> None:
        async with self._coordinator.atomically() as store:
            user = await store.get(user_id)
            if user.has_partner:
                raise StillPartneredError(
                    user_id,
                    ErrorContext(
                        user_id=user_id, partner_id=user.partner_id,
                        operation="delete",
                    ),
                )
            await store.delete(user_id, user.version)
