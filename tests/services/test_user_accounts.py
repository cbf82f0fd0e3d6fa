"""User Accounts & Registration — profile CAS updates, guarded deletion, sign-up unit.

Invariants:
    - update_profile conflicts on a stale snapshot and maps unique collisions
    - An update naming no field writes nothing
    - Deleting a partnered user is refused and leaves the row in place; a pairing
      that lands after the partner check turns the delete into a version conflict
    - Registration stores a bcrypt hash and a hashed invitation token atomically
"""

from contextlib import asynccontextmanager

import pytest
from sqlalchemy import select

from pingu.core.errors import (
    DuplicateKeyError,
    ResourceNotFoundError,
    StillPartneredError,
    VersionConflictError,
)
from pingu.models.user_invitation import UserInvitation
from pingu.services.pairing_engine import PairingEngine
from pingu.services.user_accounts import UserAccounts
from pingu.services.user_registration import (
    UserRegistration,
    hash_token,
    verify_password,
)


@pytest.fixture
def accounts(coordinator):
    return UserAccounts(coordinator)


class _StaleReadStore:
    """Serves a fixed earlier snapshot from get(); everything else hits the real store."""

    def __init__(self, store, snapshot):
        self._store = store
        self._snapshot = snapshot

    async def get(self, user_id):
        return self._snapshot

    def __getattr__(self, name):
        return getattr(self._store, name)


class _StaleReadCoordinator:
    def __init__(self, inner, snapshot):
        self._inner = inner
        self._snapshot = snapshot

    @asynccontextmanager
    async def atomically(self):
        async with self._inner.atomically() as store:
            yield _StaleReadStore(store, self._snapshot)


# ─── Profile ─────────────────────────────────────────────────────

async def test_update_profile_changes_only_given_fields(accounts, make_user):
    user = await make_user("alice", "alice@x.com")
    updated = await accounts.update_profile(user, email="new@x.com")
    assert updated.username == "alice"
    assert updated.email == "new@x.com"
    assert updated.version == user.version + 1


async def test_update_profile_with_stale_snapshot_conflicts(accounts, make_user):
    user = await make_user()
    await accounts.update_profile(user, username="renamed")
    with pytest.raises(VersionConflictError):
        await accounts.update_profile(user, username="again")


async def test_update_profile_without_fields_writes_nothing(
    accounts, make_user, fetch_user,
):
    user = await make_user()
    assert await accounts.update_profile(user) == user
    assert (await fetch_user(user.id)).version == user.version


async def test_update_profile_to_taken_username_is_duplicate(accounts, make_user):
    await make_user("taken", "taken@x.com")
    user = await make_user("free", "free@x.com")
    with pytest.raises(DuplicateKeyError) as exc:
        await accounts.update_profile(user, username="taken")
    assert exc.value.field == "username"


# ─── Delete ──────────────────────────────────────────────────────

async def test_delete_unpartnered_user(accounts, make_user):
    user = await make_user()
    await accounts.delete(user.id)
    with pytest.raises(ResourceNotFoundError):
        await accounts.get(user.id)


async def test_delete_missing_user_is_not_found(accounts):
    with pytest.raises(ResourceNotFoundError):
        await accounts.delete(999)


async def test_delete_partnered_user_is_refused(
    accounts, coordinator, make_user, fetch_user,
):
    a = await make_user()
    b = await make_user()
    await PairingEngine(coordinator).partner(a, b)
    with pytest.raises(StillPartneredError):
        await accounts.delete(a.id)
    assert (await fetch_user(a.id)).partner_id == b.id


async def test_delete_after_pairing_landed_conflicts(
    coordinator, make_user, fetch_user,
):
    a = await make_user()
    b = await make_user()
    # The delete sees b as it was before the pairing committed.
    await PairingEngine(coordinator).partner(a, b)
    racing = UserAccounts(_StaleReadCoordinator(coordinator, b))

    with pytest.raises(VersionConflictError):
        await racing.delete(b.id)
    assert (await fetch_user(b.id)).partner_id == a.id
    assert (await fetch_user(a.id)).partner_id == b.id


# ─── Registration ────────────────────────────────────────────────

async def test_register_creates_user_and_hashed_invitation(
    coordinator, test_session_factory,
):
    registration = await UserRegistration(coordinator).register(
        "carol", "carol@x.com", "secret123",
    )
    user = registration.user
    assert user.version == 1
    assert user.partner_id is None
    assert verify_password("secret123", user.password_hash)

    async with test_session_factory() as session:
        result = await session.execute(
            select(UserInvitation).where(UserInvitation.user_id == user.id),
        )
        invitation = result.scalar_one()
    assert invitation.token == hash_token(registration.invitation_token)
    assert invitation.token != registration.invitation_token


async def test_register_duplicate_email_leaves_no_invitation(
    coordinator, make_user, test_session_factory,
):
    await make_user("dave", "dave@x.com")
    with pytest.raises(DuplicateKeyError) as exc:
        await UserRegistration(coordinator).register(
            "other", "dave@x.com", "secret123",
        )
    assert exc.value.field == "email"

    async with test_session_factory() as session:
        result = await session.execute(select(UserInvitation))
        assert result.scalars().all() == []
