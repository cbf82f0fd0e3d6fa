"""Pairing write order — two-row operations always touch rows in ascending id order.

Invariants:
    - partner/unpartner/ping issue compare-and-update calls lowest user id first,
      whichever side is the caller
    - Nothing is written when a precondition fails

Design Decisions:
    - Recording in-memory store behind the UnitOfWorkFactory protocol: the order of
      calls is what matters here, not SQL
"""

from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from pingu.core.domain_types import UserId, Version
from pingu.core.errors import PartnerNotFoundError, ResourceNotFoundError
from pingu.core.user_snapshot import Increment, User
from pingu.services.pairing_engine import PairingEngine

_NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _user(user_id: int, partner_id: int | None = None, version: int = 1) -> User:
    return User(
        id=UserId(user_id), username=f"u{user_id}", email=f"u{user_id}@x.com",
        password_hash="h", pinged=False, last_pinged_at=None, verified=False,
        pinged_partner_count=0,
        partner_id=UserId(partner_id) if partner_id is not None else None,
        version=Version(version), updated_at=_NOW, created_at=_NOW,
    )


class RecordingStore:
    """Dict-backed store that logs every compare_and_update target."""

    def __init__(self, *users: User):
        self.rows = {u.id: u for u in users}
        self.writes: list[int] = []

    async def get(self, user_id):
        if user_id not in self.rows:
            raise ResourceNotFoundError("User", str(user_id))
        return self.rows[user_id]

    async def get_version(self, user_id):
        return (await self.get(user_id)).version

    async def compare_and_update(self, user_id, expected_version, mutation):
        self.writes.append(user_id)
        current = await self.get(user_id)
        values = {
            k: current.pinged_partner_count + v.amount if isinstance(v, Increment) else v
            for k, v in mutation.items()
        }
        updated = replace(current, version=Version(current.version + 1), **values)
        self.rows[user_id] = updated
        return updated


class RecordingCoordinator:
    def __init__(self, store: RecordingStore):
        self.store = store

    @asynccontextmanager
    async def atomically(self):
        yield self.store


@pytest.mark.parametrize("caller_id, other_id", [(1, 2), (2, 1)])
async def test_partner_writes_lowest_id_first(caller_id, other_id):
    store = RecordingStore(_user(1), _user(2))
    await PairingEngine(RecordingCoordinator(store)).partner(
        store.rows[caller_id], store.rows[other_id],
    )
    assert store.writes == [1, 2]


@pytest.mark.parametrize("caller_id, other_id", [(3, 7), (7, 3)])
async def test_ping_writes_lowest_id_first(caller_id, other_id):
    store = RecordingStore(_user(3, partner_id=7), _user(7, partner_id=3))
    result = await PairingEngine(RecordingCoordinator(store)).ping(
        store.rows[caller_id],
    )
    assert store.writes == [3, 7]
    assert result.user.pinged_partner_count == 1
    assert result.partner.pinged is True


@pytest.mark.parametrize("caller_id", [4, 9])
async def test_unpartner_writes_lowest_id_first(caller_id):
    store = RecordingStore(_user(4, partner_id=9), _user(9, partner_id=4))
    await PairingEngine(RecordingCoordinator(store)).unpartner(store.rows[caller_id])
    assert store.writes == [4, 9]


async def test_pong_writes_only_caller():
    store = RecordingStore(_user(1, partner_id=2), _user(2, partner_id=1))
    await PairingEngine(RecordingCoordinator(store)).pong(store.rows[2])
    assert store.writes == [2]


async def test_failed_precondition_writes_nothing():
    store = RecordingStore(_user(1), _user(2))
    with pytest.raises(PartnerNotFoundError):
        await PairingEngine(RecordingCoordinator(store)).ping(store.rows[1])
    assert store.writes == []
