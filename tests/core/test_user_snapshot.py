"""User Snapshot & Domain Types — pairing state derivation and value types."""

from datetime import datetime, timezone
from dataclasses import FrozenInstanceError

import pytest

from pingu.core.domain_types import (
    INITIAL_VERSION, PairingOperation, PairingState, UniqueField, UserId, Version,
)
from pingu.core.user_snapshot import Increment, PairingResult, User

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _user(**kw) -> User:
    fields = dict(
        id=UserId(1), username="alice", email="alice@x.com", password_hash="x",
        pinged=False, last_pinged_at=None, verified=False, pinged_partner_count=0,
        partner_id=None, version=INITIAL_VERSION, updated_at=NOW, created_at=NOW,
    )
    fields.update(kw)
    return User(**fields)


def test_new_user_is_unpaired():
    user = _user()
    assert user.pairing_state == PairingState.UNPAIRED
    assert not user.has_partner


def test_paired_user_without_ping_is_idle():
    assert _user(partner_id=UserId(2)).pairing_state == PairingState.PAIRED_IDLE


def test_paired_user_with_ping_is_pinged():
    user = _user(partner_id=UserId(2), pinged=True, last_pinged_at=NOW)
    assert user.pairing_state == PairingState.PAIRED_PINGED


def test_snapshot_is_immutable():
    user = _user()
    with pytest.raises(FrozenInstanceError):
        user.pinged = True  # type: ignore[misc]


def test_pairing_result_partner_defaults_to_none():
    assert PairingResult(user=_user()).partner is None


def test_increment_defaults_to_one():
    assert Increment().amount == 1


def test_enums_serialize_to_strings():
    assert PairingState.PAIRED_PINGED.value == "paired_pinged"
    assert PairingOperation.PING.value == "ping"
    assert UniqueField.EMAIL.value == "email"
    assert INITIAL_VERSION == Version(1)
