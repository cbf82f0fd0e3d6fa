"""User Snapshot — immutable view of one users row at a known version.

Invariants:
    - A User snapshot is frozen: mutations go through the store, which returns a new snapshot
    - version identifies exactly the row state the snapshot was read from
    - RowMutation values are plain data (or Increment); core never builds SQL

Design Decisions:
    - Frozen dataclass over ORM instances: a snapshot can't drift from the version it
      carries, so compare-and-update always checks against what the caller actually saw
    - Increment as a value object: the store renders it as `column + n` in SQL, keeping
      read-modify-write races out of Python
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pingu.core.domain_types import PairingState, UserId, Version


@dataclass(frozen=True)
class User:
    """Committed state of one account."""
    id: UserId
    username: str
    email: str
    password_hash: str
    pinged: bool
    last_pinged_at: datetime | None
    verified: bool
    pinged_partner_count: int
    partner_id: UserId | None
    version: Version
    updated_at: datetime
    created_at: datetime

    @property
    def has_partner(self) -> bool:
        return self.partner_id is not None

    @property
    def pairing_state(self) -> PairingState:
        if self.partner_id is None:
            return PairingState.UNPAIRED
        if self.pinged:
            return PairingState.PAIRED_PINGED
        return PairingState.PAIRED_IDLE


@dataclass(frozen=True)
class NewUser:
    """Fields supplied by the caller when creating an account."""
    username: str
    email: str
    password_hash: str


@dataclass(frozen=True)
class Increment:
    """Add `amount` to the current column value inside the UPDATE statement."""
    amount: int = 1


@dataclass(frozen=True)
class RowMutation:
    """One compare-and-update step: apply `values` iff the row is at `expected_version`."""
    user_id: UserId
    expected_version: Version
    values: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PairingResult:
    """Post-commit snapshots returned by every pairing operation."""
    user: User
    partner: User | None = None
