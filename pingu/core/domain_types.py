"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - UserId wraps the storage-assigned integer key — never use bare int in domain logic
    - Version is a logical counter: strictly increasing per row, starts at 1
    - All pairing states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", int)


# ─── Value Types ─────────────────────────────────────────────────

Version = NewType("Version", int)       # >= 1, +1 per committed mutation

INITIAL_VERSION = Version(1)


# ─── Enums ───────────────────────────────────────────────────────

class PairingState(str, Enum):
    """Per-user position in the pairing state machine."""
    UNPAIRED = "unpaired"
    PAIRED_IDLE = "paired_idle"
    PAIRED_PINGED = "paired_pinged"


class PairingOperation(str, Enum):
    """Operations owned by the pairing engine — used for logging and error context."""
    PARTNER = "partner"
    UNPARTNER = "unpartner"
    PING = "ping"
    PONG = "pong"


class UniqueField(str, Enum):
    """Columns guarded by a uniqueness constraint on the users table."""
    USERNAME = "username"
    EMAIL = "email"
