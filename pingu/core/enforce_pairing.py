"""Pairing Enforcement — pure preconditions and mutation plans for the pairing engine.

Invariants:
    - Every function is PURE: no IO, no clock reads (callers pass `now`)
    - Two-row plans are returned in canonical order (ascending user id) so concurrent
      operations on the same pair always touch rows in the same sequence
    - Only rows whose snapshot shows a partner ever get pinged/pinged_partner_count
      mutations; unpartner zeroes both on both sides
    - ping increments the caller's own count and flags the partner; pong clears only
      the caller's flag

Design Decisions:
    - Rules raise typed PingUError subclasses instead of returning dicts: the engine
      re-raises them unchanged inside its transaction, which then rolls back
    - Plans are data (RowMutation), applied by the shell — keeps SQL out of core
"""

from datetime import datetime
from typing import Iterable

from pingu.core.domain_types import UserId, Version
from pingu.core.errors import (
    AlreadyPartneredError,
    ErrorContext,
    PartnerNotFoundError,
    SelfPartnerError,
)
from pingu.core.user_snapshot import Increment, RowMutation, User


CLEARED_PAIRING: dict = {
    "pinged": False,
    "pinged_partner_count": 0,
    "partner_id": None,
}


def canonical_order(mutations: Iterable[RowMutation]) -> list[RowMutation]:
    """Order row mutations by ascending user id, independent of argument order."""
    return sorted(mutations, key=lambda m: m.user_id)


def require_partner(user: User, operation: str) -> UserId:
    """Return the snapshot's partner id or raise PartnerNotFoundError."""
    if user.partner_id is None:
        raise PartnerNotFoundError(
            user.id, ErrorContext(user_id=user.id, operation=operation),
        )
    return user.partner_id


def validate_partner_request(user: User, candidate: User) -> None:
    """Refuse self-pairing and pairing with anyone already linked.

    Re-linking an already paired user would leave the old partner pointing at
    them, so both sides must be unpaired in the snapshots being CAS-checked.
    """
    ctx = ErrorContext(
        user_id=user.id, partner_id=candidate.id, operation="partner",
    )
    if user.id == candidate.id:
        raise SelfPartnerError(user.id, ctx)
    if user.partner_id is not None:
        raise AlreadyPartneredError(user.id, ctx)
    if candidate.partner_id is not None:
        raise AlreadyPartneredError(candidate.id, ctx)


def validate_partner_link(user: User, partner: User, operation: str) -> None:
    """The partner row must point back at `user` before either side is touched."""
    if partner.partner_id != user.id:
        raise PartnerNotFoundError(
            user.id,
            ErrorContext(user_id=user.id, partner_id=partner.id, operation=operation),
        )


# ─── Mutation plans ──────────────────────────────────────────────

def plan_partner(user: User, candidate: User) -> list[RowMutation]:
    return canonical_order([
        RowMutation(user.id, user.version, {"partner_id": candidate.id}),
        RowMutation(candidate.id, candidate.version, {"partner_id": user.id}),
    ])


def plan_unpartner(
    user: User, partner_id: UserId, partner_version: Version,
) -> list[RowMutation]:
    return canonical_order([
        RowMutation(user.id, user.version, dict(CLEARED_PAIRING)),
        RowMutation(partner_id, partner_version, dict(CLEARED_PAIRING)),
    ])


def plan_ping(user: User, partner: User, now: datetime) -> list[RowMutation]:
    return canonical_order([
        RowMutation(
            user.id, user.version, {"pinged_partner_count": Increment(1)},
        ),
        RowMutation(
            partner.id, partner.version,
            {"pinged": True, "last_pinged_at": now},
        ),
    ])


def plan_pong(user: User) -> RowMutation:
    return RowMutation(user.id, user.version, {"pinged": False})
