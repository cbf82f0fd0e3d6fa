"""Pairing Engine — Partner, Unpartner, Ping and Pong over versioned user rows.

Invariants:
    - Each operation runs inside exactly one TransactionCoordinator unit: every row
      mutation commits, or none does
    - Every write is a compare-and-update against the version the caller observed
      (argument snapshots) or the version read at the start of the unit (partner rows)
    - Two-row writes are applied in ascending user-id order
    - No retries: VersionConflictError / ResourceNotFoundError reach the caller as-is
    - Returned snapshots are the committed post-images of the touched rows

Design Decisions:
    - Preconditions and mutation plans live in core/enforce_pairing (pure);
      this module only sequences store calls
    - ping and unpartner only touch a partner row that points back at the caller;
      a one-sided link raises PartnerNotFoundError and nobody else's link is cleared
    - ping resolves a missing partner row to PartnerNotFoundError; unpartner leaves it
      as ResourceNotFoundError, since the caller's link itself is still intact
"""

import logging
from datetime import datetime, timezone

from pingu.core.domain_types import PairingOperation
from pingu.core.enforce_pairing import (
    plan_partner,
    plan_ping,
    plan_pong,
    plan_unpartner,
    require_partner,
    validate_partner_link,
    validate_partner_request,
)
from pingu.core.errors import ErrorContext, PartnerNotFoundError, ResourceNotFoundError
from pingu.core.repository_protocols import UnitOfWorkFactory, VersionedUserStore
from pingu.core.user_snapshot import PairingResult, RowMutation, User

logger = logging.getLogger(__name__)


async def apply_plan(
    store: VersionedUserStore, plan: list[RowMutation],
) -> dict[int, User]:
    """Run each CAS step in order; return post-images keyed by user id."""
    updated: dict[int, User] = {}
    for step in plan:
        updated[step.user_id] = await store.compare_and_update(
            step.user_id, step.expected_version, step.values,
        )
    return updated


class PairingEngine:
    """Domain state machine for the partner relationship."""

    def __init__(self, coordinator: UnitOfWorkFactory):
        self._coordinator = coordinator

    async def partner(self, user: User, candidate: User) -> PairingResult:
        """Link two unpaired users to each other."""
        validate_partner_request(user, candidate)
        async with self._coordinator.atomically() as store:
            updated = await apply_plan(store, plan_partner(user, candidate))
        logger.info(
            f"Partnered users {user.id} and {candidate.id}",
            extra={
                "user_id": user.id, "partner_id": candidate.id,
                "operation": PairingOperation.PARTNER.value,
            },
        )
        return PairingResult(user=updated[user.id], partner=updated[candidate.id])

    async def unpartner(self, user: User) -> PairingResult:
        """Break the link and zero the ping sub-state on both sides."""
        op = PairingOperation.UNPARTNER.value
        partner_id = require_partner(user, op)
        async with self._coordinator.atomically() as store:
            partner = await store.get(partner_id)
            validate_partner_link(user, partner, op)
            updated = await apply_plan(
                store, plan_unpartner(user, partner_id, partner.version),
            )
        logger.info(
            f"Unpartnered users {user.id} and {partner_id}",
            extra={"user_id": user.id, "partner_id": partner_id, "operation": op},
        )
        return PairingResult(user=updated[user.id], partner=updated[partner_id])

    async def ping(self, user: User) -> PairingResult:
        """Count a ping on the caller's row and flag the partner as pinged."""
        op = PairingOperation.PING.value
        partner_id = require_partner(user, op)
        async with self._coordinator.atomically() as store:
            try:
                partner = await store.get(partner_id)
            except ResourceNotFoundError as e:
                raise PartnerNotFoundError(
                    user.id,
                    ErrorContext(user_id=user.id, partner_id=partner_id, operation=op),
                ) from e
            validate_partner_link(user, partner, op)
            updated = await apply_plan(
                store, plan_ping(user, partner, datetime.now(timezone.utc)),
            )
        logger.info(
            f"User {user.id} pinged partner {partner_id}",
            extra={"user_id": user.id, "partner_id": partner_id, "operation": op},
        )
        return PairingResult(user=updated[user.id], partner=updated[partner_id])

    async def pong(self, user: User) -> PairingResult:
        """Acknowledge a received ping by clearing the caller's own flag."""
        op = PairingOperation.PONG.value
        require_partner(user, op)
        async with self._coordinator.atomically() as store:
            updated = await apply_plan(store, [plan_pong(user)])
        logger.info(
            f"User {user.id} answered ping",
            extra={"user_id": user.id, "operation": op},
        )
        return PairingResult(user=updated[user.id])
