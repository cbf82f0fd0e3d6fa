"""User Routes — account CRUD and the pairing operations.

Invariants:
    - Every route reads the caller's snapshot in its own unit, then runs the operation
      against that snapshot's version; a write in between surfaces as 409
    - No route retries a conflicting operation — the client re-fetches and decides
    - Errors propagate as PingUError and are rendered by the global handler
"""

import logging

from fastapi import APIRouter, Depends, Response, status

from pingu.core.domain_types import UserId
from pingu.core.user_snapshot import User
from pingu.infrastructure.database import get_coordinator
from pingu.infrastructure.transaction import TransactionCoordinator
from pingu.schemas.user import PairingResponse, UpdateUserRequest, UserResponse
from pingu.services.pairing_engine import PairingEngine
from pingu.services.user_accounts import UserAccounts

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/users", tags=["users"])


async def get_user_or_404(
    user_id: int, coordinator: TransactionCoordinator = Depends(get_coordinator),
) -> User:
    """Path dependency: load the addressed user's current snapshot."""
    return await UserAccounts(coordinator).get(UserId(user_id))


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user: User = Depends(get_user_or_404)):
    return UserResponse.from_user(user)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    body: UpdateUserRequest,
    user: User = Depends(get_user_or_404),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    """Update username and/or email."""
    updated = await UserAccounts(coordinator).update_profile(
        user, username=body.username, email=body.email,
    )
    return UserResponse.from_user(updated)


@router.delete(
    "/{user_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response,
)
async def delete_user(
    user_id: int, coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    """Delete an unpartnered user."""
    await UserAccounts(coordinator).delete(UserId(user_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{user_id}/partner/{partner_id}", response_model=PairingResponse)
async def set_user_partner(
    partner_id: int,
    user: User = Depends(get_user_or_404),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    candidate = await UserAccounts(coordinator).get(UserId(partner_id))
    result = await PairingEngine(coordinator).partner(user, candidate)
    return PairingResponse.from_result(result)


@router.put("/{user_id}/unpartner", response_model=PairingResponse)
async def unset_user_partner(
    user: User = Depends(get_user_or_404),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    result = await PairingEngine(coordinator).unpartner(user)
    return PairingResponse.from_result(result)


@router.put("/{user_id}/ping", response_model=PairingResponse)
async def ping_user_partner(
    user: User = Depends(get_user_or_404),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    result = await PairingEngine(coordinator).ping(user)
    return PairingResponse.from_result(result)


@router.put("/{user_id}/pong", response_model=PairingResponse)
async def pong_user_partner(
    user: User = Depends(get_user_or_404),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    result = await PairingEngine(coordinator).pong(user)
    return PairingResponse.from_result(result)
