"""Authentication Routes — user registration with a pending e-mail invitation.

Invariants:
    - Registration is one atomic unit (user + invitation)
    - The invitation token is never echoed back in the response
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, status

from pingu.config import get_settings
from pingu.infrastructure.database import get_coordinator
from pingu.infrastructure.transaction import TransactionCoordinator
from pingu.schemas.user import RegisterUserRequest, UserResponse
from pingu.services.user_registration import UserRegistration

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/authentication", tags=["authentication"])


@router.post(
    "/user", response_model=UserResponse, status_code=status.HTTP_201_CREATED,
)
async def register_user(
    body: RegisterUserRequest,
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    """Register a new user."""
    ttl = timedelta(hours=get_settings().invitation_ttl_hours)
    registration = await UserRegistration(coordinator, ttl).register(
        body.username, body.email, body.password,
    )
    return UserResponse.from_user(registration.user)
