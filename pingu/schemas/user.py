"""User Schemas — Pydantic models with field-level validation for API boundaries.

Invariants:
    - Passwords are 6-72 chars (bcrypt only hashes the first 72 bytes)
    - password_hash and version internals never appear in responses except `version`,
      which clients may use to detect concurrent changes

Design Decisions:
    - field_validator for side-effect-free transforms (strip) — keeps models pure
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from pingu.core.user_snapshot import PairingResult, User


class RegisterUserRequest(BaseModel):
    """Registration payload."""
    username: str = Field(min_length=1, max_length=35)
    email: str = Field(
        max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
    )
    password: str = Field(min_length=6, max_length=72)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("username cannot be empty or whitespace")
        return v


class UpdateUserRequest(BaseModel):
    """Profile update — omitted fields keep their current value."""
    username: str | None = Field(None, min_length=1, max_length=35)
    email: str | None = Field(
        None, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
    )


class UserResponse(BaseModel):
    """Public-facing user data."""
    id: int
    username: str
    email: str
    pinged: bool
    last_pinged_at: datetime | None
    verified: bool
    pinged_partner_count: int
    partner_id: int | None
    pairing_state: str
    version: int
    updated_at: datetime
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            pinged=user.pinged,
            last_pinged_at=user.last_pinged_at,
            verified=user.verified,
            pinged_partner_count=user.pinged_partner_count,
            partner_id=user.partner_id,
            pairing_state=user.pairing_state.value,
            version=user.version,
            updated_at=user.updated_at,
            created_at=user.created_at,
        )


class PairingResponse(BaseModel):
    """Result of a pairing operation: caller's row and, if touched, the partner's."""
    user: UserResponse
    partner: UserResponse | None = None

    @classmethod
    def from_result(cls, result: PairingResult) -> "PairingResponse":
        return cls(
            user=UserResponse.from_user(result.user),
            partner=(
                UserResponse.from_user(result.partner)
                if result.partner is not None else None
            ),
        )
