"""User Registration — create an account and its e-mail invitation in one unit.

Invariants:
    - The user row and its invitation row commit together or not at all
    - Only the sha256 digest of the invitation token is persisted
    - Passwords are hashed with bcrypt before they reach the store

Design Decisions:
    - Plain token returned to the caller, who owns delivery (mail is out of process)
"""

import hashlib
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt

from pingu.core.repository_protocols import UnitOfWorkFactory
from pingu.core.user_snapshot import NewUser, User

logger = logging.getLogger(__name__)


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, password_hash: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), password_hash.encode("utf-8"))


def hash_token(plain_token: str) -> str:
    return hashlib.sha256(plain_token.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class Registration:
    user: User
    invitation_token: str
    invitation_expires_at: datetime


class UserRegistration:
    """Registers users with a pending e-mail invitation."""

    def __init__(
        self,
        coordinator: UnitOfWorkFactory,
        invitation_ttl: timedelta = timedelta(hours=72),
    ):
        self._coordinator = coordinator
        self._invitation_ttl = invitation_ttl

    async def register(self, username: str, email: str, password: str) -> Registration:
        new_user = NewUser(
            username=username, email=email, password_hash=hash_password(password),
        )
        plain_token = str(uuid.uuid4())
        expires_at = datetime.now(timezone.utc) + self._invitation_ttl

        async with self._coordinator.atomically() as store:
            user = await store.create(new_user)
            await store.create_invitation(user.id, hash_token(plain_token), expires_at)

        logger.info(f"Registered user {user.id}", extra={"user_id": user.id})
        return Registration(
            user=user, invitation_token=plain_token, invitation_expires_at=expires_at,
        )
