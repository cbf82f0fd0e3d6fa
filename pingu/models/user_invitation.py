"""UserInvitation ORM — pending e-mail confirmation for a newly registered user.

Invariants:
    - token stores the sha256 hex digest, never the plain token
    - Deleting the user deletes its invitations (ON DELETE CASCADE)
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from pingu.db.base import Base
from pingu.models.user import _BigId


class UserInvitation(Base):
    """Invitation row created atomically with its user."""
    __tablename__ = "user_invitations"

    token: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[int] = mapped_column(
        _BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
