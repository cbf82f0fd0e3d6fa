"""User ORM — one row per account, including its pairing and ping sub-state.

Invariants:
    - id is a storage-assigned BIGINT primary key
    - username and email are unique via named constraints (users_username_key,
      users_email_key) so violations can be mapped by constraint name
    - partner_id is a self-referencing FK; symmetry is maintained by the pairing engine
    - version is the optimistic-concurrency token: starts at 1, +1 per mutation

Design Decisions:
    - Integer version column next to updated_at: two writes within one clock tick
      still get distinct versions
    - BigInteger with a SQLite Integer variant: SQLite only autoincrements INTEGER PRIMARY KEY
"""

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger, Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from pingu.db.base import Base

_BigId = BigInteger().with_variant(Integer, "sqlite")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Account row — the paired-account state lives here."""
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("username", name="users_username_key"),
        UniqueConstraint("email", name="users_email_key"),
    )

    id: Mapped[int] = mapped_column(_BigId, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    pinged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_pinged_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pinged_partner_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    partner_id: Mapped[int | None] = mapped_column(
        _BigId, ForeignKey("users.id"), nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
