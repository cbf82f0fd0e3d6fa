"""ORM Models — SQLAlchemy declarative models for all persisted entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - User is the only entity with pairing semantics

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all / autogenerate
"""

from pingu.models.user import User  # noqa: F401
from pingu.models.user_invitation import UserInvitation  # noqa: F401
