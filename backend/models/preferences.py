"""
Preferences Model

The authenticated (server-side) preference set of a user.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, JSONDocument, TimestampMixin

if TYPE_CHECKING:
    from backend.models.user import User


class Preferences(TimestampMixin, Base):
    """Full resolved preference document, e.g. {"preferences": {...}}."""

    __tablename__ = "preferences"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    preferences: Mapped[dict] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
    )

    user: Mapped["User"] = relationship(back_populates="preferences")

    def __repr__(self) -> str:
        return f"<Preferences user={self.user_id}>"
