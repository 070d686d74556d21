"""
User Model

A natural person known to the Personal Data Server. Users are only ever
created through an SSO login; see backend/services/sso.py.
"""

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, JSONDocument, TimestampMixin

if TYPE_CHECKING:
    from backend.models.preferences import Preferences
    from backend.models.sso_account import SsoAccount

DEFAULT_ROLES = ["user"]


class User(TimestampMixin, Base):
    """
    User record.

    The username is derived from the provider email when the user is first
    created and is never overwritten by later logins.
    """

    __tablename__ = "users"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=uuid4,
    )

    # Identity
    name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    username: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Set from the provider email at creation",
    )
    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )

    # Authorization
    roles: Mapped[list] = mapped_column(
        JSONDocument,
        nullable=False,
        default=lambda: list(DEFAULT_ROLES),
        comment="Non-empty list of role names",
    )

    # Status
    verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Email verified by the identity provider",
    )

    # Relationships
    sso_accounts: Mapped[list["SsoAccount"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    preferences: Mapped["Preferences | None"] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User {self.username} roles={self.roles}>"
