"""
SsoAccount Model

Link between a User and one external identity provider account.
"""

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, JSONDocument, TimestampMixin

if TYPE_CHECKING:
    from backend.models.access_token import AccessToken
    from backend.models.app_sso_provider import AppSsoProvider
    from backend.models.user import User


class SsoAccount(TimestampMixin, Base):
    """
    Provider account linked to a user.

    Identified by (provider, provider_user_id); at most one row per pair and
    owned by exactly one user.
    """

    __tablename__ = "sso_accounts"

    id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=uuid4,
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    provider_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_sso_providers.id", ondelete="CASCADE"),
        nullable=False,
    )
    provider_user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Subject id issued by the provider",
    )
    user_info: Mapped[dict] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
        comment="Raw profile snapshot from the last login",
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="sso_accounts")
    provider: Mapped["AppSsoProvider"] = relationship()
    access_token: Mapped["AccessToken | None"] = relationship(
        back_populates="sso_account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("provider_id", "provider_user_id", name="uq_sso_accounts_provider_user"),
    )

    def __repr__(self) -> str:
        return f"<SsoAccount {self.provider_user_id} user={self.user_id}>"
