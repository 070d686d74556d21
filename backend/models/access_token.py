"""
AccessToken Model

Provider OAuth credentials plus the locally issued login token.
Provider tokens are Fernet-encrypted before storage (integrations/oauth_manager.py);
the login token is an opaque random string shown to the client once per login.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from backend.models.sso_account import SsoAccount


class AccessToken(TimestampMixin, Base):
    """
    Session credentials for one SsoAccount.

    Exactly one row per account: a new login replaces the row, which
    invalidates the previous login token.
    """

    __tablename__ = "access_tokens"

    id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=uuid4,
    )
    sso_account_id: Mapped[UUID] = mapped_column(
        ForeignKey("sso_accounts.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    # Provider credentials (encrypted)
    access_token: Mapped[bytes] = mapped_column(
        LargeBinary,
        nullable=False,
    )
    refresh_token: Mapped[bytes | None] = mapped_column(
        LargeBinary,
        nullable=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    # Local session credential
    login_token: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )

    sso_account: Mapped["SsoAccount"] = relationship(back_populates="access_token")

    def __repr__(self) -> str:
        return f"<AccessToken account={self.sso_account_id} expires_at={self.expires_at}>"
