"""
AppSsoProvider Model

OAuth2 client registration of this application with an identity provider.
"""

from uuid import UUID, uuid4

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from backend.models.base import Base, TimestampMixin


class AppSsoProvider(TimestampMixin, Base):
    """Client credentials for one identity provider (e.g. "google")."""

    __tablename__ = "app_sso_providers"

    id: Mapped[UUID] = mapped_column(
        primary_key=True,
        default=uuid4,
    )
    provider: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
        comment="Provider key used in /sso/<provider> routes",
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    client_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    client_secret: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AppSsoProvider {self.provider}>"
