"""SQLAlchemy ORM Models for the Personal Data Server."""

from backend.models.access_token import AccessToken
from backend.models.app_sso_provider import AppSsoProvider
from backend.models.base import Base, TimestampMixin
from backend.models.preferences import Preferences
from backend.models.sso_account import SsoAccount
from backend.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "AccessToken",
    "AppSsoProvider",
    "Preferences",
    "SsoAccount",
    "User",
]
