"""
Token Store

Durable mapping from opaque login tokens to authenticated session subjects.
Tokens are issued at login, checked on every authenticated request and
revoked on logout. They are bearer credentials: any holder is the subject.
"""

import logging
import re
import secrets
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import get_settings
from backend.errors import Unauthorized
from backend.models.access_token import AccessToken
from backend.models.sso_account import SsoAccount
from backend.models.user import User
from backend.schemas.auth import IssuedLoginToken, SessionSubject
from integrations.base import ProviderTokens
from integrations.oauth_manager import OAuthTokenManager

logger = logging.getLogger(__name__)

LOGIN_TOKEN_BYTES = 32

# secrets.token_urlsafe(32) yields 43 url-safe base64 characters
_LOGIN_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{43}$")


def generate_login_token() -> str:
    """New opaque login token; never derived from provider data."""
    return secrets.token_urlsafe(LOGIN_TOKEN_BYTES)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def get_token_manager() -> OAuthTokenManager:
    settings = get_settings()
    return OAuthTokenManager(
        settings.encryption_key,
        default_lifetime_seconds=settings.login_token_default_max_age,
    )


class TokenStore:
    """Issues, validates and revokes login tokens."""

    def __init__(self, db: AsyncSession, token_manager: OAuthTokenManager | None = None):
        self.db = db
        self._token_manager = token_manager

    @property
    def token_manager(self) -> OAuthTokenManager:
        if self._token_manager is None:
            self._token_manager = get_token_manager()
        return self._token_manager

    async def issue(self, sso_account: SsoAccount, tokens: ProviderTokens) -> IssuedLoginToken:
        """
        Replace the AccessToken of an SsoAccount with a fresh one.

        Runs inside the caller's transaction; the previous login token stops
        validating as soon as that transaction commits.
        """
        lifetime = self.token_manager.lifetime_seconds(tokens.expires_in)
        expires_at = self.token_manager.expires_at(lifetime)
        encrypted_access, encrypted_refresh = self.token_manager.encrypt_tokens(
            tokens.access_token, tokens.refresh_token
        )

        await self.db.execute(
            delete(AccessToken).where(AccessToken.sso_account_id == sso_account.id)
        )

        record = AccessToken(
            sso_account_id=sso_account.id,
            access_token=encrypted_access,
            refresh_token=encrypted_refresh,
            expires_at=expires_at,
            login_token=generate_login_token(),
        )
        self.db.add(record)
        await self.db.flush()

        return IssuedLoginToken(
            login_token=record.login_token,
            max_age=lifetime,
            expires_at=expires_at,
        )

    async def validate(self, token: str | None) -> SessionSubject:
        """
        Resolve a login token to its subject.

        Raises:
            Unauthorized: for missing, malformed, unknown and expired tokens alike
        """
        if not token or not _LOGIN_TOKEN_PATTERN.match(token):
            raise Unauthorized()

        result = await self.db.execute(
            select(AccessToken, SsoAccount, User)
            .join(SsoAccount, AccessToken.sso_account_id == SsoAccount.id)
            .join(User, SsoAccount.user_id == User.id)
            .where(AccessToken.login_token == token)
        )
        row = result.first()
        if row is None:
            raise Unauthorized()

        access_token, sso_account, user = row
        expires_at = _as_utc(access_token.expires_at)
        if expires_at <= datetime.now(timezone.utc):
            raise Unauthorized()

        return SessionSubject(
            user_id=user.id,
            username=user.username,
            roles=list(user.roles or []),
            sso_account_id=sso_account.id,
            expires_at=expires_at,
        )

    async def revoke(self, token: str | None) -> bool:
        """Delete a login token. Returns True if a token was removed."""
        if not token:
            return False
        result = await self.db.execute(
            delete(AccessToken).where(AccessToken.login_token == token)
        )
        revoked = (result.rowcount or 0) > 0
        if revoked:
            logger.info("Login token revoked")
        return revoked
