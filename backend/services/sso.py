"""
SSO Service

OAuth2 authorization-code login and account linking.

SsoService resolves a configured provider, builds the authorization
redirect and drives the callback. IdentityLinker performs the code exchange
and the atomic upsert of User, SsoAccount and AccessToken.
"""

import asyncio
import logging
import secrets
from datetime import datetime, timedelta, timezone
from weakref import WeakValueDictionary

import httpx
import jwt
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import get_settings
from backend.errors import (
    InvalidStateError,
    MissingCodeError,
    ProviderDeniedError,
    UnknownProviderError,
)
from backend.models.app_sso_provider import AppSsoProvider
from backend.models.sso_account import SsoAccount
from backend.models.user import DEFAULT_ROLES, User
from backend.schemas.auth import IssuedLoginToken, SessionResult
from backend.services.token_store import TokenStore
from integrations import get_sso_provider_class
from integrations.base import BaseSsoProvider, ProviderCredentials, ProviderProfile, ProviderTokens

logger = logging.getLogger(__name__)

STATE_TOKEN_TYPE = "sso_state"

# One lock per (provider, subject id) currently logging in
_identity_locks: "WeakValueDictionary[tuple[str, str], asyncio.Lock]" = WeakValueDictionary()


def _identity_lock(provider: str, subject_id: str) -> asyncio.Lock:
    key = (provider, subject_id)
    lock = _identity_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _identity_locks[key] = lock
    return lock


class IdentityLinker:
    """Exchanges an authorization code for a local session."""

    def __init__(
        self,
        db: AsyncSession,
        provider: BaseSsoProvider,
        app_provider: AppSsoProvider,
        token_store: TokenStore | None = None,
    ):
        self.db = db
        self.provider = provider
        self.app_provider = app_provider
        self.token_store = token_store or TokenStore(db)

    async def exchange_code(
        self,
        code: str | None,
        error: str | None = None,
        redirect_target: str = "",
    ) -> SessionResult:
        """
        Run the full login: validate, exchange, fetch profile, link, issue.

        Raises:
            ProviderDeniedError: the provider redirected back with an error
            MissingCodeError: no authorization code was supplied
            TokenExchangeError: the token endpoint rejected the code
            ProfileFetchError: the profile endpoint failed
        """
        self.check_callback(code, error)

        tokens = await self.provider.fetch_access_token(code)
        user_info = await self.provider.fetch_user_info(tokens.access_token)
        profile = self.provider.parse_profile(user_info)

        issued = await self.link_account(profile, tokens)

        logger.info(
            f"SSO login via {self.app_provider.provider} for subject {profile.subject_id}"
        )
        return SessionResult(
            login_token=issued.login_token,
            max_age=issued.max_age,
            redirect_target=redirect_target,
        )

    @staticmethod
    def check_callback(code: str | None, error: str | None) -> None:
        """Reject a callback the provider did not authorize. Never contacts the provider."""
        if error:
            raise ProviderDeniedError(error)
        if not code:
            raise MissingCodeError()

    async def link_account(self, profile: ProviderProfile, tokens: ProviderTokens) -> IssuedLoginToken:
        """
        Upsert the user and account and replace the access token, atomically.

        Serialized per (provider, subject id) and committed before the
        critical section is released; any failure rolls everything back.
        """
        async with _identity_lock(self.app_provider.provider, profile.subject_id):
            try:
                await self._lock_identity_row(profile.subject_id)
                _, sso_account = await self._upsert_user(profile)
                issued = await self.token_store.issue(sso_account, tokens)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                logger.error(
                    f"Account linking rolled back for {self.app_provider.provider}:{profile.subject_id}"
                )
                raise
        return issued

    async def _lock_identity_row(self, subject_id: str) -> None:
        """Cross-process mutual exclusion on PostgreSQL (held until commit)."""
        if self.db.get_bind().dialect.name != "postgresql":
            return
        await self.db.execute(
            text("SELECT pg_advisory_xact_lock(hashtextextended(:key, 0))"),
            {"key": f"sso:{self.app_provider.provider}:{subject_id}"},
        )

    async def _upsert_user(self, profile: ProviderProfile) -> tuple[User, SsoAccount]:
        result = await self.db.execute(
            select(SsoAccount).where(
                SsoAccount.provider_id == self.app_provider.id,
                SsoAccount.provider_user_id == profile.subject_id,
            )
        )
        sso_account = result.scalar_one_or_none()

        if sso_account:
            user = await self.db.get(User, sso_account.user_id)
            if user is None:
                raise RuntimeError(f"SsoAccount {sso_account.id} has no owning user")
            sso_account.user_info = dict(profile.raw_data)
            await self.db.flush()
            return user, sso_account

        user = User(
            name=profile.name,
            username=profile.email or profile.subject_id,
            email=profile.email,
            roles=list(DEFAULT_ROLES),
            verified=profile.verified,
        )
        self.db.add(user)
        await self.db.flush()

        sso_account = SsoAccount(
            user_id=user.id,
            provider_id=self.app_provider.id,
            provider_user_id=profile.subject_id,
            user_info=dict(profile.raw_data),
        )
        self.db.add(sso_account)
        await self.db.flush()

        logger.info(f"Created user {user.id} for {self.app_provider.provider}:{profile.subject_id}")
        return user, sso_account


class SsoService:
    """Manages SSO provider lookup, the authorization redirect and the callback."""

    def __init__(self, db: AsyncSession, http_client: httpx.AsyncClient | None = None):
        self.db = db
        self.http_client = http_client
        self.settings = get_settings()

    def callback_url(self, provider_name: str) -> str:
        return f"{self.settings.pds_public_url.rstrip('/')}/sso/{provider_name}/login/callback"

    async def get_provider(self, provider_name: str) -> tuple[AppSsoProvider, BaseSsoProvider]:
        """
        Resolve a provider implementation and its stored client credentials.

        Raises:
            UnknownProviderError: not implemented or not registered in app_sso_providers
        """
        provider_class = get_sso_provider_class(provider_name)
        if provider_class is None:
            raise UnknownProviderError(provider_name)

        result = await self.db.execute(
            select(AppSsoProvider).where(AppSsoProvider.provider == provider_class.provider_name)
        )
        app_provider = result.scalar_one_or_none()
        if app_provider is None:
            raise UnknownProviderError(provider_name)

        credentials = ProviderCredentials(
            client_id=app_provider.client_id,
            client_secret=app_provider.client_secret,
            redirect_uri=self.callback_url(app_provider.provider),
        )
        provider = provider_class(
            credentials,
            http_client=self.http_client,
            timeout=self.settings.provider_timeout_seconds,
        )
        return app_provider, provider

    def create_state(self, referer_url: str) -> str:
        """Signed, short-lived state parameter carrying where to send the user back."""
        now = datetime.now(timezone.utc)
        payload = {
            "referer": referer_url,
            "nonce": secrets.token_urlsafe(16),
            "type": STATE_TOKEN_TYPE,
            "iat": now,
            "exp": now + timedelta(minutes=self.settings.sso_state_expire_minutes),
        }
        return jwt.encode(payload, self.settings.secret_key, algorithm="HS256")

    def decode_state(self, state: str) -> str:
        """Return the referer URL from a state parameter. Raises InvalidStateError."""
        try:
            payload = jwt.decode(state, self.settings.secret_key, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            logger.warning(f"Rejected SSO state: {e}")
            raise InvalidStateError() from e

        if payload.get("type") != STATE_TOKEN_TYPE or not payload.get("referer"):
            raise InvalidStateError()
        return payload["referer"]

    async def initiate_login(self, provider_name: str, referer_url: str | None) -> str:
        """Return the provider authorization URL to redirect the user to."""
        _, provider = await self.get_provider(provider_name)
        state = self.create_state(referer_url or self.settings.default_referer_url)
        return provider.authorization_url(state)

    async def handle_callback(
        self,
        provider_name: str,
        code: str | None,
        error: str | None,
        state: str | None,
    ) -> SessionResult:
        """Complete a login from the provider's redirect back to us."""
        app_provider, provider = await self.get_provider(provider_name)
        IdentityLinker.check_callback(code, error)
        redirect_target = self.decode_state(state) if state else self.settings.default_referer_url

        linker = IdentityLinker(self.db, provider, app_provider)
        try:
            return await linker.exchange_code(code, error, redirect_target=redirect_target)
        finally:
            await provider.close()
