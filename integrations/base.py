"""
Base SSO Provider Classes

Abstract base class and common data models for OAuth2 identity providers.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, Field

from backend.errors import ProfileFetchError, TokenExchangeError

logger = logging.getLogger(__name__)

# Status reported when a provider call times out or cannot connect
GATEWAY_TIMEOUT = 504
BAD_GATEWAY = 502


class ProviderCredentials(BaseModel):
    """This application's OAuth2 client registration with a provider."""

    client_id: str
    client_secret: str
    redirect_uri: str


class ProviderTokens(BaseModel):
    """Normalized token endpoint response."""

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = Field(None, description="Lifetime in seconds as reported by the provider")

    # Raw data from provider
    raw_data: dict = Field(default_factory=dict)


class ProviderProfile(BaseModel):
    """Normalized user profile from any provider."""

    subject_id: str = Field(..., description="Provider-issued subject id")
    email: str | None = None
    name: str | None = None
    verified: bool = False

    # Raw data from provider, stored as the SsoAccount snapshot
    raw_data: dict = Field(default_factory=dict)


def _response_body(response: httpx.Response) -> Any:
    """Provider body as sent: parsed JSON when possible, otherwise text."""
    try:
        return response.json()
    except ValueError:
        return response.text


class BaseSsoProvider(ABC):
    """
    Abstract base class for all OAuth2 identity providers.

    Subclasses declare the provider endpoints and how to read a profile;
    the authorization-code exchange itself is shared. Provider error
    statuses and bodies are surfaced unchanged.
    """

    provider_name: str
    authorize_url: str
    token_url: str
    userinfo_url: str
    scopes: list[str] = []

    def __init__(
        self,
        credentials: ProviderCredentials,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self.credentials = credentials
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self):
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    def authorization_params(self, state: str) -> dict[str, str]:
        """Query parameters of the authorization redirect."""
        return {
            "client_id": self.credentials.client_id,
            "redirect_uri": self.credentials.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "state": state,
        }

    def authorization_url(self, state: str) -> str:
        return f"{self.authorize_url}?{urlencode(self.authorization_params(state))}"

    async def fetch_access_token(self, code: str) -> ProviderTokens:
        """
        Exchange an authorization code for provider tokens.

        Authorization codes are single-use, so this is never retried.

        Raises:
            TokenExchangeError: non-2xx response, timeout or transport failure
        """
        try:
            response = await self.client.post(
                self.token_url,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": self.credentials.redirect_uri,
                    "client_id": self.credentials.client_id,
                    "client_secret": self.credentials.client_secret,
                },
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.error(f"{self.provider_name} token exchange failed: {e}")
            raise TokenExchangeError(
                GATEWAY_TIMEOUT,
                {"error": "provider_unreachable", "error_description": str(e)},
            ) from e

        body = _response_body(response)
        if not response.is_success:
            raise TokenExchangeError(response.status_code, body)
        if not isinstance(body, dict) or not body.get("access_token"):
            raise TokenExchangeError(BAD_GATEWAY, body, "Token response has no access_token")

        return ProviderTokens(
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
            expires_in=body.get("expires_in"),
            raw_data=body,
        )

    async def fetch_user_info(self, access_token: str) -> dict[str, Any]:
        """
        Fetch the subject profile with a provider access token.

        Raises:
            ProfileFetchError: non-2xx response, timeout or transport failure
        """
        try:
            response = await self.client.get(
                self.userinfo_url,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.error(f"{self.provider_name} profile fetch failed: {e}")
            raise ProfileFetchError(
                GATEWAY_TIMEOUT,
                {"error": "provider_unreachable", "error_description": str(e)},
            ) from e

        body = _response_body(response)
        if not response.is_success:
            raise ProfileFetchError(response.status_code, body)
        if not isinstance(body, dict):
            raise ProfileFetchError(BAD_GATEWAY, body, "Profile response is not an object")
        return body

    @abstractmethod
    def parse_profile(self, user_info: dict[str, Any]) -> ProviderProfile:
        """
        Map a raw profile to a ProviderProfile.

        Raises:
            ProfileFetchError: the profile carries no subject id
        """
        pass
