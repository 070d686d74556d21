"""
Preference Stores

The two places a preference set can live:

- AnonymousStore: client-held cookie, usable without login, sparse.
- AuthenticatedStore: server-side record reached through the Edge Proxy,
  usable only while the client holds a login-token cookie.

Both hold a settings document of the form {"preferences": {...}}.
"""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import MutableMapping
from typing import Any
from urllib.parse import quote, unquote

import httpx

from backend.errors import StoreUnavailable
from reconciliation.schemas import DEFAULT_COOKIE_NAME, ReconciliationConfig

logger = logging.getLogger(__name__)


def preferences_of(settings: Any) -> dict[str, Any]:
    """The "preferences" mapping of a settings document, {} if absent."""
    if isinstance(settings, dict) and isinstance(settings.get("preferences"), dict):
        return settings["preferences"]
    return {}


class PreferenceStore(ABC):
    """Abstract base class for preference stores."""

    name: str

    @abstractmethod
    async def get(self) -> dict[str, Any]:
        """
        Read the stored settings document.

        Raises:
            StoreUnavailable: the store could not be read
        """
        pass

    @abstractmethod
    async def set(self, settings: dict[str, Any]) -> dict[str, Any]:
        """
        Replace the stored settings document.

        Raises:
            StoreUnavailable: the store could not be written
        """
        pass

    async def get_preferences(self) -> dict[str, Any]:
        return preferences_of(await self.get())


class AnonymousStore(PreferenceStore):
    """Settings kept as URL-encoded JSON in a client cookie jar."""

    name = "anonymous"

    def __init__(self, cookies: MutableMapping[str, str], cookie_name: str = DEFAULT_COOKIE_NAME):
        self.cookies = cookies
        self.cookie_name = cookie_name

    async def get(self) -> dict[str, Any]:
        raw = self.cookies.get(self.cookie_name)
        if not raw:
            return {}
        try:
            settings = json.loads(unquote(raw))
        except ValueError:
            logger.warning(f"Ignoring unreadable '{self.cookie_name}' cookie")
            return {}
        return settings if isinstance(settings, dict) else {}

    async def set(self, settings: dict[str, Any]) -> dict[str, Any]:
        self.cookies[self.cookie_name] = quote(json.dumps(settings, separators=(",", ":")))
        return settings


class AuthenticatedStore(PreferenceStore):
    """
    Settings stored on the Personal Data Server, reached via the Edge Proxy.

    The client must carry the login-token cookie; every call is bounded by
    the configured timeout.
    """

    name = "authenticated"

    def __init__(self, client: httpx.AsyncClient, config: ReconciliationConfig | None = None):
        self.client = client
        self.config = config or ReconciliationConfig()

    async def get(self) -> dict[str, Any]:
        response = await self._request("GET", self.config.get_path)
        try:
            settings = response.json()
        except ValueError as e:
            raise StoreUnavailable("Authenticated store returned a non-JSON body") from e
        return settings if isinstance(settings, dict) else {}

    async def set(self, settings: dict[str, Any]) -> dict[str, Any]:
        await self._request("POST", self.config.save_path, json=settings)
        return settings

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(
                method, path, timeout=self.config.timeout_seconds, **kwargs
            )
        except httpx.HTTPError as e:
            logger.warning(f"Authenticated store {method} {path} failed: {e}")
            raise StoreUnavailable(f"Authenticated store is unreachable: {e}") from e

        if not response.is_success:
            raise StoreUnavailable(
                f"Authenticated store {method} {path} returned {response.status_code}"
            )
        return response
