"""
Relay Gateway

Forwards preference reads and writes from the browser-facing Edge Proxy to
the Personal Data Server, swapping the login-token cookie for a bearer
credential. Upstream status and body are passed back unchanged.

Only reads are retried, and only on transport errors. Writes go out once.
"""

import logging

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from backend.errors import StoreUnavailable

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "Preference store is unavailable"


class RelayGateway:
    """Bearer-authenticated relay to the Personal Data Server."""

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        read_attempts: int = 3,
        backoff_seconds: float = 0.2,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.read_attempts = max(1, read_attempts)
        self.backoff_seconds = backoff_seconds
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy initialization of the upstream HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _headers(self, login_token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {login_token}"}

    async def get_prefs(self, login_token: str) -> httpx.Response:
        """
        Relay GET /get_prefs.

        Raises:
            StoreUnavailable: upstream unreachable after all attempts
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.read_attempts),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=2),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return await self.client.get(
                        f"{self.base_url}/get_prefs",
                        headers=self._headers(login_token),
                        timeout=self.timeout,
                    )
        except httpx.HTTPError as e:
            logger.warning(
                f"Relay GET /get_prefs failed after {self.read_attempts} attempt(s): {e!r}"
            )
            raise StoreUnavailable(UNAVAILABLE_MESSAGE) from e

    async def save_prefs(self, login_token: str, body: bytes) -> httpx.Response:
        """
        Relay POST /save_prefs with the raw JSON body. An empty body saves {}.

        Raises:
            StoreUnavailable: upstream unreachable
        """
        try:
            return await self.client.post(
                f"{self.base_url}/save_prefs",
                content=body if body.strip() else b"{}",
                headers={**self._headers(login_token), "Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Relay POST /save_prefs failed: {e!r}")
            raise StoreUnavailable(UNAVAILABLE_MESSAGE) from e

    async def logout(self, login_token: str) -> bool:
        """Revoke the login token upstream. Best effort: False when it did not happen."""
        try:
            response = await self.client.post(
                f"{self.base_url}/logout",
                headers=self._headers(login_token),
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Relay POST /logout failed, token left to expire: {e!r}")
            return False
        return response.is_success
