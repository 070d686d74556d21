"""
Unit tests for edge_proxy.relay

Bearer forwarding, status/body passthrough, bounded read retries and
no retries for writes.
"""

import httpx
import pytest

from backend.errors import StoreUnavailable
from edge_proxy.relay import UNAVAILABLE_MESSAGE, RelayGateway

PDS_URL = "http://pds.test"
LOGIN_TOKEN = "t" * 43


class FlakyUpstream:
    """Fails the first `failures` calls with a connection error."""

    def __init__(self, failures: int = 0, status: int = 200, body: dict | None = None):
        self.failures = failures
        self.status = status
        self.body = body if body is not None else {"preferences": {"textSize": 2}}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.requests) <= self.failures:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(self.status, json=self.body)


def _gateway(upstream: FlakyUpstream, read_attempts: int = 3) -> RelayGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    return RelayGateway(PDS_URL, http_client=client, read_attempts=read_attempts, backoff_seconds=0)


@pytest.mark.asyncio
async def test_get_prefs_forwards_bearer_token():
    upstream = FlakyUpstream()
    response = await _gateway(upstream).get_prefs(LOGIN_TOKEN)

    assert response.status_code == 200
    assert response.json() == {"preferences": {"textSize": 2}}
    assert str(upstream.requests[0].url) == f"{PDS_URL}/get_prefs"
    assert upstream.requests[0].headers["authorization"] == f"Bearer {LOGIN_TOKEN}"


@pytest.mark.asyncio
async def test_get_prefs_retries_transport_errors():
    upstream = FlakyUpstream(failures=2)

    response = await _gateway(upstream, read_attempts=3).get_prefs(LOGIN_TOKEN)

    assert response.status_code == 200
    assert len(upstream.requests) == 3


@pytest.mark.asyncio
async def test_get_prefs_gives_up_after_bounded_attempts():
    upstream = FlakyUpstream(failures=10)

    with pytest.raises(StoreUnavailable) as exc_info:
        await _gateway(upstream, read_attempts=3).get_prefs(LOGIN_TOKEN)

    assert exc_info.value.message == UNAVAILABLE_MESSAGE
    assert len(upstream.requests) == 3


@pytest.mark.asyncio
async def test_upstream_error_status_is_passed_through_without_retry():
    upstream = FlakyUpstream(status=401, body={"isError": True, "message": "Unauthorized"})

    response = await _gateway(upstream).get_prefs(LOGIN_TOKEN)

    assert response.status_code == 401
    assert response.json() == {"isError": True, "message": "Unauthorized"}
    assert len(upstream.requests) == 1


@pytest.mark.asyncio
async def test_save_prefs_is_not_retried():
    upstream = FlakyUpstream(failures=1)

    with pytest.raises(StoreUnavailable):
        await _gateway(upstream).save_prefs(LOGIN_TOKEN, b'{"preferences": {}}')

    assert len(upstream.requests) == 1


@pytest.mark.asyncio
async def test_save_prefs_sends_empty_object_for_empty_body():
    upstream = FlakyUpstream(body={})

    await _gateway(upstream).save_prefs(LOGIN_TOKEN, b"")

    request = upstream.requests[0]
    assert request.method == "POST"
    assert request.content == b"{}"
    assert request.headers["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_logout_is_best_effort():
    upstream = FlakyUpstream(failures=1)

    assert await _gateway(upstream).logout(LOGIN_TOKEN) is False


@pytest.mark.asyncio
async def test_logout_reports_upstream_revocation():
    upstream = FlakyUpstream(body={"isLoggedOut": True})

    assert await _gateway(upstream).logout(LOGIN_TOKEN) is True
    assert upstream.requests[0].url.path == "/logout"


@pytest.mark.asyncio
async def test_injected_client_is_not_closed():
    client = httpx.AsyncClient(transport=httpx.MockTransport(FlakyUpstream()))
    gateway = RelayGateway(PDS_URL, http_client=client)

    await gateway.close()

    assert client.is_closed is False
    await client.aclose()
