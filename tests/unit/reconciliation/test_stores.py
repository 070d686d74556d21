"""
Unit tests for reconciliation.stores

AnonymousStore over a plain cookie mapping, AuthenticatedStore over an
httpx.MockTransport standing in for the Edge Proxy.
"""

import json

import httpx
import pytest

from backend.errors import StoreUnavailable
from reconciliation.schemas import DEFAULT_COOKIE_NAME, ReconciliationConfig
from reconciliation.stores import AnonymousStore, AuthenticatedStore, preferences_of

EDGE_URL = "http://edge.test"


def _authenticated_store(handler, timeout: float = 10.0) -> AuthenticatedStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=EDGE_URL)
    return AuthenticatedStore(client, ReconciliationConfig(timeout_seconds=timeout))


# ---------------------------------------------------------------------------
# preferences_of
# ---------------------------------------------------------------------------

def test_preferences_of_extracts_the_preferences_mapping():
    assert preferences_of({"preferences": {"textSize": 2}}) == {"textSize": 2}


@pytest.mark.parametrize("settings", [None, {}, {"preferences": None}, {"preferences": [1]}, "text"])
def test_preferences_of_defaults_to_empty(settings):
    assert preferences_of(settings) == {}


# ---------------------------------------------------------------------------
# AnonymousStore
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_anonymous_store_is_empty_without_cookie():
    store = AnonymousStore({})

    assert await store.get() == {}
    assert await store.get_preferences() == {}


@pytest.mark.asyncio
async def test_anonymous_store_round_trips_through_the_cookie():
    cookies: dict[str, str] = {}
    store = AnonymousStore(cookies)

    await store.set({"preferences": {"textSize": 2, "contrast": "bw"}})

    assert DEFAULT_COOKIE_NAME in cookies
    assert " " not in cookies[DEFAULT_COOKIE_NAME]
    assert await store.get_preferences() == {"textSize": 2, "contrast": "bw"}


@pytest.mark.asyncio
async def test_anonymous_store_ignores_unreadable_cookie():
    store = AnonymousStore({DEFAULT_COOKIE_NAME: "%7Bnot-json"})

    assert await store.get() == {}


@pytest.mark.asyncio
async def test_anonymous_store_honours_cookie_name():
    cookies: dict[str, str] = {}
    store = AnonymousStore(cookies, cookie_name="custom-settings")

    await store.set({"preferences": {"toc": True}})

    assert list(cookies) == ["custom-settings"]


# ---------------------------------------------------------------------------
# AuthenticatedStore
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_authenticated_store_reads_via_get_prefs():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"preferences": {"textSize": 1.5}})

    store = _authenticated_store(handler)

    assert await store.get_preferences() == {"textSize": 1.5}
    assert seen[0].method == "GET"
    assert seen[0].url.path == "/get_prefs"


@pytest.mark.asyncio
async def test_authenticated_store_writes_via_save_prefs():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=request.content, headers={"content-type": "application/json"})

    store = _authenticated_store(handler)
    settings = {"preferences": {"toc": True}}

    assert await store.set(settings) == settings
    assert seen[0].method == "POST"
    assert seen[0].url.path == "/save_prefs"
    assert json.loads(seen[0].content) == settings


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 500, 503])
async def test_authenticated_store_non_2xx_is_unavailable(status):
    store = _authenticated_store(lambda request: httpx.Response(status, json={"message": "nope"}))

    with pytest.raises(StoreUnavailable):
        await store.get()


@pytest.mark.asyncio
async def test_authenticated_store_transport_error_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store = _authenticated_store(handler)

    with pytest.raises(StoreUnavailable):
        await store.set({"preferences": {}})


@pytest.mark.asyncio
async def test_authenticated_store_timeout_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    store = _authenticated_store(handler, timeout=0.01)

    with pytest.raises(StoreUnavailable):
        await store.get()


@pytest.mark.asyncio
async def test_authenticated_store_non_json_body_is_unavailable():
    store = _authenticated_store(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(StoreUnavailable):
        await store.get()
