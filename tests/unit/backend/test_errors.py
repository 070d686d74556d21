"""
Unit tests for backend.errors

Exception rendering through the registered FastAPI handlers.
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from backend.errors import (
    Forbidden,
    InvalidStateError,
    MissingCodeError,
    ProviderDeniedError,
    StoreUnavailable,
    TokenExchangeError,
    Unauthorized,
    register_exception_handlers,
)
from tests.factories import MOCK_ERROR_RESPONSE


def _app_raising(exc: Exception) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    async def boom():
        raise exc

    return app


async def _get(app: FastAPI):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        return await ac.get("/boom")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc, status, message",
    [
        (MissingCodeError(), 403, "Request missing authorization code"),
        (InvalidStateError(), 403, "Invalid or expired state parameter"),
        (ProviderDeniedError("access_denied"), 403, "The user does not approve the request. Error: access_denied"),
        (Unauthorized(), 401, "Unauthorized"),
        (Forbidden("Required role: user"), 403, "Required role: user"),
        (StoreUnavailable(), 503, "Store is unavailable"),
    ],
)
async def test_domain_errors_render_is_error_body(exc, status, message):
    response = await _get(_app_raising(exc))

    assert response.status_code == status
    assert response.json() == {"isError": True, "message": message}


@pytest.mark.asyncio
async def test_provider_errors_pass_through_verbatim():
    response = await _get(_app_raising(TokenExchangeError(400, MOCK_ERROR_RESPONSE)))

    assert response.status_code == 400
    assert response.json() == MOCK_ERROR_RESPONSE


@pytest.mark.asyncio
async def test_non_json_provider_body_passes_through_as_text():
    response = await _get(_app_raising(TokenExchangeError(502, "Bad Gateway")))

    assert response.status_code == 502
    assert response.text == "Bad Gateway"
