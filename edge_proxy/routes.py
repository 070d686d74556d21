"""
Edge Proxy Routes

Browser-facing endpoints: the post-SSO /redirect that stores the login
token cookie, and the cookie-authenticated preference relay.
"""

from collections.abc import AsyncGenerator
from typing import Any

import httpx
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from backend.config import get_settings
from backend.errors import Unauthorized
from edge_proxy.relay import RelayGateway

router = APIRouter()


class MissingRedirectParameters(Unauthorized):
    message = "Missing required parameters"

    def to_body(self) -> dict[str, Any]:
        return {"message": self.message}


class MissingLoginCookie(Unauthorized):
    def __init__(self, cookie_name: str):
        super().__init__(f"Unauthorized. Missing '{cookie_name}' cookie value.")

    def to_body(self) -> dict[str, Any]:
        return {"message": self.message}


def get_relay_http_client() -> httpx.AsyncClient | None:
    """HTTP client for upstream calls; None lets the gateway open its own."""
    return None


async def get_relay_gateway(
    http_client: httpx.AsyncClient | None = Depends(get_relay_http_client),
) -> AsyncGenerator[RelayGateway, None]:
    settings = get_settings()
    gateway = RelayGateway(
        settings.pds_server_url,
        http_client=http_client,
        timeout=settings.relay_timeout_seconds,
        read_attempts=settings.relay_read_attempts,
    )
    try:
        yield gateway
    finally:
        await gateway.close()


def login_token_cookie(request: Request) -> str:
    """The login token cookie value, or 401."""
    cookie_name = get_settings().login_token_cookie_name
    login_token = request.cookies.get(cookie_name)
    if not login_token:
        raise MissingLoginCookie(cookie_name)
    return login_token


def _passthrough(upstream: httpx.Response) -> Response:
    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type"),
    )


@router.get("/redirect")
async def login_redirect(
    login_token: str | None = Query(None, alias="loginToken"),
    max_age: str | None = Query(None, alias="maxAge"),
    referer_url: str | None = Query(None, alias="refererUrl"),
):
    """
    Receive the login token from the Personal Data Server after SSO.

    The cookie is readable by page scripts, which use its presence to
    drive the reconciliation engine's login transition.
    """
    if not login_token or not max_age or not referer_url:
        raise MissingRedirectParameters()
    try:
        max_age_seconds = int(max_age)
    except ValueError:
        raise MissingRedirectParameters()

    response = RedirectResponse(referer_url, status_code=302)
    response.set_cookie(
        get_settings().login_token_cookie_name,
        login_token,
        max_age=max_age_seconds,
        path="/",
        samesite="strict",
    )
    return response


@router.get("/get_prefs")
async def get_prefs(
    login_token: str = Depends(login_token_cookie),
    relay: RelayGateway = Depends(get_relay_gateway),
):
    """Relay a preference read to the Personal Data Server."""
    return _passthrough(await relay.get_prefs(login_token))


@router.post("/save_prefs")
async def save_prefs(
    request: Request,
    login_token: str = Depends(login_token_cookie),
    relay: RelayGateway = Depends(get_relay_gateway),
):
    """Relay a preference write to the Personal Data Server."""
    return _passthrough(await relay.save_prefs(login_token, await request.body()))


@router.post("/logout")
async def logout(
    request: Request,
    relay: RelayGateway = Depends(get_relay_gateway),
):
    """Revoke the login token upstream (best effort) and clear the cookie."""
    cookie_name = get_settings().login_token_cookie_name
    login_token = request.cookies.get(cookie_name)
    revoked = await relay.logout(login_token) if login_token else False

    response = JSONResponse(content={"isLoggedOut": True, "isRevoked": revoked})
    response.delete_cookie(cookie_name, path="/", samesite="strict")
    return response
