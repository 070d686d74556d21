"""
SSO Router

Provider authorization redirect and login callback.
"""

from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from backend.config import get_settings
from backend.db.session import get_db
from backend.services.sso import SsoService

router = APIRouter()


def get_provider_http_client() -> httpx.AsyncClient | None:
    """HTTP client for provider calls; None lets each provider open its own."""
    return None


@router.get("/sso/{provider}")
async def sso_login(
    provider: str,
    request: Request,
    referer_url: str | None = Query(None, alias="refererUrl"),
    db: AsyncSession = Depends(get_db),
    http_client: httpx.AsyncClient | None = Depends(get_provider_http_client),
):
    """Redirect the user to the provider's authorization page."""
    svc = SsoService(db, http_client)
    auth_url = await svc.initiate_login(provider, referer_url or request.headers.get("referer"))
    return RedirectResponse(auth_url, status_code=302)


@router.get("/sso/{provider}/login/callback")
async def sso_callback(
    provider: str,
    code: str | None = None,
    error: str | None = None,
    state: str | None = None,
    db: AsyncSession = Depends(get_db),
    http_client: httpx.AsyncClient | None = Depends(get_provider_http_client),
):
    """
    Complete the login.

    Hands the login token to the Edge Proxy /redirect endpoint when one is
    configured, otherwise returns it as JSON.
    """
    svc = SsoService(db, http_client)
    result = await svc.handle_callback(provider, code, error, state)

    settings = get_settings()
    body = result.model_dump(by_alias=True)
    if settings.sso_redirect_url:
        return RedirectResponse(
            f"{settings.sso_redirect_url}?{urlencode(body)}",
            status_code=302,
        )
    return JSONResponse(content=body)
