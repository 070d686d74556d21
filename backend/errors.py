"""
Error Taxonomy

Domain exceptions shared by the Personal Data Server, the Edge Proxy and the
reconciliation client. Each carries the HTTP status and client-facing
message it renders to; see register_exception_handlers().
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

logger = logging.getLogger(__name__)


class PersonalDataError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_body(self) -> dict[str, Any]:
        return {"isError": True, "message": self.message}


# ── Client input ──────────────────────────────────────


class ValidationError(PersonalDataError):
    """Missing or malformed request input; fixable by the client."""

    status_code = 400
    message = "Invalid request"


class MissingCodeError(ValidationError):
    status_code = 403
    message = "Request missing authorization code"


class InvalidStateError(ValidationError):
    status_code = 403
    message = "Invalid or expired state parameter"


# ── Identity provider ─────────────────────────────────


class ProviderDeniedError(PersonalDataError):
    """The provider redirected back with an error instead of a code."""

    status_code = 403

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"The user does not approve the request. Error: {reason}")


class UnknownProviderError(PersonalDataError):
    status_code = 404

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unknown SSO provider: {provider}")


class ProviderProtocolError(PersonalDataError):
    """
    The provider answered a back-channel call with a non-2xx status.

    Status and body are kept verbatim so callers can tell provider-side
    misconfiguration apart from local bugs.
    """

    def __init__(self, status_code: int, body: Any, message: str | None = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"Identity provider returned {status_code}")


class TokenExchangeError(ProviderProtocolError):
    pass


class ProfileFetchError(ProviderProtocolError):
    pass


# ── Backing stores and credentials ────────────────────


class StoreUnavailable(PersonalDataError):
    """A backing store could not be reached; safe to retry later."""

    status_code = 503
    message = "Store is unavailable"


class Unauthorized(PersonalDataError):
    """Missing, malformed or expired credential. Never says which."""

    status_code = 401
    message = "Unauthorized"


class Forbidden(PersonalDataError):
    """Authenticated, but without the required role."""

    status_code = 403
    message = "Forbidden"


# ── FastAPI wiring ────────────────────────────────────


async def _handle_provider_protocol_error(request: Request, exc: ProviderProtocolError) -> Response:
    logger.warning(
        f"Identity provider error on {request.url.path}: status={exc.status_code}"
    )
    if isinstance(exc.body, (dict, list)):
        return JSONResponse(status_code=exc.status_code, content=exc.body)
    return Response(
        status_code=exc.status_code,
        content=exc.body if exc.body is not None else b"",
        media_type="text/plain",
    )


async def _handle_personal_data_error(request: Request, exc: PersonalDataError) -> Response:
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


def register_exception_handlers(app: FastAPI) -> None:
    """Render domain errors as {isError, message} (provider errors verbatim)."""
    app.add_exception_handler(ProviderProtocolError, _handle_provider_protocol_error)
    app.add_exception_handler(PersonalDataError, _handle_personal_data_error)
