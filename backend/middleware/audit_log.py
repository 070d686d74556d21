"""
Audit Logging Middleware

Logs every request with timing, subject and response status.
Login tokens never reach the log: they are redacted from query strings.
"""

import logging
import time
from urllib.parse import parse_qsl, urlencode

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("audit")

# Paths to skip (probes, static assets)
SKIP_PATHS = {"/health", "/ready", "/favicon.ico"}

# Query parameters whose values are credentials
REDACTED_PARAMS = {"loginToken", "code", "state"}


def redact_query(query: str) -> str:
    """Query string with credential values replaced by '***'."""
    if not query:
        return ""
    pairs = parse_qsl(query, keep_blank_values=True)
    return urlencode(
        [(key, "***" if key in REDACTED_PARAMS else value) for key, value in pairs]
    )


class AuditLogMiddleware(BaseHTTPMiddleware):
    """
    Logs every request with timing, subject and response status.

    Log format is structured for ingestion by log pipelines.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path

        if path in SKIP_PATHS:
            return await call_next(request)

        start = time.monotonic()
        response: Response | None = None
        error: str | None = None

        try:
            response = await call_next(request)
            return response
        except Exception as exc:
            error = str(exc)
            raise
        finally:
            latency_ms = (time.monotonic() - start) * 1000
            status_code = response.status_code if response else 500

            # Set by backend.middleware.auth.get_session_subject
            user_id = getattr(request.state, "user_id", None)

            # Client IP (handle proxies)
            client_ip = request.headers.get(
                "x-forwarded-for", request.client.host if request.client else "unknown"
            )
            if "," in client_ip:
                client_ip = client_ip.split(",")[0].strip()

            log_data = {
                "method": request.method,
                "path": path,
                "query": redact_query(request.url.query),
                "status": status_code,
                "latency_ms": round(latency_ms, 2),
                "client_ip": client_ip,
                "user_id": str(user_id) if user_id else None,
                "user_agent": request.headers.get("user-agent", ""),
            }

            if error:
                log_data["error"] = error

            if status_code >= 500:
                logger.error("api_request", extra=log_data)
            elif status_code >= 400:
                logger.warning("api_request", extra=log_data)
            else:
                logger.info("api_request", extra=log_data)
