"""
Edge Proxy - Main Application Entry Point

Serves the browser: keeps the login token in a cookie and relays
preference calls to the Personal Data Server.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from backend.config import get_settings
from backend.errors import register_exception_handlers
from backend.middleware.audit_log import AuditLogMiddleware
from edge_proxy import routes

settings = get_settings()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    logging.basicConfig(level=settings.log_level)
    logger.info(f"Edge Proxy started, relaying to {settings.pds_server_url}")
    yield


app = FastAPI(
    title="Edge Proxy",
    description="Login-token cookie handling and preference relay to the Personal Data Server.",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.debug else None,
    redoc_url=None,
    openapi_url="/api/openapi.json" if settings.debug else None,
)

register_exception_handlers(app)

# Audit logging middleware
app.add_middleware(AuditLogMiddleware)


@app.get("/health", tags=["Health"])
async def health_check():
    return {"isHealthy": True}


app.include_router(routes.router, tags=["Relay"])
