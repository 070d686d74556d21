"""
Personal Data Server - Main Application Entry Point

SSO login, login-token sessions and the authenticated preference store.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.config import get_settings
from backend.db.session import engine
from backend.errors import register_exception_handlers
from backend.middleware.audit_log import AuditLogMiddleware
from backend.routers import health, prefs, sso
from backend.services.readiness import readiness_monitor

settings = get_settings()

logger = logging.getLogger(__name__)

# Initialize Sentry for error monitoring
if settings.sentry_dsn:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"personal-data-server@{settings.app_version}",
        traces_sample_rate=0.1 if settings.environment == "production" else 1.0,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
        ],
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    logging.basicConfig(level=settings.log_level)
    # Database connection pool is lazy-initialized by SQLAlchemy
    readiness_monitor.mark_started()
    logger.info(f"{settings.app_name} {settings.app_version} started")
    yield
    # Shutdown
    readiness_monitor.mark_stopped()
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description=(
        "Personal Data Server: single sign-on, login-token sessions and "
        "server-side storage of user preferences."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
    openapi_url="/api/openapi.json" if settings.debug else None,
)

register_exception_handlers(app)

# Audit logging middleware
app.add_middleware(AuditLogMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["Health"])
app.include_router(sso.router, tags=["SSO"])
app.include_router(prefs.router, tags=["Preferences"])
