"""HTTP route modules for the Personal Data Server."""

from backend.routers import health, prefs, sso

__all__ = ["health", "prefs", "sso"]
