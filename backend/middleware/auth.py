"""
Authentication Dependencies

Resolves the bearer login token of a request to a request-scoped
SessionSubject. Nothing about the authenticated state is kept globally.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.db.session import get_db
from backend.errors import Forbidden
from backend.schemas.auth import SessionSubject
from backend.services.token_store import TokenStore


def bearer_token(request: Request) -> str | None:
    """Token from an "Authorization: Bearer <token>" header, if any."""
    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


async def get_session_subject(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> SessionSubject:
    """
    Validate the bearer login token and return the authenticated subject.

    Raises Unauthorized (401) without saying whether the token was missing,
    malformed, unknown or expired.
    """
    subject = await TokenStore(db).validate(bearer_token(request))

    # Picked up by the audit log middleware
    request.state.user_id = subject.user_id
    return subject


def require_role(*roles: str):
    """Dependency that checks the subject holds one of the given roles."""

    async def check(subject: SessionSubject = Depends(get_session_subject)):
        if not any(subject.has_role(role) for role in roles):
            raise Forbidden(f"Required role: {', '.join(roles)}")
        return subject

    return check
