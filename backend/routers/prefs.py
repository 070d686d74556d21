"""
Preferences Router

The authenticated preference store. Every endpoint requires a bearer
login token; see backend/middleware/auth.py.
"""

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.db.session import get_db
from backend.errors import ValidationError
from backend.middleware.auth import bearer_token, require_role
from backend.schemas.auth import SessionSubject
from backend.services.preferences import PreferencesService
from backend.services.token_store import TokenStore

router = APIRouter()


@router.get("/get_prefs")
async def get_prefs(
    subject: SessionSubject = Depends(require_role("user")),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Return the stored preference document ({} if none yet)."""
    return await PreferencesService(db).get(subject.user_id)


@router.post("/save_prefs")
async def save_prefs(
    request: Request,
    subject: SessionSubject = Depends(require_role("user")),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Replace the stored preference document with the request body."""
    raw = await request.body()
    try:
        document = json.loads(raw) if raw.strip() else {}
    except ValueError:
        raise ValidationError("Request body is not valid JSON")
    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise ValidationError("Preferences must be a JSON object")

    return await PreferencesService(db).save(subject.user_id, document)


@router.post("/logout")
async def logout(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> dict[str, bool]:
    """Revoke the presented login token. Idempotent."""
    await TokenStore(db).revoke(bearer_token(request))
    return {"isLoggedOut": True}
