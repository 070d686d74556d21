"""Pydantic API Schemas for the Personal Data Server."""

from backend.schemas.auth import (
    IssuedLoginToken,
    SessionResult,
    SessionSubject,
)

__all__ = [
    "IssuedLoginToken",
    "SessionResult",
    "SessionSubject",
]
