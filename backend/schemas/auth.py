"""
Auth Pydantic Schemas

Authenticated-session context and login results.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class SessionSubject(BaseModel):
    """Authenticated subject behind a valid login token (request-scoped)."""

    user_id: UUID
    username: str
    roles: list[str] = Field(default_factory=list)
    sso_account_id: UUID
    expires_at: datetime

    def has_role(self, role: str) -> bool:
        return role in self.roles


class IssuedLoginToken(BaseModel):
    """A freshly issued login token."""

    login_token: str
    max_age: int = Field(description="Lifetime in seconds")
    expires_at: datetime


class SessionResult(BaseModel):
    """Outcome of a successful SSO code exchange."""

    login_token: str = Field(serialization_alias="loginToken")
    max_age: int = Field(serialization_alias="maxAge", description="Lifetime in seconds")
    redirect_target: str = Field(serialization_alias="refererUrl")
