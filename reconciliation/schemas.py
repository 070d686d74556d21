"""
Reconciliation Schemas

Configuration and value types of the preference reconciliation engine.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# Anonymous-store cookie written by the preferences editor
DEFAULT_COOKIE_NAME = "fluid-ui-settings"


class AuthState(BaseModel):
    """Whether the client currently holds a login session."""

    model_config = ConfigDict(frozen=True)

    is_logged_in: bool = False


class ReconciliationConfig(BaseModel):
    """Explicit configuration of an engine and its stores."""

    default_preferences: dict[str, Any] = Field(
        default_factory=dict,
        description="Initial/default preference set; the base of the anonymous view",
    )
    cookie_name: str = DEFAULT_COOKIE_NAME
    get_path: str = "/get_prefs"
    save_path: str = "/save_prefs"
    timeout_seconds: float = 10.0


class ModelChange(BaseModel):
    """One observable mutation of the active preference model."""

    model_config = ConfigDict(frozen=True)

    previous: dict[str, Any]
    current: dict[str, Any]
    source: Literal["load", "login", "logout", "reset", "write"]
