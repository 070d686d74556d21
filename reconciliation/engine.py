"""
Reconciliation Engine

Keeps one active preference model and decides, on every auth-state
transition, which preference set wins:

- login:  deep_merge(base=authenticated, overlay=anonymous)
- logout: deep_merge(base=defaults, overlay=anonymous)

The anonymous set is sparse (modified keys only), which is why logout and
anonymous resets merge onto the full default set instead of keeping keys
the authenticated store contributed.

Every model update is applied in one step and announced to subscribers as
a single ModelChange. A failed store read leaves both the auth state and
the model exactly as they were.
"""

import asyncio
import copy
import logging
from collections.abc import Callable
from typing import Any

from backend.errors import StoreUnavailable
from reconciliation.merge import deep_merge, sparse_diff
from reconciliation.schemas import AuthState, ModelChange, ReconciliationConfig
from reconciliation.stores import PreferenceStore

logger = logging.getLogger(__name__)

Listener = Callable[[ModelChange], None]


class ReconciliationEngine:
    """Routes reads/writes by auth state and reconciles on transitions."""

    def __init__(
        self,
        config: ReconciliationConfig,
        anonymous_store: PreferenceStore,
        authenticated_store: PreferenceStore,
        auth_state: AuthState | None = None,
    ):
        self.config = config
        self.anonymous_store = anonymous_store
        self.authenticated_store = authenticated_store
        self._auth_state = auth_state or AuthState()
        self._model: dict[str, Any] = copy.deepcopy(config.default_preferences)
        self._listeners: list[Listener] = []
        # Transitions, resets and writes never interleave on one engine
        self._lock = asyncio.Lock()

    @property
    def auth_state(self) -> AuthState:
        return self._auth_state

    @property
    def model(self) -> dict[str, Any]:
        """Deep copy of the active preference model."""
        return copy.deepcopy(self._model)

    @property
    def active_store(self) -> PreferenceStore:
        if self._auth_state.is_logged_in:
            return self.authenticated_store
        return self.anonymous_store

    # ── Notification channel ──────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener for model changes.

        Listeners run in subscription order, once per change.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _apply(self, preferences: dict[str, Any], source: str) -> dict[str, Any]:
        current = copy.deepcopy(preferences)
        change = ModelChange(
            previous=self._model,
            current=copy.deepcopy(current),
            source=source,
        )
        self._model = current

        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception(f"Preference listener {listener!r} failed on {source} change")

        return self.model

    # ── Store routing ─────────────────────────────────

    async def read(self) -> dict[str, Any]:
        """Preferences held by the store the current auth state selects."""
        return await self.active_store.get_preferences()

    async def write(self, preferences: dict[str, Any]) -> dict[str, Any]:
        """
        Persist preferences to the active store and make them the model.

        While anonymous, only the keys that differ from the defaults are
        written, keeping the cookie sparse.

        Returns:
            The settings document that was stored
        """
        async with self._lock:
            if self._auth_state.is_logged_in:
                settings = {"preferences": copy.deepcopy(preferences)}
                resolved = preferences
            else:
                sparse = sparse_diff(self.config.default_preferences, preferences)
                settings = {"preferences": sparse}
                resolved = deep_merge(self.config.default_preferences, sparse)

            stored = await self.active_store.set(settings)
            self._apply(resolved, "write")
            return stored

    async def load(self) -> dict[str, Any]:
        """Populate the model from the active store without a transition."""
        async with self._lock:
            if self._auth_state.is_logged_in:
                preferences = await self.authenticated_store.get_preferences()
            else:
                preferences = await self._resolved_anonymous()
            return self._apply(preferences, "load")

    # ── Reconciliation ────────────────────────────────

    async def on_auth_transition(self, is_logged_in: bool) -> dict[str, Any]:
        """
        Switch auth state and recompute the model.

        A transition to the state already held changes nothing.

        Raises:
            StoreUnavailable: a store read failed; nothing was changed
        """
        async with self._lock:
            if is_logged_in == self._auth_state.is_logged_in:
                return self.model

            if is_logged_in:
                anonymous, authenticated = await self._read_both()
                preferences = deep_merge(authenticated, anonymous)
                source = "login"
            else:
                preferences = await self._resolved_anonymous()
                source = "logout"

            self._auth_state = AuthState(is_logged_in=is_logged_in)
            logger.info(f"Preferences reconciled on {source}")
            return self._apply(preferences, source)

    async def reset(self) -> dict[str, Any]:
        """
        Reset the model.

        Anonymous: defaults overlaid with the anonymous set.
        Authenticated: a pure reset to the defaults, written to the
        authenticated store in one write before the model changes.

        Raises:
            StoreUnavailable: the read or write failed; nothing was changed
        """
        async with self._lock:
            if self._auth_state.is_logged_in:
                defaults = copy.deepcopy(self.config.default_preferences)
                await self.authenticated_store.set({"preferences": defaults})
                preferences = defaults
            else:
                preferences = await self._resolved_anonymous()
            return self._apply(preferences, "reset")

    async def _resolved_anonymous(self) -> dict[str, Any]:
        anonymous = await self.anonymous_store.get_preferences()
        return deep_merge(self.config.default_preferences, anonymous)

    async def _read_both(self) -> tuple[dict[str, Any], dict[str, Any]]:
        """Read the anonymous and authenticated sets concurrently."""
        results = await asyncio.gather(
            self.anonymous_store.get_preferences(),
            self.authenticated_store.get_preferences(),
            return_exceptions=True,
        )
        for store, result in zip((self.anonymous_store, self.authenticated_store), results):
            if isinstance(result, StoreUnavailable):
                raise result
            if isinstance(result, Exception):
                raise StoreUnavailable(f"Reading the {store.name} store failed: {result}") from result
            if isinstance(result, BaseException):
                # Cancellation and interpreter exits propagate unwrapped
                raise result
        anonymous, authenticated = results
        return anonymous, authenticated
