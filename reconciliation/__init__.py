"""Client-side reconciliation of anonymous and authenticated preferences."""

from reconciliation.engine import ReconciliationEngine
from reconciliation.merge import deep_merge, sparse_diff
from reconciliation.schemas import AuthState, ModelChange, ReconciliationConfig
from reconciliation.stores import AnonymousStore, AuthenticatedStore, PreferenceStore

__all__ = [
    "AnonymousStore",
    "AuthState",
    "AuthenticatedStore",
    "ModelChange",
    "PreferenceStore",
    "ReconciliationConfig",
    "ReconciliationEngine",
    "deep_merge",
    "sparse_diff",
]
