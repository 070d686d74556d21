"""
Preference Merging

Deep merge of preference mappings and the sparse difference used to keep
the anonymous store modification-only.
"""

import copy
from collections.abc import Mapping
from typing import Any


def deep_merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """
    Merge overlay onto base and return a new dict.

    Nested mappings are merged key by key. Any other overlay value (lists and
    None included) replaces the base value outright. Neither input is
    mutated, and the result shares no mutable structure with them.
    """
    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in overlay.items():
        existing = merged.get(key)
        if isinstance(value, Mapping) and isinstance(existing, Mapping):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def sparse_diff(defaults: Mapping[str, Any], preferences: Mapping[str, Any]) -> dict[str, Any]:
    """
    Keys of preferences whose values differ from defaults.

    deep_merge(defaults, sparse_diff(defaults, p)) == deep_merge(defaults, p)
    """
    diff: dict[str, Any] = {}
    for key, value in preferences.items():
        if key not in defaults:
            diff[key] = copy.deepcopy(value)
            continue
        default = defaults[key]
        if isinstance(value, Mapping) and isinstance(default, Mapping):
            nested = sparse_diff(default, value)
            if nested:
                diff[key] = nested
        elif value != default:
            diff[key] = copy.deepcopy(value)
    return diff
