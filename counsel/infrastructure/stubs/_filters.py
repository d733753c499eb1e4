"""Field-equality filter matching shared by the repository stubs."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_MISSING = object()


def matches_filters(record: Any, filters: Mapping[str, Any]) -> bool:
    """True when every filter matches the record.

    A filter matches a scalar field by equality. A filter on a tuple field
    (such as ``assigned_lawyer_ids``) matches when the value is a member,
    unless the filter value is itself a tuple. Unknown fields never match.
    """
    for name, expected in filters.items():
        actual = getattr(record, name, _MISSING)
        if actual is _MISSING:
            return False
        if isinstance(actual, tuple) and not isinstance(expected, tuple):
            if expected not in actual:
                return False
        elif actual != expected:
            return False
    return True
