"""Identifier and clock helpers shared by domain records."""

from __future__ import annotations

from datetime import datetime, timezone

from uuid6 import uuid7


def new_id() -> str:
    """Return a new time-ordered record identifier (UUIDv7 string)."""
    return str(uuid7())


def utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)
