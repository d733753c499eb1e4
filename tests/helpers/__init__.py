"""Test helpers for Counsel tests.

Helpers:
    TickingClock: Deterministic clock advancing one second per call
    add_lawyer: Register a guild member holding the lawyer capabilities

Usage:
    from tests.helpers import TickingClock, add_lawyer
"""

from tests.helpers.clock import TickingClock
from tests.helpers.members import (
    ADMIN_ROLE,
    CASE_ROLE,
    GUILD_ID,
    LAWYER_ROLE,
    LEAD_ATTORNEY_ROLE,
    SENIOR_STAFF_ROLE,
    add_lawyer,
)

__all__ = [
    "ADMIN_ROLE",
    "CASE_ROLE",
    "GUILD_ID",
    "LAWYER_ROLE",
    "LEAD_ATTORNEY_ROLE",
    "SENIOR_STAFF_ROLE",
    "TickingClock",
    "add_lawyer",
]
