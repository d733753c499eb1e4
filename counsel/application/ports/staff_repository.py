"""Staff repository port.

Developer Golden Rules:
1. FAIL LOUD - Repository raises on store errors, services decide
2. NO BUSINESS RULES - Capacity and hierarchy checks live in the service
3. SOFT DELETE - Staff records are never removed, only terminated
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from counsel.domain.models.staff import StaffRecord, StaffRole


class StaffRepository(Protocol):
    """Protocol for staff record persistence."""

    async def add(self, record: StaffRecord) -> StaffRecord:
        """Store a new staff record and return it."""
        ...

    async def update(self, record_id: str, changes: Mapping[str, Any]) -> StaffRecord | None:
        """Apply field changes to a record.

        Returns:
            The updated record, or None if no record has ``record_id``.
        """
        ...

    async def find_by_id(self, record_id: str) -> StaffRecord | None:
        ...

    async def find_by_filters(self, filters: Mapping[str, Any]) -> list[StaffRecord]:
        """Return records whose fields equal every filter value."""
        ...

    async def find_by_user_id(self, guild_id: str, user_id: str) -> StaffRecord | None:
        """Return the user's active record, else their most recent one."""
        ...

    async def find_staff_by_external_handle(
        self, guild_id: str, external_handle: str
    ) -> StaffRecord | None:
        """Return the active record bound to ``external_handle`` (case-insensitive)."""
        ...

    async def count_active_by_role(self, guild_id: str, role: StaffRole) -> int:
        ...

    async def find_active(self, guild_id: str) -> list[StaffRecord]:
        ...
