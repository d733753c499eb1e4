"""In-memory StaffRepository over the document store.

The stub is bound either to the store itself (autocommit reads) or to a
StoreSession (transaction-bound, see InMemoryUnitOfWork.get_repository).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from counsel.application.ports.staff_repository import StaffRepository
from counsel.domain.models.staff import StaffRecord, StaffRole, StaffStatus
from counsel.infrastructure.stubs._filters import matches_filters
from counsel.infrastructure.stubs.in_memory_store import DocumentAccessor

STAFF_COLLECTION = "staff"


class StaffRepositoryStub(StaffRepository):
    """Staff records keyed by record id."""

    def __init__(self, accessor: DocumentAccessor) -> None:
        self._accessor = accessor

    async def add(self, record: StaffRecord) -> StaffRecord:
        return await self._accessor.put(STAFF_COLLECTION, record.id, record)

    async def update(
        self, record_id: str, changes: Mapping[str, Any]
    ) -> StaffRecord | None:
        def mutate(current: StaffRecord | None) -> StaffRecord | None:
            if current is None:
                return None
            return replace(current, **changes)

        return await self._accessor.apply(STAFF_COLLECTION, record_id, mutate)

    async def find_by_id(self, record_id: str) -> StaffRecord | None:
        return await self._accessor.get(STAFF_COLLECTION, record_id)

    async def find_by_filters(self, filters: Mapping[str, Any]) -> list[StaffRecord]:
        records = await self._accessor.scan(
            STAFF_COLLECTION, lambda record: matches_filters(record, filters)
        )
        return sorted(records, key=lambda record: record.hired_at)

    async def find_by_user_id(self, guild_id: str, user_id: str) -> StaffRecord | None:
        records = await self.find_by_filters({"guild_id": guild_id, "user_id": user_id})
        if not records:
            return None
        active = [record for record in records if record.is_active]
        if active:
            return active[0]
        return records[-1]

    async def find_staff_by_external_handle(
        self, guild_id: str, external_handle: str
    ) -> StaffRecord | None:
        wanted = external_handle.lower()
        records = await self._accessor.scan(
            STAFF_COLLECTION,
            lambda record: record.guild_id == guild_id
            and record.is_active
            and record.external_handle.lower() == wanted,
        )
        return records[0] if records else None

    async def count_active_by_role(self, guild_id: str, role: StaffRole) -> int:
        records = await self.find_by_filters(
            {"guild_id": guild_id, "role": role, "status": StaffStatus.ACTIVE}
        )
        return len(records)

    async def find_active(self, guild_id: str) -> list[StaffRecord]:
        return await self.find_by_filters(
            {"guild_id": guild_id, "status": StaffStatus.ACTIVE}
        )
