"""In-memory CaseRepository over the document store."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from counsel.application.ports.case_repository import CaseRepository
from counsel.domain.models.case import Case, CaseStatus
from counsel.infrastructure.stubs._filters import matches_filters
from counsel.infrastructure.stubs.in_memory_store import DocumentAccessor

CASE_COLLECTION = "cases"


class CaseRepositoryStub(CaseRepository):
    """Cases keyed by case id; listings are ordered by creation time."""

    def __init__(self, accessor: DocumentAccessor) -> None:
        self._accessor = accessor

    async def add(self, case: Case) -> Case:
        return await self._accessor.put(CASE_COLLECTION, case.id, case)

    async def update(self, case_id: str, changes: Mapping[str, Any]) -> Case | None:
        def mutate(current: Case | None) -> Case | None:
            if current is None:
                return None
            return replace(current, **changes)

        return await self._accessor.apply(CASE_COLLECTION, case_id, mutate)

    async def find_by_id(self, case_id: str) -> Case | None:
        return await self._accessor.get(CASE_COLLECTION, case_id)

    async def find_by_filters(self, filters: Mapping[str, Any]) -> list[Case]:
        cases = await self._accessor.scan(
            CASE_COLLECTION, lambda case: matches_filters(case, filters)
        )
        return sorted(cases, key=lambda case: (case.created_at, case.id))

    async def find_by_case_number(self, guild_id: str, case_number: str) -> Case | None:
        cases = await self.find_by_filters(
            {"guild_id": guild_id, "case_number": case_number}
        )
        return cases[0] if cases else None

    async def find_by_lawyer(self, guild_id: str, lawyer_id: str) -> list[Case]:
        cases = await self.find_by_filters(
            {"guild_id": guild_id, "assigned_lawyer_ids": lawyer_id}
        )
        return [case for case in cases if case.status is not CaseStatus.CLOSED]

    async def find_by_client(self, guild_id: str, client_id: str) -> list[Case]:
        return await self.find_by_filters({"guild_id": guild_id, "client_id": client_id})
