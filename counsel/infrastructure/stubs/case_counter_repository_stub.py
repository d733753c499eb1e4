"""In-memory CaseCounterRepository.

``increment_and_get`` goes through the accessor's ``apply``: outside a
transaction the read-modify-write happens without suspending, and inside
one the counter document is version-checked at commit.
"""

from __future__ import annotations

from counsel.application.ports.case_counter_repository import CaseCounterRepository
from counsel.domain.models.case_counter import CaseCounter, counter_id
from counsel.infrastructure.stubs.in_memory_store import DocumentAccessor

COUNTER_COLLECTION = "case_counters"


class CaseCounterRepositoryStub(CaseCounterRepository):
    def __init__(self, accessor: DocumentAccessor) -> None:
        self._accessor = accessor

    async def increment_and_get(self, guild_id: str, year: int) -> int:
        def increment(current: CaseCounter | None) -> CaseCounter:
            counter = current or CaseCounter(guild_id=guild_id, year=year)
            return counter.incremented()

        counter = await self._accessor.apply(
            COUNTER_COLLECTION, counter_id(guild_id, year), increment
        )
        return counter.count

    async def get_current(self, guild_id: str, year: int) -> int:
        counter = await self._accessor.get(COUNTER_COLLECTION, counter_id(guild_id, year))
        return counter.count if counter is not None else 0
