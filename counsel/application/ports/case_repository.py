"""Case repository port."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from counsel.domain.models.case import Case


class CaseRepository(Protocol):
    """Protocol for case persistence.

    Methods:
        add: Store a new case
        update: Apply field changes to a case
        find_by_id: Retrieve a case by id
        find_by_filters: Filter cases by field equality
        find_by_case_number: Retrieve a case by its number, unique per guild
        find_by_lawyer: Non-closed cases a lawyer is assigned to
        find_by_client: Cases opened by a client
    """

    async def add(self, case: Case) -> Case:
        ...

    async def update(self, case_id: str, changes: Mapping[str, Any]) -> Case | None:
        ...

    async def find_by_id(self, case_id: str) -> Case | None:
        ...

    async def find_by_filters(self, filters: Mapping[str, Any]) -> list[Case]:
        ...

    async def find_by_case_number(self, guild_id: str, case_number: str) -> Case | None:
        ...

    async def find_by_lawyer(self, guild_id: str, lawyer_id: str) -> list[Case]:
        ...

    async def find_by_client(self, guild_id: str, client_id: str) -> list[Case]:
        ...
