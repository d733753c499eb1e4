"""In-memory append-only AuditLogRepository."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from counsel.application.ports.audit_log_repository import AuditLogRepository
from counsel.domain.models.audit_log import AuditLogEntry
from counsel.infrastructure.stubs._filters import matches_filters
from counsel.infrastructure.stubs.in_memory_store import DocumentAccessor

AUDIT_COLLECTION = "audit_log"


class AuditLogRepositoryStub(AuditLogRepository):
    """Audit entries keyed by entry id. Entries are never updated."""

    def __init__(self, accessor: DocumentAccessor) -> None:
        self._accessor = accessor

    async def log_action(self, entry: AuditLogEntry) -> AuditLogEntry:
        return await self._accessor.put(AUDIT_COLLECTION, entry.id, entry)

    async def find_by_filters(self, filters: Mapping[str, Any]) -> list[AuditLogEntry]:
        entries = await self._accessor.scan(
            AUDIT_COLLECTION, lambda entry: matches_filters(entry, filters)
        )
        # UUIDv7 ids are time-ordered, so they break timestamp ties in order
        return sorted(entries, key=lambda entry: (entry.timestamp, entry.id))
