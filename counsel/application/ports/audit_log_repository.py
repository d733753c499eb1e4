"""Audit log repository port. Append-only."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from counsel.domain.models.audit_log import AuditLogEntry


class AuditLogRepository(Protocol):
    """Protocol for audit log persistence."""

    async def log_action(self, entry: AuditLogEntry) -> AuditLogEntry:
        """Append an entry and return it."""
        ...

    async def find_by_filters(self, filters: Mapping[str, Any]) -> list[AuditLogEntry]:
        """Entries matching guild_id and optional actor_id, target_id, action.

        Returned oldest first.
        """
        ...
