"""Audit log entries: append-only record of every mutation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from counsel.domain.models.identifiers import new_id, utc_now


class AuditAction(str, Enum):
    """Audited actions."""

    STAFF_HIRED = "staff_hired"
    STAFF_PROMOTED = "staff_promoted"
    STAFF_DEMOTED = "staff_demoted"
    STAFF_FIRED = "staff_fired"
    ROLE_LIMIT_BYPASSED = "role_limit_bypassed"
    CASE_CREATED = "case_created"
    CASE_ACCEPTED = "case_accepted"
    CASE_ASSIGNED = "case_assigned"
    CASE_UNASSIGNED = "case_unassigned"
    CASE_REASSIGNED = "case_reassigned"
    CASE_CLOSED = "case_closed"
    CASE_DECLINED = "case_declined"
    CASE_UPDATED = "case_updated"
    LEAD_ATTORNEY_CHANGED = "lead_attorney_changed"
    CASE_DOCUMENT_ADDED = "case_document_added"
    CASE_NOTE_ADDED = "case_note_added"


@dataclass(frozen=True)
class AuditLogEntry:
    """One audited action.

    Attributes:
        guild_id: Guild the action happened in.
        action: What happened.
        actor_id: Who did it.
        target_id: Subject of the action (user or case), if any.
        before: Snapshot of the relevant state before the action.
        after: Snapshot of the relevant state after the action.
        reason: Free-text reason given by the actor.
        metadata: Additional structured context.
    """

    guild_id: str
    action: AuditAction
    actor_id: str
    target_id: str | None = None
    before: Mapping[str, Any] | None = None
    after: Mapping[str, Any] | None = None
    reason: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)
    id: str = field(default_factory=new_id)
