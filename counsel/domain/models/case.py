"""Case domain model: statuses, transitions and case-number helpers.

State machine (linear, no cycles):
    PENDING -> IN_PROGRESS (accept)
    IN_PROGRESS -> CLOSED (close)
    PENDING -> CLOSED (decline, result DISMISSED)

CLOSED is terminal. A case transitions to CLOSED exactly once.

Invariants (checked on every construction):
    - lead_attorney_id, when set, is a member of assigned_lawyer_ids
    - status == CLOSED  <=>  result, closed_at and closed_by are all set
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from counsel.domain.models.identifiers import new_id, utc_now


class CaseStatus(str, Enum):
    """Lifecycle status of a case."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"

    def is_terminal(self) -> bool:
        return self is CaseStatus.CLOSED

    def valid_transitions(self) -> frozenset[CaseStatus]:
        """States reachable from this state."""
        return CASE_TRANSITIONS.get(self, frozenset())


CASE_TRANSITIONS: dict[CaseStatus, frozenset[CaseStatus]] = {
    CaseStatus.PENDING: frozenset({CaseStatus.IN_PROGRESS, CaseStatus.CLOSED}),
    CaseStatus.IN_PROGRESS: frozenset({CaseStatus.CLOSED}),
    CaseStatus.CLOSED: frozenset(),
}


class CasePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class CaseResult(str, Enum):
    WIN = "win"
    LOSS = "loss"
    SETTLEMENT = "settlement"
    DISMISSED = "dismissed"
    WITHDRAWN = "withdrawn"


@dataclass(frozen=True)
class CaseDocument:
    """A document attached to a case (text or a link)."""

    title: str
    content: str
    created_by: str
    created_at: datetime = field(default_factory=utc_now)
    id: str = field(default_factory=new_id)


@dataclass(frozen=True)
class CaseNote:
    """A note on a case; internal notes are hidden from the client."""

    content: str
    created_by: str
    is_internal: bool = False
    created_at: datetime = field(default_factory=utc_now)
    id: str = field(default_factory=new_id)


@dataclass(frozen=True)
class Case:
    """A client matter.

    Attributes:
        guild_id: Guild the case belongs to.
        case_number: Unique ``<year>-<sequence>-<client>`` number.
        client_id: Chat-platform id of the client.
        client_username: Client username used in the case number.
        title: Short title.
        description: Free-text description.
        status: Lifecycle status.
        priority: Case priority.
        lead_attorney_id: Lawyer with primary responsibility.
        assigned_lawyer_ids: Assigned lawyers in assignment order.
        channel_id: Chat channel created when the case was accepted.
        result: Outcome, set exactly when closed.
        accepted_at: When the case moved to IN_PROGRESS.
    """

    guild_id: str
    case_number: str
    client_id: str
    client_username: str
    title: str
    description: str = ""
    status: CaseStatus = CaseStatus.PENDING
    priority: CasePriority = CasePriority.MEDIUM
    lead_attorney_id: str | None = None
    assigned_lawyer_ids: tuple[str, ...] = ()
    channel_id: str | None = None
    result: CaseResult | None = None
    result_notes: str | None = None
    closed_at: datetime | None = None
    closed_by: str | None = None
    accepted_at: datetime | None = None
    documents: tuple[CaseDocument, ...] = ()
    notes: tuple[CaseNote, ...] = ()
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        """Enforce the structural invariants of a case record."""
        if len(set(self.assigned_lawyer_ids)) != len(self.assigned_lawyer_ids):
            raise ValueError(f"Case {self.id} has duplicate assigned lawyers")
        if (
            self.lead_attorney_id is not None
            and self.lead_attorney_id not in self.assigned_lawyer_ids
        ):
            raise ValueError(
                f"Case {self.id} lead attorney {self.lead_attorney_id} "
                "is not an assigned lawyer"
            )
        closure_fields = (self.result, self.closed_at, self.closed_by)
        if self.status is CaseStatus.CLOSED:
            if any(value is None for value in closure_fields):
                raise ValueError(
                    f"Closed case {self.id} requires result, closed_at and closed_by"
                )
        elif any(value is not None for value in closure_fields):
            raise ValueError(
                f"Case {self.id} has closure fields set while {self.status.value}"
            )

    @property
    def is_closed(self) -> bool:
        return self.status is CaseStatus.CLOSED

    def can_transition_to(self, target: CaseStatus) -> bool:
        return target in self.status.valid_transitions()

    def accepted_by(self, lawyer_id: str, *, at: datetime | None = None) -> Case:
        """PENDING -> IN_PROGRESS with ``lawyer_id`` as sole lawyer and lead."""
        timestamp = at or utc_now()
        return replace(
            self,
            status=CaseStatus.IN_PROGRESS,
            lead_attorney_id=lawyer_id,
            assigned_lawyer_ids=(lawyer_id,),
            accepted_at=timestamp,
            updated_at=timestamp,
        )

    def closed_with(
        self,
        result: CaseResult,
        *,
        closed_by: str,
        notes: str | None = None,
        at: datetime | None = None,
    ) -> Case:
        """Move to CLOSED recording the outcome."""
        timestamp = at or utc_now()
        return replace(
            self,
            status=CaseStatus.CLOSED,
            result=result,
            result_notes=notes,
            closed_at=timestamp,
            closed_by=closed_by,
            updated_at=timestamp,
        )

    def with_lawyer(self, lawyer_id: str, *, at: datetime | None = None) -> Case:
        """Append ``lawyer_id`` to the assigned lawyers; the lead is untouched."""
        return replace(
            self,
            assigned_lawyer_ids=self.assigned_lawyer_ids + (lawyer_id,),
            updated_at=at or utc_now(),
        )

    def without_lawyer(self, lawyer_id: str, *, at: datetime | None = None) -> Case:
        """Remove ``lawyer_id``; re-elect the lead if it was removed.

        The new lead is the earliest-assigned remaining lawyer, so a case with
        remaining lawyers is never left without a lead.
        """
        remaining = tuple(
            assigned for assigned in self.assigned_lawyer_ids if assigned != lawyer_id
        )
        lead = self.lead_attorney_id
        if lead == lawyer_id or lead not in remaining:
            lead = remaining[0] if remaining else None
        return replace(
            self,
            assigned_lawyer_ids=remaining,
            lead_attorney_id=lead,
            updated_at=at or utc_now(),
        )

    def with_lead(self, lawyer_id: str, *, at: datetime | None = None) -> Case:
        """Make ``lawyer_id`` the lead, assigning them first if needed."""
        assigned = self.assigned_lawyer_ids
        if lawyer_id not in assigned:
            assigned = assigned + (lawyer_id,)
        return replace(
            self,
            assigned_lawyer_ids=assigned,
            lead_attorney_id=lawyer_id,
            updated_at=at or utc_now(),
        )


_USERNAME_STRIP = re.compile(r"[^a-z0-9_]")
_CASE_NUMBER = re.compile(r"^(\d{4})-(\d{4,})-(.+)$")
_CHANNEL_STRIP = re.compile(r"[^a-z0-9-]")
MAX_CHANNEL_NAME_LENGTH = 100
MAX_USERNAME_COMPONENT = 32


def sanitize_client_username(username: str) -> str:
    """Reduce a username to the characters allowed in a case number.

    Lowercases and keeps only ``[a-z0-9_]``; falls back to ``client`` when
    nothing survives.
    """
    cleaned = _USERNAME_STRIP.sub("", username.lower())[:MAX_USERNAME_COMPONENT]
    return cleaned or "client"


def generate_case_number(year: int, sequence: int, username: str) -> str:
    """Format ``{year}-{sequence:04d}-{sanitized username}``."""
    return f"{year}-{sequence:04d}-{sanitize_client_username(username)}"


def parse_case_number(case_number: str) -> tuple[int, int, str] | None:
    """Split a case number into (year, sequence, username), or None if malformed."""
    match = _CASE_NUMBER.match(case_number)
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2)), match.group(3)


def generate_channel_name(case_number: str) -> str:
    """Channel name for a case, limited to the platform's 100 characters."""
    name = _CHANNEL_STRIP.sub("-", f"case-{case_number}".lower())
    return name[:MAX_CHANNEL_NAME_LENGTH]
