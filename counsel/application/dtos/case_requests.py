"""Case lifecycle request models."""

from __future__ import annotations

from typing import ClassVar

from pydantic import Field

from counsel.application.dtos.validation import RequestModel
from counsel.domain.models.case import CasePriority, CaseResult


class CreateCaseRequest(RequestModel):
    """Open a case for a client."""

    actor_field: ClassVar[str | None] = "created_by"

    client_id: str = Field(min_length=1)
    client_username: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    priority: CasePriority = CasePriority.MEDIUM
    created_by: str | None = Field(default=None, min_length=1)


class _CaseLawyerRequest(RequestModel):
    case_id: str = Field(min_length=1)
    lawyer_id: str = Field(min_length=1)


class AssignLawyerRequest(_CaseLawyerRequest):
    actor_field: ClassVar[str | None] = "assigned_by"

    assigned_by: str | None = Field(default=None, min_length=1)


class UnassignLawyerRequest(_CaseLawyerRequest):
    actor_field: ClassVar[str | None] = "unassigned_by"

    unassigned_by: str | None = Field(default=None, min_length=1)


class SetLeadAttorneyRequest(_CaseLawyerRequest):
    actor_field: ClassVar[str | None] = "assigned_by"

    assigned_by: str | None = Field(default=None, min_length=1)


class ReassignLawyerRequest(RequestModel):
    """Move a lawyer from one case to another in one transaction."""

    actor_field: ClassVar[str | None] = "reassigned_by"

    from_case_id: str = Field(min_length=1)
    to_case_id: str = Field(min_length=1)
    lawyer_id: str = Field(min_length=1)
    reassigned_by: str | None = Field(default=None, min_length=1)


class CloseCaseRequest(RequestModel):
    actor_field: ClassVar[str | None] = "closed_by"

    case_id: str = Field(min_length=1)
    result: CaseResult
    result_notes: str | None = Field(default=None, max_length=2000)
    closed_by: str | None = Field(default=None, min_length=1)


class DeclineCaseRequest(RequestModel):
    actor_field: ClassVar[str | None] = "declined_by"

    case_id: str = Field(min_length=1)
    reason: str | None = Field(default=None, max_length=2000)
    declined_by: str | None = Field(default=None, min_length=1)


class UpdateCaseRequest(RequestModel):
    """Change a case's title, description or priority (at least one)."""

    case_id: str = Field(min_length=1)
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    priority: CasePriority | None = None

    def changes(self) -> dict[str, object]:
        return {
            name: value
            for name, value in (
                ("title", self.title),
                ("description", self.description),
                ("priority", self.priority),
            )
            if value is not None
        }


class AddDocumentRequest(RequestModel):
    case_id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1, max_length=10_000)


class AddNoteRequest(RequestModel):
    case_id: str = Field(min_length=1)
    content: str = Field(min_length=1, max_length=2000)
    is_internal: bool = False
