"""Staff lifecycle request models."""

from __future__ import annotations

from typing import ClassVar

from pydantic import Field, field_validator

from counsel.application.dtos.validation import RequestModel
from counsel.domain.errors.validation import InvalidExternalHandleError
from counsel.domain.models.staff import StaffRole, validate_external_handle


class _RoleChangeRequest(RequestModel):
    user_id: str = Field(
        min_length=1, description="Chat-platform id of the staff member"
    )
    new_role: StaffRole = Field(description="Role after the change")
    reason: str | None = Field(default=None, max_length=500)

    @field_validator("new_role", mode="before")
    @classmethod
    def parse_role(cls, value: object) -> object:
        if isinstance(value, str):
            return StaffRole.parse(value)
        return value


class HireStaffRequest(RequestModel):
    """Hire a user into a staff role."""

    actor_field: ClassVar[str | None] = "hired_by"

    user_id: str = Field(
        min_length=1, description="Chat-platform id of the new staff member"
    )
    external_handle: str = Field(description="Secondary-platform username")
    role: StaffRole = Field(default=StaffRole.PARALEGAL)
    reason: str | None = Field(default=None, max_length=500)
    hired_by: str | None = Field(default=None, min_length=1)

    @field_validator("role", mode="before")
    @classmethod
    def parse_role(cls, value: object) -> object:
        if isinstance(value, str):
            return StaffRole.parse(value)
        return value

    @field_validator("external_handle")
    @classmethod
    def check_handle(cls, value: str) -> str:
        try:
            return validate_external_handle(value)
        except InvalidExternalHandleError as exc:
            raise ValueError(exc.reason) from exc


class PromoteStaffRequest(_RoleChangeRequest):
    """Move a staff member to a higher role."""

    actor_field: ClassVar[str | None] = "promoted_by"

    promoted_by: str | None = Field(default=None, min_length=1)


class DemoteStaffRequest(_RoleChangeRequest):
    """Move a staff member to a lower role."""

    actor_field: ClassVar[str | None] = "demoted_by"

    demoted_by: str | None = Field(default=None, min_length=1)


class FireStaffRequest(RequestModel):
    """Terminate a staff member."""

    actor_field: ClassVar[str | None] = "fired_by"

    user_id: str = Field(min_length=1)
    reason: str | None = Field(default=None, max_length=500)
    fired_by: str | None = Field(default=None, min_length=1)
