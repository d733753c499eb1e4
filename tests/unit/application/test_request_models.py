"""Unit tests for request models and parse_request."""

from __future__ import annotations

import pytest

from counsel.application.dtos import (
    CloseCaseRequest,
    CreateCaseRequest,
    HireStaffRequest,
    PromoteStaffRequest,
    UpdateCaseRequest,
    parse_request,
)
from counsel.domain.errors.validation import ValidationFailedError
from counsel.domain.models.actor_context import ActorContext
from counsel.domain.models.case import CasePriority, CaseResult
from counsel.domain.models.staff import StaffRole


class TestParseRequest:
    def test_returns_model_instances_unchanged(self) -> None:
        request = CreateCaseRequest(
            client_id="client-9", client_username="client9", title="Contract"
        )

        assert parse_request(CreateCaseRequest, request) is request

    def test_validates_mappings(self) -> None:
        request = parse_request(
            CreateCaseRequest,
            {"client_id": "client-9", "client_username": "client9", "title": " Contract "},
        )

        assert request.title == "Contract"
        assert request.priority is CasePriority.MEDIUM

    def test_blank_id_is_validation_error(self) -> None:
        with pytest.raises(ValidationFailedError) as exc_info:
            parse_request(
                CreateCaseRequest,
                {"client_id": "  ", "client_username": "client9", "title": "Contract"},
            )

        assert exc_info.value.field == "client_id"

    def test_unknown_fields_rejected(self) -> None:
        with pytest.raises(ValidationFailedError):
            parse_request(
                CreateCaseRequest,
                {
                    "client_id": "c",
                    "client_username": "c",
                    "title": "t",
                    "assigned_to": "sneaky",
                },
            )

    def test_non_mapping_rejected(self) -> None:
        with pytest.raises(ValidationFailedError, match="Expected CreateCaseRequest"):
            parse_request(CreateCaseRequest, ["client-9"])  # type: ignore[arg-type]


class TestStaffRequests:
    def test_hire_parses_role_value(self) -> None:
        request = parse_request(
            HireStaffRequest,
            {"user_id": "u1", "external_handle": "user_one", "role": "Senior Associate"},
        )

        assert request.role is StaffRole.SENIOR_ASSOCIATE

    def test_hire_defaults_to_paralegal(self) -> None:
        request = HireStaffRequest(user_id="u1", external_handle="user_one")

        assert request.role is StaffRole.PARALEGAL

    def test_hire_rejects_bad_handle_with_reason(self) -> None:
        with pytest.raises(ValidationFailedError, match="underscore"):
            parse_request(HireStaffRequest, {"user_id": "u1", "external_handle": "_bad"})

    def test_unknown_role_rejected(self) -> None:
        with pytest.raises(ValidationFailedError, match="Unknown staff role"):
            parse_request(PromoteStaffRequest, {"user_id": "u1", "new_role": "Janitor"})


class TestCaseRequests:
    def test_close_requires_known_result(self) -> None:
        request = parse_request(CloseCaseRequest, {"case_id": "c1", "result": "win"})

        assert request.result is CaseResult.WIN
        with pytest.raises(ValidationFailedError):
            parse_request(CloseCaseRequest, {"case_id": "c1", "result": "victory"})

    def test_update_changes_only_set_fields(self) -> None:
        request = UpdateCaseRequest(case_id="c1", priority=CasePriority.URGENT)

        assert request.changes() == {"priority": CasePriority.URGENT}
        assert UpdateCaseRequest(case_id="c1").changes() == {}


class TestActorContextCheck:
    context = ActorContext(guild_id="guild-1", user_id="user-9")

    def test_matching_guild_and_actor_accepted(self) -> None:
        request = parse_request(
            HireStaffRequest,
            {
                "guild_id": "guild-1",
                "user_id": "u1",
                "external_handle": "user_one",
                "hired_by": "user-9",
            },
            self.context,
        )

        assert request.hired_by == "user-9"

    def test_omitted_fields_accepted(self) -> None:
        request = parse_request(
            CloseCaseRequest, {"case_id": "c1", "result": "win"}, self.context
        )

        assert request.guild_id is None
        assert request.closed_by is None

    def test_other_guild_rejected(self) -> None:
        with pytest.raises(ValidationFailedError) as exc_info:
            parse_request(
                CloseCaseRequest,
                {"guild_id": "guild-2", "case_id": "c1", "result": "win"},
                self.context,
            )

        assert exc_info.value.field == "guild_id"

    def test_other_actor_rejected(self) -> None:
        with pytest.raises(ValidationFailedError, match="closed_by") as exc_info:
            parse_request(
                CloseCaseRequest,
                {"case_id": "c1", "result": "win", "closed_by": "user-1"},
                self.context,
            )

        assert exc_info.value.field == "closed_by"

    def test_model_instances_are_checked_too(self) -> None:
        request = PromoteStaffRequest(
            user_id="u1", new_role=StaffRole.SENIOR_ASSOCIATE, promoted_by="user-1"
        )

        with pytest.raises(ValidationFailedError):
            parse_request(PromoteStaffRequest, request, self.context)

    def test_requests_without_actor_field_check_guild_only(self) -> None:
        request = parse_request(
            UpdateCaseRequest, {"guild_id": "guild-1", "case_id": "c1"}, self.context
        )

        assert request.actor_field is None
