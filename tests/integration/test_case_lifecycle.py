"""End-to-end case lifecycle through the wired engine."""

from __future__ import annotations

import pytest

from counsel.application.ports.audit_log_repository import AuditLogRepository
from counsel.bootstrap.engine import Engine
from counsel.domain.models.actor_context import ActorContext
from counsel.domain.models.audit_log import AuditAction
from counsel.domain.models.case import CaseResult, CaseStatus
from counsel.domain.models.operation_result import FailureKind
from counsel.infrastructure.stubs.chat_platform_stub import ChatPlatformStub
from tests.helpers import GUILD_ID

pytestmark = pytest.mark.integration


async def test_case_from_intake_to_win(
    engine: Engine,
    clerk: ActorContext,
    lawyer_a: ActorContext,
    lawyer_b: ActorContext,
    platform: ChatPlatformStub,
) -> None:
    service = engine.case_service

    created = await service.create_case(
        clerk,
        {"client_id": "client-9", "client_username": "client9", "title": "Lease dispute"},
    )
    assert created.value.case_number == "2025-0001-client9"
    case_id = created.value.id

    accepted = await service.accept_case(lawyer_a, case_id)
    assert accepted.value.lead_attorney_id == "lawyer-A"
    assert accepted.value.channel_id in platform.channels

    assigned = await service.assign_lawyer(
        clerk, {"case_id": case_id, "lawyer_id": "lawyer-B"}
    )
    assert assigned.value.assigned_lawyer_ids == ("lawyer-A", "lawyer-B")

    unassigned = await service.unassign_lawyer(
        clerk, {"case_id": case_id, "lawyer_id": "lawyer-A"}
    )
    assert unassigned.value.assigned_lawyer_ids == ("lawyer-B",)
    assert unassigned.value.lead_attorney_id == "lawyer-B"

    closed = await service.close_case(
        lawyer_b, {"case_id": case_id, "result": "win", "result_notes": "Judgment"}
    )
    assert closed.value.status is CaseStatus.CLOSED
    assert closed.value.result is CaseResult.WIN
    assert closed.value.closed_by == "lawyer-B"

    audit = engine.uow_factory.get_repository(AuditLogRepository)
    trail = await audit.find_by_filters({"guild_id": GUILD_ID, "target_id": case_id})
    assert [entry.action for entry in trail] == [
        AuditAction.CASE_CREATED,
        AuditAction.CASE_ACCEPTED,
        AuditAction.CASE_ASSIGNED,
        AuditAction.CASE_UNASSIGNED,
        AuditAction.LEAD_ATTORNEY_CHANGED,
        AuditAction.CASE_CLOSED,
    ]


async def test_closing_twice_leaves_record_unchanged(
    engine: Engine, clerk: ActorContext, lawyer_a: ActorContext
) -> None:
    service = engine.case_service
    created = await service.create_case(
        clerk, {"client_id": "client-9", "client_username": "client9", "title": "Lease"}
    )
    case_id = created.value.id
    await service.accept_case(lawyer_a, case_id)
    first = await service.close_case(clerk, {"case_id": case_id, "result": "win"})
    version = engine.store.version_of("cases", case_id)

    second = await service.close_case(clerk, {"case_id": case_id, "result": "loss"})

    assert second.kind is FailureKind.ALREADY_CLOSED
    assert engine.store.version_of("cases", case_id) == version
    assert await service.get_case_by_id(clerk, case_id) == first.value
    assert engine.metrics.get_sample(
        "counsel_operations_total",
        {"operation": "close_case", "outcome": "already_closed"},
    ) == 1.0
    assert engine.metrics.get_sample(
        "counsel_transaction_rollbacks_total", {"reason": "rejection"}
    ) == 1.0


async def test_declined_case_cannot_be_accepted(
    engine: Engine, clerk: ActorContext, lawyer_a: ActorContext
) -> None:
    service = engine.case_service
    created = await service.create_case(
        clerk, {"client_id": "client-9", "client_username": "client9", "title": "Lease"}
    )
    await service.decline_case(clerk, {"case_id": created.value.id, "reason": "Conflict"})

    result = await service.accept_case(lawyer_a, created.value.id)

    assert result.kind is FailureKind.ALREADY_CLOSED
    stats = await service.get_case_stats(clerk)
    assert stats.by_result == {"dismissed": 1}


async def test_channel_failure_rolls_back_acceptance(
    engine: Engine,
    clerk: ActorContext,
    lawyer_a: ActorContext,
    platform: ChatPlatformStub,
) -> None:
    created = await engine.case_service.create_case(
        clerk, {"client_id": "client-9", "client_username": "client9", "title": "Lease"}
    )
    platform.fail_next("create_case_channel", ConnectionError("platform down"))

    result = await engine.case_service.accept_case(lawyer_a, created.value.id)

    assert result.kind is FailureKind.SYSTEM
    assert "platform down" not in result.error
    stored = await engine.case_service.get_case_by_id(clerk, created.value.id)
    assert stored.status is CaseStatus.PENDING
    assert stored.assigned_lawyer_ids == ()
