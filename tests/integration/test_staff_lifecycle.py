"""End-to-end staff lifecycle, including compensation after failed commits."""

from __future__ import annotations

import pytest

from counsel.application.ports.audit_log_repository import AuditLogRepository
from counsel.bootstrap.engine import Engine
from counsel.domain.errors.unit_of_work import TransientTransactionError
from counsel.domain.models.actor_context import ActorContext
from counsel.domain.models.audit_log import AuditAction
from counsel.domain.models.operation_result import GENERIC_FAILURE_MESSAGE, FailureKind
from counsel.domain.models.staff import StaffRole, StaffStatus
from counsel.infrastructure.stubs.chat_platform_stub import ChatPlatformStub
from counsel.infrastructure.stubs.in_memory_store import FaultStage, InMemoryDocumentStore
from tests.helpers import GUILD_ID

pytestmark = pytest.mark.integration

HIRE = {"user_id": "user-1", "external_handle": "user_one", "role": "Paralegal"}


async def test_staff_member_career(
    engine: Engine, owner: ActorContext, manager: ActorContext, platform: ChatPlatformStub
) -> None:
    service = engine.staff_service

    assert (await service.hire_staff(manager, HIRE)).success
    await service.promote_staff(manager, {"user_id": "user-1", "new_role": "Junior Associate"})
    await service.promote_staff(manager, {"user_id": "user-1", "new_role": "Senior Associate"})
    await service.demote_staff(manager, {"user_id": "user-1", "new_role": "Junior Associate"})
    assert platform.member_roles(GUILD_ID, "user-1") == {"ext-junior_associate"}

    fired = await service.fire_staff(owner, {"user_id": "user-1", "reason": "Restructure"})

    assert fired.value.status is StaffStatus.TERMINATED
    assert len(fired.value.promotion_history) == 5
    assert platform.member_roles(GUILD_ID, "user-1") == frozenset()
    audit = engine.uow_factory.get_repository(AuditLogRepository)
    trail = await audit.find_by_filters({"guild_id": GUILD_ID, "target_id": "user-1"})
    assert [entry.action for entry in trail] == [
        AuditAction.STAFF_HIRED,
        AuditAction.STAFF_PROMOTED,
        AuditAction.STAFF_PROMOTED,
        AuditAction.STAFF_DEMOTED,
        AuditAction.STAFF_FIRED,
    ]


async def test_owner_bypass_is_audited_with_counts(
    engine: Engine, owner: ActorContext
) -> None:
    service = engine.staff_service
    await service.hire_staff(
        owner, {"user_id": "mp-1", "external_handle": "mp_one", "role": "Managing Partner"}
    )

    result = await service.hire_staff(
        owner, {"user_id": "mp-2", "external_handle": "mp_two", "role": "Managing Partner"}
    )

    assert result.success
    assert result.details["capacity_bypassed"] is True
    counts = await service.get_role_counts(owner)
    assert counts[StaffRole.MANAGING_PARTNER] == 2
    audit = engine.uow_factory.get_repository(AuditLogRepository)
    [bypass] = await audit.find_by_filters(
        {"guild_id": GUILD_ID, "action": AuditAction.ROLE_LIMIT_BYPASSED}
    )
    assert bypass.actor_id == "owner-1"
    assert bypass.before == {"current_count": 1, "max_count": 1}
    assert bypass.after == {"current_count": 2, "max_count": 1}


async def test_commit_failure_compensates_exactly_once(
    engine: Engine,
    manager: ActorContext,
    platform: ChatPlatformStub,
    store: InMemoryDocumentStore,
) -> None:
    store.inject_fault(FaultStage.COMMIT, RuntimeError("replica set unavailable"))

    result = await engine.staff_service.hire_staff(manager, HIRE)

    assert result.kind is FailureKind.SYSTEM
    assert result.error == GENERIC_FAILURE_MESSAGE
    assert platform.calls.count("grant_role") == 1
    assert platform.calls.count("revoke_role") == 1
    assert platform.member_roles(GUILD_ID, "user-1") == frozenset()
    assert [m.recipient_ids for m in platform.messages] == [("user-1",)]
    assert await engine.staff_service.get_staff_info(manager, "user-1") is None
    assert engine.metrics.get_sample(
        "counsel_compensations_total", {"outcome": "succeeded"}
    ) == 2.0


async def test_failed_compensation_does_not_block_the_rest(
    engine: Engine,
    manager: ActorContext,
    platform: ChatPlatformStub,
    store: InMemoryDocumentStore,
) -> None:
    store.inject_fault(FaultStage.COMMIT, RuntimeError("replica set unavailable"))
    platform.fail_next("revoke_role", ConnectionError("platform down"), times=3)

    result = await engine.staff_service.hire_staff(manager, HIRE)

    assert result.kind is FailureKind.SYSTEM
    assert platform.calls.count("revoke_role") == 3
    assert len(platform.messages) == 1
    assert engine.metrics.get_sample(
        "counsel_compensations_total", {"outcome": "failed"}
    ) == 1.0


async def test_transient_commit_failures_are_retried(
    engine: Engine, manager: ActorContext, store: InMemoryDocumentStore
) -> None:
    store.inject_fault(FaultStage.COMMIT, TransientTransactionError("blip"), times=2)

    result = await engine.staff_service.hire_staff(manager, HIRE)

    assert result.success
    assert store.committed_transactions >= 1
    info = await engine.staff_service.get_staff_info(manager, "user-1")
    assert info.role is StaffRole.PARALEGAL


async def test_business_rejection_rolls_back_external_change(
    engine: Engine,
    owner: ActorContext,
    manager: ActorContext,
    platform: ChatPlatformStub,
) -> None:
    await engine.staff_service.hire_staff(owner, HIRE)

    result = await engine.staff_service.hire_staff(manager, HIRE)

    assert result.kind is FailureKind.BUSINESS_RULE
    assert platform.calls.count("grant_role") == 1
    assert platform.calls.count("revoke_role") == 0
