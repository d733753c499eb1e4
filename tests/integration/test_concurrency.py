"""Concurrent operations against one engine.

Operations on the same subject are serialized by the queue; operations on
different subjects race and are kept consistent by the store's version
checks.
"""

from __future__ import annotations

import asyncio

import pytest

from counsel.application.ports.audit_log_repository import AuditLogRepository
from counsel.application.services.case_service import case_queue_key
from counsel.bootstrap.engine import Engine
from counsel.domain.models.actor_context import ActorContext
from counsel.domain.models.audit_log import AuditAction
from counsel.domain.models.operation_result import FailureKind
from counsel.domain.models.staff import StaffRole
from tests.helpers import GUILD_ID

pytestmark = pytest.mark.integration


async def _open_case(engine: Engine, clerk: ActorContext, username: str) -> str:
    result = await engine.case_service.create_case(
        clerk, {"client_id": f"id-{username}", "client_username": username, "title": "Matter"}
    )
    return result.value.id


async def _wait_until(predicate) -> None:
    for _ in range(1000):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


async def test_concurrent_creates_get_gap_free_numbers(
    engine: Engine, clerk: ActorContext
) -> None:
    results = await asyncio.gather(
        *(
            engine.case_service.create_case(
                clerk,
                {"client_id": f"client-{n}", "client_username": "client", "title": "Matter"},
            )
            for n in range(20)
        )
    )

    assert all(result.success for result in results)
    numbers = sorted(result.value.case_number for result in results)
    assert numbers == [f"2025-{n:04d}-client" for n in range(1, 21)]


async def test_owner_operation_overtakes_waiting_operations(
    engine: Engine, owner: ActorContext, clerk: ActorContext
) -> None:
    case_id = await _open_case(engine, clerk, "client9")
    key = case_queue_key(case_id)
    gate = asyncio.Event()
    blocker = engine.queue.submit(gate.wait, "admin", GUILD_ID, key=key)
    await _wait_until(lambda: engine.queue.is_processing(key))

    from_clerk = asyncio.create_task(
        engine.case_service.update_case(clerk, {"case_id": case_id, "title": "Clerk"})
    )
    from_owner = asyncio.create_task(
        engine.case_service.update_case(owner, {"case_id": case_id, "title": "Owner"})
    )
    await _wait_until(lambda: engine.queue.get_queue_length(key) == 2)
    gate.set()
    await blocker
    clerk_result, owner_result = await asyncio.gather(from_clerk, from_owner)

    assert clerk_result.success and owner_result.success
    stored = await engine.case_service.get_case_by_id(clerk, case_id)
    assert stored.title == "Clerk"
    audit = engine.uow_factory.get_repository(AuditLogRepository)
    updates = await audit.find_by_filters(
        {"guild_id": GUILD_ID, "target_id": case_id, "action": AuditAction.CASE_UPDATED}
    )
    assert [entry.actor_id for entry in updates] == ["owner-1", "clerk-1"]


async def test_same_case_operations_do_not_conflict(
    engine: Engine,
    clerk: ActorContext,
    lawyer_a: ActorContext,
    lawyer_b: ActorContext,
    lawyer_c: ActorContext,
) -> None:
    case_id = await _open_case(engine, clerk, "client9")
    await engine.case_service.accept_case(lawyer_a, case_id)

    results = await asyncio.gather(
        engine.case_service.assign_lawyer(clerk, {"case_id": case_id, "lawyer_id": "lawyer-B"}),
        engine.case_service.assign_lawyer(clerk, {"case_id": case_id, "lawyer_id": "lawyer-C"}),
        engine.case_service.add_note(clerk, {"case_id": case_id, "content": "Filed"}),
    )

    assert all(result.success for result in results)
    stored = await engine.case_service.get_case_by_id(clerk, case_id)
    assert stored.assigned_lawyer_ids == ("lawyer-A", "lawyer-B", "lawyer-C")
    assert len(stored.notes) == 1


async def test_reassign_racing_close_never_loses_the_lawyer(
    engine: Engine,
    clerk: ActorContext,
    lawyer_a: ActorContext,
    lawyer_b: ActorContext,
) -> None:
    source_id = await _open_case(engine, clerk, "alpha")
    target_id = await _open_case(engine, clerk, "beta")
    await engine.case_service.accept_case(lawyer_a, source_id)
    await engine.case_service.accept_case(lawyer_b, target_id)

    reassigned, closed = await asyncio.gather(
        engine.case_service.reassign_lawyer(
            clerk,
            {"from_case_id": source_id, "to_case_id": target_id, "lawyer_id": "lawyer-A"},
        ),
        engine.case_service.close_case(clerk, {"case_id": target_id, "result": "settlement"}),
    )

    source = await engine.case_service.get_case_by_id(clerk, source_id)
    target = await engine.case_service.get_case_by_id(clerk, target_id)
    on_source = "lawyer-A" in source.assigned_lawyer_ids
    on_target = "lawyer-A" in target.assigned_lawyer_ids
    assert on_source != on_target
    if reassigned.success:
        assert on_target
    else:
        assert reassigned.kind is FailureKind.ALREADY_CLOSED
        assert on_source
    assert closed.success


async def test_reassign_and_note_on_target_both_succeed(
    engine: Engine,
    clerk: ActorContext,
    lawyer_a: ActorContext,
    lawyer_b: ActorContext,
) -> None:
    source_id = await _open_case(engine, clerk, "alpha")
    target_id = await _open_case(engine, clerk, "beta")
    await engine.case_service.accept_case(lawyer_a, source_id)
    await engine.case_service.accept_case(lawyer_b, target_id)

    reassigned, *notes = await asyncio.gather(
        engine.case_service.reassign_lawyer(
            clerk,
            {"from_case_id": source_id, "to_case_id": target_id, "lawyer_id": "lawyer-A"},
        ),
        *(
            engine.case_service.add_note(clerk, {"case_id": target_id, "content": f"Note {n}"})
            for n in range(3)
        ),
    )

    assert reassigned.success, reassigned.error
    assert all(note.success for note in notes)
    target = await engine.case_service.get_case_by_id(clerk, target_id)
    assert "lawyer-A" in target.assigned_lawyer_ids
    assert len(target.notes) == 3


async def test_reassign_waits_for_busy_target_case(
    engine: Engine,
    clerk: ActorContext,
    lawyer_a: ActorContext,
    lawyer_b: ActorContext,
) -> None:
    source_id = await _open_case(engine, clerk, "alpha")
    target_id = await _open_case(engine, clerk, "beta")
    await engine.case_service.accept_case(lawyer_a, source_id)
    await engine.case_service.accept_case(lawyer_b, target_id)
    target_key = case_queue_key(target_id)
    gate = asyncio.Event()
    blocker = engine.queue.submit(gate.wait, "admin", GUILD_ID, key=target_key)
    await _wait_until(lambda: engine.queue.is_processing(target_key))

    reassign = asyncio.create_task(
        engine.case_service.reassign_lawyer(
            clerk,
            {"from_case_id": source_id, "to_case_id": target_id, "lawyer_id": "lawyer-A"},
        )
    )
    await _wait_until(lambda: engine.queue.get_queue_length(target_key) == 1)

    assert not reassign.done()
    source = await engine.case_service.get_case_by_id(clerk, source_id)
    assert "lawyer-A" in source.assigned_lawyer_ids
    gate.set()
    await blocker
    result = await reassign
    assert result.success, result.error


async def test_concurrent_hires_respect_capacity(
    engine: Engine, manager: ActorContext
) -> None:
    results = await asyncio.gather(
        *(
            engine.staff_service.hire_staff(
                manager,
                {
                    "user_id": f"user-{n}",
                    "external_handle": f"handle_{n}",
                    "role": "Managing Partner",
                },
            )
            for n in range(5)
        )
    )

    assert sum(result.success for result in results) == 1
    assert sorted(
        result.kind for result in results if not result.success
    ) == [FailureKind.BUSINESS_RULE] * 4
    counts = await engine.staff_service.get_role_counts(manager)
    assert counts[StaffRole.MANAGING_PARTNER] == 1
