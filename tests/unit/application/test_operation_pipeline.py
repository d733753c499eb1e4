"""Unit tests for the OperationPipeline interceptor chain."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from counsel.application.services.base import PreparedOperation
from counsel.application.services.operation_pipeline import (
    OperationCall,
    OperationPipeline,
    validate_context,
)
from counsel.domain.errors.permission import PermissionDeniedError
from counsel.domain.errors.queue import OperationTimeoutError, QueueClearedError
from counsel.domain.errors.validation import ValidationFailedError
from counsel.domain.models.actor_context import ActorContext
from counsel.domain.models.guild_config import PermissionAction
from counsel.domain.models.operation_result import FailureKind, OperationResult

CONTEXT = ActorContext(guild_id="guild-1", user_id="user-1")


@pytest.fixture
def permission_service() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def metrics() -> MagicMock:
    return MagicMock()


@pytest.fixture
def pipeline(permission_service: AsyncMock, metrics: MagicMock) -> OperationPipeline:
    return OperationPipeline.default(permission_service, metrics)


def call(context=CONTEXT, permission=PermissionAction.CASE) -> OperationCall:
    return OperationCall(name="close_case", context=context, permission=permission)


class TestPreChecks:
    async def test_valid_context_passes(self) -> None:
        assert await validate_context(call()) is None

    async def test_invalid_context_short_circuits(
        self, pipeline: OperationPipeline, permission_service: AsyncMock
    ) -> None:
        operation = AsyncMock()

        result = await pipeline.execute(call(context={"user_id": "x"}), operation)

        assert result.kind is FailureKind.VALIDATION
        assert result.error == "A complete actor context is required"
        operation.assert_not_awaited()
        permission_service.require_permission.assert_not_awaited()

    async def test_permission_denied_short_circuits(
        self, pipeline: OperationPipeline, permission_service: AsyncMock
    ) -> None:
        permission_service.require_permission.side_effect = PermissionDeniedError(
            "case", "user-1", "guild-1"
        )
        operation = AsyncMock()

        result = await pipeline.execute(call(), operation)

        assert result.kind is FailureKind.PERMISSION_DENIED
        assert result.error == "You do not have permission to perform 'case'"
        operation.assert_not_awaited()

    async def test_no_permission_needed_skips_check(
        self, pipeline: OperationPipeline, permission_service: AsyncMock
    ) -> None:
        operation = AsyncMock(return_value=OperationResult.ok(1))

        result = await pipeline.execute(call(permission=None), operation)

        assert result.success
        permission_service.require_permission.assert_not_awaited()


class TestOperationErrors:
    @pytest.mark.parametrize(
        ("error", "kind"),
        [
            (ValidationFailedError("Title is required", field="title"), FailureKind.VALIDATION),
            (OperationTimeoutError("op_1", 30.0), FailureKind.SYSTEM),
            (QueueClearedError("op_1"), FailureKind.SYSTEM),
            (RuntimeError("boom"), FailureKind.SYSTEM),
        ],
    )
    async def test_errors_become_results(
        self, pipeline: OperationPipeline, error: Exception, kind: FailureKind
    ) -> None:
        result = await pipeline.execute(call(), AsyncMock(side_effect=error))

        assert result.success is False
        assert result.kind is kind

    async def test_validation_message_is_returned(self, pipeline: OperationPipeline) -> None:
        operation = AsyncMock(side_effect=ValidationFailedError("Title is required"))

        result = await pipeline.execute(call(), operation)

        assert result.error == "Title is required"


class TestPostHooks:
    async def test_metrics_recorded_per_outcome(
        self, pipeline: OperationPipeline, metrics: MagicMock
    ) -> None:
        await pipeline.execute(call(), AsyncMock(return_value=OperationResult.ok(1)))
        await pipeline.execute(call(context=None), AsyncMock())

        outcomes = [c.args[1] for c in metrics.observe_operation.call_args_list]
        assert outcomes == ["success", "validation"]

    async def test_failing_hook_is_ignored(self) -> None:
        seen: list[str] = []

        def broken(call, result, duration):
            raise RuntimeError("hook bug")

        async def recording(call, result, duration):
            seen.append(call.name)

        pipeline = OperationPipeline(post_hooks=[broken, recording])

        result = await pipeline.execute(
            call(permission=None), AsyncMock(return_value=OperationResult.ok("v"))
        )

        assert result.value == "v"
        assert seen == ["close_case"]


class TestPreparedOperation:
    def test_queue_keys_are_sorted_and_unique(self) -> None:
        body = AsyncMock()

        prepared = PreparedOperation(
            key="case:b", body=body, extra_keys=("case:a", "case:b")
        )

        assert prepared.queue_keys == ["case:a", "case:b"]
        assert PreparedOperation(key="guild-1", body=body).queue_keys == ["guild-1"]
