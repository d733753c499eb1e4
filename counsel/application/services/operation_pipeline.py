"""Explicit interceptor chain around service operations.

Each operation call passes through an ordered list of pre-checks and
post-hooks:

    pre-checks  -> may short-circuit with a failed OperationResult
    operation   -> queued, transactional work
    post-hooks  -> observe the final result (logging, metrics)

Pre-checks run before the operation is queued, so validation failures
and permission denials never enter the queue or a transaction. A
post-hook that raises is logged and ignored.
"""

from __future__ import annotations

import inspect
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from counsel.application.ports.engine_metrics import EngineMetricsPort
from counsel.application.services.permission_service import PermissionService
from counsel.domain.errors.permission import PermissionDeniedError
from counsel.domain.errors.queue import OperationTimeoutError, QueueClearedError
from counsel.domain.errors.validation import ValidationFailedError
from counsel.domain.models.actor_context import ActorContext
from counsel.domain.models.guild_config import PermissionAction
from counsel.domain.models.operation_result import FailureKind, OperationResult

log = structlog.get_logger()


@dataclass(frozen=True)
class OperationCall:
    """One invocation of a service operation.

    Attributes:
        name: Operation name (e.g. "close_case").
        context: Actor context as received; validated by a pre-check.
        permission: Action the actor must hold, if any.
        metadata: Extra context for logs (target ids, ...).
    """

    name: str
    context: Any
    permission: PermissionAction | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


PreCheck = Callable[[OperationCall], Awaitable[OperationResult | None]]
PostHook = Callable[[OperationCall, OperationResult, float], Any]
Operation = Callable[[], Awaitable[OperationResult]]


async def validate_context(call: OperationCall) -> OperationResult | None:
    """Reject calls whose actor context is not a valid ActorContext."""
    if isinstance(call.context, ActorContext):
        return None
    return OperationResult.fail(
        FailureKind.VALIDATION, "A complete actor context is required"
    )


def require_permission(permission_service: PermissionService) -> PreCheck:
    """Pre-check rejecting actors without ``call.permission``."""

    async def check(call: OperationCall) -> OperationResult | None:
        if call.permission is None:
            return None
        try:
            await permission_service.require_permission(call.context, call.permission)
        except PermissionDeniedError as exc:
            return OperationResult.fail(FailureKind.PERMISSION_DENIED, str(exc))
        return None

    return check


def log_outcome(call: OperationCall, result: OperationResult, duration: float) -> None:
    """Post-hook logging the final outcome of every call."""
    context = call.context if isinstance(call.context, ActorContext) else None
    fields = {
        "operation": call.name,
        "guild_id": context.guild_id if context else None,
        "user_id": context.user_id if context else None,
        "duration_ms": round(duration * 1000, 3),
        **call.metadata,
    }
    if result.success:
        log.info("operation_succeeded", **fields)
    elif result.kind is FailureKind.SYSTEM:
        log.error("operation_failed", error=result.error, **fields)
    else:
        log.info(
            "operation_rejected",
            kind=result.kind.value if result.kind else None,
            error=result.error,
            **fields,
        )


def record_metrics(metrics: EngineMetricsPort) -> PostHook:
    """Post-hook reporting outcome and latency of every call."""

    def hook(call: OperationCall, result: OperationResult, duration: float) -> None:
        outcome = "success" if result.success else (
            result.kind.value if result.kind else "failure"
        )
        metrics.observe_operation(call.name, outcome, duration)

    return hook


class OperationPipeline:
    """Ordered pre-checks and post-hooks around an operation."""

    def __init__(
        self,
        pre_checks: Sequence[PreCheck] = (),
        post_hooks: Sequence[PostHook] = (),
    ) -> None:
        self._pre_checks = tuple(pre_checks)
        self._post_hooks = tuple(post_hooks)

    @classmethod
    def default(
        cls,
        permission_service: PermissionService,
        metrics: EngineMetricsPort | None = None,
    ) -> OperationPipeline:
        """Context validation and permission checks; logging and metrics hooks."""
        post_hooks: list[PostHook] = [log_outcome]
        if metrics is not None:
            post_hooks.append(record_metrics(metrics))
        return cls(
            pre_checks=[validate_context, require_permission(permission_service)],
            post_hooks=post_hooks,
        )

    async def execute(self, call: OperationCall, operation: Operation) -> OperationResult:
        started = time.monotonic()
        result = await self._run_pre_checks(call)
        if result is None:
            result = await self._run_operation(call, operation)
        duration = time.monotonic() - started
        for hook in self._post_hooks:
            try:
                outcome = hook(call, result, duration)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:
                log.error(
                    "post_hook_failed",
                    operation=call.name,
                    hook=getattr(hook, "__name__", type(hook).__name__),
                    error=str(exc),
                )
        return result

    async def _run_pre_checks(self, call: OperationCall) -> OperationResult | None:
        for check in self._pre_checks:
            rejection = await check(call)
            if rejection is not None:
                return rejection
        return None

    async def _run_operation(
        self, call: OperationCall, operation: Operation
    ) -> OperationResult:
        try:
            return await operation()
        except ValidationFailedError as exc:
            return OperationResult.fail(FailureKind.VALIDATION, str(exc))
        except OperationTimeoutError as exc:
            log.warning(
                "operation_deadline_expired",
                operation=call.name,
                operation_id=exc.operation_id,
                timeout_seconds=exc.timeout_seconds,
            )
            return OperationResult.system_failure()
        except QueueClearedError as exc:
            log.warning(
                "operation_discarded", operation=call.name, operation_id=exc.operation_id
            )
            return OperationResult.system_failure()
        except Exception as exc:
            log.error(
                "operation_unhandled_error",
                operation=call.name,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return OperationResult.system_failure()
