"""Rollback and compensation management.

Rolls back a unit of work and then runs the compensation actions
registered for its transaction, undoing side effects performed outside
the transactional store (external role grants, created channels) or
reporting them when they cannot be undone.

Guarantees:
- The store rollback happens first, then compensations in registration
  order.
- A failing compensation is logged and recorded; the remaining ones
  still run. perform_rollback never raises.
- Compensations of a transaction run at most once: they are discarded
  after a rollback and on clear_transaction (successful commit).

Usage:
    rollback_service.register_compensation_action(
        uow.transaction_id,
        CompensationActionFactory.external_role_removal(platform, guild, user, role),
    )
    ...
    result = await rollback_service.perform_rollback(
        uow, rollback_service.create_rollback_context(uow, "hire_staff", error)
    )
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from counsel.application.ports.chat_platform import ChatPlatformPort
from counsel.application.ports.engine_metrics import EngineMetricsPort
from counsel.application.ports.unit_of_work import UnitOfWork
from counsel.domain.errors.unit_of_work import UnitOfWorkError
from counsel.domain.models.compensation import (
    CompensationAction,
    CompensationHandler,
    CompensationType,
)
from counsel.infrastructure.observability import get_logger_for_service


DEFAULT_RETRY_BASE_DELAY = 0.1
MAX_RETRY_DELAY = 5.0


@dataclass(frozen=True)
class RollbackContext:
    """What failed and why.

    Attributes:
        failed_operation: Name of the operation that failed.
        original_error: Exception that triggered the rollback, if any.
        reason: Rejection reason when the rollback was a business decision.
        transaction_id: Transaction whose compensations should run.
        guild_id: Guild the operation ran in.
        user_id: Actor of the operation.
        metadata: Extra context for the logs.
    """

    failed_operation: str
    original_error: BaseException | None = None
    reason: str | None = None
    transaction_id: str | None = None
    guild_id: str | None = None
    user_id: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def description(self) -> str:
        if self.original_error is not None:
            return str(self.original_error)
        return self.reason or "unspecified"


@dataclass
class RollbackResult:
    """Outcome of perform_rollback.

    Attributes:
        success: True when the store rollback and every compensation succeeded.
        compensations_executed: Ids of compensations that succeeded.
        compensations_failed: Ids of compensations that failed every attempt.
        errors: Errors met during rollback.
        duration_ms: Wall time of the rollback.
    """

    success: bool = False
    compensations_executed: list[str] = field(default_factory=list)
    compensations_failed: list[str] = field(default_factory=list)
    errors: list[BaseException] = field(default_factory=list)
    duration_ms: float = 0.0


async def _invoke(handler: CompensationHandler) -> None:
    """Call a sync or async zero-argument handler."""
    result = handler()
    if inspect.isawaitable(result):
        await result


class RollbackService:
    """Registry and executor of compensation actions, keyed by transaction id."""

    def __init__(
        self,
        *,
        metrics: EngineMetricsPort | None = None,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
    ) -> None:
        self._compensations: dict[str, list[CompensationAction]] = {}
        self._history: dict[str, RollbackResult] = {}
        self._metrics = metrics
        self._retry_base_delay = retry_base_delay
        self._log = get_logger_for_service("rollback_service")

    def register_compensation_action(
        self, transaction_id: str, action: CompensationAction
    ) -> None:
        """Register ``action`` to run if ``transaction_id`` rolls back."""
        self._compensations.setdefault(transaction_id, []).append(action)
        self._log.debug(
            "compensation_registered",
            transaction_id=transaction_id,
            action_id=action.id,
            description=action.description,
            action_type=action.type.value,
        )

    def pending_compensations(self, transaction_id: str) -> list[CompensationAction]:
        """Compensations registered and not yet executed or cleared."""
        return list(self._compensations.get(transaction_id, ()))

    def create_rollback_context(
        self,
        unit_of_work: UnitOfWork,
        operation: str,
        error: BaseException | None = None,
        *,
        reason: str | None = None,
        guild_id: str | None = None,
        user_id: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> RollbackContext:
        return RollbackContext(
            failed_operation=operation,
            original_error=error,
            reason=reason,
            transaction_id=unit_of_work.transaction_id,
            guild_id=guild_id,
            user_id=user_id,
            metadata=dict(metadata or {}),
        )

    async def perform_rollback(
        self, unit_of_work: UnitOfWork, context: RollbackContext
    ) -> RollbackResult:
        """Roll back the store transaction, then run compensations.

        Never raises; every problem is recorded in the result and logged.
        """
        started = time.monotonic()
        result = RollbackResult()
        self._log.info(
            "rollback_started",
            transaction_id=context.transaction_id,
            failed_operation=context.failed_operation,
            guild_id=context.guild_id,
            user_id=context.user_id,
            cause=context.description,
        )

        await self._rollback_transaction(unit_of_work, context, result)
        if context.transaction_id is not None:
            actions = self._compensations.pop(context.transaction_id, [])
            if actions:
                self._log.info(
                    "compensations_executing",
                    transaction_id=context.transaction_id,
                    action_count=len(actions),
                )
            for action in actions:
                await self._execute(action, context, result)

        result.success = not result.errors
        result.duration_ms = (time.monotonic() - started) * 1000
        if context.transaction_id is not None:
            self._history[context.transaction_id] = result
        self._log.info(
            "rollback_completed",
            transaction_id=context.transaction_id,
            success=result.success,
            compensations_executed=len(result.compensations_executed),
            compensations_failed=len(result.compensations_failed),
            errors=len(result.errors),
            duration_ms=round(result.duration_ms, 3),
        )
        return result

    async def _rollback_transaction(
        self,
        unit_of_work: UnitOfWork,
        context: RollbackContext,
        result: RollbackResult,
    ) -> None:
        if not unit_of_work.is_active():
            self._log.debug(
                "rollback_no_active_transaction", transaction_id=context.transaction_id
            )
            return
        try:
            await unit_of_work.rollback()
        except Exception as exc:
            result.errors.append(
                UnitOfWorkError(
                    "Failed to roll back transaction",
                    "rollback",
                    cause=exc,
                    transaction_id=context.transaction_id,
                )
            )
            self._log.error(
                "transaction_rollback_failed",
                transaction_id=context.transaction_id,
                error=str(exc),
            )

    async def _execute(
        self,
        action: CompensationAction,
        context: RollbackContext,
        result: RollbackResult,
    ) -> None:
        attempts = action.max_retries if action.retryable else 1
        for attempt in range(1, attempts + 1):
            try:
                await _invoke(action.execute)
            except Exception as exc:
                self._log.warning(
                    "compensation_attempt_failed",
                    transaction_id=context.transaction_id,
                    action_id=action.id,
                    attempt=attempt,
                    max_attempts=attempts,
                    error=str(exc),
                )
                if attempt == attempts:
                    result.compensations_failed.append(action.id)
                    result.errors.append(exc)
                    self._log.error(
                        "compensation_failed",
                        transaction_id=context.transaction_id,
                        action_id=action.id,
                        description=action.description,
                        attempts=attempt,
                        error=str(exc),
                    )
                    self._count("failed")
                    return
                delay = min(self._retry_base_delay * 2 ** (attempt - 1), MAX_RETRY_DELAY)
                await asyncio.sleep(delay)
            else:
                result.compensations_executed.append(action.id)
                self._log.info(
                    "compensation_executed",
                    transaction_id=context.transaction_id,
                    action_id=action.id,
                    description=action.description,
                    attempts=attempt,
                )
                self._count("succeeded")
                return

    def _count(self, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.increment_compensations(outcome)

    def clear_transaction(self, transaction_id: str) -> None:
        """Discard compensations and history of a committed transaction."""
        self._compensations.pop(transaction_id, None)
        self._history.pop(transaction_id, None)
        self._log.debug("transaction_cleared", transaction_id=transaction_id)

    def get_rollback_history(self, transaction_id: str) -> RollbackResult | None:
        return self._history.get(transaction_id)


class CompensationActionFactory:
    """Builds compensations for the chat-platform side effects."""

    @staticmethod
    def external_role_removal(
        platform: ChatPlatformPort, guild_id: str, user_id: str, role_id: str
    ) -> CompensationAction:
        """Undo a role grant."""

        async def revoke() -> None:
            await platform.revoke_role(guild_id, user_id, role_id)

        return CompensationAction(
            description=f"Remove external role {role_id} from user {user_id}",
            execute=revoke,
            type=CompensationType.EXTERNAL_ROLE,
            retryable=True,
            max_retries=3,
        )

    @staticmethod
    def external_role_restore(
        platform: ChatPlatformPort, guild_id: str, user_id: str, role_id: str
    ) -> CompensationAction:
        """Undo a role revocation."""

        async def grant() -> None:
            await platform.grant_role(guild_id, user_id, role_id)

        return CompensationAction(
            description=f"Restore external role {role_id} to user {user_id}",
            execute=grant,
            type=CompensationType.EXTERNAL_ROLE,
            retryable=True,
            max_retries=3,
        )

    @staticmethod
    def channel_deletion(
        platform: ChatPlatformPort, guild_id: str, channel_id: str
    ) -> CompensationAction:
        """Undo a channel creation."""

        async def delete() -> None:
            await platform.delete_channel(guild_id, channel_id)

        return CompensationAction(
            description=f"Delete channel {channel_id}",
            execute=delete,
            type=CompensationType.CHANNEL,
            retryable=True,
            max_retries=3,
        )

    @staticmethod
    def failure_notification(
        platform: ChatPlatformPort, recipient_ids: Sequence[str], message: str
    ) -> CompensationAction:
        """Tell the affected users that an operation was undone."""
        recipients = tuple(recipient_ids)

        async def notify() -> None:
            await platform.send_message(recipients, message)

        return CompensationAction(
            description=f"Notify {len(recipients)} recipients of a failed operation",
            execute=notify,
            type=CompensationType.NOTIFICATION,
            retryable=True,
            max_retries=2,
        )
