"""Commit/rollback discipline for one service operation.

``run`` opens a unit of work and hands it to the operation body. Every
path ends in exactly one of commit or rollback:

- begin() fails: generic failure, nothing to compensate.
- The body returns a failed OperationResult, or raises a business-rule or
  validation error: explicit rollback (including registered compensations)
  and the typed failure is returned.
- The body raises anything else, or commit fails: rollback plus
  compensations, and the generic failure message is returned. The
  internal detail is only logged.
- Otherwise: commit, then the transaction's compensations are discarded.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from counsel.application.ports.engine_metrics import EngineMetricsPort
from counsel.application.ports.unit_of_work import (
    TransactionOptions,
    UnitOfWork,
    UnitOfWorkFactory,
)
from counsel.application.services.rollback_service import (
    RollbackContext,
    RollbackService,
)
from counsel.domain.errors.business_rule import BusinessRuleViolationError
from counsel.domain.errors.validation import ValidationFailedError
from counsel.domain.models.actor_context import ActorContext
from counsel.domain.models.operation_result import FailureKind, OperationResult
from counsel.infrastructure.observability import get_logger_for_service


T = TypeVar("T")

TransactionBody = Callable[[UnitOfWork], Awaitable[OperationResult[T]]]


class TransactionRunner:
    """Runs operation bodies inside a unit of work."""

    def __init__(
        self,
        unit_of_work_factory: UnitOfWorkFactory,
        rollback_service: RollbackService,
        *,
        options: TransactionOptions | None = None,
        metrics: EngineMetricsPort | None = None,
    ) -> None:
        self._factory = unit_of_work_factory
        self._rollback = rollback_service
        self._options = options
        self._metrics = metrics
        self._log = get_logger_for_service("transaction_runner")

    @property
    def rollback_service(self) -> RollbackService:
        return self._rollback

    async def run(
        self,
        operation: str,
        body: TransactionBody[T],
        *,
        context: ActorContext | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> OperationResult[T]:
        """Run ``body`` in a fresh transaction.

        Args:
            operation: Operation name for logs and rollback records.
            body: Coroutine function receiving the active unit of work.
            context: Actor of the operation.
            metadata: Extra context for the logs.
        """
        unit_of_work = self._factory.create(self._options)
        guild_id = context.guild_id if context else None
        user_id = context.user_id if context else None
        try:
            await unit_of_work.begin()
        except Exception as exc:
            self._log.error(
                "transaction_begin_failed",
                operation=operation,
                guild_id=guild_id,
                user_id=user_id,
                error=str(exc),
            )
            return OperationResult.system_failure()

        transaction_id = unit_of_work.transaction_id

        async def roll_back(
            cause: str, *, error: BaseException | None = None, reason: str | None = None
        ) -> None:
            await self._roll_back(
                unit_of_work,
                self._rollback.create_rollback_context(
                    unit_of_work,
                    operation,
                    error,
                    reason=reason,
                    guild_id=guild_id,
                    user_id=user_id,
                    metadata=metadata,
                ),
                cause,
            )

        try:
            result = await body(unit_of_work)
        except (BusinessRuleViolationError, ValidationFailedError) as exc:
            kind = (
                exc.kind
                if isinstance(exc, BusinessRuleViolationError)
                else FailureKind.VALIDATION
            )
            details = (
                exc.details() if isinstance(exc, BusinessRuleViolationError) else {}
            )
            await roll_back("rejection", reason=str(exc))
            return OperationResult.fail(kind, str(exc), **details)
        except asyncio.CancelledError:
            await roll_back("error", reason="cancelled")
            raise
        except Exception as exc:
            self._log.error(
                "operation_body_failed",
                operation=operation,
                transaction_id=transaction_id,
                guild_id=guild_id,
                user_id=user_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            await roll_back("error", error=exc)
            return OperationResult.system_failure()

        if not result.success:
            await roll_back("rejection", reason=result.error)
            return result

        try:
            await unit_of_work.commit()
        except Exception as exc:
            self._log.error(
                "operation_commit_failed",
                operation=operation,
                transaction_id=transaction_id,
                guild_id=guild_id,
                user_id=user_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            await roll_back("error", error=exc)
            return OperationResult.system_failure()

        if transaction_id is not None:
            self._rollback.clear_transaction(transaction_id)
        if self._metrics is not None:
            self._metrics.increment_commits()
        self._log.debug(
            "operation_committed",
            operation=operation,
            transaction_id=transaction_id,
            guild_id=guild_id,
        )
        return result

    async def _roll_back(
        self, unit_of_work: UnitOfWork, context: RollbackContext, cause: str
    ) -> None:
        await self._rollback.perform_rollback(unit_of_work, context)
        if self._metrics is not None:
            self._metrics.increment_rollbacks(cause)
