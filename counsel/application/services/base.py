"""Shared plumbing of the lifecycle services.

Every mutating operation follows the same path:

    correlation scope (one id per operation)
      -> pipeline pre-checks (context, permission)
      -> request validation
      -> operation queue (one slot per key touched, owners first)
      -> transaction runner (unit of work + compensations)
      -> pipeline post-hooks (logging, metrics)

Read queries skip the queue but pass the same permission gate.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Any, Generic, TypeVar

from counsel.application.ports.chat_platform import ChatPlatformPort
from counsel.application.ports.guild_config_repository import GuildConfigRepository
from counsel.application.ports.operation_queue import OperationQueuePort
from counsel.application.ports.unit_of_work import UnitOfWork
from counsel.application.services.operation_pipeline import (
    OperationCall,
    OperationPipeline,
)
from counsel.application.services.permission_service import PermissionService
from counsel.application.services.rollback_service import RollbackService
from counsel.application.services.transaction_runner import (
    TransactionBody,
    TransactionRunner,
)
from counsel.domain.models.actor_context import ActorContext
from counsel.domain.models.guild_config import GuildConfig, PermissionAction
from counsel.domain.models.identifiers import utc_now
from counsel.domain.models.operation_result import OperationResult
from counsel.infrastructure.observability import correlation_scope

T = TypeVar("T")

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class PreparedOperation(Generic[T]):
    """A validated request ready to be queued.

    Attributes:
        key: Queue key of the primary record the operation changes.
        body: Transaction body performing it.
        metadata: Extra log context.
        extra_keys: Queue keys of any other records the operation changes.
    """

    key: str
    body: TransactionBody[T]
    metadata: Mapping[str, Any] = field(default_factory=dict)
    extra_keys: tuple[str, ...] = ()

    @property
    def queue_keys(self) -> list[str]:
        """Every key touched, in the order slots are taken."""
        return sorted({self.key, *self.extra_keys})


class QueuedOperationService:
    """Base of services whose mutations go through queue and transaction."""

    def __init__(
        self,
        *,
        runner: TransactionRunner,
        queue: OperationQueuePort,
        pipeline: OperationPipeline,
        permission_service: PermissionService,
        platform: ChatPlatformPort,
        queue_timeout: float | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._runner = runner
        self._queue = queue
        self._pipeline = pipeline
        self._permissions = permission_service
        self._platform = platform
        self._queue_timeout = queue_timeout
        self._clock = clock

    @property
    def _rollback(self) -> RollbackService:
        return self._runner.rollback_service

    async def _perform(
        self,
        name: str,
        context: Any,
        permission: PermissionAction | None,
        prepare: Callable[[], PreparedOperation[T]],
    ) -> OperationResult[T]:
        """Run a mutating operation through pipeline, queue and transaction.

        Args:
            name: Operation name.
            context: Actor context as received from the caller.
            permission: Action the actor must hold.
            prepare: Validates the request and returns the queued work;
                raises ValidationFailedError on malformed input.
        """
        with correlation_scope() as correlation_id:
            call = OperationCall(
                name=name,
                context=context,
                permission=permission,
                metadata={"correlation_id": correlation_id},
            )

            async def operation() -> OperationResult[T]:
                prepared = prepare()
                task: Callable[[], Awaitable[Any]] = partial(
                    self._runner.run,
                    name,
                    prepared.body,
                    context=context,
                    metadata=prepared.metadata,
                )
                first, *rest = prepared.queue_keys
                # Slots are taken in sorted key order, so two operations
                # sharing keys can never wait on each other in a cycle.
                for key in reversed(rest):
                    task = partial(self._enqueue, task, context, key)
                return await self._enqueue(task, context, first)

            return await self._pipeline.execute(call, operation)

    async def _enqueue(
        self, task: Callable[[], Awaitable[Any]], context: ActorContext, key: str
    ) -> Any:
        return await self._queue.enqueue(
            task,
            context.user_id,
            context.guild_id,
            key=key,
            high_priority=context.is_guild_owner,
            timeout=self._queue_timeout,
        )

    async def _authorize(self, context: Any, permission: PermissionAction) -> None:
        """Gate a read query.

        Raises:
            PermissionDeniedError: The context is malformed or lacks ``permission``.
        """
        await self._permissions.require_permission(context, permission)

    @staticmethod
    async def _guild_config(unit_of_work: UnitOfWork, guild_id: str) -> GuildConfig:
        configs = unit_of_work.get_repository(GuildConfigRepository)
        config = await configs.find_by_guild_id(guild_id)
        return config if config is not None else GuildConfig.empty(guild_id)

    def _register(self, unit_of_work: UnitOfWork, *actions: Any) -> None:
        transaction_id = unit_of_work.transaction_id
        if transaction_id is None:
            return
        for action in actions:
            self._rollback.register_compensation_action(transaction_id, action)


def same_guild(context: ActorContext, record: Any) -> bool:
    """Whether ``record`` belongs to the actor's guild."""
    return record is not None and getattr(record, "guild_id", None) == context.guild_id
