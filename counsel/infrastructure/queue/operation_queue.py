"""Per-subject operation queue.

Serializes conflicting writes: operations sharing a key run strictly one
at a time, while operations on different keys run concurrently.

Ordering within a key:
- FIFO by submission order
- high-priority operations (guild owners) overtake waiting normal ones,
  never the one already running
- FIFO again among operations of equal priority

Failure semantics:
- A failing operation rejects only its own future; the key moves on.
- ``clear_queue()`` rejects every waiting operation with QueueClearedError.
  Operations already running complete normally.
- A caller deadline (``enqueue(timeout=...)``) raises OperationTimeoutError
  to that caller only. The operation itself is not cancelled; it keeps its
  place (or keeps running) and ends through its own unit of work.
- Nothing is retried automatically.

Each operation runs in a copy of the submitter's contextvars, so the
correlation id of the request follows it into the queue.
"""

from __future__ import annotations

import asyncio
import contextvars
import heapq
import itertools
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from counsel.application.ports.engine_metrics import EngineMetricsPort
from counsel.application.ports.operation_queue import OperationQueuePort
from counsel.domain.errors.queue import OperationTimeoutError, QueueClearedError
from counsel.domain.models.identifiers import new_id

log = structlog.get_logger()

HIGH_PRIORITY = 1
NORMAL_PRIORITY = 2

QueuedTask = Callable[[], Awaitable[Any]]


@dataclass(order=True)
class _QueuedOperation:
    priority: int
    sequence: int
    operation_id: str = field(compare=False)
    key: str = field(compare=False)
    actor_id: str = field(compare=False)
    guild_id: str = field(compare=False)
    task: QueuedTask = field(compare=False)
    future: asyncio.Future = field(compare=False)
    context: contextvars.Context = field(compare=False)
    submitted_at: float = field(compare=False, default_factory=time.monotonic)


def _consume_outcome(future: asyncio.Future) -> None:
    # Abandoned futures must not log "exception was never retrieved".
    if not future.cancelled():
        future.exception()


class OperationQueue(OperationQueuePort):
    """Priority-FIFO queues keyed by subject, each drained by one worker task.

    Attributes:
        default_timeout: Deadline applied by ``enqueue`` when none is given
            (None waits indefinitely).
    """

    def __init__(
        self,
        *,
        default_timeout: float | None = None,
        metrics: EngineMetricsPort | None = None,
    ) -> None:
        self.default_timeout = default_timeout
        self._metrics = metrics
        self._queues: dict[str, list[_QueuedOperation]] = {}
        self._workers: dict[str, asyncio.Task] = {}
        self._running: dict[str, _QueuedOperation] = {}
        self._sequence = itertools.count()
        self._log = log.bind(component="operation_queue")

    def submit(
        self,
        task: QueuedTask,
        actor_id: str,
        guild_id: str,
        *,
        key: str | None = None,
        high_priority: bool = False,
    ) -> asyncio.Future:
        """Queue ``task`` and return the future of its result.

        Args:
            task: Zero-argument coroutine function performing the operation.
            actor_id: User submitting the operation.
            guild_id: Guild the operation runs in.
            key: Serialization subject; defaults to ``guild_id``.
            high_priority: Overtake waiting normal-priority operations.

        Returns:
            Future resolved with the task's return value, or rejected with
            the task's exception or QueueClearedError.
        """
        return self._submit(
            task, actor_id, guild_id, key=key, high_priority=high_priority
        ).future

    def _submit(
        self,
        task: QueuedTask,
        actor_id: str,
        guild_id: str,
        *,
        key: str | None,
        high_priority: bool,
    ) -> _QueuedOperation:
        loop = asyncio.get_running_loop()
        queue_key = key or guild_id
        operation = _QueuedOperation(
            priority=HIGH_PRIORITY if high_priority else NORMAL_PRIORITY,
            sequence=next(self._sequence),
            operation_id=new_id(),
            key=queue_key,
            actor_id=actor_id,
            guild_id=guild_id,
            task=task,
            future=loop.create_future(),
            context=contextvars.copy_context(),
        )
        heapq.heappush(self._queues.setdefault(queue_key, []), operation)
        self._log.debug(
            "operation_queued",
            operation_id=operation.operation_id,
            key=queue_key,
            actor_id=actor_id,
            guild_id=guild_id,
            priority=operation.priority,
            queue_length=len(self._queues[queue_key]),
        )
        self._report_depth()
        if queue_key not in self._workers:
            self._workers[queue_key] = asyncio.create_task(self._drain(queue_key))
        return operation

    async def enqueue(
        self,
        task: QueuedTask,
        actor_id: str,
        guild_id: str,
        *,
        key: str | None = None,
        high_priority: bool = False,
        timeout: float | None = None,
    ) -> Any:
        """Queue ``task`` and wait for its result.

        Args:
            timeout: Seconds to wait; defaults to ``default_timeout``.

        Raises:
            OperationTimeoutError: The deadline expired first. The operation
                is not cancelled.
            QueueClearedError: The queue was cleared before the operation ran.
            Exception: Whatever the task raised.
        """
        operation = self._submit(
            task, actor_id, guild_id, key=key, high_priority=high_priority
        )
        deadline = timeout if timeout is not None else self.default_timeout
        if deadline is None:
            return await operation.future
        try:
            return await asyncio.wait_for(asyncio.shield(operation.future), deadline)
        except asyncio.TimeoutError:
            operation.future.add_done_callback(_consume_outcome)
            self._log.warning(
                "operation_timed_out",
                operation_id=operation.operation_id,
                key=operation.key,
                timeout_seconds=deadline,
                started=self._running.get(operation.key) is operation,
            )
            raise OperationTimeoutError(operation.operation_id, deadline) from None

    async def _drain(self, key: str) -> None:
        try:
            while self._queues.get(key):
                operation = heapq.heappop(self._queues[key])
                self._report_depth()
                if operation.future.done():
                    continue
                self._running[key] = operation
                try:
                    await self._run(operation)
                finally:
                    del self._running[key]
        finally:
            if not self._queues.get(key):
                self._queues.pop(key, None)
            self._workers.pop(key, None)

    async def _run(self, operation: _QueuedOperation) -> None:
        started = time.monotonic()
        self._log.debug(
            "operation_started",
            operation_id=operation.operation_id,
            key=operation.key,
            waited_seconds=round(started - operation.submitted_at, 6),
        )
        runner = asyncio.create_task(operation.task(), context=operation.context)
        try:
            result = await runner
        except asyncio.CancelledError:
            operation.future.cancel()
            raise
        except Exception as exc:
            self._log.warning(
                "operation_failed",
                operation_id=operation.operation_id,
                key=operation.key,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            if not operation.future.done():
                operation.future.set_exception(exc)
            return
        if not operation.future.done():
            operation.future.set_result(result)
        self._log.debug(
            "operation_completed",
            operation_id=operation.operation_id,
            key=operation.key,
            duration_seconds=round(time.monotonic() - started, 6),
        )

    def clear_queue(self) -> int:
        """Reject every waiting operation with QueueClearedError.

        Running operations are left to complete.

        Returns:
            Number of operations rejected.
        """
        cleared = 0
        for entries in self._queues.values():
            for operation in entries:
                if not operation.future.done():
                    operation.future.set_exception(
                        QueueClearedError(operation.operation_id)
                    )
                    cleared += 1
            entries.clear()
        self._log.info("queue_cleared", cleared=cleared, running=len(self._running))
        self._report_depth()
        return cleared

    def reset(self) -> int:
        """Alias of clear_queue."""
        return self.clear_queue()

    def get_queue_length(self, key: str | None = None) -> int:
        """Waiting operations for ``key``, or across all keys."""
        if key is not None:
            return len(self._queues.get(key, ()))
        return sum(len(entries) for entries in self._queues.values())

    def is_processing(self, key: str | None = None) -> bool:
        """Whether an operation is running for ``key``, or for any key."""
        if key is not None:
            return key in self._running
        return bool(self._running)

    def get_queue_status(self) -> dict[str, dict[str, Any]]:
        """Per-key snapshot of waiting and running operations."""
        keys = set(self._queues) | set(self._running)
        status: dict[str, dict[str, Any]] = {}
        for key in sorted(keys):
            entries = self._queues.get(key, [])
            running = self._running.get(key)
            status[key] = {
                "queued": len(entries),
                "high_priority": sum(
                    1 for entry in entries if entry.priority == HIGH_PRIORITY
                ),
                "processing": running is not None,
                "running_operation_id": running.operation_id if running else None,
            }
        return status

    def has_operations_for_user(self, user_id: str) -> bool:
        """Whether ``user_id`` has a waiting or running operation."""
        if any(op.actor_id == user_id for op in self._running.values()):
            return True
        return any(
            op.actor_id == user_id
            for entries in self._queues.values()
            for op in entries
        )

    def _report_depth(self) -> None:
        if self._metrics is not None:
            self._metrics.set_queue_depth(self.get_queue_length())
