"""Operation queue port.

Services route every mutating operation through the queue so that
operations sharing a key run one at a time.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol


class OperationQueuePort(Protocol):
    """Protocol for the per-subject operation queue."""

    async def enqueue(
        self,
        task: Callable[[], Awaitable[Any]],
        actor_id: str,
        guild_id: str,
        *,
        key: str | None = None,
        high_priority: bool = False,
        timeout: float | None = None,
    ) -> Any:
        """Run ``task`` after every earlier operation with the same key.

        Raises:
            OperationTimeoutError: ``timeout`` expired before the task finished.
            QueueClearedError: The queue was cleared before the task started.
        """
        ...
