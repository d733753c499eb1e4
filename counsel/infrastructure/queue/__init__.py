"""Per-subject operation queue."""

from counsel.infrastructure.queue.operation_queue import (
    HIGH_PRIORITY,
    NORMAL_PRIORITY,
    OperationQueue,
)

__all__: list[str] = ["HIGH_PRIORITY", "NORMAL_PRIORITY", "OperationQueue"]
