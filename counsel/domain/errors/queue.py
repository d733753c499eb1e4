"""Operation queue errors."""

from __future__ import annotations

from counsel.domain.exceptions import CounselError


class QueueClearedError(CounselError):
    """Raised into pending futures discarded by ``clear_queue()``."""

    def __init__(self, operation_id: str) -> None:
        self.operation_id = operation_id
        super().__init__(f"Queue cleared before operation {operation_id} started")


class OperationTimeoutError(CounselError):
    """Raised when a caller's deadline on a queued operation expires.

    The underlying task is not killed; it keeps running and cleans up
    through its own unit of work.
    """

    def __init__(self, operation_id: str, timeout_seconds: float) -> None:
        self.operation_id = operation_id
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Operation {operation_id} timed out after {timeout_seconds} seconds"
        )
