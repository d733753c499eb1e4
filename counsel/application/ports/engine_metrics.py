"""Engine metrics port definition.

Lets the application services report operational metrics without
depending on the metrics backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class EngineMetricsPort(ABC):
    """Abstract interface for engine metrics."""

    @abstractmethod
    def observe_operation(
        self, operation: str, outcome: str, duration_seconds: float
    ) -> None:
        """Record one completed service operation.

        Args:
            operation: Operation name (e.g. "hire_staff").
            outcome: "success" or a FailureKind value.
            duration_seconds: Wall time of the operation.
        """
        ...

    @abstractmethod
    def increment_commits(self) -> None:
        ...

    @abstractmethod
    def increment_rollbacks(self, reason: str) -> None:
        """Count a rollback.

        Args:
            reason: "rejection" for business rollbacks, "error" otherwise.
        """
        ...

    @abstractmethod
    def increment_compensations(self, outcome: str) -> None:
        """Count an executed compensation ("succeeded" or "failed")."""
        ...

    @abstractmethod
    def set_queue_depth(self, depth: int) -> None:
        """Set the total number of waiting queued operations."""
        ...
