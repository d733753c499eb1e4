"""Prometheus metrics for the business-state engine.

Each EngineMetrics instance owns its CollectorRegistry, so several engines
(or tests) in one process never collide on metric names.

Metrics:
    counsel_queue_depth: Waiting queued operations
    counsel_operations_total: Completed operations by name and outcome
    counsel_operation_duration_seconds: Operation latency by name
    counsel_transaction_commits_total: Committed transactions
    counsel_transaction_rollbacks_total: Rolled back transactions by reason
    counsel_compensations_total: Executed compensations by outcome
"""

import os

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from counsel.application.ports.engine_metrics import EngineMetricsPort

METRICS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

# 5ms to 30s; the upper bound matches the default queue timeout.
DEFAULT_HISTOGRAM_BUCKETS = (
    0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0
)


class EngineMetrics(EngineMetricsPort):
    """Collects engine metrics into a private registry.

    Attributes:
        queue_depth: Gauge of waiting queued operations.
        operations_total: Counter of operations by name and outcome.
        operation_duration_seconds: Histogram of operation latency.
        commits_total: Counter of committed transactions.
        rollbacks_total: Counter of rollbacks by reason.
        compensations_total: Counter of compensations by outcome.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize the metrics.

        Args:
            registry: Optional registry; a fresh one is created by default.
        """
        self._registry = registry or CollectorRegistry()
        self._environment = os.environ.get("ENVIRONMENT", "development")

        self.queue_depth = Gauge(
            name="counsel_queue_depth",
            documentation="Queued operations waiting to run",
            labelnames=["environment"],
            registry=self._registry,
        )
        self.operations_total = Counter(
            name="counsel_operations_total",
            documentation="Completed engine operations",
            labelnames=["environment", "operation", "outcome"],
            registry=self._registry,
        )
        self.operation_duration_seconds = Histogram(
            name="counsel_operation_duration_seconds",
            documentation="Engine operation duration in seconds",
            labelnames=["environment", "operation"],
            buckets=DEFAULT_HISTOGRAM_BUCKETS,
            registry=self._registry,
        )
        self.commits_total = Counter(
            name="counsel_transaction_commits_total",
            documentation="Committed transactions",
            labelnames=["environment"],
            registry=self._registry,
        )
        self.rollbacks_total = Counter(
            name="counsel_transaction_rollbacks_total",
            documentation="Rolled back transactions",
            labelnames=["environment", "reason"],
            registry=self._registry,
        )
        self.compensations_total = Counter(
            name="counsel_compensations_total",
            documentation="Executed compensation actions",
            labelnames=["environment", "outcome"],
            registry=self._registry,
        )

    def observe_operation(
        self, operation: str, outcome: str, duration_seconds: float
    ) -> None:
        self.operations_total.labels(
            environment=self._environment, operation=operation, outcome=outcome
        ).inc()
        self.operation_duration_seconds.labels(
            environment=self._environment, operation=operation
        ).observe(duration_seconds)

    def increment_commits(self) -> None:
        self.commits_total.labels(environment=self._environment).inc()

    def increment_rollbacks(self, reason: str) -> None:
        self.rollbacks_total.labels(environment=self._environment, reason=reason).inc()

    def increment_compensations(self, outcome: str) -> None:
        self.compensations_total.labels(
            environment=self._environment, outcome=outcome
        ).inc()

    def set_queue_depth(self, depth: int) -> None:
        self.queue_depth.labels(environment=self._environment).set(depth)

    def get_sample(self, name: str, labels: dict[str, str] | None = None) -> float:
        """Current value of a sample, 0.0 when it has not been recorded.

        Args:
            name: Sample name (e.g. "counsel_operations_total").
            labels: Sample labels other than ``environment``.
        """
        full_labels = {"environment": self._environment, **(labels or {})}
        value = self._registry.get_sample_value(name, full_labels)
        return value if value is not None else 0.0

    def get_registry(self) -> CollectorRegistry:
        return self._registry

    def generate(self) -> bytes:
        """Prometheus exposition of every metric in the registry."""
        return generate_latest(self._registry)
