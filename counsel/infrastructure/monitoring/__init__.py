"""Monitoring infrastructure (Prometheus metrics)."""

from counsel.infrastructure.monitoring.metrics import (
    METRICS_CONTENT_TYPE,
    EngineMetrics,
)

__all__: list[str] = ["METRICS_CONTENT_TYPE", "EngineMetrics"]
