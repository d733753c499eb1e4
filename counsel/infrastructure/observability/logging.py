"""Structured logging configuration for the engine.

Production renders one JSON object per line with tracebacks as
structured fields; any other environment renders colored console output.
Every entry carries the engine environment, a UTC timestamp and the
correlation id of the operation that emitted it.

Log Entry Format (production):
    {
        "timestamp": "2025-01-01T00:00:00.000000Z",
        "level": "info",
        "event": "staff_hired",
        "environment": "production",
        "correlation_id": "...",
        "service": "staff_service",
        "component": "engine",
        ...operation context
    }
"""

import logging
import os
from typing import Any, cast

import structlog
from structlog.typing import Processor

from counsel.infrastructure.observability.correlation import correlation_id_processor

LOG_LEVEL_ENV = "LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"


def _resolve_level(level: str | None) -> int:
    """Explicit level, else ``LOG_LEVEL``, else INFO; unknown names mean INFO."""
    level_name = (level or os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL)).upper()
    resolved = logging.getLevelName(level_name)
    return resolved if isinstance(resolved, int) else logging.INFO


def _environment_stamper(environment: str) -> Processor:
    def stamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("environment", environment)
        return event_dict

    return cast(Processor, stamp)


def configure_structlog(
    environment: str = "production", *, level: str | None = None
) -> None:
    """Configure structlog for the engine.

    Call once at startup, before the first log line.

    Args:
        environment: "production" selects JSON output.
        level: Minimum level name; defaults to the ``LOG_LEVEL`` variable.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _environment_stamper(environment),
        cast(Processor, correlation_id_processor),
        structlog.processors.StackInfoRenderer(),
    ]
    if environment == "production":
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_level(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger_for_service(
    service_name: str, component: str = "engine"
) -> structlog.BoundLogger:
    """Logger with ``service`` and ``component`` bound, used by every service."""
    return structlog.get_logger().bind(service=service_name, component=component)
