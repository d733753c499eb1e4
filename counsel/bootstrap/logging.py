"""Bootstrap wiring for logging configuration."""

from __future__ import annotations

from counsel.config.engine_config import EngineConfig
from counsel.infrastructure.observability import configure_structlog as _configure_structlog


def configure_structlog(config: EngineConfig | None = None) -> None:
    """Configure structlog for the configured environment."""
    config = config or EngineConfig.from_environment()
    _configure_structlog(environment=config.environment)


__all__ = ["configure_structlog"]
