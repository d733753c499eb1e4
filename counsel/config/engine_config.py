"""Queue and transaction configuration for the business-state engine.

Environment Variables:
- COUNSEL_ENVIRONMENT: "production" or "development" (default: development)
- COUNSEL_QUEUE_TIMEOUT_SECONDS: Caller deadline on queued operations
  (default: 30, min: 1, max: 300)
- COUNSEL_TX_READ_CONCERN: Read isolation level (default: majority)
- COUNSEL_TX_WRITE_CONCERN: Write acknowledgment (default: majority)
- COUNSEL_TX_JOURNAL: Wait for the durability journal (default: true)
- COUNSEL_TX_MAX_TIME_MS: Transaction time limit (default: 30000)
- COUNSEL_TX_MAX_COMMIT_RETRIES: Attempts for transient commit failures
  (default: 3, min: 1, max: 10)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from counsel.application.ports.unit_of_work import TransactionOptions


def _get_int_env(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed integer value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_bool_env(key: str, default: bool) -> bool:
    value = os.environ.get(key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# =============================================================================
# Queue Configuration
# =============================================================================

DEFAULT_QUEUE_TIMEOUT_SECONDS = 30.0
MIN_QUEUE_TIMEOUT_SECONDS = 1.0
MAX_QUEUE_TIMEOUT_SECONDS = 300.0

# =============================================================================
# Transaction Configuration
# =============================================================================

DEFAULT_READ_CONCERN = "majority"
DEFAULT_WRITE_CONCERN = "majority"
DEFAULT_MAX_TIME_MS = 30_000
DEFAULT_MAX_COMMIT_RETRIES = 3
MIN_COMMIT_RETRIES = 1
MAX_COMMIT_RETRIES = 10
VALID_READ_CONCERNS = frozenset({"local", "majority", "snapshot"})


@dataclass(frozen=True)
class QueueConfig:
    """Operation queue settings.

    Attributes:
        timeout_seconds: Deadline a caller waits for a queued operation.
            The operation itself is never cancelled when it expires.
    """

    timeout_seconds: float = DEFAULT_QUEUE_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not (
            MIN_QUEUE_TIMEOUT_SECONDS
            <= self.timeout_seconds
            <= MAX_QUEUE_TIMEOUT_SECONDS
        ):
            raise ValueError(
                f"timeout_seconds must be between {MIN_QUEUE_TIMEOUT_SECONDS} "
                f"and {MAX_QUEUE_TIMEOUT_SECONDS}, got {self.timeout_seconds}"
            )

    @classmethod
    def from_environment(cls) -> QueueConfig:
        timeout = _get_float_env(
            "COUNSEL_QUEUE_TIMEOUT_SECONDS", DEFAULT_QUEUE_TIMEOUT_SECONDS
        )
        # Clamp to valid range
        timeout = max(MIN_QUEUE_TIMEOUT_SECONDS, min(timeout, MAX_QUEUE_TIMEOUT_SECONDS))
        return cls(timeout_seconds=timeout)


@dataclass(frozen=True)
class TransactionConfig:
    """Transaction durability settings.

    Attributes:
        read_concern: Read isolation level.
        write_concern: Write acknowledgment requirement.
        journal: Whether commits wait for the durability journal.
        max_time_ms: Upper bound on a transaction's lifetime.
        max_commit_retries: Attempts for commits failing transiently.
    """

    read_concern: str = DEFAULT_READ_CONCERN
    write_concern: str = DEFAULT_WRITE_CONCERN
    journal: bool = True
    max_time_ms: int = DEFAULT_MAX_TIME_MS
    max_commit_retries: int = DEFAULT_MAX_COMMIT_RETRIES

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.read_concern not in VALID_READ_CONCERNS:
            raise ValueError(
                f"read_concern must be one of {sorted(VALID_READ_CONCERNS)}, "
                f"got {self.read_concern!r}"
            )
        if self.max_time_ms < 1:
            raise ValueError(f"max_time_ms must be positive, got {self.max_time_ms}")
        if not MIN_COMMIT_RETRIES <= self.max_commit_retries <= MAX_COMMIT_RETRIES:
            raise ValueError(
                f"max_commit_retries must be between {MIN_COMMIT_RETRIES} "
                f"and {MAX_COMMIT_RETRIES}, got {self.max_commit_retries}"
            )

    def to_options(self) -> TransactionOptions:
        """Options passed to the unit-of-work factory."""
        return TransactionOptions(
            read_concern=self.read_concern,
            write_concern_w=self.write_concern,
            journal=self.journal,
            max_time_ms=self.max_time_ms,
            max_commit_retries=self.max_commit_retries,
        )

    @classmethod
    def from_environment(cls) -> TransactionConfig:
        retries = _get_int_env("COUNSEL_TX_MAX_COMMIT_RETRIES", DEFAULT_MAX_COMMIT_RETRIES)
        retries = max(MIN_COMMIT_RETRIES, min(retries, MAX_COMMIT_RETRIES))
        return cls(
            read_concern=os.environ.get("COUNSEL_TX_READ_CONCERN", DEFAULT_READ_CONCERN),
            write_concern=os.environ.get("COUNSEL_TX_WRITE_CONCERN", DEFAULT_WRITE_CONCERN),
            journal=_get_bool_env("COUNSEL_TX_JOURNAL", True),
            max_time_ms=max(1, _get_int_env("COUNSEL_TX_MAX_TIME_MS", DEFAULT_MAX_TIME_MS)),
            max_commit_retries=retries,
        )


@dataclass(frozen=True)
class EngineConfig:
    """Top-level engine configuration.

    Attributes:
        environment: "production" selects JSON logging.
        queue: Operation queue settings.
        transaction: Transaction durability settings.
    """

    environment: str = "development"
    queue: QueueConfig = field(default_factory=QueueConfig)
    transaction: TransactionConfig = field(default_factory=TransactionConfig)

    @classmethod
    def from_environment(cls) -> EngineConfig:
        """Create config from environment variables with defaults."""
        return cls(
            environment=os.environ.get("COUNSEL_ENVIRONMENT", "development"),
            queue=QueueConfig.from_environment(),
            transaction=TransactionConfig.from_environment(),
        )
