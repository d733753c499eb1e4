"""Compensation actions for side effects outside the transactional store.

A compensation undoes (or reports) an external side effect such as an
external role grant or a created channel. Compensations are registered
against a transaction id, executed in registration order if that
transaction rolls back, and discarded when it commits.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from counsel.domain.models.identifiers import new_id

# Sync or async zero-argument callable.
CompensationHandler = Callable[[], None] | Callable[[], Awaitable[None]]


class CompensationType(str, Enum):
    """What kind of external effect a compensation reverses."""

    EXTERNAL_ROLE = "external_role"
    CHANNEL = "channel"
    NOTIFICATION = "notification"
    CUSTOM = "custom"


@dataclass(frozen=True)
class CompensationAction:
    """A registered undo-like operation.

    Attributes:
        description: Human-readable summary for logs.
        execute: Zero-argument callable, sync or async.
        type: Kind of side effect reversed.
        retryable: Whether a failed execution is retried.
        max_retries: Attempts when retryable (1 means a single attempt).
        id: Identifier reported in rollback results.
    """

    description: str
    execute: CompensationHandler
    type: CompensationType = CompensationType.CUSTOM
    retryable: bool = False
    max_retries: int = 1
    id: str = field(default_factory=new_id)

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")
