"""Typed result of a service operation.

Business-rule rejections, validation problems and permission denials are
returned as failed results rather than raised, so callers can distinguish
them from each other and from system failures without catching exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")

# Message returned for every system/transactional failure. Internal error
# detail stays in the logs.
GENERIC_FAILURE_MESSAGE = "The operation could not be completed. Please try again later."


class FailureKind(str, Enum):
    """Classification of a failed operation.

    Values:
        VALIDATION: Malformed input, rejected before any transaction.
        PERMISSION_DENIED: Actor not authorized, rejected before any transaction.
        NOT_FOUND: Target record does not exist.
        BUSINESS_RULE: Recoverable business-rule rejection inside a transaction.
        ALREADY_CLOSED: Target case is already closed.
        SYSTEM: Store or transaction failure; detail withheld from the caller.
    """

    VALIDATION = "validation"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    BUSINESS_RULE = "business_rule"
    ALREADY_CLOSED = "already_closed"
    SYSTEM = "system"


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Outcome of a service operation.

    Attributes:
        success: Whether the operation succeeded.
        value: The produced value on success.
        error: Human-readable reason on failure.
        kind: Failure classification on failure.
        details: Extra structured context (e.g. bypass counts).
    """

    success: bool
    value: T | None = None
    error: str | None = None
    kind: FailureKind | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, value: T, **details: Any) -> OperationResult[T]:
        """Build a successful result."""
        return cls(success=True, value=value, details=dict(details))

    @classmethod
    def fail(cls, kind: FailureKind, error: str, **details: Any) -> OperationResult[T]:
        """Build a failed result."""
        return cls(success=False, error=error, kind=kind, details=dict(details))

    @classmethod
    def system_failure(cls) -> OperationResult[T]:
        """Build the generic failure used for system errors."""
        return cls(
            success=False, error=GENERIC_FAILURE_MESSAGE, kind=FailureKind.SYSTEM
        )

    @property
    def is_rejection(self) -> bool:
        """True for failures other than system failures."""
        return not self.success and self.kind is not FailureKind.SYSTEM
