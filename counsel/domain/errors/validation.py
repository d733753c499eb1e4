"""Validation errors raised before any transaction begins.

Validation errors describe malformed input. They are never retried and
never enter the operation queue.
"""

from __future__ import annotations

from counsel.domain.exceptions import CounselError


class ValidationFailedError(CounselError):
    """Raised when request input is malformed.

    Attributes:
        field: Name of the offending field, if known.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize validation error.

        Args:
            message: Human-readable description of the problem.
            field: Name of the offending field (optional).
        """
        self.field = field
        super().__init__(message)


class InvalidActorContextError(ValidationFailedError):
    """Raised when an actor context is missing required fields."""


class InvalidExternalHandleError(ValidationFailedError):
    """Raised when an external handle fails the format rules."""

    def __init__(self, handle: str, reason: str) -> None:
        self.handle = handle
        self.reason = reason
        super().__init__(reason, field="external_handle")
