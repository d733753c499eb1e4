"""Domain models for Counsel.

Contains value objects and records that represent core business
concepts. Records are immutable dataclasses; a mutation produces a new
record via ``dataclasses.replace``.
"""

from counsel.domain.models.operation_result import FailureKind, OperationResult

__all__: list[str] = ["FailureKind", "OperationResult"]
