"""
Domain layer - pure business logic for Counsel.

This layer contains:
- Records and value objects (staff, cases, audit entries, guild config)
- State machines and their invariants
- Domain exceptions

CRITICAL: This layer must NOT import from application, infrastructure, or
bootstrap.
"""

from counsel.domain.exceptions import CounselError
from counsel.domain.models import FailureKind, OperationResult

__all__: list[str] = ["CounselError", "FailureKind", "OperationResult"]
