"""Domain errors for Counsel.

Provides specific exception classes for different failure scenarios.
All exceptions inherit from CounselError.
"""

from counsel.domain.errors.business_rule import (
    BusinessRuleViolationError,
    ExternalHandleTakenError,
    InsufficientPrivilegeError,
    InvalidRoleChangeError,
    RoleCapacityExceededError,
    SelfPromotionError,
    StaffAlreadyActiveError,
    StaffNotFoundError,
)
from counsel.domain.errors.case import (
    CaseAlreadyClosedError,
    CaseNotFoundError,
    InvalidCaseTransitionError,
    LawyerAlreadyAssignedError,
    LawyerCapabilityMissingError,
    LawyerNotAssignedError,
)
from counsel.domain.errors.permission import PermissionDeniedError
from counsel.domain.errors.queue import OperationTimeoutError, QueueClearedError
from counsel.domain.errors.unit_of_work import (
    TransactionConflictError,
    TransientTransactionError,
    UnitOfWorkError,
)
from counsel.domain.errors.validation import (
    InvalidActorContextError,
    InvalidExternalHandleError,
    ValidationFailedError,
)

__all__: list[str] = [
    "BusinessRuleViolationError",
    "CaseAlreadyClosedError",
    "CaseNotFoundError",
    "ExternalHandleTakenError",
    "InsufficientPrivilegeError",
    "InvalidActorContextError",
    "InvalidCaseTransitionError",
    "InvalidExternalHandleError",
    "InvalidRoleChangeError",
    "LawyerAlreadyAssignedError",
    "LawyerCapabilityMissingError",
    "LawyerNotAssignedError",
    "OperationTimeoutError",
    "PermissionDeniedError",
    "QueueClearedError",
    "RoleCapacityExceededError",
    "SelfPromotionError",
    "StaffAlreadyActiveError",
    "StaffNotFoundError",
    "TransactionConflictError",
    "TransientTransactionError",
    "UnitOfWorkError",
    "ValidationFailedError",
]
