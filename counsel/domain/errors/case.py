"""Business-rule violations for the case lifecycle."""

from __future__ import annotations

from typing import TYPE_CHECKING

from counsel.domain.errors.business_rule import BusinessRuleViolationError
from counsel.domain.models.operation_result import FailureKind

if TYPE_CHECKING:
    from counsel.domain.models.case import CaseStatus


class CaseNotFoundError(BusinessRuleViolationError):
    """Raised when a case id does not resolve to a record."""

    kind = FailureKind.NOT_FOUND

    def __init__(self, case_id: str) -> None:
        self.case_id = case_id
        super().__init__(f"Case {case_id} not found")


class CaseAlreadyClosedError(BusinessRuleViolationError):
    """Raised when closing or declining a case that is already closed.

    Closed is terminal: the original result is never overwritten.
    """

    kind = FailureKind.ALREADY_CLOSED

    def __init__(self, case_id: str) -> None:
        self.case_id = case_id
        super().__init__(f"Case {case_id} is already closed")


class InvalidCaseTransitionError(BusinessRuleViolationError):
    """Raised when a transition is not permitted from the current status."""

    def __init__(self, case_id: str, current: CaseStatus, action: str) -> None:
        self.case_id = case_id
        self.current = current
        self.action = action
        super().__init__(
            f"Case cannot be {action} - current status: {current.value}"
        )


class LawyerAlreadyAssignedError(BusinessRuleViolationError):
    """Raised when assigning a lawyer who is already on the case."""

    def __init__(self, case_id: str, lawyer_id: str) -> None:
        self.case_id = case_id
        self.lawyer_id = lawyer_id
        super().__init__(f"Lawyer {lawyer_id} is already assigned to this case")


class LawyerNotAssignedError(BusinessRuleViolationError):
    """Raised when removing a lawyer who is not on the case."""

    def __init__(self, case_id: str, lawyer_id: str) -> None:
        self.case_id = case_id
        self.lawyer_id = lawyer_id
        super().__init__(f"Lawyer {lawyer_id} is not assigned to this case")


class LawyerCapabilityMissingError(BusinessRuleViolationError):
    """Raised when the assignee does not hold the lawyer capability."""

    def __init__(self, lawyer_id: str) -> None:
        self.lawyer_id = lawyer_id
        super().__init__(f"User {lawyer_id} does not hold the lawyer role")
