"""Business-rule violations for the staff lifecycle.

Business-rule rejections are recoverable: the enclosing operation rolls its
transaction back explicitly and returns a typed failure carrying the
human-readable reason.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from counsel.domain.exceptions import CounselError
from counsel.domain.models.operation_result import FailureKind

if TYPE_CHECKING:
    from counsel.domain.models.staff import StaffRole


class BusinessRuleViolationError(CounselError):
    """Base class for recoverable business-rule rejections.

    Attributes:
        kind: FailureKind the rejection maps to in an OperationResult.
    """

    kind: FailureKind = FailureKind.BUSINESS_RULE

    def details(self) -> dict[str, Any]:
        """Structured context copied into the failed OperationResult."""
        return {}


class StaffNotFoundError(BusinessRuleViolationError):
    """Raised when no active staff record exists for a user."""

    kind = FailureKind.NOT_FOUND

    def __init__(self, guild_id: str, user_id: str) -> None:
        self.guild_id = guild_id
        self.user_id = user_id
        super().__init__("Staff member not found or inactive")


class StaffAlreadyActiveError(BusinessRuleViolationError):
    """Raised when hiring a user who already has an active record."""

    def __init__(self, guild_id: str, user_id: str) -> None:
        self.guild_id = guild_id
        self.user_id = user_id
        super().__init__("User is already an active staff member")


class ExternalHandleTakenError(BusinessRuleViolationError):
    """Raised when an external handle is bound to another active record."""

    def __init__(self, guild_id: str, handle: str) -> None:
        self.guild_id = guild_id
        self.handle = handle
        super().__init__(
            f"External handle '{handle}' is already associated with another staff member"
        )


class RoleCapacityExceededError(BusinessRuleViolationError):
    """Raised when a role has no free slot and the actor cannot bypass.

    Attributes:
        role: The capacity-limited role.
        current_count: Active staff currently holding the role.
        max_count: Configured maximum for the role.
    """

    def __init__(self, role: StaffRole, current_count: int, max_count: int) -> None:
        self.role = role
        self.current_count = current_count
        self.max_count = max_count
        super().__init__(
            f"Cannot assign {role.value}. Maximum limit of {max_count} reached "
            f"(current: {current_count})"
        )

    def details(self) -> dict[str, Any]:
        return {
            "role": self.role.value,
            "current_count": self.current_count,
            "max_count": self.max_count,
        }


class SelfPromotionError(BusinessRuleViolationError):
    """Raised when an actor tries to change their own role."""

    def __init__(self, action: str = "promote") -> None:
        super().__init__(f"Staff members cannot {action} themselves")


class InvalidRoleChangeError(BusinessRuleViolationError):
    """Raised when a promotion does not raise, or a demotion does not lower, the level."""

    def __init__(self, current: StaffRole, requested: StaffRole, direction: str) -> None:
        self.current = current
        self.requested = requested
        self.direction = direction
        relation = "higher" if direction == "promotion" else "lower"
        super().__init__(
            f"New role must be {relation} than current role for {direction} "
            f"({current.value} -> {requested.value})"
        )


class InsufficientPrivilegeError(BusinessRuleViolationError):
    """Raised when an actor's level does not exceed the target's."""

    def __init__(self, actor_level: int, target_level: int) -> None:
        self.actor_level = actor_level
        self.target_level = target_level
        super().__init__(
            "You cannot fire a staff member at or above your own level"
        )
