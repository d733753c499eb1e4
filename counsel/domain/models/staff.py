"""Staff domain model: roles, hierarchy, records and promotion history.

State machine:
    ACTIVE -> ACTIVE (promotion / demotion)
    ACTIVE -> TERMINATED (fire)

TERMINATED is terminal. Records are soft-deleted only so their promotion
history survives.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from counsel.domain.errors.validation import InvalidExternalHandleError
from counsel.domain.models.identifiers import new_id, utc_now


class StaffRole(str, Enum):
    """Ordered staff roles, highest first."""

    MANAGING_PARTNER = "Managing Partner"
    SENIOR_PARTNER = "Senior Partner"
    JUNIOR_PARTNER = "Junior Partner"
    SENIOR_ASSOCIATE = "Senior Associate"
    JUNIOR_ASSOCIATE = "Junior Associate"
    PARALEGAL = "Paralegal"

    @property
    def level(self) -> int:
        """Numeric level of the role (higher outranks lower)."""
        return ROLE_HIERARCHY[self].level

    @property
    def default_max_count(self) -> int:
        """Default per-guild capacity for the role."""
        return ROLE_HIERARCHY[self].max_count

    @classmethod
    def sorted_by_level(cls) -> list[StaffRole]:
        """All roles ordered from highest to lowest level."""
        return sorted(cls, key=lambda role: role.level, reverse=True)

    @classmethod
    def parse(cls, value: str | StaffRole) -> StaffRole:
        """Resolve a role from its value or member name.

        Raises:
            ValueError: If the value names no role.
        """
        if isinstance(value, cls):
            return value
        for role in cls:
            if value in (role.value, role.name):
                return role
        raise ValueError(f"Unknown staff role: {value!r}")


@dataclass(frozen=True)
class RoleHierarchy:
    """Level and default capacity of a role."""

    level: int
    max_count: int


ROLE_HIERARCHY: dict[StaffRole, RoleHierarchy] = {
    StaffRole.MANAGING_PARTNER: RoleHierarchy(level=6, max_count=1),
    StaffRole.SENIOR_PARTNER: RoleHierarchy(level=5, max_count=3),
    StaffRole.JUNIOR_PARTNER: RoleHierarchy(level=4, max_count=5),
    StaffRole.SENIOR_ASSOCIATE: RoleHierarchy(level=3, max_count=10),
    StaffRole.JUNIOR_ASSOCIATE: RoleHierarchy(level=2, max_count=10),
    StaffRole.PARALEGAL: RoleHierarchy(level=1, max_count=10),
}

# Effective level of a guild owner: above every staff role.
OWNER_LEVEL = max(h.level for h in ROLE_HIERARCHY.values()) + 1

# Effective level of an actor with no active staff record.
NON_STAFF_LEVEL = 0


class StaffStatus(str, Enum):
    """Lifecycle status of a staff record."""

    ACTIVE = "active"
    TERMINATED = "terminated"


class StaffActionType(str, Enum):
    """Kind of change recorded in promotion history."""

    HIRE = "hire"
    PROMOTION = "promotion"
    DEMOTION = "demotion"
    FIRE = "fire"


_HANDLE_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,20}$")


def validate_external_handle(handle: str) -> str:
    """Validate a secondary-platform username.

    Rules: 3-20 characters of letters, digits and underscores, not starting
    or ending with an underscore.

    Args:
        handle: Candidate handle.

    Returns:
        The handle, unchanged.

    Raises:
        InvalidExternalHandleError: If the handle breaks a rule.
    """
    if not isinstance(handle, str) or not _HANDLE_PATTERN.match(handle):
        raise InvalidExternalHandleError(
            str(handle),
            "Username must be 3-20 characters and contain only letters, "
            "numbers, and underscores",
        )
    if handle.startswith("_") or handle.endswith("_"):
        raise InvalidExternalHandleError(
            handle, "Username cannot start or end with an underscore"
        )
    return handle


@dataclass(frozen=True)
class PromotionHistoryEntry:
    """One change in a staff member's role history."""

    from_role: StaffRole
    to_role: StaffRole
    actor_id: str
    timestamp: datetime
    action_type: StaffActionType
    reason: str | None = None


@dataclass(frozen=True)
class StaffRecord:
    """A staff member of a guild.

    Attributes:
        user_id: Chat-platform user id.
        guild_id: Guild the record belongs to.
        external_handle: Secondary-platform username, unique among active staff.
        role: Current role.
        hired_at: When the member was hired.
        hired_by: Actor who hired the member.
        status: ACTIVE or TERMINATED.
        promotion_history: Ordered role changes, starting with the hire.
        id: Record identifier.
    """

    user_id: str
    guild_id: str
    external_handle: str
    role: StaffRole
    hired_at: datetime
    hired_by: str
    status: StaffStatus = StaffStatus.ACTIVE
    promotion_history: tuple[PromotionHistoryEntry, ...] = ()
    terminated_at: datetime | None = None
    terminated_by: str | None = None
    termination_reason: str | None = None
    id: str = field(default_factory=new_id)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def is_active(self) -> bool:
        return self.status is StaffStatus.ACTIVE

    @classmethod
    def hire(
        cls,
        *,
        guild_id: str,
        user_id: str,
        external_handle: str,
        role: StaffRole,
        hired_by: str,
        reason: str | None = None,
        at: datetime | None = None,
    ) -> StaffRecord:
        """Create a new active record with its hire history entry."""
        hired_at = at or utc_now()
        return cls(
            user_id=user_id,
            guild_id=guild_id,
            external_handle=external_handle,
            role=role,
            hired_at=hired_at,
            hired_by=hired_by,
            promotion_history=(
                PromotionHistoryEntry(
                    from_role=role,
                    to_role=role,
                    actor_id=hired_by,
                    timestamp=hired_at,
                    action_type=StaffActionType.HIRE,
                    reason=reason,
                ),
            ),
            updated_at=hired_at,
        )

    def with_role(
        self,
        new_role: StaffRole,
        *,
        actor_id: str,
        action_type: StaffActionType,
        reason: str | None = None,
        at: datetime | None = None,
    ) -> StaffRecord:
        """Return a copy holding ``new_role`` with the change appended to history."""
        timestamp = at or utc_now()
        entry = PromotionHistoryEntry(
            from_role=self.role,
            to_role=new_role,
            actor_id=actor_id,
            timestamp=timestamp,
            action_type=action_type,
            reason=reason,
        )
        return replace(
            self,
            role=new_role,
            promotion_history=self.promotion_history + (entry,),
            updated_at=timestamp,
        )

    def terminated(
        self, *, actor_id: str, reason: str | None = None, at: datetime | None = None
    ) -> StaffRecord:
        """Return a terminated copy; history is kept and a fire entry appended."""
        timestamp = at or utc_now()
        entry = PromotionHistoryEntry(
            from_role=self.role,
            to_role=self.role,
            actor_id=actor_id,
            timestamp=timestamp,
            action_type=StaffActionType.FIRE,
            reason=reason,
        )
        return replace(
            self,
            status=StaffStatus.TERMINATED,
            promotion_history=self.promotion_history + (entry,),
            terminated_at=timestamp,
            terminated_by=actor_id,
            termination_reason=reason,
            updated_at=timestamp,
        )
