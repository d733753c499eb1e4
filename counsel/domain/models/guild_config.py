"""Guild configuration read by the permission evaluator and capacity checks."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from counsel.domain.models.staff import StaffRole


class PermissionAction(str, Enum):
    """Named actions a guild maps to authorized roles."""

    ADMIN = "admin"
    SENIOR_STAFF = "senior-staff"
    CASE = "case"
    CONFIG = "config"
    LAWYER = "lawyer"
    LEAD_ATTORNEY = "lead-attorney"
    REPAIR = "repair"


def _frozen_mapping(data: Mapping) -> Mapping:
    return MappingProxyType(dict(data))


@dataclass(frozen=True)
class GuildConfig:
    """Per-guild permission and capacity configuration.

    Attributes:
        guild_id: The guild this configuration belongs to.
        permissions: Action name -> role ids authorized for it.
        admin_roles: Role ids treated as administrators.
        admin_users: User ids treated as administrators.
        role_capacities: Overrides of the default per-role capacity.
        external_role_ids: Chat-platform role id granted for each staff role.
        case_review_category_id: Channel category for new case channels.
        case_archive_category_id: Channel category for closed case channels.
    """

    guild_id: str
    permissions: Mapping[str, frozenset[str]] = field(default_factory=dict)
    admin_roles: frozenset[str] = frozenset()
    admin_users: frozenset[str] = frozenset()
    role_capacities: Mapping[StaffRole, int] = field(default_factory=dict)
    external_role_ids: Mapping[StaffRole, str] = field(default_factory=dict)
    case_review_category_id: str | None = None
    case_archive_category_id: str | None = None

    def __post_init__(self) -> None:
        permissions = {
            (action.value if isinstance(action, PermissionAction) else str(action)): frozenset(roles)
            for action, roles in self.permissions.items()
        }
        object.__setattr__(self, "permissions", _frozen_mapping(permissions))
        object.__setattr__(self, "admin_roles", frozenset(self.admin_roles))
        object.__setattr__(self, "admin_users", frozenset(self.admin_users))
        for role, capacity in self.role_capacities.items():
            if capacity < 0:
                raise ValueError(
                    f"role capacity for {role} must be non-negative, got {capacity}"
                )
        object.__setattr__(
            self, "role_capacities", _frozen_mapping(self.role_capacities)
        )
        object.__setattr__(
            self, "external_role_ids", _frozen_mapping(self.external_role_ids)
        )

    @classmethod
    def empty(cls, guild_id: str) -> GuildConfig:
        """Configuration granting nothing beyond the owner bypass."""
        return cls(guild_id=guild_id)

    def roles_for(self, action: str) -> frozenset[str]:
        """Role ids authorized for ``action`` (empty for unknown actions)."""
        return self.permissions.get(action, frozenset())

    def max_count_for(self, role: StaffRole) -> int:
        """Capacity of ``role`` in this guild."""
        return self.role_capacities.get(role, role.default_max_count)

    def external_role_for(self, role: StaffRole) -> str | None:
        return self.external_role_ids.get(role)
