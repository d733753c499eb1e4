"""Guild, role and member constants shared by the service tests."""

from __future__ import annotations

from counsel.domain.models.actor_context import ActorContext
from counsel.infrastructure.stubs.chat_platform_stub import ChatPlatformStub

GUILD_ID = "guild-1"
SENIOR_STAFF_ROLE = "role-senior-staff"
CASE_ROLE = "role-case"
LAWYER_ROLE = "role-lawyer"
LEAD_ATTORNEY_ROLE = "role-lead-attorney"
ADMIN_ROLE = "role-admin"


def add_lawyer(
    platform: ChatPlatformStub, user_id: str, guild_id: str = GUILD_ID
) -> ActorContext:
    """Register a member holding the lawyer, lead-attorney and case roles."""
    return platform.add_member(
        guild_id, user_id, [LAWYER_ROLE, LEAD_ATTORNEY_ROLE, CASE_ROLE]
    )
