"""
Pytest configuration and shared fixtures for Counsel tests.

Testing Standards:
- All async tests use pytest.mark.asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for async function mocking
- Unit tests go in tests/unit/
- Integration tests go in tests/integration/
"""

from __future__ import annotations

import pytest

from counsel.bootstrap.engine import Engine, build_engine
from counsel.config.engine_config import EngineConfig
from counsel.domain.models.actor_context import ActorContext
from counsel.domain.models.guild_config import GuildConfig, PermissionAction
from counsel.domain.models.staff import StaffRole
from counsel.infrastructure.stubs.chat_platform_stub import ChatPlatformStub
from counsel.infrastructure.stubs.in_memory_store import InMemoryDocumentStore
from tests.helpers import (
    ADMIN_ROLE,
    CASE_ROLE,
    GUILD_ID,
    LAWYER_ROLE,
    LEAD_ATTORNEY_ROLE,
    SENIOR_STAFF_ROLE,
    TickingClock,
    add_lawyer,
)

EXTERNAL_ROLE_IDS = {role: f"ext-{role.name.lower()}" for role in StaffRole}


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from counsel import __version__

    return __version__


@pytest.fixture
def guild_config() -> GuildConfig:
    """Guild configuration granting each capability to its own role."""
    return GuildConfig(
        guild_id=GUILD_ID,
        permissions={
            PermissionAction.SENIOR_STAFF: {SENIOR_STAFF_ROLE},
            PermissionAction.CASE: {CASE_ROLE},
            PermissionAction.LAWYER: {LAWYER_ROLE},
            PermissionAction.LEAD_ATTORNEY: {LEAD_ATTORNEY_ROLE},
        },
        admin_roles={ADMIN_ROLE},
        external_role_ids=EXTERNAL_ROLE_IDS,
        case_review_category_id="category-review",
    )


@pytest.fixture
def platform() -> ChatPlatformStub:
    return ChatPlatformStub()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
async def engine(
    store: InMemoryDocumentStore,
    platform: ChatPlatformStub,
    guild_config: GuildConfig,
    clock: TickingClock,
) -> Engine:
    """Engine over fresh in-memory infrastructure with the guild configured."""
    engine = build_engine(
        EngineConfig(), store, platform, retry_base_delay=0.0, clock=clock
    )
    await engine.guild_configs().save(guild_config)
    return engine


@pytest.fixture
def owner(platform: ChatPlatformStub) -> ActorContext:
    return platform.add_member(GUILD_ID, "owner-1", is_guild_owner=True)


@pytest.fixture
def manager(platform: ChatPlatformStub) -> ActorContext:
    """Senior-staff actor who is not the guild owner."""
    return platform.add_member(GUILD_ID, "manager-1", [SENIOR_STAFF_ROLE, CASE_ROLE])


@pytest.fixture
def clerk(platform: ChatPlatformStub) -> ActorContext:
    """Actor allowed case operations only."""
    return platform.add_member(GUILD_ID, "clerk-1", [CASE_ROLE])


@pytest.fixture
def outsider(platform: ChatPlatformStub) -> ActorContext:
    return platform.add_member(GUILD_ID, "outsider-1")


@pytest.fixture
def lawyer_a(platform: ChatPlatformStub) -> ActorContext:
    return add_lawyer(platform, "lawyer-A")


@pytest.fixture
def lawyer_b(platform: ChatPlatformStub) -> ActorContext:
    return add_lawyer(platform, "lawyer-B")


@pytest.fixture
def lawyer_c(platform: ChatPlatformStub) -> ActorContext:
    return add_lawyer(platform, "lawyer-C")
