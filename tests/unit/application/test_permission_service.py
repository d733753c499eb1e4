"""Unit tests for PermissionEvaluator and PermissionService.

Tests:
- Resolution order: owner, admin on "admin", configured roles
- Fail closed on malformed contexts and missing configuration
- Config load failures deny instead of raising
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from counsel.application.services.permission_service import (
    PermissionEvaluator,
    PermissionService,
)
from counsel.domain.errors.permission import PermissionDeniedError
from counsel.domain.models.actor_context import ActorContext
from counsel.domain.models.guild_config import GuildConfig, PermissionAction

CONFIG = GuildConfig(
    guild_id="guild-1",
    permissions={PermissionAction.CASE: {"role-case"}},
    admin_roles={"role-admin"},
    admin_users={"admin-user"},
)


def actor(*role_ids: str, user_id: str = "user-1", owner: bool = False) -> ActorContext:
    return ActorContext(
        guild_id="guild-1", user_id=user_id, role_ids=role_ids, is_guild_owner=owner
    )


class TestPermissionEvaluator:
    def test_owner_allowed_everything(self) -> None:
        context = actor(owner=True)

        for action in PermissionAction:
            assert PermissionEvaluator.has_permission(context, CONFIG, action)
        assert PermissionEvaluator.has_permission(context, None, "anything")

    def test_admin_role_allowed_admin_action_only(self) -> None:
        context = actor("role-admin")

        assert PermissionEvaluator.has_permission(context, CONFIG, PermissionAction.ADMIN)
        assert not PermissionEvaluator.has_permission(
            context, CONFIG, PermissionAction.CASE
        )

    def test_admin_user_allowed_admin_action(self) -> None:
        context = actor(user_id="admin-user")

        assert PermissionEvaluator.has_permission(context, CONFIG, "admin")

    def test_configured_role_grants_action(self) -> None:
        context = actor("role-case")

        assert PermissionEvaluator.has_permission(context, CONFIG, "case")
        assert not PermissionEvaluator.has_permission(context, CONFIG, "lawyer")

    def test_unknown_action_denied(self) -> None:
        assert not PermissionEvaluator.has_permission(actor("role-case"), CONFIG, "nope")

    def test_missing_config_denies_non_owner(self) -> None:
        assert not PermissionEvaluator.has_permission(actor("role-case"), None, "case")

    def test_config_of_another_guild_is_ignored(self) -> None:
        other = GuildConfig(guild_id="guild-2", permissions={"case": {"role-case"}})

        assert not PermissionEvaluator.has_permission(actor("role-case"), other, "case")

    @pytest.mark.parametrize("context", [None, {}, "user-1", object()])
    def test_malformed_context_fails_closed(self, context: object) -> None:
        assert PermissionEvaluator.has_permission(context, CONFIG, "case") is False

    def test_is_admin(self) -> None:
        assert PermissionEvaluator.is_admin(actor(owner=True), None)
        assert PermissionEvaluator.is_admin(actor("role-admin"), CONFIG)
        assert not PermissionEvaluator.is_admin(actor("role-case"), CONFIG)
        assert not PermissionEvaluator.is_admin(None, CONFIG)


@pytest.fixture
def config_repository() -> AsyncMock:
    mock = AsyncMock()
    mock.find_by_guild_id.return_value = CONFIG
    return mock


class TestPermissionService:
    async def test_has_permission_loads_guild_config(
        self, config_repository: AsyncMock
    ) -> None:
        service = PermissionService(config_repository)

        assert await service.has_permission(actor("role-case"), PermissionAction.CASE)
        config_repository.find_by_guild_id.assert_awaited_once_with("guild-1")

    async def test_missing_config_treated_as_empty(
        self, config_repository: AsyncMock
    ) -> None:
        config_repository.find_by_guild_id.return_value = None
        service = PermissionService(config_repository)

        assert not await service.has_permission(actor("role-case"), "case")
        assert await service.has_permission(actor(owner=True), "case")

    async def test_config_load_failure_denies(self, config_repository: AsyncMock) -> None:
        config_repository.find_by_guild_id.side_effect = RuntimeError("store down")
        service = PermissionService(config_repository)

        assert await service.has_permission(actor("role-case"), "case") is False
        assert await service.is_admin(actor("role-admin")) is False

    async def test_malformed_context_never_reaches_store(
        self, config_repository: AsyncMock
    ) -> None:
        service = PermissionService(config_repository)

        assert await service.has_permission({"user_id": "x"}, "case") is False
        config_repository.find_by_guild_id.assert_not_awaited()

    async def test_require_permission_raises_distinguishable_error(
        self, config_repository: AsyncMock
    ) -> None:
        service = PermissionService(config_repository)

        with pytest.raises(PermissionDeniedError) as exc_info:
            await service.require_permission(actor(), PermissionAction.LAWYER)

        assert exc_info.value.action == "lawyer"
        assert exc_info.value.user_id == "user-1"
        assert exc_info.value.guild_id == "guild-1"

    async def test_permission_summary(self, config_repository: AsyncMock) -> None:
        service = PermissionService(config_repository)

        summary = await service.get_permission_summary(actor("role-case"))

        assert summary["case"] is True
        assert summary["lawyer"] is False
        assert summary["is_admin"] is False
        assert summary["is_guild_owner"] is False
        assert set(summary) >= {action.value for action in PermissionAction}
