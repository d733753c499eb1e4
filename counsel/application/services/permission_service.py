"""Permission evaluation.

Resolution order for ``has_permission(context, config, action)``:
1. The guild owner is allowed every action.
2. Administrators (admin role or admin user) are allowed the "admin" action.
3. Otherwise the actor needs a role listed for the action in the guild
   configuration.

The evaluator fails closed: a malformed context, a missing configuration or
an unknown action all yield False, never an exception. Evaluation has a
constant shape. A missing configuration is replaced by an empty one and
every term is computed before the results are combined, so the path taken
does not reveal which term decided the outcome.
"""

from __future__ import annotations

from typing import Any

import structlog

from counsel.application.ports.guild_config_repository import GuildConfigRepository
from counsel.domain.errors.permission import PermissionDeniedError
from counsel.domain.models.actor_context import ActorContext
from counsel.domain.models.guild_config import GuildConfig, PermissionAction
from counsel.infrastructure.observability import get_logger_for_service

log = structlog.get_logger()


def _action_name(action: PermissionAction | str) -> str:
    return action.value if isinstance(action, PermissionAction) else str(action)


class PermissionEvaluator:
    """Pure permission check over a context and a guild configuration."""

    @staticmethod
    def has_permission(
        context: Any, config: GuildConfig | None, action: PermissionAction | str
    ) -> bool:
        if not isinstance(context, ActorContext):
            log.warning(
                "permission_check_malformed_context",
                context_type=type(context).__name__,
            )
            return False
        effective = (
            config
            if isinstance(config, GuildConfig) and config.guild_id == context.guild_id
            else GuildConfig.empty(context.guild_id)
        )
        action_name = _action_name(action)

        is_owner = context.is_guild_owner is True
        is_admin = bool(context.role_ids & effective.admin_roles) | (
            context.user_id in effective.admin_users
        )
        wants_admin = action_name == PermissionAction.ADMIN.value
        granted = bool(context.role_ids & effective.roles_for(action_name))

        return is_owner | (is_admin & wants_admin) | granted

    @staticmethod
    def is_admin(context: Any, config: GuildConfig | None) -> bool:
        """Owner, admin role holder or admin user."""
        if not isinstance(context, ActorContext):
            return False
        effective = (
            config
            if isinstance(config, GuildConfig) and config.guild_id == context.guild_id
            else GuildConfig.empty(context.guild_id)
        )
        return (
            (context.is_guild_owner is True)
            | bool(context.role_ids & effective.admin_roles)
            | (context.user_id in effective.admin_users)
        )


class PermissionService:
    """Repository-backed permission checks for the lifecycle services."""

    def __init__(
        self,
        guild_config_repository: GuildConfigRepository,
        evaluator: PermissionEvaluator | None = None,
    ) -> None:
        self._configs = guild_config_repository
        self._evaluator = evaluator or PermissionEvaluator()
        self._log = get_logger_for_service("permission_service")

    async def _load_config(self, guild_id: str) -> GuildConfig:
        config = await self._configs.find_by_guild_id(guild_id)
        return config if config is not None else GuildConfig.empty(guild_id)

    async def has_permission(
        self, context: Any, action: PermissionAction | str
    ) -> bool:
        """Whether ``context`` may perform ``action``. Never raises."""
        if not isinstance(context, ActorContext):
            return self._evaluator.has_permission(context, None, action)
        try:
            config = await self._load_config(context.guild_id)
        except Exception as exc:
            self._log.error(
                "permission_config_load_failed",
                guild_id=context.guild_id,
                user_id=context.user_id,
                action=_action_name(action),
                error=str(exc),
            )
            return False
        allowed = self._evaluator.has_permission(context, config, action)
        self._log.debug(
            "permission_checked",
            guild_id=context.guild_id,
            user_id=context.user_id,
            action=_action_name(action),
            allowed=allowed,
        )
        return allowed

    async def require_permission(
        self, context: Any, action: PermissionAction | str
    ) -> None:
        """Raise PermissionDeniedError unless ``context`` may perform ``action``."""
        if not await self.has_permission(context, action):
            user_id = context.user_id if isinstance(context, ActorContext) else None
            guild_id = context.guild_id if isinstance(context, ActorContext) else None
            raise PermissionDeniedError(
                _action_name(action), user_id=user_id, guild_id=guild_id
            )

    async def is_admin(self, context: Any) -> bool:
        if not isinstance(context, ActorContext):
            return False
        try:
            config = await self._load_config(context.guild_id)
        except Exception as exc:
            self._log.error(
                "permission_config_load_failed",
                guild_id=context.guild_id,
                error=str(exc),
            )
            return False
        return self._evaluator.is_admin(context, config)

    async def get_permission_summary(self, context: ActorContext) -> dict[str, bool]:
        """Every action mapped to whether ``context`` holds it.

        Also reports ``is_admin`` and ``is_guild_owner``.
        """
        summary = {
            action.value: await self.has_permission(context, action)
            for action in PermissionAction
        }
        summary["is_admin"] = await self.is_admin(context)
        summary["is_guild_owner"] = (
            isinstance(context, ActorContext) and context.is_guild_owner
        )
        return summary
