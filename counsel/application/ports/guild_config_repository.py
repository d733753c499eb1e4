"""Guild configuration repository port."""

from __future__ import annotations

from typing import Protocol

from counsel.domain.models.guild_config import GuildConfig


class GuildConfigRepository(Protocol):
    """Protocol for guild configuration persistence."""

    async def find_by_guild_id(self, guild_id: str) -> GuildConfig | None:
        ...

    async def save(self, config: GuildConfig) -> GuildConfig:
        """Insert or replace the configuration of ``config.guild_id``."""
        ...
