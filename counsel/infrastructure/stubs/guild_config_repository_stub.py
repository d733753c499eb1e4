"""In-memory GuildConfigRepository."""

from __future__ import annotations

from counsel.application.ports.guild_config_repository import GuildConfigRepository
from counsel.domain.models.guild_config import GuildConfig
from counsel.infrastructure.stubs.in_memory_store import DocumentAccessor

GUILD_CONFIG_COLLECTION = "guild_configs"


class GuildConfigRepositoryStub(GuildConfigRepository):
    def __init__(self, accessor: DocumentAccessor) -> None:
        self._accessor = accessor

    async def find_by_guild_id(self, guild_id: str) -> GuildConfig | None:
        return await self._accessor.get(GUILD_CONFIG_COLLECTION, guild_id)

    async def save(self, config: GuildConfig) -> GuildConfig:
        return await self._accessor.put(GUILD_CONFIG_COLLECTION, config.guild_id, config)
