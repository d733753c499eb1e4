"""Per-guild, per-year case sequence counter."""

from __future__ import annotations

from dataclasses import dataclass


def counter_id(guild_id: str, year: int) -> str:
    """Storage key of the counter for (guild, year)."""
    return f"{guild_id}:{year}"


@dataclass(frozen=True)
class CaseCounter:
    """Monotonic count of cases created in a guild during a year."""

    guild_id: str
    year: int
    count: int = 0

    @property
    def id(self) -> str:
        return counter_id(self.guild_id, self.year)

    def incremented(self) -> CaseCounter:
        return CaseCounter(guild_id=self.guild_id, year=self.year, count=self.count + 1)
