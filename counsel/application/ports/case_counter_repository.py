"""Case counter port.

``increment_and_get`` is the one place where a plain read-modify-write
would be unsafe: implementations MUST make it atomic so that N concurrent
callers observe N distinct, consecutive values.
"""

from __future__ import annotations

from typing import Protocol


class CaseCounterRepository(Protocol):
    """Protocol for the per-(guild, year) case sequence."""

    async def increment_and_get(self, guild_id: str, year: int) -> int:
        """Atomically increment the counter and return the new value."""
        ...

    async def get_current(self, guild_id: str, year: int) -> int:
        """Return the current value (0 if the counter does not exist)."""
        ...
