"""Chat-platform port.

The chat platform supplies actor contexts and receives side effects of
staff and case operations. Those side effects happen outside the
transactional store, so services register a compensation action for each
one they perform inside a transaction.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from counsel.domain.models.actor_context import ActorContext


class ChatPlatformPort(Protocol):
    """Protocol for the chat-platform adapter."""

    async def resolve_actor_context(
        self, guild_id: str, user_id: str
    ) -> ActorContext | None:
        """Build the actor context of a guild member, None if not a member."""
        ...

    async def grant_role(self, guild_id: str, user_id: str, role_id: str) -> None:
        ...

    async def revoke_role(self, guild_id: str, user_id: str, role_id: str) -> None:
        ...

    async def create_case_channel(
        self,
        guild_id: str,
        channel_name: str,
        *,
        category_id: str | None,
        member_ids: Sequence[str],
    ) -> str:
        """Create a private case channel and return its id."""
        ...

    async def delete_channel(self, guild_id: str, channel_id: str) -> None:
        ...

    async def send_message(self, recipient_ids: Sequence[str], message: str) -> None:
        ...
