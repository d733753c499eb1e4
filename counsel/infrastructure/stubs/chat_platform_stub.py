"""Chat-platform stub for tests and local runs.

Keeps guild members and their roles in memory and records every side
effect, so tests can assert which external changes happened and which
were compensated.
"""

from __future__ import annotations

import itertools
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from counsel.application.ports.chat_platform import ChatPlatformPort
from counsel.domain.models.actor_context import ActorContext


@dataclass
class _Member:
    role_ids: set[str] = field(default_factory=set)
    is_guild_owner: bool = False


@dataclass(frozen=True)
class SentMessage:
    recipient_ids: tuple[str, ...]
    message: str


class ChatPlatformStub(ChatPlatformPort):
    """In-memory chat platform.

    Attributes:
        channels: Created channel id -> (guild_id, channel_name, member_ids).
        deleted_channels: Ids of deleted channels, in deletion order.
        messages: Messages sent, in send order.
        calls: Names of every port method invoked, in call order.
    """

    def __init__(self) -> None:
        self._members: dict[str, dict[str, _Member]] = defaultdict(dict)
        self._failures: dict[str, list[BaseException]] = defaultdict(list)
        self._channel_ids = itertools.count(1)
        self.channels: dict[str, tuple[str, str, tuple[str, ...]]] = {}
        self.deleted_channels: list[str] = []
        self.messages: list[SentMessage] = []
        self.calls: list[str] = []

    # Test configuration

    def add_member(
        self,
        guild_id: str,
        user_id: str,
        role_ids: Iterable[str] = (),
        *,
        is_guild_owner: bool = False,
    ) -> ActorContext:
        """Register a guild member and return their actor context."""
        self._members[guild_id][user_id] = _Member(
            role_ids=set(role_ids), is_guild_owner=is_guild_owner
        )
        return self._context(guild_id, user_id)

    def fail_next(self, method: str, error: BaseException, times: int = 1) -> None:
        """Make the next ``times`` calls to ``method`` raise ``error``."""
        self._failures[method].extend([error] * times)

    def member_roles(self, guild_id: str, user_id: str) -> frozenset[str]:
        member = self._members[guild_id].get(user_id)
        return frozenset(member.role_ids) if member else frozenset()

    def _record(self, method: str) -> None:
        self.calls.append(method)
        pending = self._failures.get(method)
        if pending:
            raise pending.pop(0)

    def _context(self, guild_id: str, user_id: str) -> ActorContext:
        member = self._members[guild_id][user_id]
        return ActorContext(
            guild_id=guild_id,
            user_id=user_id,
            role_ids=frozenset(member.role_ids),
            is_guild_owner=member.is_guild_owner,
        )

    # ChatPlatformPort

    async def resolve_actor_context(
        self, guild_id: str, user_id: str
    ) -> ActorContext | None:
        self._record("resolve_actor_context")
        if user_id not in self._members[guild_id]:
            return None
        return self._context(guild_id, user_id)

    async def grant_role(self, guild_id: str, user_id: str, role_id: str) -> None:
        self._record("grant_role")
        member = self._members[guild_id].setdefault(user_id, _Member())
        member.role_ids.add(role_id)

    async def revoke_role(self, guild_id: str, user_id: str, role_id: str) -> None:
        self._record("revoke_role")
        member = self._members[guild_id].get(user_id)
        if member is not None:
            member.role_ids.discard(role_id)

    async def create_case_channel(
        self,
        guild_id: str,
        channel_name: str,
        *,
        category_id: str | None,
        member_ids: Sequence[str],
    ) -> str:
        self._record("create_case_channel")
        channel_id = f"channel-{next(self._channel_ids)}"
        self.channels[channel_id] = (guild_id, channel_name, tuple(member_ids))
        return channel_id

    async def delete_channel(self, guild_id: str, channel_id: str) -> None:
        self._record("delete_channel")
        self.channels.pop(channel_id, None)
        self.deleted_channels.append(channel_id)

    async def send_message(self, recipient_ids: Sequence[str], message: str) -> None:
        self._record("send_message")
        self.messages.append(SentMessage(tuple(recipient_ids), message))
