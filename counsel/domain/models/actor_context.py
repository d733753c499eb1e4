"""Actor context: the authenticated caller of an operation.

An ActorContext is ephemeral. It is built per request by the chat-platform
adapter and never persisted. It is a required, fully populated value:
a context with missing identifiers is a validation error, never a silently
defaulted one.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from counsel.domain.errors.validation import InvalidActorContextError


@dataclass(frozen=True)
class ActorContext:
    """Identity, role-capabilities and owner flag of the caller.

    Attributes:
        guild_id: Guild (tenant) the request runs in.
        user_id: The caller's user id.
        role_ids: Role ids the caller holds in the guild.
        is_guild_owner: Whether the caller owns the guild.
    """

    guild_id: str
    user_id: str
    role_ids: frozenset[str] = field(default_factory=frozenset)
    is_guild_owner: bool = False

    def __post_init__(self) -> None:
        """Validate that every field is populated with the right type."""
        for name in ("guild_id", "user_id"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise InvalidActorContextError(
                    f"Actor context requires a non-empty {name}", field=name
                )
        if not isinstance(self.is_guild_owner, bool):
            raise InvalidActorContextError(
                "Actor context is_guild_owner must be a bool", field="is_guild_owner"
            )
        if not isinstance(self.role_ids, frozenset):
            if isinstance(self.role_ids, (str, bytes)) or not isinstance(
                self.role_ids, Iterable
            ):
                raise InvalidActorContextError(
                    "Actor context role_ids must be a collection of role ids",
                    field="role_ids",
                )
            object.__setattr__(self, "role_ids", frozenset(self.role_ids))
        if not all(isinstance(role, str) for role in self.role_ids):
            raise InvalidActorContextError(
                "Actor context role_ids must contain strings", field="role_ids"
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ActorContext:
        """Build a context from adapter-supplied data.

        Every key is required; ``is_guild_owner`` is not defaulted.

        Args:
            data: Mapping with guild_id, user_id, role_ids and is_guild_owner.

        Returns:
            The validated ActorContext.

        Raises:
            InvalidActorContextError: If any key is missing or malformed.
        """
        missing = [
            key
            for key in ("guild_id", "user_id", "role_ids", "is_guild_owner")
            if key not in data
        ]
        if missing:
            raise InvalidActorContextError(
                f"Actor context is missing fields: {', '.join(missing)}",
                field=missing[0],
            )
        return cls(
            guild_id=data["guild_id"],
            user_id=data["user_id"],
            role_ids=data["role_ids"],
            is_guild_owner=data["is_guild_owner"],
        )
