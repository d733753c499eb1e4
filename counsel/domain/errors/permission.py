"""Permission denial error."""

from __future__ import annotations

from counsel.domain.exceptions import CounselError


class PermissionDeniedError(CounselError):
    """Raised when an actor is not authorized for an action.

    Permission denials are resolved before any mutation is attempted and
    never enter a transaction.

    Attributes:
        action: The permission action that was checked.
        user_id: The denied actor, if known.
        guild_id: The guild the check ran against, if known.
    """

    def __init__(
        self,
        action: str,
        user_id: str | None = None,
        guild_id: str | None = None,
    ) -> None:
        self.action = action
        self.user_id = user_id
        self.guild_id = guild_id
        super().__init__(f"You do not have permission to perform '{action}'")
