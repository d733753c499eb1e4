"""Conversion of raw request data into validated request models."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from counsel.domain.errors.validation import ValidationFailedError
from counsel.domain.models.actor_context import ActorContext

ModelT = TypeVar("ModelT", bound="RequestModel")


class RequestModel(BaseModel):
    """Base of every request model: immutable, unknown fields rejected.

    Requests may restate the guild and the acting user. Both are optional;
    when present they must match the actor context the request runs under.

    Attributes:
        guild_id: Guild the request targets.
        actor_field: Name of the field restating the acting user, if any.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    actor_field: ClassVar[str | None] = None

    guild_id: str | None = Field(default=None, min_length=1)

    def check_context(self, context: ActorContext) -> None:
        """Reject a request that disagrees with the actor context.

        Raises:
            ValidationFailedError: Guild or acting user differ from ``context``.
        """
        if self.guild_id is not None and self.guild_id != context.guild_id:
            raise ValidationFailedError(
                f"Request is for guild {self.guild_id} but the actor is in "
                f"guild {context.guild_id}",
                field="guild_id",
            )
        if self.actor_field is None:
            return
        claimed = getattr(self, self.actor_field)
        if claimed is not None and claimed != context.user_id:
            raise ValidationFailedError(
                f"{self.actor_field} must be the acting user {context.user_id}",
                field=self.actor_field,
            )


def validation_message(exc: ValidationError) -> str:
    """Human-readable message for the first error of ``exc``."""
    first = exc.errors()[0]
    original = first.get("ctx", {}).get("error")
    if isinstance(original, ValueError) and str(original):
        return str(original)
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


def parse_request(
    model: type[ModelT],
    data: ModelT | Mapping[str, Any],
    context: ActorContext | None = None,
) -> ModelT:
    """Return ``data`` as an instance of ``model``.

    Args:
        model: Request model class.
        data: A model instance or a mapping of its fields.
        context: When given, the request must agree with it.

    Raises:
        ValidationFailedError: If the data does not validate.
    """
    if isinstance(data, model):
        request = data
    elif not isinstance(data, Mapping):
        raise ValidationFailedError(
            f"Expected {model.__name__} or a mapping, got {type(data).__name__}"
        )
    else:
        try:
            request = model.model_validate(dict(data))
        except ValidationError as exc:
            first = exc.errors()[0]
            field = str(first["loc"][0]) if first.get("loc") else None
            raise ValidationFailedError(validation_message(exc), field=field) from exc
    if context is not None:
        request.check_context(context)
    return request
