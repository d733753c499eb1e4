"""Correlation ids tying every log line of one engine operation together.

Each mutating operation runs inside a ``correlation_scope``. A caller that
already set an id (for example once per chat command) keeps it; otherwise
the scope opens a fresh one for the operation and restores the previous
value on exit. The operation queue copies the submitter's context into its
worker, so lines logged inside the transaction carry the caller's id.

Usage:
    with correlation_scope() as correlation_id:
        await staff_service.hire_staff(context, request)
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any

from counsel.domain.models.identifiers import new_id

CORRELATION_ID_KEY = "correlation_id"

_correlation_id: ContextVar[str] = ContextVar(CORRELATION_ID_KEY, default="")


def generate_correlation_id() -> str:
    return new_id()


def get_correlation_id() -> str:
    """Id in effect for the current context, or an empty string."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> Token[str]:
    """Set the id for the current context.

    Returns:
        Token restoring the previous id through ``reset_correlation_id``.
    """
    return _correlation_id.set(correlation_id)


def reset_correlation_id(token: Token[str]) -> None:
    _correlation_id.reset(token)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Run a block under one correlation id.

    The id is ``correlation_id`` when given, else the id already in
    effect, else a newly generated one.

    Yields:
        The id in effect inside the block.
    """
    current = correlation_id or get_correlation_id() or generate_correlation_id()
    token = set_correlation_id(current)
    try:
        yield current
    finally:
        reset_correlation_id(token)


def correlation_id_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor adding the current id unless the entry has one."""
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict.setdefault(CORRELATION_ID_KEY, correlation_id)
    return event_dict
