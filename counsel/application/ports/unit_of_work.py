"""Unit-of-work port.

A unit of work wraps a sequence of repository writes in a transaction
boundary. Every repository obtained through ``get_repository`` while the
unit is active is bound to its transaction: all writes become visible on
``commit()`` or none do after ``rollback()``.

Developer Golden Rules:
1. EVERY PATH ENDS - begin() is always followed by commit() or rollback()
2. ROLLBACK NEVER RAISES - it is safe to call from error handlers
3. BIND BEFORE WRITE - only write through repositories from get_repository
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class TransactionOptions:
    """Durability options for a transaction.

    Attributes:
        read_concern: Read isolation level (e.g. "majority").
        write_concern_w: Write acknowledgment requirement (e.g. "majority").
        journal: Whether commits wait for the durability journal.
        max_time_ms: Upper bound on a transaction's lifetime.
        max_commit_retries: Attempts for commits failing transiently.
    """

    read_concern: str = "majority"
    write_concern_w: str = "majority"
    journal: bool = True
    max_time_ms: int = 30_000
    max_commit_retries: int = 3

    def __post_init__(self) -> None:
        if self.max_time_ms < 1:
            raise ValueError(f"max_time_ms must be positive, got {self.max_time_ms}")
        if self.max_commit_retries < 1:
            raise ValueError(
                f"max_commit_retries must be at least 1, got {self.max_commit_retries}"
            )


class UnitOfWork(Protocol):
    """Protocol for a single transaction boundary."""

    @property
    def transaction_id(self) -> str | None:
        """Identifier assigned by begin(), None before."""
        ...

    async def begin(self) -> None:
        """Start the transaction.

        Raises:
            UnitOfWorkError: If a transaction is already active or the
                store refuses to start one.
        """
        ...

    def get_repository(self, port: type[T]) -> T:
        """Return a repository for ``port`` bound to this transaction."""
        ...

    async def commit(self) -> None:
        """Make every write visible atomically.

        Raises:
            UnitOfWorkError: If no transaction is active or the commit fails.
        """
        ...

    async def rollback(self) -> None:
        """Discard every write. Never raises."""
        ...

    def get_session(self) -> Any:
        """Return the underlying store session (None when inactive)."""
        ...

    def is_active(self) -> bool:
        ...


class UnitOfWorkFactory(Protocol):
    """Creates fresh units of work."""

    def create(self, options: TransactionOptions | None = None) -> UnitOfWork:
        ...
