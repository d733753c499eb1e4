"""Unit of work over the in-memory document store.

Repositories returned by ``get_repository`` are bound to the store session
opened by ``begin()``; their writes are staged until ``commit()``.

Commit discipline:
- TransientTransactionError: retried up to ``max_commit_retries`` times
  with exponential backoff (base ``retry_base_delay`` seconds).
- Anything else (including TransactionConflictError): the session is
  aborted and UnitOfWorkError raised.
- rollback() never raises; failures are logged.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, TypeVar

import structlog

from counsel.application.ports.audit_log_repository import AuditLogRepository
from counsel.application.ports.case_counter_repository import CaseCounterRepository
from counsel.application.ports.case_repository import CaseRepository
from counsel.application.ports.guild_config_repository import GuildConfigRepository
from counsel.application.ports.staff_repository import StaffRepository
from counsel.application.ports.unit_of_work import (
    TransactionOptions,
    UnitOfWork,
    UnitOfWorkFactory,
)
from counsel.domain.errors.unit_of_work import TransientTransactionError, UnitOfWorkError
from counsel.infrastructure.stubs.audit_log_repository_stub import AuditLogRepositoryStub
from counsel.infrastructure.stubs.case_counter_repository_stub import (
    CaseCounterRepositoryStub,
)
from counsel.infrastructure.stubs.case_repository_stub import CaseRepositoryStub
from counsel.infrastructure.stubs.guild_config_repository_stub import (
    GuildConfigRepositoryStub,
)
from counsel.infrastructure.stubs.in_memory_store import (
    DocumentAccessor,
    InMemoryDocumentStore,
    StoreSession,
)
from counsel.infrastructure.stubs.staff_repository_stub import StaffRepositoryStub

log = structlog.get_logger()

T = TypeVar("T")

# Port -> stub constructor taking a DocumentAccessor
REPOSITORY_REGISTRY: dict[type, Callable[[DocumentAccessor], Any]] = {
    StaffRepository: StaffRepositoryStub,
    CaseRepository: CaseRepositoryStub,
    CaseCounterRepository: CaseCounterRepositoryStub,
    AuditLogRepository: AuditLogRepositoryStub,
    GuildConfigRepository: GuildConfigRepositoryStub,
}

DEFAULT_RETRY_BASE_DELAY = 0.1


def build_repository(port: type[T], accessor: DocumentAccessor) -> T:
    """Instantiate the stub registered for ``port`` over ``accessor``.

    Raises:
        KeyError: If no stub is registered for ``port``.
    """
    return REPOSITORY_REGISTRY[port](accessor)


class InMemoryUnitOfWork(UnitOfWork):
    """One transaction over an InMemoryDocumentStore."""

    def __init__(
        self,
        store: InMemoryDocumentStore,
        options: TransactionOptions | None = None,
        *,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
    ) -> None:
        self._store = store
        self._options = options or TransactionOptions()
        self._retry_base_delay = retry_base_delay
        self._session: StoreSession | None = None
        self._transaction_id: str | None = None
        self._repositories: dict[type, Any] = {}
        self._log = log.bind(component="unit_of_work")

    @property
    def transaction_id(self) -> str | None:
        return self._transaction_id

    @property
    def options(self) -> TransactionOptions:
        return self._options

    async def begin(self) -> None:
        if self._session is not None:
            raise UnitOfWorkError(
                "Transaction already active",
                "begin",
                transaction_id=self._transaction_id,
            )
        try:
            session = await self._store.start_session(self._options)
        except Exception as exc:
            self._log.error("transaction_begin_failed", error=str(exc))
            raise UnitOfWorkError(
                "Failed to start transaction", "begin", cause=exc
            ) from exc
        self._session = session
        self._transaction_id = f"txn_{session.id}"
        self._repositories = {}
        self._log.debug(
            "transaction_started",
            transaction_id=self._transaction_id,
            read_concern=self._options.read_concern,
            write_concern=self._options.write_concern_w,
            max_time_ms=self._options.max_time_ms,
        )

    def get_repository(self, port: type[T]) -> T:
        if self._session is None:
            raise UnitOfWorkError(
                "No active transaction. Call begin() first.", "get_repository"
            )
        repository = self._repositories.get(port)
        if repository is None:
            try:
                repository = build_repository(port, self._session)
            except KeyError as exc:
                raise UnitOfWorkError(
                    f"No repository registered for {port.__name__}",
                    "get_repository",
                    transaction_id=self._transaction_id,
                ) from exc
            self._repositories[port] = repository
        return repository

    async def commit(self) -> None:
        session = self._session
        if session is None:
            raise UnitOfWorkError("No active transaction to commit", "commit")
        transaction_id = self._transaction_id
        max_attempts = self._options.max_commit_retries
        for attempt in range(1, max_attempts + 1):
            try:
                await session.commit()
                break
            except TransientTransactionError as exc:
                if attempt == max_attempts:
                    await self._abort(session)
                    self._log.error(
                        "transaction_commit_retries_exhausted",
                        transaction_id=transaction_id,
                        attempts=attempt,
                        error=str(exc),
                    )
                    raise UnitOfWorkError(
                        f"Commit failed after {attempt} attempts",
                        "commit",
                        cause=exc,
                        transaction_id=transaction_id,
                    ) from exc
                delay = self._retry_base_delay * 2 ** (attempt - 1)
                self._log.warning(
                    "transaction_commit_retry",
                    transaction_id=transaction_id,
                    attempt=attempt,
                    delay_seconds=delay,
                    error=str(exc),
                )
                await asyncio.sleep(delay)
            except Exception as exc:
                await self._abort(session)
                self._log.error(
                    "transaction_commit_failed",
                    transaction_id=transaction_id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                raise UnitOfWorkError(
                    "Failed to commit transaction",
                    "commit",
                    cause=exc,
                    transaction_id=transaction_id,
                ) from exc
        self._end()
        self._log.debug("transaction_committed", transaction_id=transaction_id)

    async def rollback(self) -> None:
        session = self._session
        if session is None:
            return
        await self._abort(session)
        self._log.debug("transaction_rolled_back", transaction_id=self._transaction_id)

    async def _abort(self, session: StoreSession) -> None:
        try:
            await session.abort()
        except Exception as exc:
            self._log.error(
                "transaction_abort_failed",
                transaction_id=self._transaction_id,
                error=str(exc),
            )
        finally:
            self._end()

    def _end(self) -> None:
        self._session = None
        self._repositories = {}

    def get_session(self) -> StoreSession | None:
        return self._session

    def is_active(self) -> bool:
        return self._session is not None


class InMemoryUnitOfWorkFactory(UnitOfWorkFactory):
    """Creates InMemoryUnitOfWork instances over one shared store.

    Also hands out autocommit repositories bound to the store itself,
    for reads and for callers that need no transaction.
    """

    def __init__(
        self,
        store: InMemoryDocumentStore,
        default_options: TransactionOptions | None = None,
        *,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY,
    ) -> None:
        self._store = store
        self._default_options = default_options or TransactionOptions()
        self._retry_base_delay = retry_base_delay

    @property
    def store(self) -> InMemoryDocumentStore:
        return self._store

    def create(self, options: TransactionOptions | None = None) -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(
            self._store,
            options or self._default_options,
            retry_base_delay=self._retry_base_delay,
        )

    def get_repository(self, port: type[T]) -> T:
        """Autocommit repository for ``port`` bound to the store."""
        return build_repository(port, self._store)
