"""In-memory document store with multi-collection transactions.

This module provides the transactional store behind the repository stubs.
It is used for development, tests and single-process deployments; it is
NOT durable.

Semantics:
- Outside a transaction every call is an atomic single-document operation.
- Inside a transaction (a StoreSession) writes are staged and invisible to
  everyone else until commit. Reads see the session's own staged writes.
- Every document read by a session is version-stamped. Commit verifies
  that none of them changed since the read (optimistic concurrency) and
  then applies all staged writes in one synchronous step, so no other
  coroutine can observe a partially applied transaction.
- Every call suspends once (``await asyncio.sleep(latency)``) to model
  store I/O, so concurrent coroutines interleave realistically.

Fault injection (``inject_fault``) lets tests fail begin, read, write or
commit at will.
"""

from __future__ import annotations

import asyncio
import itertools
from collections import defaultdict
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol

import structlog

from counsel.application.ports.unit_of_work import TransactionOptions
from counsel.domain.errors.unit_of_work import TransactionConflictError

log = structlog.get_logger()

DocumentKey = tuple[str, str]
Mutator = Callable[[Any | None], Any | None]
Predicate = Callable[[Any], bool]


class DocumentAccessor(Protocol):
    """get/scan/put/apply surface shared by the store and its sessions."""

    async def get(self, collection: str, doc_id: str) -> Any | None: ...

    async def scan(
        self, collection: str, predicate: Predicate | None = None
    ) -> list[Any]: ...

    async def put(self, collection: str, doc_id: str, document: Any) -> Any: ...

    async def apply(
        self, collection: str, doc_id: str, mutator: Mutator
    ) -> Any | None: ...


class FaultStage(str, Enum):
    """Store operation a fault can be injected into."""

    BEGIN = "begin"
    READ = "read"
    WRITE = "write"
    COMMIT = "commit"


class SessionState(str, Enum):
    ACTIVE = "active"
    COMMITTED = "committed"
    ABORTED = "aborted"


class InMemoryDocumentStore:
    """Collections of immutable documents keyed by id.

    Attributes:
        committed_transactions: Number of successful commits.
        aborted_transactions: Number of aborted sessions.
    """

    def __init__(self, latency: float = 0.0) -> None:
        """Initialize an empty store.

        Args:
            latency: Seconds each call suspends for (0 still yields once).
        """
        self._collections: dict[str, dict[str, Any]] = defaultdict(dict)
        self._versions: dict[DocumentKey, int] = {}
        self._faults: dict[FaultStage, list[BaseException]] = defaultdict(list)
        self._latency = latency
        self._session_ids = itertools.count(1)
        self.committed_transactions = 0
        self.aborted_transactions = 0

    def inject_fault(
        self, stage: FaultStage | str, error: BaseException, times: int = 1
    ) -> None:
        """Make the next ``times`` operations at ``stage`` raise ``error``."""
        self._faults[FaultStage(stage)].extend([error] * times)

    def clear_faults(self) -> None:
        self._faults.clear()

    def _raise_fault(self, stage: FaultStage) -> None:
        pending = self._faults.get(stage)
        if pending:
            raise pending.pop(0)

    async def _io(self) -> None:
        await asyncio.sleep(self._latency)

    def version_of(self, collection: str, doc_id: str) -> int:
        """Current committed version of a document (0 if absent)."""
        return self._versions.get((collection, doc_id), 0)

    def _store(self, collection: str, doc_id: str, document: Any) -> None:
        self._collections[collection][doc_id] = document
        key = (collection, doc_id)
        self._versions[key] = self._versions.get(key, 0) + 1

    # Non-transactional, single-document atomic operations

    async def get(self, collection: str, doc_id: str) -> Any | None:
        await self._io()
        self._raise_fault(FaultStage.READ)
        return self._collections[collection].get(doc_id)

    async def scan(
        self, collection: str, predicate: Predicate | None = None
    ) -> list[Any]:
        await self._io()
        self._raise_fault(FaultStage.READ)
        return [
            doc
            for doc in self._collections[collection].values()
            if predicate is None or predicate(doc)
        ]

    async def put(self, collection: str, doc_id: str, document: Any) -> Any:
        await self._io()
        self._raise_fault(FaultStage.WRITE)
        self._store(collection, doc_id, document)
        return document

    async def apply(self, collection: str, doc_id: str, mutator: Mutator) -> Any | None:
        """Atomically replace a document with ``mutator(current)``.

        No suspension happens between the read and the write. When the
        mutator returns None nothing is written.
        """
        await self._io()
        self._raise_fault(FaultStage.WRITE)
        updated = mutator(self._collections[collection].get(doc_id))
        if updated is not None:
            self._store(collection, doc_id, updated)
        return updated

    # Transactions

    async def start_session(self, options: TransactionOptions) -> StoreSession:
        """Open a transaction."""
        await self._io()
        self._raise_fault(FaultStage.BEGIN)
        return StoreSession(self, f"{next(self._session_ids):06d}", options)

    def _commit_session(self, session: StoreSession) -> None:
        """Validate read versions and apply staged writes. Synchronous."""
        for (collection, doc_id), seen in session.read_versions.items():
            if self.version_of(collection, doc_id) != seen:
                raise TransactionConflictError(collection, doc_id)
        for (collection, doc_id), document in session.staged_writes.items():
            self._store(collection, doc_id, document)
        self.committed_transactions += 1


class StoreSession:
    """A transaction over an InMemoryDocumentStore.

    Exposes the same get/scan/put/apply surface as the store so repository
    stubs work unchanged whether they are bound to a session or not.
    """

    def __init__(
        self, store: InMemoryDocumentStore, session_id: str, options: TransactionOptions
    ) -> None:
        self.id = session_id
        self.options = options
        self.state = SessionState.ACTIVE
        self.read_versions: dict[DocumentKey, int] = {}
        self.staged_writes: dict[DocumentKey, Any] = {}
        self._store = store

    def _ensure_active(self) -> None:
        if self.state is not SessionState.ACTIVE:
            raise RuntimeError(f"Session {self.id} is {self.state.value}")

    def _read_committed(self, collection: str, doc_id: str) -> Any | None:
        key = (collection, doc_id)
        self.read_versions.setdefault(key, self._store.version_of(collection, doc_id))
        return self._store._collections[collection].get(doc_id)

    async def get(self, collection: str, doc_id: str) -> Any | None:
        self._ensure_active()
        await self._store._io()
        self._store._raise_fault(FaultStage.READ)
        key = (collection, doc_id)
        if key in self.staged_writes:
            return self.staged_writes[key]
        return self._read_committed(collection, doc_id)

    async def scan(
        self, collection: str, predicate: Predicate | None = None
    ) -> list[Any]:
        """Merged view of committed and staged documents.

        Only documents matching ``predicate`` are version-stamped, so a
        filtered scan does not conflict with unrelated commits.
        """
        self._ensure_active()
        await self._store._io()
        self._store._raise_fault(FaultStage.READ)
        merged: dict[str, Any] = {}
        for doc_id, doc in list(self._store._collections[collection].items()):
            if (collection, doc_id) in self.staged_writes:
                continue
            if predicate is None or predicate(doc):
                merged[doc_id] = self._read_committed(collection, doc_id)
        for (staged_collection, doc_id), document in self.staged_writes.items():
            if staged_collection == collection and (
                predicate is None or predicate(document)
            ):
                merged[doc_id] = document
        return list(merged.values())

    async def put(self, collection: str, doc_id: str, document: Any) -> Any:
        self._ensure_active()
        await self._store._io()
        self._store._raise_fault(FaultStage.WRITE)
        self.read_versions.setdefault(
            (collection, doc_id), self._store.version_of(collection, doc_id)
        )
        self.staged_writes[(collection, doc_id)] = document
        return document

    async def apply(self, collection: str, doc_id: str, mutator: Mutator) -> Any | None:
        self._ensure_active()
        await self._store._io()
        self._store._raise_fault(FaultStage.WRITE)
        key = (collection, doc_id)
        current = (
            self.staged_writes[key]
            if key in self.staged_writes
            else self._read_committed(collection, doc_id)
        )
        updated = mutator(current)
        if updated is not None:
            self.staged_writes[key] = updated
        return updated

    async def commit(self) -> None:
        """Apply staged writes atomically.

        Raises:
            TransientTransactionError: Injected transient commit faults.
            TransactionConflictError: A document read by the session changed.
        """
        self._ensure_active()
        await self._store._io()
        self._store._raise_fault(FaultStage.COMMIT)
        self._store._commit_session(self)
        self.state = SessionState.COMMITTED
        log.debug(
            "store_session_committed",
            session_id=self.id,
            writes=len(self.staged_writes),
        )

    async def abort(self) -> None:
        """Discard staged writes."""
        if self.state is not SessionState.ACTIVE:
            return
        self.staged_writes.clear()
        self.state = SessionState.ABORTED
        self._store.aborted_transactions += 1
        log.debug("store_session_aborted", session_id=self.id)
