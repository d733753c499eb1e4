"""Unit tests for InMemoryDocumentStore and StoreSession."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from counsel.application.ports.unit_of_work import TransactionOptions
from counsel.domain.errors.unit_of_work import TransactionConflictError
from counsel.infrastructure.stubs.in_memory_store import (
    FaultStage,
    InMemoryDocumentStore,
    SessionState,
)


@dataclass(frozen=True)
class Doc:
    guild_id: str
    value: int


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


class TestAutocommit:
    async def test_put_get_and_versions(self, store: InMemoryDocumentStore) -> None:
        await store.put("docs", "a", Doc("g1", 1))
        await store.put("docs", "a", Doc("g1", 2))

        assert await store.get("docs", "a") == Doc("g1", 2)
        assert store.version_of("docs", "a") == 2
        assert store.version_of("docs", "missing") == 0

    async def test_apply_is_atomic_and_skips_none(
        self, store: InMemoryDocumentStore
    ) -> None:
        await store.put("docs", "a", Doc("g1", 1))

        updated = await store.apply("docs", "a", lambda doc: Doc(doc.guild_id, doc.value + 1))
        skipped = await store.apply("docs", "missing", lambda doc: None)

        assert updated.value == 2
        assert skipped is None
        assert await store.get("docs", "missing") is None

    async def test_scan_filters(self, store: InMemoryDocumentStore) -> None:
        await store.put("docs", "a", Doc("g1", 1))
        await store.put("docs", "b", Doc("g2", 2))

        assert await store.scan("docs", lambda doc: doc.guild_id == "g2") == [Doc("g2", 2)]

    async def test_injected_faults_fire_once(self, store: InMemoryDocumentStore) -> None:
        store.inject_fault(FaultStage.READ, RuntimeError("read failed"))

        with pytest.raises(RuntimeError, match="read failed"):
            await store.get("docs", "a")
        assert await store.get("docs", "a") is None


class TestSessions:
    async def test_staged_writes_invisible_until_commit(
        self, store: InMemoryDocumentStore
    ) -> None:
        session = await store.start_session(TransactionOptions())

        await session.put("docs", "a", Doc("g1", 1))

        assert await session.get("docs", "a") == Doc("g1", 1)
        assert await store.get("docs", "a") is None
        await session.commit()
        assert await store.get("docs", "a") == Doc("g1", 1)
        assert session.state is SessionState.COMMITTED
        assert store.committed_transactions == 1

    async def test_abort_discards_writes(self, store: InMemoryDocumentStore) -> None:
        session = await store.start_session(TransactionOptions())
        await session.put("docs", "a", Doc("g1", 1))

        await session.abort()
        await session.abort()

        assert await store.get("docs", "a") is None
        assert store.aborted_transactions == 1

    async def test_conflicting_read_fails_commit(
        self, store: InMemoryDocumentStore
    ) -> None:
        await store.put("docs", "a", Doc("g1", 1))
        session = await store.start_session(TransactionOptions())
        await session.get("docs", "a")
        await session.put("docs", "b", Doc("g1", 9))

        await store.put("docs", "a", Doc("g1", 2))

        with pytest.raises(TransactionConflictError):
            await session.commit()
        assert await store.get("docs", "b") is None

    async def test_filtered_scan_ignores_unrelated_commits(
        self, store: InMemoryDocumentStore
    ) -> None:
        await store.put("docs", "a", Doc("g1", 1))
        await store.put("docs", "b", Doc("g2", 1))
        session = await store.start_session(TransactionOptions())
        await session.scan("docs", lambda doc: doc.guild_id == "g1")
        await session.put("docs", "c", Doc("g1", 3))

        await store.put("docs", "b", Doc("g2", 2))

        await session.commit()
        assert await store.get("docs", "c") == Doc("g1", 3)

    async def test_scan_merges_staged_documents(
        self, store: InMemoryDocumentStore
    ) -> None:
        await store.put("docs", "a", Doc("g1", 1))
        session = await store.start_session(TransactionOptions())
        await session.put("docs", "a", Doc("g1", 5))
        await session.put("docs", "b", Doc("g1", 6))

        values = sorted(doc.value for doc in await session.scan("docs"))

        assert values == [5, 6]

    async def test_closed_session_rejects_calls(
        self, store: InMemoryDocumentStore
    ) -> None:
        session = await store.start_session(TransactionOptions())
        await session.commit()

        with pytest.raises(RuntimeError, match="committed"):
            await session.get("docs", "a")

    async def test_begin_fault(self, store: InMemoryDocumentStore) -> None:
        store.inject_fault("begin", ConnectionError("unreachable"))

        with pytest.raises(ConnectionError):
            await store.start_session(TransactionOptions())
