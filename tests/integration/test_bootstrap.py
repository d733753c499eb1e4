"""Engine wiring."""

from __future__ import annotations

import asyncio

import pytest

from counsel.bootstrap.engine import build_engine
from counsel.config.engine_config import DEFAULT_QUEUE_TIMEOUT_SECONDS
from counsel.domain.errors.queue import QueueClearedError
from counsel.domain.models.guild_config import GuildConfig
from counsel.infrastructure.stubs.chat_platform_stub import ChatPlatformStub
from tests.helpers import GUILD_ID

pytestmark = pytest.mark.integration

CASE = {"client_id": "client-9", "client_username": "client9", "title": "Lease"}


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("COUNSEL_ENVIRONMENT", "COUNSEL_QUEUE_TIMEOUT_SECONDS"):
        monkeypatch.delenv(name, raising=False)


def test_defaults_come_from_the_environment() -> None:
    engine = build_engine()

    assert engine.config.environment == "development"
    assert engine.queue.default_timeout == DEFAULT_QUEUE_TIMEOUT_SECONDS
    assert isinstance(engine.platform, ChatPlatformStub)


def test_environment_overrides_queue_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COUNSEL_QUEUE_TIMEOUT_SECONDS", "5")

    engine = build_engine()

    assert engine.queue.default_timeout == 5.0


async def test_engines_share_no_state() -> None:
    first, second = build_engine(retry_base_delay=0.0), build_engine(retry_base_delay=0.0)
    for engine in (first, second):
        await engine.guild_configs().save(GuildConfig(guild_id=GUILD_ID))
    owner = first.platform.add_member(GUILD_ID, "owner-1", is_guild_owner=True)

    created = await first.case_service.create_case(owner, CASE)

    assert created.success
    assert await second.case_service.get_case_by_id(owner, created.value.id) is None
    assert first.metrics.get_sample(
        "counsel_operations_total", {"operation": "create_case", "outcome": "success"}
    ) == 1.0
    assert second.metrics.get_sample(
        "counsel_operations_total", {"operation": "create_case", "outcome": "success"}
    ) == 0.0
    assert b"counsel_transaction_commits_total" in first.metrics.generate()


async def test_guild_configs_round_trip() -> None:
    engine = build_engine()
    config = GuildConfig(guild_id=GUILD_ID, case_review_category_id="category-1")

    await engine.guild_configs().save(config)

    assert await engine.guild_configs().find_by_guild_id(GUILD_ID) == config


async def test_shutdown_discards_waiting_operations() -> None:
    engine = build_engine()
    gate = asyncio.Event()
    running = engine.queue.submit(gate.wait, "user-1", GUILD_ID)
    while not engine.queue.is_processing(GUILD_ID):
        await asyncio.sleep(0)
    waiting = engine.queue.submit(gate.wait, "user-2", GUILD_ID)

    assert engine.shutdown() == 1

    with pytest.raises(QueueClearedError):
        await waiting
    gate.set()
    assert await running is True
