"""Bootstrap wiring for the business-state engine.

``build_engine`` is the only place where infrastructure meets the
services. It creates fresh instances on every call; nothing is cached at
module level, so tests build as many independent engines as they need.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from counsel.application.ports.case_repository import CaseRepository
from counsel.application.ports.chat_platform import ChatPlatformPort
from counsel.application.ports.guild_config_repository import GuildConfigRepository
from counsel.application.ports.staff_repository import StaffRepository
from counsel.application.services.base import Clock
from counsel.application.services.case_service import CaseService
from counsel.application.services.operation_pipeline import OperationPipeline
from counsel.application.services.permission_service import PermissionService
from counsel.application.services.rollback_service import RollbackService
from counsel.application.services.staff_service import StaffService
from counsel.application.services.transaction_runner import TransactionRunner
from counsel.config.engine_config import EngineConfig
from counsel.domain.models.identifiers import utc_now
from counsel.infrastructure.monitoring.metrics import EngineMetrics
from counsel.infrastructure.queue.operation_queue import OperationQueue
from counsel.infrastructure.stubs.chat_platform_stub import ChatPlatformStub
from counsel.infrastructure.stubs.in_memory_store import InMemoryDocumentStore
from counsel.infrastructure.stubs.in_memory_unit_of_work import InMemoryUnitOfWorkFactory

log = structlog.get_logger()


@dataclass
class Engine:
    """A fully wired engine."""

    config: EngineConfig
    store: InMemoryDocumentStore
    uow_factory: InMemoryUnitOfWorkFactory
    queue: OperationQueue
    rollback_service: RollbackService
    runner: TransactionRunner
    metrics: EngineMetrics
    permission_service: PermissionService
    staff_service: StaffService
    case_service: CaseService
    platform: ChatPlatformPort

    def guild_configs(self) -> GuildConfigRepository:
        """Autocommit guild configuration repository, for setup and admin tools."""
        return self.uow_factory.get_repository(GuildConfigRepository)

    def shutdown(self) -> int:
        """Discard queued operations that have not started.

        Returns:
            Number of discarded operations.
        """
        discarded = self.queue.clear_queue()
        log.info("engine_shutdown", discarded_operations=discarded)
        return discarded


def build_engine(
    config: EngineConfig | None = None,
    store: InMemoryDocumentStore | None = None,
    platform: ChatPlatformPort | None = None,
    *,
    retry_base_delay: float = 0.1,
    clock: Clock = utc_now,
) -> Engine:
    """Wire queue, store, transactions, permissions and both services.

    Args:
        config: Engine configuration (defaults to the environment).
        store: Document store (defaults to a new in-memory store).
        platform: Chat-platform adapter (defaults to the in-memory stub).
        retry_base_delay: Base delay of commit and compensation retries.
        clock: Source of timestamps and the case-number year.

    Returns:
        The wired engine.
    """
    config = config or EngineConfig.from_environment()
    store = store if store is not None else InMemoryDocumentStore()
    platform = platform if platform is not None else ChatPlatformStub()
    options = config.transaction.to_options()

    metrics = EngineMetrics()
    uow_factory = InMemoryUnitOfWorkFactory(
        store, options, retry_base_delay=retry_base_delay
    )
    queue = OperationQueue(
        default_timeout=config.queue.timeout_seconds, metrics=metrics
    )
    rollback_service = RollbackService(metrics=metrics, retry_base_delay=retry_base_delay)
    runner = TransactionRunner(
        uow_factory, rollback_service, options=options, metrics=metrics
    )
    permission_service = PermissionService(
        uow_factory.get_repository(GuildConfigRepository)
    )
    pipeline = OperationPipeline.default(permission_service, metrics)

    shared = {
        "runner": runner,
        "queue": queue,
        "pipeline": pipeline,
        "permission_service": permission_service,
        "platform": platform,
        "queue_timeout": config.queue.timeout_seconds,
        "clock": clock,
    }
    staff_service = StaffService(
        staff_repository=uow_factory.get_repository(StaffRepository),
        guild_config_repository=uow_factory.get_repository(GuildConfigRepository),
        **shared,
    )
    case_service = CaseService(
        case_repository=uow_factory.get_repository(CaseRepository),
        **shared,
    )

    log.info(
        "engine_built",
        environment=config.environment,
        queue_timeout_seconds=config.queue.timeout_seconds,
        max_commit_retries=options.max_commit_retries,
    )
    return Engine(
        config=config,
        store=store,
        uow_factory=uow_factory,
        queue=queue,
        rollback_service=rollback_service,
        runner=runner,
        metrics=metrics,
        permission_service=permission_service,
        staff_service=staff_service,
        case_service=case_service,
        platform=platform,
    )
