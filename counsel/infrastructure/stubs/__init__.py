"""In-memory implementations of the application ports.

Used by tests, local development and single-process deployments.
"""

from counsel.infrastructure.stubs.audit_log_repository_stub import AuditLogRepositoryStub
from counsel.infrastructure.stubs.case_counter_repository_stub import (
    CaseCounterRepositoryStub,
)
from counsel.infrastructure.stubs.case_repository_stub import CaseRepositoryStub
from counsel.infrastructure.stubs.chat_platform_stub import ChatPlatformStub
from counsel.infrastructure.stubs.guild_config_repository_stub import (
    GuildConfigRepositoryStub,
)
from counsel.infrastructure.stubs.in_memory_store import (
    FaultStage,
    InMemoryDocumentStore,
    StoreSession,
)
from counsel.infrastructure.stubs.in_memory_unit_of_work import (
    InMemoryUnitOfWork,
    InMemoryUnitOfWorkFactory,
)
from counsel.infrastructure.stubs.staff_repository_stub import StaffRepositoryStub

__all__: list[str] = [
    "AuditLogRepositoryStub",
    "CaseCounterRepositoryStub",
    "CaseRepositoryStub",
    "ChatPlatformStub",
    "FaultStage",
    "GuildConfigRepositoryStub",
    "InMemoryDocumentStore",
    "InMemoryUnitOfWork",
    "InMemoryUnitOfWorkFactory",
    "StaffRepositoryStub",
    "StoreSession",
]
