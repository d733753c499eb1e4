"""Application ports (abstract interfaces).

Ports define the contracts the services need from the outside world:
repositories over the persistent store, the unit of work that binds them
to a transaction, and the chat platform.
"""

from counsel.application.ports.audit_log_repository import AuditLogRepository
from counsel.application.ports.case_counter_repository import CaseCounterRepository
from counsel.application.ports.case_repository import CaseRepository
from counsel.application.ports.chat_platform import ChatPlatformPort
from counsel.application.ports.engine_metrics import EngineMetricsPort
from counsel.application.ports.operation_queue import OperationQueuePort
from counsel.application.ports.guild_config_repository import GuildConfigRepository
from counsel.application.ports.staff_repository import StaffRepository
from counsel.application.ports.unit_of_work import (
    TransactionOptions,
    UnitOfWork,
    UnitOfWorkFactory,
)

__all__: list[str] = [
    "AuditLogRepository",
    "CaseCounterRepository",
    "CaseRepository",
    "ChatPlatformPort",
    "EngineMetricsPort",
    "OperationQueuePort",
    "GuildConfigRepository",
    "StaffRepository",
    "TransactionOptions",
    "UnitOfWork",
    "UnitOfWorkFactory",
]
