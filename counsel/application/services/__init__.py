"""Application services: permission gate, transactions and lifecycles."""

from counsel.application.services.base import PreparedOperation, QueuedOperationService
from counsel.application.services.case_service import CaseService, CaseStats
from counsel.application.services.operation_pipeline import (
    OperationCall,
    OperationPipeline,
)
from counsel.application.services.permission_service import (
    PermissionEvaluator,
    PermissionService,
)
from counsel.application.services.rollback_service import (
    CompensationActionFactory,
    RollbackContext,
    RollbackResult,
    RollbackService,
)
from counsel.application.services.staff_service import StaffPage, StaffService
from counsel.application.services.transaction_runner import TransactionRunner

__all__: list[str] = [
    "CaseService",
    "CaseStats",
    "CompensationActionFactory",
    "OperationCall",
    "OperationPipeline",
    "PermissionEvaluator",
    "PermissionService",
    "PreparedOperation",
    "QueuedOperationService",
    "RollbackContext",
    "RollbackResult",
    "RollbackService",
    "StaffPage",
    "StaffService",
    "TransactionRunner",
]
