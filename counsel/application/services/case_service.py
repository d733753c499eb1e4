"""Case lifecycle service.

States and transitions:
    pending --accept--> in_progress --close--> closed
    pending --decline--> closed (result DISMISSED)

Closed is terminal: mutating a closed case fails with ALREADY_CLOSED and
leaves the record unchanged. Every mutation of a case queues on
``case:{case_id}``; creation queues on ``case-create:{guild_id}`` so the
per-year counter hands out gap-free sequence numbers. A reassignment
queues on the source case; the store's version check at commit guards
the target case.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from counsel.application.dtos.case_requests import (
    AddDocumentRequest,
    AddNoteRequest,
    AssignLawyerRequest,
    CloseCaseRequest,
    CreateCaseRequest,
    DeclineCaseRequest,
    ReassignLawyerRequest,
    SetLeadAttorneyRequest,
    UnassignLawyerRequest,
    UpdateCaseRequest,
)
from counsel.application.dtos.validation import parse_request
from counsel.application.ports.audit_log_repository import AuditLogRepository
from counsel.application.ports.case_counter_repository import CaseCounterRepository
from counsel.application.ports.case_repository import CaseRepository
from counsel.application.ports.unit_of_work import UnitOfWork
from counsel.application.services.base import (
    PreparedOperation,
    QueuedOperationService,
    same_guild,
)
from counsel.application.services.permission_service import PermissionEvaluator
from counsel.application.services.rollback_service import CompensationActionFactory
from counsel.domain.errors.case import (
    CaseAlreadyClosedError,
    CaseNotFoundError,
    InvalidCaseTransitionError,
    LawyerAlreadyAssignedError,
    LawyerCapabilityMissingError,
    LawyerNotAssignedError,
)
from counsel.domain.errors.permission import PermissionDeniedError
from counsel.domain.errors.validation import ValidationFailedError
from counsel.domain.models.actor_context import ActorContext
from counsel.domain.models.audit_log import AuditAction, AuditLogEntry
from counsel.domain.models.case import (
    Case,
    CaseDocument,
    CaseNote,
    CaseResult,
    CaseStatus,
    generate_case_number,
    generate_channel_name,
)
from counsel.domain.models.guild_config import GuildConfig, PermissionAction
from counsel.domain.models.operation_result import FailureKind, OperationResult
from counsel.infrastructure.observability import get_logger_for_service


def case_queue_key(case_id: str) -> str:
    return f"case:{case_id}"


def case_creation_queue_key(guild_id: str) -> str:
    return f"case-create:{guild_id}"


@dataclass(frozen=True)
class CaseStats:
    """Case counts of a guild."""

    total: int
    pending: int
    in_progress: int
    closed: int
    by_result: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)


def _snapshot(case: Case) -> dict[str, Any]:
    return {
        "status": case.status.value,
        "lead_attorney_id": case.lead_attorney_id,
        "assigned_lawyer_ids": list(case.assigned_lawyer_ids),
        "result": case.result.value if case.result else None,
    }


class CaseService(QueuedOperationService):
    """Case lifecycle operations and case queries."""

    def __init__(
        self,
        *,
        case_repository: CaseRepository,
        evaluator: PermissionEvaluator | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the service.

        Args:
            case_repository: Autocommit repository used by the queries.
            evaluator: Checks the lawyer capability of assignees.
            **kwargs: Queue, runner, pipeline, platform and clock, see
                QueuedOperationService.
        """
        super().__init__(**kwargs)
        self._cases = case_repository
        self._evaluator = evaluator or PermissionEvaluator()
        self._log = get_logger_for_service("case_service")

    # Mutations

    async def create_case(
        self, context: ActorContext, request: CreateCaseRequest | Mapping[str, Any]
    ) -> OperationResult[Case]:
        """Open a pending case numbered ``{year}-{sequence:04d}-{client}``."""

        def prepare() -> PreparedOperation[Case]:
            req = parse_request(CreateCaseRequest, request, context)

            async def body(uow: UnitOfWork) -> OperationResult[Case]:
                return await self._create(uow, context, req)

            return PreparedOperation(
                key=case_creation_queue_key(context.guild_id),
                body=body,
                metadata={"client_id": req.client_id},
            )

        return await self._perform("create_case", context, PermissionAction.CASE, prepare)

    async def accept_case(self, context: ActorContext, case_id: str) -> OperationResult[Case]:
        """Move a pending case to in_progress with the caller as lead.

        Creates the case channel; the channel is deleted again if the
        transaction rolls back.
        """

        def prepare() -> PreparedOperation[Case]:
            target = self._require_id(case_id, "case_id")

            async def body(uow: UnitOfWork) -> OperationResult[Case]:
                return await self._accept(uow, context, target)

            return PreparedOperation(
                key=case_queue_key(target), body=body, metadata={"case_id": target}
            )

        return await self._perform(
            "accept_case", context, PermissionAction.LEAD_ATTORNEY, prepare
        )

    async def assign_lawyer(
        self, context: ActorContext, request: AssignLawyerRequest | Mapping[str, Any]
    ) -> OperationResult[Case]:
        def prepare() -> PreparedOperation[Case]:
            req = parse_request(AssignLawyerRequest, request, context)

            async def body(uow: UnitOfWork) -> OperationResult[Case]:
                return await self._assign(uow, context, req)

            return PreparedOperation(
                key=case_queue_key(req.case_id),
                body=body,
                metadata={"case_id": req.case_id, "lawyer_id": req.lawyer_id},
            )

        return await self._perform("assign_lawyer", context, PermissionAction.CASE, prepare)

    async def unassign_lawyer(
        self, context: ActorContext, request: UnassignLawyerRequest | Mapping[str, Any]
    ) -> OperationResult[Case]:
        """Remove a lawyer; the earliest-assigned remaining lawyer becomes
        lead if the lead was removed."""

        def prepare() -> PreparedOperation[Case]:
            req = parse_request(UnassignLawyerRequest, request, context)

            async def body(uow: UnitOfWork) -> OperationResult[Case]:
                return await self._unassign(uow, context, req)

            return PreparedOperation(
                key=case_queue_key(req.case_id),
                body=body,
                metadata={"case_id": req.case_id, "lawyer_id": req.lawyer_id},
            )

        return await self._perform(
            "unassign_lawyer", context, PermissionAction.CASE, prepare
        )

    async def reassign_lawyer(
        self, context: ActorContext, request: ReassignLawyerRequest | Mapping[str, Any]
    ) -> OperationResult[tuple[Case, Case]]:
        """Move a lawyer between two cases in one transaction.

        Queued on both cases, so no other write to either case can
        interleave with the move.

        Returns:
            The updated (source, target) cases.
        """

        def prepare() -> PreparedOperation[tuple[Case, Case]]:
            req = parse_request(ReassignLawyerRequest, request, context)
            if req.from_case_id == req.to_case_id:
                raise ValidationFailedError(
                    "Source and target case must differ", field="to_case_id"
                )

            async def body(uow: UnitOfWork) -> OperationResult[tuple[Case, Case]]:
                return await self._reassign(uow, context, req)

            return PreparedOperation(
                key=case_queue_key(req.from_case_id),
                extra_keys=(case_queue_key(req.to_case_id),),
                body=body,
                metadata={
                    "from_case_id": req.from_case_id,
                    "to_case_id": req.to_case_id,
                    "lawyer_id": req.lawyer_id,
                },
            )

        return await self._perform(
            "reassign_lawyer", context, PermissionAction.CASE, prepare
        )

    async def close_case(
        self, context: ActorContext, request: CloseCaseRequest | Mapping[str, Any]
    ) -> OperationResult[Case]:
        def prepare() -> PreparedOperation[Case]:
            req = parse_request(CloseCaseRequest, request, context)

            async def body(uow: UnitOfWork) -> OperationResult[Case]:
                return await self._close(
                    uow,
                    context,
                    req.case_id,
                    req.result,
                    req.result_notes,
                    require=CaseStatus.IN_PROGRESS,
                )

            return PreparedOperation(
                key=case_queue_key(req.case_id),
                body=body,
                metadata={"case_id": req.case_id, "result": req.result.value},
            )

        return await self._perform("close_case", context, PermissionAction.CASE, prepare)

    async def decline_case(
        self, context: ActorContext, request: DeclineCaseRequest | Mapping[str, Any]
    ) -> OperationResult[Case]:
        """Close a pending case as DISMISSED."""

        def prepare() -> PreparedOperation[Case]:
            req = parse_request(DeclineCaseRequest, request, context)

            async def body(uow: UnitOfWork) -> OperationResult[Case]:
                return await self._close(
                    uow,
                    context,
                    req.case_id,
                    CaseResult.DISMISSED,
                    req.reason,
                    require=CaseStatus.PENDING,
                )

            return PreparedOperation(
                key=case_queue_key(req.case_id), body=body, metadata={"case_id": req.case_id}
            )

        return await self._perform("decline_case", context, PermissionAction.CASE, prepare)

    async def set_lead_attorney(
        self, context: ActorContext, request: SetLeadAttorneyRequest | Mapping[str, Any]
    ) -> OperationResult[Case]:
        """Make a lawyer lead, assigning them first if needed."""

        def prepare() -> PreparedOperation[Case]:
            req = parse_request(SetLeadAttorneyRequest, request, context)

            async def body(uow: UnitOfWork) -> OperationResult[Case]:
                return await self._set_lead(uow, context, req)

            return PreparedOperation(
                key=case_queue_key(req.case_id),
                body=body,
                metadata={"case_id": req.case_id, "lawyer_id": req.lawyer_id},
            )

        return await self._perform(
            "set_lead_attorney", context, PermissionAction.CASE, prepare
        )

    async def update_case(
        self, context: ActorContext, request: UpdateCaseRequest | Mapping[str, Any]
    ) -> OperationResult[Case]:
        def prepare() -> PreparedOperation[Case]:
            req = parse_request(UpdateCaseRequest, request, context)
            changes = req.changes()
            if not changes:
                raise ValidationFailedError(
                    "At least one of title, description or priority is required"
                )

            async def body(uow: UnitOfWork) -> OperationResult[Case]:
                return await self._update(uow, context, req.case_id, changes)

            return PreparedOperation(
                key=case_queue_key(req.case_id),
                body=body,
                metadata={"case_id": req.case_id, "fields": sorted(changes)},
            )

        return await self._perform("update_case", context, PermissionAction.CASE, prepare)

    async def add_document(
        self, context: ActorContext, request: AddDocumentRequest | Mapping[str, Any]
    ) -> OperationResult[Case]:
        def prepare() -> PreparedOperation[Case]:
            req = parse_request(AddDocumentRequest, request, context)

            async def body(uow: UnitOfWork) -> OperationResult[Case]:
                document = CaseDocument(
                    title=req.title,
                    content=req.content,
                    created_by=context.user_id,
                    created_at=self._clock(),
                )
                return await self._append(
                    uow,
                    context,
                    req.case_id,
                    AuditAction.CASE_DOCUMENT_ADDED,
                    documents=document,
                )

            return PreparedOperation(
                key=case_queue_key(req.case_id), body=body, metadata={"case_id": req.case_id}
            )

        return await self._perform("add_document", context, PermissionAction.CASE, prepare)

    async def add_note(
        self, context: ActorContext, request: AddNoteRequest | Mapping[str, Any]
    ) -> OperationResult[Case]:
        def prepare() -> PreparedOperation[Case]:
            req = parse_request(AddNoteRequest, request, context)

            async def body(uow: UnitOfWork) -> OperationResult[Case]:
                note = CaseNote(
                    content=req.content,
                    created_by=context.user_id,
                    is_internal=req.is_internal,
                    created_at=self._clock(),
                )
                return await self._append(
                    uow, context, req.case_id, AuditAction.CASE_NOTE_ADDED, notes=note
                )

            return PreparedOperation(
                key=case_queue_key(req.case_id), body=body, metadata={"case_id": req.case_id}
            )

        return await self._perform("add_note", context, PermissionAction.CASE, prepare)

    async def reassign_lawyer_from_active_case(
        self, context: ActorContext, lawyer_id: str, to_case_id: str
    ) -> OperationResult[tuple[Case, Case]]:
        """Move a lawyer from their earliest-accepted active case to ``to_case_id``."""
        if not isinstance(context, ActorContext):
            return OperationResult.fail(
                FailureKind.VALIDATION, "A complete actor context is required"
            )
        try:
            source = await self.find_active_case_for_lawyer(
                context, lawyer_id, exclude_case_id=to_case_id
            )
        except PermissionDeniedError as exc:
            return OperationResult.fail(FailureKind.PERMISSION_DENIED, str(exc))
        if source is None:
            return OperationResult.fail(
                FailureKind.NOT_FOUND,
                f"Lawyer {lawyer_id} has no active case to reassign from",
            )
        return await self.reassign_lawyer(
            context,
            {"from_case_id": source.id, "to_case_id": to_case_id, "lawyer_id": lawyer_id},
        )

    # Transaction bodies

    async def _create(
        self, uow: UnitOfWork, context: ActorContext, req: CreateCaseRequest
    ) -> OperationResult[Case]:
        cases = uow.get_repository(CaseRepository)
        counters = uow.get_repository(CaseCounterRepository)
        now = self._clock()

        sequence = await counters.increment_and_get(context.guild_id, now.year)
        case = Case(
            guild_id=context.guild_id,
            case_number=generate_case_number(now.year, sequence, req.client_username),
            client_id=req.client_id,
            client_username=req.client_username,
            title=req.title,
            description=req.description,
            priority=req.priority,
            created_at=now,
            updated_at=now,
        )
        await cases.add(case)
        await self._audit(
            uow,
            context,
            AuditAction.CASE_CREATED,
            case,
            after=_snapshot(case),
            metadata={"case_number": case.case_number, "client_id": case.client_id},
        )
        self._log.info(
            "case_created",
            guild_id=context.guild_id,
            case_id=case.id,
            case_number=case.case_number,
        )
        return OperationResult.ok(case)

    async def _accept(
        self, uow: UnitOfWork, context: ActorContext, case_id: str
    ) -> OperationResult[Case]:
        cases = uow.get_repository(CaseRepository)
        case = await self._load_open_case(cases, context, case_id)
        if case.status is not CaseStatus.PENDING:
            raise InvalidCaseTransitionError(case.id, case.status, "accepted")

        now = self._clock()
        accepted = case.accepted_by(context.user_id, at=now)
        config = await self._guild_config(uow, context.guild_id)
        channel_id = await self._platform.create_case_channel(
            context.guild_id,
            generate_channel_name(case.case_number),
            category_id=config.case_review_category_id,
            member_ids=(case.client_id, context.user_id),
        )
        self._register(
            uow,
            CompensationActionFactory.channel_deletion(
                self._platform, context.guild_id, channel_id
            ),
        )

        updated = await cases.update(
            case.id,
            {
                "status": accepted.status,
                "lead_attorney_id": accepted.lead_attorney_id,
                "assigned_lawyer_ids": accepted.assigned_lawyer_ids,
                "accepted_at": accepted.accepted_at,
                "channel_id": channel_id,
                "updated_at": now,
            },
        )
        await self._audit(
            uow,
            context,
            AuditAction.CASE_ACCEPTED,
            updated,
            before=_snapshot(case),
            after=_snapshot(updated),
            metadata={"channel_id": channel_id},
        )
        self._log.info(
            "case_accepted",
            guild_id=context.guild_id,
            case_id=case.id,
            lead_attorney_id=context.user_id,
            channel_id=channel_id,
        )
        return OperationResult.ok(updated)

    async def _assign(
        self, uow: UnitOfWork, context: ActorContext, req: AssignLawyerRequest
    ) -> OperationResult[Case]:
        cases = uow.get_repository(CaseRepository)
        case = await self._load_open_case(cases, context, req.case_id)
        if req.lawyer_id in case.assigned_lawyer_ids:
            raise LawyerAlreadyAssignedError(case.id, req.lawyer_id)
        await self._require_lawyer(uow, context.guild_id, req.lawyer_id)

        now = self._clock()
        assigned = case.with_lawyer(req.lawyer_id, at=now)
        updated = await cases.update(
            case.id,
            {"assigned_lawyer_ids": assigned.assigned_lawyer_ids, "updated_at": now},
        )
        await self._audit(
            uow,
            context,
            AuditAction.CASE_ASSIGNED,
            updated,
            before=_snapshot(case),
            after=_snapshot(updated),
            metadata={"lawyer_id": req.lawyer_id},
        )
        self._log.info(
            "lawyer_assigned",
            guild_id=context.guild_id,
            case_id=case.id,
            lawyer_id=req.lawyer_id,
        )
        return OperationResult.ok(updated)

    async def _unassign(
        self, uow: UnitOfWork, context: ActorContext, req: UnassignLawyerRequest
    ) -> OperationResult[Case]:
        cases = uow.get_repository(CaseRepository)
        case = await self._load_open_case(cases, context, req.case_id)
        if req.lawyer_id not in case.assigned_lawyer_ids:
            raise LawyerNotAssignedError(case.id, req.lawyer_id)

        now = self._clock()
        removed = case.without_lawyer(req.lawyer_id, at=now)
        updated = await cases.update(
            case.id,
            {
                "assigned_lawyer_ids": removed.assigned_lawyer_ids,
                "lead_attorney_id": removed.lead_attorney_id,
                "updated_at": now,
            },
        )
        await self._audit(
            uow,
            context,
            AuditAction.CASE_UNASSIGNED,
            updated,
            before=_snapshot(case),
            after=_snapshot(updated),
            metadata={"lawyer_id": req.lawyer_id},
        )
        if updated.lead_attorney_id != case.lead_attorney_id:
            await self._audit(
                uow,
                context,
                AuditAction.LEAD_ATTORNEY_CHANGED,
                updated,
                before={"lead_attorney_id": case.lead_attorney_id},
                after={"lead_attorney_id": updated.lead_attorney_id},
                reason="Lead attorney unassigned",
            )
        self._log.info(
            "lawyer_unassigned",
            guild_id=context.guild_id,
            case_id=case.id,
            lawyer_id=req.lawyer_id,
            lead_attorney_id=updated.lead_attorney_id,
        )
        return OperationResult.ok(updated)

    async def _reassign(
        self, uow: UnitOfWork, context: ActorContext, req: ReassignLawyerRequest
    ) -> OperationResult[tuple[Case, Case]]:
        cases = uow.get_repository(CaseRepository)
        source = await self._load_open_case(cases, context, req.from_case_id)
        target = await self._load_open_case(cases, context, req.to_case_id)
        if req.lawyer_id not in source.assigned_lawyer_ids:
            raise LawyerNotAssignedError(source.id, req.lawyer_id)
        if req.lawyer_id in target.assigned_lawyer_ids:
            raise LawyerAlreadyAssignedError(target.id, req.lawyer_id)

        now = self._clock()
        removed = source.without_lawyer(req.lawyer_id, at=now)
        added = target.with_lawyer(req.lawyer_id, at=now)
        new_source = await cases.update(
            source.id,
            {
                "assigned_lawyer_ids": removed.assigned_lawyer_ids,
                "lead_attorney_id": removed.lead_attorney_id,
                "updated_at": now,
            },
        )
        new_target = await cases.update(
            target.id,
            {"assigned_lawyer_ids": added.assigned_lawyer_ids, "updated_at": now},
        )
        await self._audit(
            uow,
            context,
            AuditAction.CASE_REASSIGNED,
            new_target,
            before={"case_id": source.id, **_snapshot(source)},
            after={"case_id": target.id, **_snapshot(new_target)},
            metadata={
                "lawyer_id": req.lawyer_id,
                "from_case_id": source.id,
                "to_case_id": target.id,
            },
        )
        self._log.info(
            "lawyer_reassigned",
            guild_id=context.guild_id,
            lawyer_id=req.lawyer_id,
            from_case_id=source.id,
            to_case_id=target.id,
        )
        return OperationResult.ok((new_source, new_target))

    async def _close(
        self,
        uow: UnitOfWork,
        context: ActorContext,
        case_id: str,
        result: CaseResult,
        notes: str | None,
        *,
        require: CaseStatus,
    ) -> OperationResult[Case]:
        declining = require is CaseStatus.PENDING
        cases = uow.get_repository(CaseRepository)
        case = await self._load_open_case(cases, context, case_id)
        if case.status is not require:
            raise InvalidCaseTransitionError(
                case.id, case.status, "declined" if declining else "closed"
            )

        now = self._clock()
        closed = case.closed_with(result, closed_by=context.user_id, notes=notes, at=now)
        updated = await cases.update(
            case.id,
            {
                "status": closed.status,
                "result": closed.result,
                "result_notes": closed.result_notes,
                "closed_at": closed.closed_at,
                "closed_by": closed.closed_by,
                "updated_at": now,
            },
        )
        await self._audit(
            uow,
            context,
            AuditAction.CASE_DECLINED if declining else AuditAction.CASE_CLOSED,
            updated,
            before=_snapshot(case),
            after=_snapshot(updated),
            reason=notes,
        )
        self._log.info(
            "case_declined" if declining else "case_closed",
            guild_id=context.guild_id,
            case_id=case.id,
            result=result.value,
            closed_by=context.user_id,
        )
        return OperationResult.ok(updated)

    async def _set_lead(
        self, uow: UnitOfWork, context: ActorContext, req: SetLeadAttorneyRequest
    ) -> OperationResult[Case]:
        cases = uow.get_repository(CaseRepository)
        case = await self._load_open_case(cases, context, req.case_id)
        if case.lead_attorney_id == req.lawyer_id:
            return OperationResult.ok(case)
        if req.lawyer_id not in case.assigned_lawyer_ids:
            await self._require_lawyer(uow, context.guild_id, req.lawyer_id)

        now = self._clock()
        led = case.with_lead(req.lawyer_id, at=now)
        updated = await cases.update(
            case.id,
            {
                "assigned_lawyer_ids": led.assigned_lawyer_ids,
                "lead_attorney_id": led.lead_attorney_id,
                "updated_at": now,
            },
        )
        await self._audit(
            uow,
            context,
            AuditAction.LEAD_ATTORNEY_CHANGED,
            updated,
            before={"lead_attorney_id": case.lead_attorney_id},
            after={"lead_attorney_id": updated.lead_attorney_id},
        )
        self._log.info(
            "lead_attorney_changed",
            guild_id=context.guild_id,
            case_id=case.id,
            lead_attorney_id=req.lawyer_id,
        )
        return OperationResult.ok(updated)

    async def _update(
        self,
        uow: UnitOfWork,
        context: ActorContext,
        case_id: str,
        changes: dict[str, Any],
    ) -> OperationResult[Case]:
        cases = uow.get_repository(CaseRepository)
        case = await self._load_open_case(cases, context, case_id)
        before = {name: getattr(case, name) for name in changes}
        updated = await cases.update(case.id, {**changes, "updated_at": self._clock()})
        await self._audit(
            uow,
            context,
            AuditAction.CASE_UPDATED,
            updated,
            before={name: _plain(value) for name, value in before.items()},
            after={name: _plain(value) for name, value in changes.items()},
        )
        return OperationResult.ok(updated)

    async def _append(
        self,
        uow: UnitOfWork,
        context: ActorContext,
        case_id: str,
        action: AuditAction,
        *,
        documents: CaseDocument | None = None,
        notes: CaseNote | None = None,
    ) -> OperationResult[Case]:
        cases = uow.get_repository(CaseRepository)
        case = await self._load_open_case(cases, context, case_id)
        changes: dict[str, Any] = {"updated_at": self._clock()}
        item_id = None
        if documents is not None:
            changes["documents"] = case.documents + (documents,)
            item_id = documents.id
        if notes is not None:
            changes["notes"] = case.notes + (notes,)
            item_id = notes.id
        updated = await cases.update(case.id, changes)
        await self._audit(uow, context, action, updated, metadata={"item_id": item_id})
        return OperationResult.ok(updated)

    # Helpers

    @staticmethod
    def _require_id(value: Any, field_name: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValidationFailedError(f"{field_name} is required", field=field_name)
        return value.strip()

    @staticmethod
    async def _load_open_case(
        cases: CaseRepository, context: ActorContext, case_id: str
    ) -> Case:
        case = await cases.find_by_id(case_id)
        if not same_guild(context, case):
            raise CaseNotFoundError(case_id)
        if case.is_closed:
            raise CaseAlreadyClosedError(case.id)
        return case

    async def _require_lawyer(self, uow: UnitOfWork, guild_id: str, lawyer_id: str) -> None:
        lawyer = await self._platform.resolve_actor_context(guild_id, lawyer_id)
        if lawyer is None:
            raise LawyerCapabilityMissingError(lawyer_id)
        config: GuildConfig = await self._guild_config(uow, guild_id)
        if not self._evaluator.has_permission(lawyer, config, PermissionAction.LAWYER):
            raise LawyerCapabilityMissingError(lawyer_id)

    async def _audit(
        self,
        uow: UnitOfWork,
        context: ActorContext,
        action: AuditAction,
        case: Case,
        *,
        before: Mapping[str, Any] | None = None,
        after: Mapping[str, Any] | None = None,
        reason: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        audit = uow.get_repository(AuditLogRepository)
        await audit.log_action(
            AuditLogEntry(
                guild_id=context.guild_id,
                action=action,
                actor_id=context.user_id,
                target_id=case.id,
                before=before,
                after=after,
                reason=reason,
                metadata=dict(metadata or {}),
                timestamp=self._clock(),
            )
        )

    # Queries
    #
    # Every query requires the case permission and raises
    # PermissionDeniedError otherwise. Results are limited to the actor's guild.

    async def get_case_by_id(self, context: ActorContext, case_id: str) -> Case | None:
        await self._authorize(context, PermissionAction.CASE)
        case = await self._cases.find_by_id(case_id)
        return case if same_guild(context, case) else None

    async def get_case_by_case_number(
        self, context: ActorContext, case_number: str
    ) -> Case | None:
        await self._authorize(context, PermissionAction.CASE)
        return await self._cases.find_by_case_number(context.guild_id, case_number)

    async def get_cases_by_client(self, context: ActorContext, client_id: str) -> list[Case]:
        await self._authorize(context, PermissionAction.CASE)
        return await self._cases.find_by_client(context.guild_id, client_id)

    async def get_cases_by_lawyer(self, context: ActorContext, lawyer_id: str) -> list[Case]:
        """Open cases the lawyer is assigned to."""
        await self._authorize(context, PermissionAction.CASE)
        return await self._cases.find_by_lawyer(context.guild_id, lawyer_id)

    async def get_active_cases(self, context: ActorContext) -> list[Case]:
        await self._authorize(context, PermissionAction.CASE)
        return await self._cases.find_by_filters(
            {"guild_id": context.guild_id, "status": CaseStatus.IN_PROGRESS}
        )

    async def get_pending_cases(self, context: ActorContext) -> list[Case]:
        await self._authorize(context, PermissionAction.CASE)
        return await self._cases.find_by_filters(
            {"guild_id": context.guild_id, "status": CaseStatus.PENDING}
        )

    async def get_case_stats(self, context: ActorContext) -> CaseStats:
        await self._authorize(context, PermissionAction.CASE)
        cases = await self._cases.find_by_filters({"guild_id": context.guild_id})
        statuses = Counter(case.status for case in cases)
        return CaseStats(
            total=len(cases),
            pending=statuses[CaseStatus.PENDING],
            in_progress=statuses[CaseStatus.IN_PROGRESS],
            closed=statuses[CaseStatus.CLOSED],
            by_result=dict(Counter(case.result.value for case in cases if case.result)),
            by_priority=dict(Counter(case.priority.value for case in cases)),
        )

    async def find_active_case_for_lawyer(
        self,
        context: ActorContext,
        lawyer_id: str,
        *,
        exclude_case_id: str | None = None,
    ) -> Case | None:
        """The lawyer's in-progress case accepted earliest.

        Ties on ``accepted_at`` fall back to creation time, then case id.
        """
        await self._authorize(context, PermissionAction.CASE)
        active = [
            case
            for case in await self._cases.find_by_lawyer(context.guild_id, lawyer_id)
            if case.status is CaseStatus.IN_PROGRESS and case.id != exclude_case_id
        ]
        if not active:
            return None
        return min(
            active,
            key=lambda case: (case.accepted_at or case.created_at, case.created_at, case.id),
        )


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)
