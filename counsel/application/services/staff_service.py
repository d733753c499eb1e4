"""Staff lifecycle service: hire, promote, demote and fire.

Rules enforced inside the transaction:
- One active record per (guild, user); external handles unique among
  active staff (case-insensitive).
- Role capacity for hires and promotions. A guild owner bypasses a full
  role; the bypass is audited with the current and maximum counts.
  Demotions vacate a higher slot and are never capacity-checked.
- Nobody promotes, demotes or fires themselves.
- Promotions raise the level, demotions lower it.
- Firing requires the actor's effective level to be strictly above the
  target's (owner above every role, non-staff actor at 0).

All four operations queue on ``staff:{guild_id}``, so capacity counts
never race within a guild. External role changes happen inside the
transaction body with a compensation registered for each.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from math import ceil
from typing import Any

from counsel.application.dtos.staff_requests import (
    DemoteStaffRequest,
    FireStaffRequest,
    HireStaffRequest,
    PromoteStaffRequest,
)
from counsel.application.dtos.validation import parse_request
from counsel.application.ports.audit_log_repository import AuditLogRepository
from counsel.application.ports.guild_config_repository import GuildConfigRepository
from counsel.application.ports.staff_repository import StaffRepository
from counsel.application.ports.unit_of_work import UnitOfWork
from counsel.application.services.base import PreparedOperation, QueuedOperationService
from counsel.application.services.rollback_service import CompensationActionFactory
from counsel.domain.errors.business_rule import (
    ExternalHandleTakenError,
    InsufficientPrivilegeError,
    InvalidRoleChangeError,
    RoleCapacityExceededError,
    SelfPromotionError,
    StaffAlreadyActiveError,
    StaffNotFoundError,
)
from counsel.domain.errors.validation import ValidationFailedError
from counsel.domain.models.actor_context import ActorContext
from counsel.domain.models.audit_log import AuditAction, AuditLogEntry
from counsel.domain.models.guild_config import GuildConfig, PermissionAction
from counsel.domain.models.operation_result import OperationResult
from counsel.domain.models.staff import (
    NON_STAFF_LEVEL,
    OWNER_LEVEL,
    StaffActionType,
    StaffRecord,
    StaffRole,
    StaffStatus,
    validate_external_handle,
)
from counsel.infrastructure.observability import get_logger_for_service


MAX_PAGE_SIZE = 100


def staff_queue_key(guild_id: str) -> str:
    return f"staff:{guild_id}"


@dataclass(frozen=True)
class StaffPage:
    """One page of a staff listing."""

    records: list[StaffRecord]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return max(1, ceil(self.total / self.page_size))


def _snapshot(record: StaffRecord) -> dict[str, Any]:
    return {
        "role": record.role.value,
        "status": record.status.value,
        "external_handle": record.external_handle,
    }


class StaffService(QueuedOperationService):
    """Staff lifecycle operations and staff queries."""

    def __init__(
        self,
        *,
        staff_repository: StaffRepository,
        guild_config_repository: GuildConfigRepository,
        **kwargs: Any,
    ) -> None:
        """Initialize the service.

        Args:
            staff_repository: Autocommit repository used by the queries.
            guild_config_repository: Autocommit repository used by the queries.
            **kwargs: Queue, runner, pipeline, platform and clock, see
                QueuedOperationService.
        """
        super().__init__(**kwargs)
        self._staff = staff_repository
        self._configs = guild_config_repository
        self._log = get_logger_for_service("staff_service")

    # Mutations

    async def hire_staff(
        self, context: ActorContext, request: HireStaffRequest | Mapping[str, Any]
    ) -> OperationResult[StaffRecord]:
        """Hire a user into a role.

        Returns:
            The new record. ``details["capacity_bypassed"]`` is True when a
            guild owner hired into a full role.
        """

        def prepare() -> PreparedOperation[StaffRecord]:
            req = parse_request(HireStaffRequest, request, context)

            async def body(uow: UnitOfWork) -> OperationResult[StaffRecord]:
                return await self._hire(uow, context, req)

            return PreparedOperation(
                key=staff_queue_key(context.guild_id),
                body=body,
                metadata={"target_user_id": req.user_id, "role": req.role.value},
            )

        return await self._perform(
            "hire_staff", context, PermissionAction.SENIOR_STAFF, prepare
        )

    async def promote_staff(
        self, context: ActorContext, request: PromoteStaffRequest | Mapping[str, Any]
    ) -> OperationResult[StaffRecord]:
        def prepare() -> PreparedOperation[StaffRecord]:
            req = parse_request(PromoteStaffRequest, request, context)

            async def body(uow: UnitOfWork) -> OperationResult[StaffRecord]:
                return await self._change_role(
                    uow, context, req.user_id, req.new_role, req.reason, promote=True
                )

            return PreparedOperation(
                key=staff_queue_key(context.guild_id),
                body=body,
                metadata={"target_user_id": req.user_id, "role": req.new_role.value},
            )

        return await self._perform(
            "promote_staff", context, PermissionAction.SENIOR_STAFF, prepare
        )

    async def demote_staff(
        self, context: ActorContext, request: DemoteStaffRequest | Mapping[str, Any]
    ) -> OperationResult[StaffRecord]:
        def prepare() -> PreparedOperation[StaffRecord]:
            req = parse_request(DemoteStaffRequest, request, context)

            async def body(uow: UnitOfWork) -> OperationResult[StaffRecord]:
                return await self._change_role(
                    uow, context, req.user_id, req.new_role, req.reason, promote=False
                )

            return PreparedOperation(
                key=staff_queue_key(context.guild_id),
                body=body,
                metadata={"target_user_id": req.user_id, "role": req.new_role.value},
            )

        return await self._perform(
            "demote_staff", context, PermissionAction.SENIOR_STAFF, prepare
        )

    async def fire_staff(
        self, context: ActorContext, request: FireStaffRequest | Mapping[str, Any]
    ) -> OperationResult[StaffRecord]:
        """Terminate a staff member. History is kept."""

        def prepare() -> PreparedOperation[StaffRecord]:
            req = parse_request(FireStaffRequest, request, context)

            async def body(uow: UnitOfWork) -> OperationResult[StaffRecord]:
                return await self._fire(uow, context, req)

            return PreparedOperation(
                key=staff_queue_key(context.guild_id),
                body=body,
                metadata={"target_user_id": req.user_id},
            )

        return await self._perform(
            "fire_staff", context, PermissionAction.SENIOR_STAFF, prepare
        )

    # Transaction bodies

    async def _hire(
        self, uow: UnitOfWork, context: ActorContext, req: HireStaffRequest
    ) -> OperationResult[StaffRecord]:
        staff = uow.get_repository(StaffRepository)
        audit = uow.get_repository(AuditLogRepository)
        guild_id = context.guild_id
        now = self._clock()

        existing = await staff.find_by_user_id(guild_id, req.user_id)
        if existing is not None and existing.is_active:
            raise StaffAlreadyActiveError(guild_id, req.user_id)
        if await staff.find_staff_by_external_handle(guild_id, req.external_handle):
            raise ExternalHandleTakenError(guild_id, req.external_handle)

        config = await self._guild_config(uow, guild_id)
        bypassed = await self._check_capacity(
            staff, audit, config, context, req.role, req.user_id, "hire"
        )

        record = StaffRecord.hire(
            guild_id=guild_id,
            user_id=req.user_id,
            external_handle=req.external_handle,
            role=req.role,
            hired_by=context.user_id,
            reason=req.reason,
            at=now,
        )
        await staff.add(record)
        await audit.log_action(
            AuditLogEntry(
                guild_id=guild_id,
                action=AuditAction.STAFF_HIRED,
                actor_id=context.user_id,
                target_id=req.user_id,
                after=_snapshot(record),
                reason=req.reason,
                metadata={"capacity_bypassed": bypassed},
                timestamp=now,
            )
        )

        role_id = config.external_role_for(req.role)
        if role_id is not None:
            await self._platform.grant_role(guild_id, req.user_id, role_id)
            self._register(
                uow,
                CompensationActionFactory.external_role_removal(
                    self._platform, guild_id, req.user_id, role_id
                ),
                CompensationActionFactory.failure_notification(
                    self._platform,
                    [req.user_id],
                    f"Your hire as {req.role.value} could not be completed.",
                ),
            )

        self._log.info(
            "staff_hired",
            guild_id=guild_id,
            user_id=req.user_id,
            role=req.role.value,
            hired_by=context.user_id,
            capacity_bypassed=bypassed,
        )
        return OperationResult.ok(record, capacity_bypassed=bypassed)

    async def _change_role(
        self,
        uow: UnitOfWork,
        context: ActorContext,
        user_id: str,
        new_role: StaffRole,
        reason: str | None,
        *,
        promote: bool,
    ) -> OperationResult[StaffRecord]:
        verb = "promote" if promote else "demote"
        direction = "promotion" if promote else "demotion"
        if user_id == context.user_id:
            raise SelfPromotionError(verb)

        staff = uow.get_repository(StaffRepository)
        audit = uow.get_repository(AuditLogRepository)
        guild_id = context.guild_id
        now = self._clock()

        target = await staff.find_by_user_id(guild_id, user_id)
        if target is None or not target.is_active:
            raise StaffNotFoundError(guild_id, user_id)
        raises_level = new_role.level > target.role.level
        if raises_level != promote or new_role is target.role:
            raise InvalidRoleChangeError(target.role, new_role, direction)

        config = await self._guild_config(uow, guild_id)
        bypassed = False
        if promote:
            bypassed = await self._check_capacity(
                staff, audit, config, context, new_role, user_id, verb
            )

        updated = target.with_role(
            new_role,
            actor_id=context.user_id,
            action_type=StaffActionType.PROMOTION if promote else StaffActionType.DEMOTION,
            reason=reason,
            at=now,
        )
        await staff.update(
            target.id,
            {
                "role": updated.role,
                "promotion_history": updated.promotion_history,
                "updated_at": updated.updated_at,
            },
        )
        await audit.log_action(
            AuditLogEntry(
                guild_id=guild_id,
                action=AuditAction.STAFF_PROMOTED if promote else AuditAction.STAFF_DEMOTED,
                actor_id=context.user_id,
                target_id=user_id,
                before=_snapshot(target),
                after=_snapshot(updated),
                reason=reason,
                metadata={"capacity_bypassed": bypassed},
                timestamp=now,
            )
        )
        await self._swap_external_roles(uow, config, user_id, target.role, new_role)

        self._log.info(
            f"staff_{direction}",
            guild_id=guild_id,
            user_id=user_id,
            from_role=target.role.value,
            to_role=new_role.value,
            actor_id=context.user_id,
        )
        return OperationResult.ok(updated, capacity_bypassed=bypassed)

    async def _fire(
        self, uow: UnitOfWork, context: ActorContext, req: FireStaffRequest
    ) -> OperationResult[StaffRecord]:
        if req.user_id == context.user_id:
            raise SelfPromotionError("fire")

        staff = uow.get_repository(StaffRepository)
        audit = uow.get_repository(AuditLogRepository)
        guild_id = context.guild_id
        now = self._clock()

        target = await staff.find_by_user_id(guild_id, req.user_id)
        if target is None or not target.is_active:
            raise StaffNotFoundError(guild_id, req.user_id)
        actor_level = await self._effective_level(staff, context)
        if actor_level <= target.role.level:
            raise InsufficientPrivilegeError(actor_level, target.role.level)

        terminated = target.terminated(actor_id=context.user_id, reason=req.reason, at=now)
        await staff.update(
            target.id,
            {
                "status": terminated.status,
                "promotion_history": terminated.promotion_history,
                "terminated_at": terminated.terminated_at,
                "terminated_by": terminated.terminated_by,
                "termination_reason": terminated.termination_reason,
                "updated_at": terminated.updated_at,
            },
        )
        await audit.log_action(
            AuditLogEntry(
                guild_id=guild_id,
                action=AuditAction.STAFF_FIRED,
                actor_id=context.user_id,
                target_id=req.user_id,
                before=_snapshot(target),
                after=_snapshot(terminated),
                reason=req.reason,
                timestamp=now,
            )
        )

        config = await self._guild_config(uow, guild_id)
        role_id = config.external_role_for(target.role)
        if role_id is not None:
            await self._platform.revoke_role(guild_id, req.user_id, role_id)
            self._register(
                uow,
                CompensationActionFactory.external_role_restore(
                    self._platform, guild_id, req.user_id, role_id
                ),
            )

        self._log.info(
            "staff_fired",
            guild_id=guild_id,
            user_id=req.user_id,
            role=target.role.value,
            actor_id=context.user_id,
        )
        return OperationResult.ok(terminated)

    async def _check_capacity(
        self,
        staff: StaffRepository,
        audit: AuditLogRepository,
        config: GuildConfig,
        context: ActorContext,
        role: StaffRole,
        target_user_id: str,
        operation: str,
    ) -> bool:
        """Enforce the role capacity.

        Returns:
            True when a guild owner bypassed a full role.

        Raises:
            RoleCapacityExceededError: Role is full and the actor is not the owner.
        """
        current = await staff.count_active_by_role(context.guild_id, role)
        max_count = config.max_count_for(role)
        if current < max_count:
            return False
        if not context.is_guild_owner:
            raise RoleCapacityExceededError(role, current, max_count)

        await audit.log_action(
            AuditLogEntry(
                guild_id=context.guild_id,
                action=AuditAction.ROLE_LIMIT_BYPASSED,
                actor_id=context.user_id,
                target_id=target_user_id,
                before={"current_count": current, "max_count": max_count},
                after={"current_count": current + 1, "max_count": max_count},
                reason=f"Guild owner bypassed {role.value} limit on {operation}",
                metadata={
                    "role": role.value,
                    "operation": operation,
                    "current_count": current,
                    "max_count": max_count,
                },
                timestamp=self._clock(),
            )
        )
        self._log.warning(
            "role_limit_bypassed",
            guild_id=context.guild_id,
            role=role.value,
            current_count=current,
            max_count=max_count,
            actor_id=context.user_id,
        )
        return True

    async def _swap_external_roles(
        self,
        uow: UnitOfWork,
        config: GuildConfig,
        user_id: str,
        old_role: StaffRole,
        new_role: StaffRole,
    ) -> None:
        guild_id = config.guild_id
        old_id = config.external_role_for(old_role)
        new_id = config.external_role_for(new_role)
        if new_id is not None:
            await self._platform.grant_role(guild_id, user_id, new_id)
            self._register(
                uow,
                CompensationActionFactory.external_role_removal(
                    self._platform, guild_id, user_id, new_id
                ),
            )
        if old_id is not None and old_id != new_id:
            await self._platform.revoke_role(guild_id, user_id, old_id)
            self._register(
                uow,
                CompensationActionFactory.external_role_restore(
                    self._platform, guild_id, user_id, old_id
                ),
            )

    @staticmethod
    async def _effective_level(staff: StaffRepository, context: ActorContext) -> int:
        if context.is_guild_owner:
            return OWNER_LEVEL
        record = await staff.find_by_user_id(context.guild_id, context.user_id)
        if record is None or not record.is_active:
            return NON_STAFF_LEVEL
        return record.role.level

    # Queries

    @staticmethod
    def validate_external_handle(handle: str) -> tuple[bool, str | None]:
        """Check a handle's format.

        Returns:
            (True, None) when valid, else (False, reason).
        """
        try:
            validate_external_handle(handle)
        except ValidationFailedError as exc:
            return False, str(exc)
        return True, None

    async def get_staff_info(
        self, context: ActorContext, user_id: str
    ) -> StaffRecord | None:
        """The user's active record, else their most recent one."""
        await self._authorize(context, PermissionAction.SENIOR_STAFF)
        return await self._staff.find_by_user_id(context.guild_id, user_id)

    async def get_staff_list(
        self,
        context: ActorContext,
        *,
        role: StaffRole | None = None,
        status: StaffStatus | None = StaffStatus.ACTIVE,
        page: int = 1,
        page_size: int = 10,
    ) -> StaffPage:
        """Staff of the guild ordered by hire date, one page at a time."""
        await self._authorize(context, PermissionAction.SENIOR_STAFF)
        if page < 1:
            raise ValidationFailedError("page must be at least 1", field="page")
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValidationFailedError(
                f"page_size must be between 1 and {MAX_PAGE_SIZE}", field="page_size"
            )
        filters: dict[str, Any] = {"guild_id": context.guild_id}
        if role is not None:
            filters["role"] = role
        if status is not None:
            filters["status"] = status
        records = await self._staff.find_by_filters(filters)
        start = (page - 1) * page_size
        return StaffPage(
            records=records[start : start + page_size],
            total=len(records),
            page=page,
            page_size=page_size,
        )

    async def get_staff_hierarchy(self, context: ActorContext) -> list[StaffRecord]:
        """Active staff, highest role first, then by hire date."""
        await self._authorize(context, PermissionAction.SENIOR_STAFF)
        records = await self._staff.find_active(context.guild_id)
        return sorted(records, key=lambda record: (-record.role.level, record.hired_at))

    async def get_role_counts(self, context: ActorContext) -> dict[StaffRole, int]:
        """Active staff per role, every role present."""
        await self._authorize(context, PermissionAction.SENIOR_STAFF)
        counts = {role: 0 for role in StaffRole.sorted_by_level()}
        for record in await self._staff.find_active(context.guild_id):
            counts[record.role] += 1
        return counts

    async def get_role_limits(self, context: ActorContext) -> dict[StaffRole, int]:
        """Capacity of every role in the guild."""
        await self._authorize(context, PermissionAction.SENIOR_STAFF)
        config = await self._configs.find_by_guild_id(context.guild_id)
        config = config or GuildConfig.empty(context.guild_id)
        return {role: config.max_count_for(role) for role in StaffRole.sorted_by_level()}
