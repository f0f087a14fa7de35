"""
LexGate - Case Service

Case listing, intake and the conflict-of-interest check.

Visibility:
- LAWYER / ADMIN: every case in the tenant
- STAFF: cases where they are the assigned staff or lawyer
- CLIENT: their own cases
- TECH_SUPPORT: none (denied and audited)
"""

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lexgate.models.audit import AuditAction, AuditResult
from lexgate.models.case import Case, CaseStatus, ConflictCheckStatus, Creditor
from lexgate.models.principal import Principal, Role
from lexgate.schemas.audit import CaseConflictCheckDetails, CaseCreateDetails
from lexgate.schemas.case import (
    AutoConflictCheckResponse,
    CaseCreate,
    ConflictCheckDecision,
    PotentialConflict,
)
from lexgate.services.audit_service import AuditService, EMPTY_CONTEXT, RequestContext
from lexgate.services.authorization_guard import (
    can_view_case,
    require_lawyer,
    require_permission,
    require_same_tenant,
)
from lexgate.utils.error_handling import (
    AuthorizationException,
    CaseNotFoundException,
    ErrorCode,
    StateConflictException,
)
from lexgate.utils.permissions import Permission

logger = logging.getLogger(__name__)

# Attempts at allocating a case number before giving up on a unique clash
CASE_NUMBER_ATTEMPTS = 3


def format_case_number(year: int, sequence: int) -> str:
    return f"{year}-{sequence:04d}"


class CaseService:
    """Service for case operations."""

    def __init__(self, db: AsyncSession, audit: AuditService):
        self.db = db
        self.audit = audit

    # ===========================================
    # LISTING
    # ===========================================

    async def list_cases(
        self,
        principal: Principal,
        status: Optional[CaseStatus] = None,
        page: int = 1,
        limit: int = 20,
        context: RequestContext = EMPTY_CONTEXT,
    ) -> Tuple[List[Case], int, int]:
        """
        Role-filtered page of cases.

        Returns:
            (cases, total, total_pages)
        """
        if principal.role == Role.TECH_SUPPORT:
            exc = AuthorizationException(
                message="Tech support has no access to case content",
                required_permission=Permission.CASE_VIEW_ALL.value,
                attempted_action="case:view",
                user_role=principal.role.value,
            )
            await self.audit.log_denial(principal, exc, "case", context=context)
            raise exc

        conditions = [Case.tenant_id == principal.tenant_id]
        if principal.role == Role.STAFF:
            conditions.append(or_(Case.staff_id == principal.id, Case.lawyer_id == principal.id))
        elif principal.role == Role.CLIENT:
            conditions.append(Case.client_id == principal.id)

        if status:
            conditions.append(Case.status == status)

        total = await self.db.scalar(select(func.count(Case.id)).where(*conditions)) or 0

        query = (
            select(Case)
            .where(*conditions)
            .order_by(Case.updated_at.desc(), Case.case_number.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(query)
        total_pages = math.ceil(total / limit) if limit else 0
        return list(result.scalars().all()), total, total_pages

    async def get_case(
        self,
        principal: Principal,
        case_id: uuid.UUID,
        context: RequestContext = EMPTY_CONTEXT,
    ) -> Case:
        """Single case, subject to tenant and role visibility."""
        case = await self.db.get(Case, case_id)
        if case is None:
            raise CaseNotFoundException(case_id)
        try:
            require_same_tenant(principal, case.tenant_id, "case:view", "case")
            if not can_view_case(principal, case.client_id, case.lawyer_id, case.staff_id):
                raise AuthorizationException(
                    message="You do not have access to this case",
                    attempted_action="case:view",
                    user_role=principal.role.value,
                )
        except AuthorizationException as exc:
            await self.audit.log_denial(principal, exc, "case", resource_id=case_id, context=context)
            raise
        return case

    # ===========================================
    # INTAKE
    # ===========================================

    async def _next_case_number(self, tenant_id: uuid.UUID, year: int) -> str:
        prefix = f"{year}-"
        count = await self.db.scalar(
            select(func.count(Case.id)).where(
                Case.tenant_id == tenant_id,
                Case.case_number.like(f"{prefix}%"),
            )
        ) or 0
        return format_case_number(year, count + 1)

    async def create_case(
        self,
        principal: Principal,
        data: CaseCreate,
        context: RequestContext = EMPTY_CONTEXT,
    ) -> Case:
        """
        Open a new case in the INQUIRY state.

        The creating lawyer or staff member is assigned to the case.
        Case numbers are `<year>-<seq>` per tenant; a concurrent clash on the
        unique (tenant, case_number) constraint is retried.
        """
        try:
            require_permission(principal, Permission.CASE_CREATE)
        except AuthorizationException as exc:
            await self.audit.log_denial(principal, exc, "case", context=context)
            raise

        year = datetime.now(timezone.utc).year
        case = None
        for attempt in range(CASE_NUMBER_ATTEMPTS):
            case_number = await self._next_case_number(principal.tenant_id, year)
            case = Case(
                tenant_id=principal.tenant_id,
                case_number=case_number,
                case_type=data.case_type,
                status=CaseStatus.INQUIRY,
                conflict_check_status=ConflictCheckStatus.PENDING,
                client_id=data.client_id,
                client_name=data.client_name,
                client_email=data.client_email,
                lawyer_id=principal.id if principal.role == Role.LAWYER else None,
                staff_id=principal.id if principal.role == Role.STAFF else None,
                total_debt=data.total_debt,
                creditor_count=data.creditor_count if data.creditor_count is not None else (len(data.creditors) or None),
                creditors=[
                    Creditor(
                        tenant_id=principal.tenant_id,
                        name=creditor.name,
                        address=creditor.address,
                        debt_amount=creditor.debt_amount,
                        debt_type=creditor.debt_type,
                    )
                    for creditor in data.creditors
                ],
            )
            self.db.add(case)
            try:
                await self.db.commit()
                break
            except IntegrityError:
                await self.db.rollback()
                if attempt == CASE_NUMBER_ATTEMPTS - 1:
                    raise
                logger.warning(f"Case number {case_number} taken, retrying")

        await self.db.refresh(case)

        await self.audit.record(
            principal,
            AuditAction.CASE_CREATE,
            "case",
            AuditResult.SUCCESS,
            resource_id=case.id,
            case_id=case.id,
            details=CaseCreateDetails(
                case_number=case.case_number,
                case_type=case.case_type.value,
                client_id=str(case.client_id) if case.client_id else None,
            ),
            context=context,
        )

        logger.info(f"Case created: {case.case_number} ({case.id}) by {principal.id}")
        return case

    # ===========================================
    # CONFLICT CHECK
    # ===========================================

    async def _get_case_for_conflict_check(
        self,
        principal: Principal,
        case_id: uuid.UUID,
        context: RequestContext,
        audit_denials: bool = True,
    ) -> Case:
        try:
            require_lawyer(principal, Permission.CONFLICT_CHECK.value)
        except AuthorizationException as exc:
            if audit_denials:
                await self.audit.log_denial(principal, exc, "case", resource_id=case_id, case_id=case_id, context=context)
            raise

        case = await self.db.get(Case, case_id)
        if case is None:
            raise CaseNotFoundException(case_id)

        try:
            require_same_tenant(principal, case.tenant_id, Permission.CONFLICT_CHECK.value, "case")
        except AuthorizationException as exc:
            if audit_denials:
                await self.audit.log_denial(principal, exc, "case", resource_id=case_id, context=context)
            raise
        return case

    async def auto_conflict_check(
        self,
        principal: Principal,
        case_id: uuid.UUID,
        context: RequestContext = EMPTY_CONTEXT,
    ) -> AutoConflictCheckResponse:
        """
        Match the case's client and creditors against the tenant's other cases.

        Advisory: the decision itself is always the lawyer's.
        """
        case = await self._get_case_for_conflict_check(principal, case_id, context, audit_denials=False)

        creditor_names = [creditor.name for creditor in case.creditors]
        conflicts: List[PotentialConflict] = []

        if case.client_name:
            result = await self.db.execute(
                select(Case.id, Case.case_number, Case.client_name).where(
                    Case.tenant_id == principal.tenant_id,
                    Case.id != case.id,
                    Case.client_name == case.client_name,
                )
            )
            for other_id, other_number, other_client in result.all():
                conflicts.append(PotentialConflict(
                    type="client_duplicate",
                    case_id=other_id,
                    case_number=other_number,
                    matched_name=other_client,
                    details="A client with the same name exists in another case",
                ))

        for creditor_name in creditor_names:
            result = await self.db.execute(
                select(Case.id, Case.case_number)
                .join(Creditor, Creditor.case_id == Case.id)
                .where(
                    Case.tenant_id == principal.tenant_id,
                    Case.id != case.id,
                    Creditor.name == creditor_name,
                )
                .distinct()
                .limit(5)
            )
            for other_id, other_number in result.all():
                conflicts.append(PotentialConflict(
                    type="creditor_match",
                    case_id=other_id,
                    case_number=other_number,
                    matched_name=creditor_name,
                    details=f"Creditor '{creditor_name}' also appears in another case",
                ))

        return AutoConflictCheckResponse(
            case_id=case.id,
            client_name=case.client_name,
            creditor_names=creditor_names,
            has_conflicts=bool(conflicts),
            potential_conflicts=conflicts,
            message=(
                "Items require review. The lawyer must decide."
                if conflicts
                else "No conflicts found by automatic matching."
            ),
        )

    async def record_conflict_check(
        self,
        principal: Principal,
        case_id: uuid.UUID,
        decision: ConflictCheckDecision,
        context: RequestContext = EMPTY_CONTEXT,
    ) -> Case:
        """
        Record the lawyer's conflict-of-interest decision.

        APPROVED moves the case to CONSULTATION, REJECTED to REJECTED.
        A completed check cannot be redone.
        """
        case = await self._get_case_for_conflict_check(principal, case_id, context)

        if case.conflict_check_status not in (ConflictCheckStatus.PENDING, ConflictCheckStatus.CHECKING):
            raise StateConflictException(
                "The conflict check has already been completed",
                code=ErrorCode.CONFLICT_CHECK_COMPLETED,
                details={"conflict_check_status": case.conflict_check_status.value},
            )

        case.conflict_check_status = ConflictCheckStatus(decision.decision)
        case.conflict_check_at = datetime.now(timezone.utc)
        case.conflict_check_by_id = principal.id
        case.conflict_check_reason = decision.reason
        case.status = CaseStatus.CONSULTATION if decision.decision == "APPROVED" else CaseStatus.REJECTED

        await self.db.commit()
        await self.db.refresh(case)

        await self.audit.record(
            principal,
            AuditAction.CASE_CONFLICT_CHECK,
            "case",
            AuditResult.SUCCESS,
            resource_id=case.id,
            case_id=case.id,
            details=CaseConflictCheckDetails(
                decision=decision.decision,
                reason=decision.reason,
                client_name=case.client_name,
                creditor_names=[creditor.name for creditor in case.creditors],
            ),
            context=context,
        )
        return case
