"""
LexGate - Audit Trail Service

Append-only audit logging for every sensitive action.

Writes go through a dedicated session taken from the session factory, never
through the caller's session:
- an audit failure cannot roll back the business transaction
- a business rollback cannot erase the audit entry of a denial

A failed write is logged to the `lexgate.audit` diagnostics logger and
swallowed. Callers are never interrupted by the audit log.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lexgate.models.audit import AuditAction, AuditLog, AuditResult
from lexgate.models.principal import Principal
from lexgate.schemas.audit import PermissionDeniedDetails
from lexgate.utils.error_handling import AuthorizationException

logger = logging.getLogger("lexgate.audit")


@dataclass(frozen=True)
class RequestContext:
    """Where a request came from."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


EMPTY_CONTEXT = RequestContext()


def _serialize_details(details: Union[BaseModel, Dict[str, Any], None]) -> Optional[Dict[str, Any]]:
    if details is None:
        return None
    if isinstance(details, BaseModel):
        return details.model_dump(mode="json")
    return dict(details)


class AuditService:
    """Service for writing and querying the audit trail."""

    def __init__(self, db: AsyncSession, session_factory: async_sessionmaker):
        self.db = db
        self.session_factory = session_factory

    async def record(
        self,
        principal: Optional[Principal],
        action: AuditAction,
        resource_type: str,
        result: AuditResult = AuditResult.SUCCESS,
        *,
        tenant_id: Optional[uuid.UUID] = None,
        resource_id: Optional[Union[str, uuid.UUID]] = None,
        case_id: Optional[uuid.UUID] = None,
        details: Union[BaseModel, Dict[str, Any], None] = None,
        context: RequestContext = EMPTY_CONTEXT,
    ) -> Optional[AuditLog]:
        """
        Append one audit entry.

        Args:
            principal: Acting principal, or None for system actions
            action: Audit action
            resource_type: Kind of resource acted on ('draft', 'send', 'case', ...)
            result: SUCCESS / FAILURE / DENIED
            tenant_id: Required when principal is None
            resource_id: ID of the affected resource
            case_id: Case the action relates to
            details: Typed details (see lexgate.schemas.audit) or a plain dict
            context: Request origin

        Returns:
            The stored AuditLog, or None if the write failed
        """
        entry_tenant = principal.tenant_id if principal is not None else tenant_id
        if entry_tenant is None:
            logger.error(f"Audit entry {action.value} dropped: no tenant")
            return None

        audit_log = AuditLog(
            tenant_id=entry_tenant,
            user_id=principal.id if principal else None,
            user_role=principal.role.value if principal else None,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            case_id=case_id,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            result=result,
            details=_serialize_details(details),
        )

        try:
            async with self.session_factory() as session:
                session.add(audit_log)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to write audit log {action.value} for {resource_type}:{resource_id}: {e}",
                exc_info=True,
            )
            return None

        return audit_log

    async def log_permission_denied(
        self,
        principal: Principal,
        attempted_action: str,
        resource_type: str,
        *,
        resource_id: Optional[Union[str, uuid.UUID]] = None,
        case_id: Optional[uuid.UUID] = None,
        reason: Optional[str] = None,
        context: RequestContext = EMPTY_CONTEXT,
    ) -> Optional[AuditLog]:
        """Record a denied attempt."""
        return await self.record(
            principal,
            AuditAction.PERMISSION_DENIED,
            resource_type,
            AuditResult.DENIED,
            resource_id=resource_id,
            case_id=case_id,
            details=PermissionDeniedDetails(
                attempted_action=attempted_action,
                user_role=principal.role.value,
                reason=reason,
            ),
            context=context,
        )

    async def log_denial(
        self,
        principal: Principal,
        exc: AuthorizationException,
        resource_type: str,
        *,
        resource_id: Optional[Union[str, uuid.UUID]] = None,
        case_id: Optional[uuid.UUID] = None,
        context: RequestContext = EMPTY_CONTEXT,
    ) -> Optional[AuditLog]:
        """Record the denial carried by a guard exception."""
        return await self.log_permission_denied(
            principal,
            exc.attempted_action or exc.code.value,
            resource_type,
            resource_id=resource_id,
            case_id=case_id,
            reason=exc.code.value,
            context=context,
        )

    async def get_audit_logs(
        self,
        tenant_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
        action: Optional[AuditAction] = None,
        case_id: Optional[uuid.UUID] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[AuditLog], int]:
        """
        Get a page of audit logs for one tenant, newest first.

        Returns:
            (entries, total matching count)
        """
        conditions = [AuditLog.tenant_id == tenant_id]

        if user_id:
            conditions.append(AuditLog.user_id == user_id)
        if action:
            conditions.append(AuditLog.action == action)
        if case_id:
            conditions.append(AuditLog.case_id == case_id)
        if start_date:
            conditions.append(AuditLog.created_at >= start_date)
        if end_date:
            conditions.append(AuditLog.created_at <= end_date)

        total = await self.db.scalar(select(func.count(AuditLog.id)).where(*conditions))

        query = (
            select(AuditLog)
            .where(*conditions)
            .order_by(AuditLog.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total or 0

    async def get_draft_approvals(
        self,
        tenant_id: uuid.UUID,
        since: datetime,
    ) -> List[AuditLog]:
        """Successful DRAFT_APPROVE entries for a tenant since a point in time."""
        query = (
            select(AuditLog)
            .where(
                AuditLog.tenant_id == tenant_id,
                AuditLog.action == AuditAction.DRAFT_APPROVE,
                AuditLog.result == AuditResult.SUCCESS,
                AuditLog.created_at >= since,
            )
            .order_by(AuditLog.created_at.asc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_active_tenants(self, since: datetime) -> List[uuid.UUID]:
        """Tenants with at least one DRAFT_APPROVE entry since a point in time."""
        query = (
            select(AuditLog.tenant_id)
            .where(
                AuditLog.action == AuditAction.DRAFT_APPROVE,
                AuditLog.created_at >= since,
            )
            .distinct()
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())
