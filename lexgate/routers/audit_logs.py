"""
LexGate - Audit Log API Router

Tenant audit trail and approval anomaly reports.

Endpoints:
- GET /api/v1/audit-logs                  - Paged, filtered audit entries
- GET /api/v1/audit-logs/quick-approvals  - Quick-approval detector
- GET /api/v1/audit-logs/bulk-approvals   - Bulk-approval detector

Access: AUDIT_LOG_VIEW, or tech support during an elevation window.
"""

import logging
import math
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from lexgate.dependencies import get_anomaly_service, get_audit_service, require_audit_log_viewer
from lexgate.models.audit import AuditAction
from lexgate.models.principal import Principal
from lexgate.schemas.audit import (
    AuditLogListResponse,
    AuditLogResponse,
    BulkApprovalAnomalyResponse,
    QuickApprovalAnomalyResponse,
)
from lexgate.services.approval_anomaly_service import ApprovalAnomalyService
from lexgate.services.audit_service import AuditService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/audit-logs",
    tags=["Audit Logs"],
)


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    user_id: Optional[UUID] = Query(None),
    action: Optional[AuditAction] = Query(None),
    case_id: Optional[UUID] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(require_audit_log_viewer),
    audit: AuditService = Depends(get_audit_service),
):
    """Search the caller's tenant audit trail, newest first."""
    logs, total = await audit.get_audit_logs(
        tenant_id=principal.tenant_id,
        user_id=user_id,
        action=action,
        case_id=case_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(log) for log in logs],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0,
    )


@router.get("/quick-approvals", response_model=List[QuickApprovalAnomalyResponse])
async def quick_approvals(
    principal: Principal = Depends(require_audit_log_viewer),
    service: ApprovalAnomalyService = Depends(get_anomaly_service),
):
    anomalies = await service.find_quick_approvals(principal.tenant_id)
    return [QuickApprovalAnomalyResponse(**a.to_dict()) for a in anomalies]


@router.get("/bulk-approvals", response_model=List[BulkApprovalAnomalyResponse])
async def bulk_approvals(
    principal: Principal = Depends(require_audit_log_viewer),
    service: ApprovalAnomalyService = Depends(get_anomaly_service),
):
    anomalies = await service.find_bulk_approvals(principal.tenant_id)
    return [BulkApprovalAnomalyResponse(**a.to_dict()) for a in anomalies]
