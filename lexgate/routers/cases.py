"""
LexGate - Cases API Router

Endpoints:
- GET  /api/v1/cases                             - Role-filtered case list
- POST /api/v1/cases                             - Open a case
- GET  /api/v1/cases/{case_id}                   - Case detail with creditors
- GET  /api/v1/cases/{case_id}/conflict-check    - Automatic conflict match
- POST /api/v1/cases/{case_id}/conflict-check    - Record conflict decision
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from lexgate.dependencies import get_case_service, get_current_principal, get_request_context
from lexgate.models.case import CaseStatus
from lexgate.models.principal import Principal
from lexgate.schemas.case import (
    AutoConflictCheckResponse,
    CaseCreate,
    CaseDetailResponse,
    CaseListResponse,
    CaseResponse,
    ConflictCheckDecision,
    ConflictCheckResult,
    Pagination,
)
from lexgate.services.audit_service import RequestContext
from lexgate.services.case_service import CaseService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/cases",
    tags=["Cases"],
    responses={404: {"description": "Not found"}},
)


@router.get("", response_model=CaseListResponse)
async def list_cases(
    status_filter: Optional[CaseStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    service: CaseService = Depends(get_case_service),
    context: RequestContext = Depends(get_request_context),
):
    """List cases visible to the caller."""
    cases, total, total_pages = await service.list_cases(
        principal, status=status_filter, page=page, limit=limit, context=context,
    )
    return CaseListResponse(
        cases=[CaseResponse.model_validate(c) for c in cases],
        pagination=Pagination(page=page, limit=limit, total=total, total_pages=total_pages),
    )


@router.post("", response_model=CaseResponse, status_code=status.HTTP_201_CREATED)
async def create_case(
    data: CaseCreate,
    principal: Principal = Depends(get_current_principal),
    service: CaseService = Depends(get_case_service),
    context: RequestContext = Depends(get_request_context),
):
    """Open a new case (lawyer or staff)."""
    case = await service.create_case(principal, data, context=context)
    return CaseResponse.model_validate(case)


@router.get("/{case_id}", response_model=CaseDetailResponse)
async def get_case(
    case_id: UUID,
    principal: Principal = Depends(get_current_principal),
    service: CaseService = Depends(get_case_service),
    context: RequestContext = Depends(get_request_context),
):
    case = await service.get_case(principal, case_id, context=context)
    return CaseDetailResponse.model_validate(case)


@router.get("/{case_id}/conflict-check", response_model=AutoConflictCheckResponse)
async def auto_conflict_check(
    case_id: UUID,
    principal: Principal = Depends(get_current_principal),
    service: CaseService = Depends(get_case_service),
    context: RequestContext = Depends(get_request_context),
):
    """Match the case against the tenant's other cases. Lawyer only."""
    return await service.auto_conflict_check(principal, case_id, context=context)


@router.post("/{case_id}/conflict-check", response_model=ConflictCheckResult)
async def record_conflict_check(
    case_id: UUID,
    decision: ConflictCheckDecision,
    principal: Principal = Depends(get_current_principal),
    service: CaseService = Depends(get_case_service),
    context: RequestContext = Depends(get_request_context),
):
    """Record the lawyer's conflict-of-interest decision."""
    case = await service.record_conflict_check(principal, case_id, decision, context=context)
    return ConflictCheckResult(
        case_id=case.id,
        conflict_check_status=case.conflict_check_status,
        conflict_check_at=case.conflict_check_at,
        status=case.status,
        message="Retainer may proceed" if decision.decision == "APPROVED" else "Retainer declined",
    )
