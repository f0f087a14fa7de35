"""
LexGate - External Send API Router

Endpoints:
- POST /api/v1/send  - Execute an external send (lawyer only)
- GET  /api/v1/send  - Recent sends in the tenant
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from lexgate.dependencies import get_current_principal, get_request_context, get_send_gate_service
from lexgate.models.principal import Principal
from lexgate.schemas.send import SendListResponse, SendRequest, SendResponse
from lexgate.services.audit_service import RequestContext
from lexgate.services.send_gate_service import SendGateService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/send",
    tags=["External Send"],
)


@router.post("", response_model=SendResponse, status_code=status.HTTP_201_CREATED)
async def execute_send(
    request: SendRequest,
    principal: Principal = Depends(get_current_principal),
    service: SendGateService = Depends(get_send_gate_service),
    context: RequestContext = Depends(get_request_context),
):
    send = await service.execute_send(principal, request, context=context)
    return SendResponse.model_validate(send)


@router.get("", response_model=SendListResponse)
async def list_sends(
    case_id: Optional[UUID] = Query(None),
    principal: Principal = Depends(get_current_principal),
    service: SendGateService = Depends(get_send_gate_service),
    context: RequestContext = Depends(get_request_context),
):
    sends = await service.list_sends(principal, case_id=case_id, context=context)
    return SendListResponse(sends=[SendResponse.model_validate(s) for s in sends])
