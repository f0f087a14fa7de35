"""
LexGate - Drafts API Router

Endpoints:
- GET  /api/v1/drafts/{draft_id}          - Draft for lawyer review
- POST /api/v1/drafts/{draft_id}/approve  - Approve, modify or reject
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from lexgate.dependencies import get_current_principal, get_draft_review_service, get_request_context
from lexgate.models.principal import Principal
from lexgate.schemas.draft import DraftResponse, DraftReviewRequest, DraftReviewResponse, DraftReviewSummary
from lexgate.services.audit_service import RequestContext
from lexgate.services.draft_review_service import ACTION_MESSAGES, DraftReviewService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/drafts",
    tags=["Drafts"],
    responses={404: {"description": "Not found"}},
)


@router.get("/{draft_id}", response_model=DraftResponse)
async def get_draft(
    draft_id: UUID,
    principal: Principal = Depends(get_current_principal),
    service: DraftReviewService = Depends(get_draft_review_service),
    context: RequestContext = Depends(get_request_context),
):
    draft = await service.get_draft(principal, draft_id, context=context)
    return DraftResponse.model_validate(draft)


@router.post("/{draft_id}/approve", response_model=DraftReviewResponse)
async def review_draft(
    draft_id: UUID,
    request: DraftReviewRequest,
    principal: Principal = Depends(get_current_principal),
    service: DraftReviewService = Depends(get_draft_review_service),
    context: RequestContext = Depends(get_request_context),
):
    """
    Disposition a pending draft.

    `review_start_time` is when the review screen was opened; the server
    measures review time against its own clock.
    """
    draft = await service.review_draft(principal, draft_id, request, context=context)
    return DraftReviewResponse(
        draft=DraftReviewSummary(
            id=draft.id,
            status=draft.status,
            version=draft.version,
            reviewed_at=draft.reviewed_at,
        ),
        message=ACTION_MESSAGES[request.action],
    )
