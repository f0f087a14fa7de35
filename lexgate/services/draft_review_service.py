"""
LexGate - Draft Review Service

Lawyer review of AI-generated drafts.

Review order:
1. Lawyer role (PERMISSION_DENIED audit + 403)
2. Same tenant (PERMISSION_DENIED audit + 403)
3. Flags acknowledged when the draft carries any (400)
4. Draft still PENDING (400)
5. Disposition applied with a conditional update on status = PENDING;
   a concurrent reviewer that loses the race gets ALREADY_PROCESSED
6. DRAFT_APPROVE audit entry, whatever the decision

review_time_seconds is measured against the server clock. It is an audit
signal for the quick-approval detector, never an authorization input.
"""

import logging
import uuid
from difflib import SequenceMatcher
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lexgate.config import settings
from lexgate.models.audit import AuditAction, AuditResult
from lexgate.models.case import Case
from lexgate.models.draft import Draft, DraftStatus
from lexgate.models.principal import Principal
from lexgate.schemas.audit import DraftApproveDetails, DraftViewDetails
from lexgate.schemas.draft import DraftCreate, DraftReviewAction, DraftReviewRequest
from lexgate.services.audit_service import AuditService, EMPTY_CONTEXT, RequestContext
from lexgate.services.authorization_guard import require_lawyer, require_same_tenant
from lexgate.services.flag_policy import enforce_flag_policy
from lexgate.utils.error_handling import (
    AuthorizationException,
    CaseNotFoundException,
    DraftAlreadyProcessedException,
    DraftNotFoundException,
    ErrorCode,
    FlagsNotAcknowledgedException,
    ValidationException,
)
from lexgate.utils.permissions import Permission

logger = logging.getLogger(__name__)


ACTION_TO_STATUS: Dict[DraftReviewAction, DraftStatus] = {
    DraftReviewAction.APPROVE: DraftStatus.APPROVED,
    DraftReviewAction.MODIFY: DraftStatus.MODIFIED,
    DraftReviewAction.REJECT: DraftStatus.REJECTED,
}

ACTION_MESSAGES: Dict[DraftReviewAction, str] = {
    DraftReviewAction.APPROVE: "Draft approved",
    DraftReviewAction.MODIFY: "Draft approved with modifications",
    DraftReviewAction.REJECT: "Draft rejected",
}


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def compute_review_time_seconds(review_start_time: datetime, now: Optional[datetime] = None) -> float:
    """Seconds between the client-reported start of review and server now. Never negative."""
    now = now or datetime.now(timezone.utc)
    elapsed = (_as_utc(now) - _as_utc(review_start_time)).total_seconds()
    return max(0.0, round(elapsed, 3))


def summarize_modification(original: str, final: str) -> str:
    """
    Short description of how the lawyer changed the AI draft.

    e.g. "+120/-35 chars, 4 lines changed, similarity 0.82"
    """
    matcher = SequenceMatcher(None, original, final, autojunk=False)
    added = removed = 0
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag in ("replace", "delete"):
            removed += i2 - i1
        if tag in ("replace", "insert"):
            added += j2 - j1

    original_lines = original.splitlines()
    final_lines = final.splitlines()
    line_matcher = SequenceMatcher(None, original_lines, final_lines, autojunk=False)
    lines_changed = sum(
        max(i2 - i1, j2 - j1)
        for tag, i1, i2, j1, j2 in line_matcher.get_opcodes()
        if tag != "equal"
    )

    return (
        f"+{added}/-{removed} chars, {lines_changed} lines changed, "
        f"similarity {matcher.ratio():.2f}"
    )


class DraftReviewService:
    """Service for draft creation, viewing and review."""

    def __init__(self, db: AsyncSession, audit: AuditService):
        self.db = db
        self.audit = audit

    async def _get_draft(self, draft_id: uuid.UUID) -> Draft:
        result = await self.db.execute(select(Draft).where(Draft.id == draft_id))
        draft = result.scalar_one_or_none()
        if draft is None:
            raise DraftNotFoundException(draft_id)
        return draft

    async def _guard(
        self,
        principal: Principal,
        draft_id: uuid.UUID,
        attempted_action: str,
        context: RequestContext,
    ) -> Draft:
        """Lawyer role, existence, tenant. Denials are audited before raising."""
        try:
            require_lawyer(principal, attempted_action)
        except AuthorizationException as exc:
            await self.audit.log_denial(principal, exc, "draft", resource_id=draft_id, context=context)
            raise

        draft = await self._get_draft(draft_id)

        try:
            require_same_tenant(principal, draft.tenant_id, attempted_action, "draft")
        except AuthorizationException as exc:
            await self.audit.log_denial(principal, exc, "draft", resource_id=draft_id, context=context)
            raise

        return draft

    async def create_draft(self, tenant_id: uuid.UUID, data: DraftCreate) -> Draft:
        """
        Store a draft produced by the drafting collaborator.

        The draft starts PENDING with version = highest version in its
        (case, draft_type) lineage + 1. Flags must pass the conclusion lint.
        """
        enforce_flag_policy(data.flags)

        case = await self.db.get(Case, data.case_id)
        if case is None or case.tenant_id != tenant_id:
            raise CaseNotFoundException(data.case_id)

        current = await self.db.scalar(
            select(func.max(Draft.version)).where(
                Draft.case_id == data.case_id,
                Draft.draft_type == data.draft_type,
            )
        )

        draft = Draft(
            tenant_id=tenant_id,
            case_id=data.case_id,
            draft_type=data.draft_type,
            version=(current or 0) + 1,
            content=data.content,
            flags=[flag.model_dump(mode="json") for flag in data.flags],
            status=DraftStatus.PENDING,
        )
        self.db.add(draft)
        await self.db.commit()
        await self.db.refresh(draft)

        logger.info(f"Draft created: {draft.id} ({draft.draft_type.value} v{draft.version}) for case {draft.case_id}")
        return draft

    async def get_draft(
        self,
        principal: Principal,
        draft_id: uuid.UUID,
        context: RequestContext = EMPTY_CONTEXT,
    ) -> Draft:
        """Lawyer-only draft view. Writes DRAFT_VIEW."""
        draft = await self._guard(principal, draft_id, Permission.DRAFT_VIEW.value, context)

        await self.audit.record(
            principal,
            AuditAction.DRAFT_VIEW,
            "draft",
            AuditResult.SUCCESS,
            resource_id=draft.id,
            case_id=draft.case_id,
            details=DraftViewDetails(
                draft_type=draft.draft_type.value,
                draft_version=draft.version,
                draft_status=draft.status.value,
            ),
            context=context,
        )
        return draft

    async def review_draft(
        self,
        principal: Principal,
        draft_id: uuid.UUID,
        request: DraftReviewRequest,
        context: RequestContext = EMPTY_CONTEXT,
    ) -> Draft:
        """
        Approve, modify or reject a pending draft.

        Raises:
            AuthorizationException: not a lawyer, or another tenant's draft
            DraftNotFoundException: no such draft
            FlagsNotAcknowledgedException: flags present, not acknowledged
            DraftAlreadyProcessedException: draft not PENDING, or lost a concurrent review
            ValidationException: modify without final_content
        """
        attempted = {
            DraftReviewAction.APPROVE: Permission.DRAFT_APPROVE,
            DraftReviewAction.MODIFY: Permission.DRAFT_MODIFY,
            DraftReviewAction.REJECT: Permission.DRAFT_REJECT,
        }[request.action].value
        draft = await self._guard(principal, draft_id, attempted, context)

        flags_count = draft.flags_count
        if flags_count and not request.flags_acknowledged:
            raise FlagsNotAcknowledgedException(flags_count)

        if draft.status != DraftStatus.PENDING:
            raise DraftAlreadyProcessedException(draft.id, draft.status.value)

        if request.action == DraftReviewAction.APPROVE:
            final_content = draft.content
        elif request.action == DraftReviewAction.MODIFY:
            if not request.final_content or not request.final_content.strip():
                raise ValidationException(
                    "Modified content is required",
                    field="final_content",
                    code=ErrorCode.FINAL_CONTENT_REQUIRED,
                )
            final_content = request.final_content
        else:
            final_content = None

        now = datetime.now(timezone.utc)
        review_time_seconds = compute_review_time_seconds(request.review_start_time, now)
        new_status = ACTION_TO_STATUS[request.action]
        modification_summary = None
        if request.action == DraftReviewAction.MODIFY:
            modification_summary = summarize_modification(draft.content, final_content)

        result = await self.db.execute(
            update(Draft)
            .where(Draft.id == draft.id, Draft.status == DraftStatus.PENDING)
            .values(
                status=new_status,
                reviewed_by_id=principal.id,
                reviewed_at=now,
                review_comment=request.comment,
                final_content=final_content,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # rollback expires draft; only the id argument is safe to use
            await self.db.rollback()
            raise DraftAlreadyProcessedException(draft_id)

        await self.db.commit()
        await self.db.refresh(draft)

        await self.audit.record(
            principal,
            AuditAction.DRAFT_APPROVE,
            "draft",
            AuditResult.SUCCESS,
            resource_id=draft.id,
            case_id=draft.case_id,
            details=DraftApproveDetails(
                draft_type=draft.draft_type.value,
                draft_version=draft.version,
                review_time_seconds=review_time_seconds,
                has_modification=request.action == DraftReviewAction.MODIFY,
                modification_summary=modification_summary,
                decision=request.action.value,
                flags_count=flags_count,
                flags_acknowledged=request.flags_acknowledged,
                comment=request.comment,
            ),
            context=context,
        )

        if review_time_seconds < settings.quick_approval_threshold_seconds:
            logger.warning(
                f"Quick review: draft {draft.id} {request.action.value} by {principal.id} "
                f"after {review_time_seconds}s"
            )

        return draft
