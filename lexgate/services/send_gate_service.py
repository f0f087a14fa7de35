"""
LexGate - External Send Gate

The only path by which legal content leaves the system.

Checks, in order:
1. Role and send permission (SEND_GATE_BLOCKED, 403, audited)
2. Human confirmation checkbox (CONFIRMATION_REQUIRED, 400)
3. Case exists (404) and belongs to the caller's tenant (403, audited)
4. Referenced draft exists (404), same tenant (403, audited),
   same case (400), APPROVED or MODIFIED (DRAFT_NOT_APPROVED, 400)

Then the ExternalSend record is committed with a verbatim content snapshot
and SEND_EXECUTE is audited. Retention notices to creditors additionally
mark the creditor as noticed; that step is best effort and never undoes
the send.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lexgate.models.audit import AuditAction, AuditResult
from lexgate.models.case import Case, Creditor
from lexgate.models.draft import Draft
from lexgate.models.external_send import ExternalSend, RecipientType, SendType
from lexgate.models.principal import Principal
from lexgate.schemas.audit import SendExecuteDetails
from lexgate.schemas.send import SendRequest
from lexgate.services.audit_service import AuditService, EMPTY_CONTEXT, RequestContext
from lexgate.services.authorization_guard import require_same_tenant, require_send_permission
from lexgate.utils.error_handling import (
    AuthorizationException,
    CaseNotFoundException,
    ConfirmationRequiredException,
    DraftNotApprovedException,
    DraftNotFoundException,
    ErrorCode,
    InsufficientPermissionsException,
    ValidationException,
)
from lexgate.utils.permissions import Permission, has_any_permission

logger = logging.getLogger(__name__)

SEND_LIST_LIMIT = 100


class SendGateService:
    """Service for executing and listing external sends."""

    def __init__(self, db: AsyncSession, audit: AuditService, session_factory: Optional[async_sessionmaker] = None):
        self.db = db
        self.audit = audit
        # creditor notice tracking runs in its own unit of work
        self.session_factory = session_factory or audit.session_factory

    async def execute_send(
        self,
        principal: Principal,
        request: SendRequest,
        context: RequestContext = EMPTY_CONTEXT,
    ) -> ExternalSend:
        """Run every gate check, then persist and audit the send."""
        try:
            require_send_permission(principal, request.send_type)
        except AuthorizationException as exc:
            await self.audit.log_denial(
                principal, exc, "send",
                resource_id=request.draft_id,
                case_id=request.case_id,
                context=context,
            )
            raise

        if not request.confirmation_checked:
            raise ConfirmationRequiredException()

        case = await self.db.get(Case, request.case_id)
        if case is None:
            raise CaseNotFoundException(request.case_id)
        try:
            require_same_tenant(principal, case.tenant_id, f"send:{request.send_type.value}", "case")
        except AuthorizationException as exc:
            await self.audit.log_denial(principal, exc, "case", resource_id=case.id, context=context)
            raise

        if request.draft_id is not None:
            await self._check_draft(principal, request, case, context)

        send = ExternalSend(
            tenant_id=principal.tenant_id,
            case_id=case.id,
            send_type=request.send_type,
            recipient_type=request.recipient_type,
            recipient_name=request.recipient_name,
            recipient_address=request.recipient_address,
            creditor_id=request.creditor_id,
            draft_id=request.draft_id,
            content_snapshot=request.content,
            send_method=request.send_method,
            sent_by_id=principal.id,
            sent_at=datetime.now(timezone.utc),
            confirmation_checked=request.confirmation_checked,
        )
        self.db.add(send)
        await self.db.commit()
        await self.db.refresh(send)

        await self.audit.record(
            principal,
            AuditAction.SEND_EXECUTE,
            "send",
            AuditResult.SUCCESS,
            resource_id=send.id,
            case_id=case.id,
            details=SendExecuteDetails(
                send_type=send.send_type.value,
                recipient_type=send.recipient_type.value,
                recipient_name=send.recipient_name,
                send_method=send.send_method.value,
                confirmation_checked=send.confirmation_checked,
                draft_id=str(send.draft_id) if send.draft_id else None,
                creditor_id=str(send.creditor_id) if send.creditor_id else None,
            ),
            context=context,
        )

        logger.info(
            f"External send {send.id}: {send.send_type.value} to {send.recipient_type.value} "
            f"by {principal.id} (case {case.case_number})"
        )

        if send.send_type == SendType.RETENTION_NOTICE and send.recipient_type == RecipientType.CREDITOR:
            try:
                await self._mark_creditors_noticed(principal, send)
            except SQLAlchemyError as e:
                logger.error(f"Failed to mark creditor noticed for send {send.id}: {e}", exc_info=True)

        return send

    async def _check_draft(
        self,
        principal: Principal,
        request: SendRequest,
        case: Case,
        context: RequestContext,
    ) -> Draft:
        draft = await self.db.get(Draft, request.draft_id)
        if draft is None:
            raise DraftNotFoundException(request.draft_id)
        try:
            require_same_tenant(principal, draft.tenant_id, f"send:{request.send_type.value}", "draft")
        except AuthorizationException as exc:
            await self.audit.log_denial(principal, exc, "draft", resource_id=draft.id, context=context)
            raise
        if draft.case_id != case.id:
            raise ValidationException(
                "The draft does not belong to this case",
                field="draft_id",
                code=ErrorCode.DRAFT_CASE_MISMATCH,
            )
        if not draft.is_sendable:
            raise DraftNotApprovedException(draft.id, draft.status.value)
        return draft

    async def _mark_creditors_noticed(self, principal: Principal, send: ExternalSend) -> int:
        """
        Mark the addressed creditor as noticed.

        Uses the creditor id when the request carried one, otherwise falls
        back to an exact name match within the case.
        """
        conditions = [
            Creditor.case_id == send.case_id,
            Creditor.tenant_id == send.tenant_id,
        ]
        if send.creditor_id is not None:
            conditions.append(Creditor.id == send.creditor_id)
        else:
            conditions.append(Creditor.name == send.recipient_name)
            logger.info(f"Send {send.id}: creditor matched by name '{send.recipient_name}' (weak match)")

        async with self.session_factory() as session:
            result = await session.execute(
                update(Creditor)
                .where(*conditions)
                .values(notice_sent_at=send.sent_at, notice_sent_by_id=principal.id)
                .execution_options(synchronize_session=False)
            )
            await session.commit()

        if result.rowcount == 0:
            logger.warning(f"Send {send.id}: no creditor matched for notice tracking")
        return result.rowcount

    async def list_sends(
        self,
        principal: Principal,
        case_id: Optional[uuid.UUID] = None,
        context: RequestContext = EMPTY_CONTEXT,
    ) -> List[ExternalSend]:
        """Most recent sends in the caller's tenant, optionally for one case."""
        if not has_any_permission(principal, [Permission.CASE_VIEW_ALL, Permission.CASE_VIEW_ASSIGNED]):
            exc = InsufficientPermissionsException(Permission.CASE_VIEW_ALL.value, user_role=principal.role.value)
            await self.audit.log_denial(principal, exc, "send", case_id=case_id, context=context)
            raise exc

        query = select(ExternalSend).where(ExternalSend.tenant_id == principal.tenant_id)
        if case_id:
            query = query.where(ExternalSend.case_id == case_id)
        query = query.order_by(ExternalSend.sent_at.desc()).limit(SEND_LIST_LIMIT)

        result = await self.db.execute(query)
        return list(result.scalars().all())
