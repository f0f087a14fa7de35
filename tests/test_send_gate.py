"""
Tests for the external send gate

Covers:
1. Lawyer-only sends with a denial audit entry and no send row
2. Confirmation checkbox
3. Case / draft tenant, case match and draft status checks
4. Content snapshot independent of later draft state
5. Creditor notice tracking (best effort)
6. Send listing
"""

from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from lexgate.models.audit import AuditAction, AuditLog, AuditResult
from lexgate.models.case import Creditor
from lexgate.models.draft import DraftStatus
from lexgate.models.external_send import ExternalSend, RecipientType, SendMethod, SendType
from lexgate.schemas.send import SendRequest
from lexgate.services.send_gate_service import SendGateService
from lexgate.utils.error_handling import (
    AuthorizationException,
    CaseNotFoundException,
    ConfirmationRequiredException,
    DraftNotApprovedException,
    DraftNotFoundException,
    ErrorCode,
    SendGateBlockedException,
    TenantMismatchException,
    ValidationException,
)

from conftest import make_case, make_draft


def send_request(case, **overrides) -> SendRequest:
    data = {
        "case_id": case.id,
        "send_type": SendType.RETENTION_NOTICE,
        "recipient_type": RecipientType.CREDITOR,
        "recipient_name": "Acme Credit",
        "recipient_address": "1-1 Marunouchi, Chiyoda-ku",
        "content": "We have been retained by the debtor. Please direct all contact to this office.",
        "send_method": SendMethod.FAX,
        "confirmation_checked": True,
    }
    data.update(overrides)
    return SendRequest(**data)


async def count_sends(db_session) -> int:
    return await db_session.scalar(select(func.count(ExternalSend.id)))


async def audit_entries(db_session, action: AuditAction):
    result = await db_session.execute(select(AuditLog).where(AuditLog.action == action))
    return list(result.scalars().all())


async def load_creditors(session_factory, case_id):
    async with session_factory() as session:
        result = await session.execute(select(Creditor).where(Creditor.case_id == case_id).order_by(Creditor.name))
        return list(result.scalars().all())


@pytest.fixture
def service(db_session, audit_service) -> SendGateService:
    return SendGateService(db_session, audit_service)


class TestSendPermission:

    @pytest.mark.asyncio
    async def test_lawyer_send_is_recorded(self, service, db_session, lawyer, case, approved_draft):
        send = await service.execute_send(lawyer, send_request(case, draft_id=approved_draft.id))

        assert send.id is not None
        assert send.tenant_id == lawyer.tenant_id
        assert send.sent_by_id == lawyer.id
        assert send.confirmation_checked is True
        assert send.sent_at is not None
        assert await count_sends(db_session) == 1

        entries = await audit_entries(db_session, AuditAction.SEND_EXECUTE)
        assert len(entries) == 1
        assert entries[0].resource_id == str(send.id)
        assert entries[0].case_id == case.id
        assert entries[0].details["send_type"] == "RETENTION_NOTICE"
        assert entries[0].details["recipient_type"] == "CREDITOR"
        assert entries[0].details["draft_id"] == str(approved_draft.id)
        assert entries[0].details["confirmation_checked"] is True

    @pytest.mark.asyncio
    async def test_staff_blocked(self, service, db_session, staff, case, approved_draft):
        with pytest.raises(SendGateBlockedException) as exc_info:
            await service.execute_send(staff, send_request(case, draft_id=approved_draft.id))

        assert exc_info.value.status_code == 403
        assert exc_info.value.code == ErrorCode.SEND_GATE_BLOCKED
        assert await count_sends(db_session) == 0

        denied = await audit_entries(db_session, AuditAction.PERMISSION_DENIED)
        assert len(denied) == 1
        assert denied[0].user_id == staff.id
        assert denied[0].result == AuditResult.DENIED
        assert denied[0].details["attempted_action"] == "send:RETENTION_NOTICE"
        assert denied[0].details["user_role"] == "STAFF"
        assert await audit_entries(db_session, AuditAction.SEND_EXECUTE) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("who", ["admin", "tech_support", "client_principal", "elevated_tech_support"])
    @pytest.mark.parametrize("send_type", [SendType.PETITION, SendType.CLIENT_RESPONSE])
    async def test_other_roles_blocked(self, request, service, db_session, case, who, send_type):
        principal = request.getfixturevalue(who)
        with pytest.raises(SendGateBlockedException):
            await service.execute_send(principal, send_request(case, send_type=send_type, recipient_type=RecipientType.COURT))
        assert await count_sends(db_session) == 0

    @pytest.mark.asyncio
    async def test_role_checked_before_confirmation(self, service, staff, case):
        with pytest.raises(SendGateBlockedException):
            await service.execute_send(staff, send_request(case, confirmation_checked=False))

    @pytest.mark.asyncio
    async def test_confirmation_required(self, service, db_session, lawyer, case):
        with pytest.raises(ConfirmationRequiredException) as exc_info:
            await service.execute_send(lawyer, send_request(case, confirmation_checked=False))
        assert exc_info.value.status_code == 400
        assert await count_sends(db_session) == 0


class TestSendTargets:

    @pytest.mark.asyncio
    async def test_missing_case(self, service, lawyer, case):
        request = send_request(case, case_id=uuid4())
        with pytest.raises(CaseNotFoundException):
            await service.execute_send(lawyer, request)

    @pytest.mark.asyncio
    async def test_foreign_case(self, service, db_session, lawyer, foreign_case):
        with pytest.raises(TenantMismatchException):
            await service.execute_send(lawyer, send_request(foreign_case))

        assert await count_sends(db_session) == 0
        denied = await audit_entries(db_session, AuditAction.PERMISSION_DENIED)
        assert denied[0].resource_type == "case"
        assert denied[0].details["reason"] == "TENANT_MISMATCH"

    @pytest.mark.asyncio
    async def test_missing_draft(self, service, lawyer, case):
        with pytest.raises(DraftNotFoundException):
            await service.execute_send(lawyer, send_request(case, draft_id=uuid4()))

    @pytest.mark.asyncio
    async def test_foreign_draft(self, service, db_session, lawyer, case, foreign_draft):
        with pytest.raises(AuthorizationException) as exc_info:
            await service.execute_send(lawyer, send_request(case, draft_id=foreign_draft.id))
        assert exc_info.value.code == ErrorCode.TENANT_MISMATCH
        assert await count_sends(db_session) == 0

        denied = await audit_entries(db_session, AuditAction.PERMISSION_DENIED)
        assert denied[0].resource_type == "draft"
        assert denied[0].resource_id == str(foreign_draft.id)

    @pytest.mark.asyncio
    async def test_draft_from_another_case(self, service, db_session, lawyer, tenant_id, case):
        other_case = await make_case(db_session, tenant_id, case_number="2026-0002", client_name="Sato Hanako")
        other_draft = await make_draft(db_session, other_case, status=DraftStatus.APPROVED)

        with pytest.raises(ValidationException) as exc_info:
            await service.execute_send(lawyer, send_request(case, draft_id=other_draft.id))
        assert exc_info.value.code == ErrorCode.DRAFT_CASE_MISMATCH
        assert await count_sends(db_session) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [DraftStatus.PENDING, DraftStatus.REJECTED])
    async def test_unapproved_draft(self, service, db_session, lawyer, case, status):
        draft = await make_draft(db_session, case, status=status)

        with pytest.raises(DraftNotApprovedException) as exc_info:
            await service.execute_send(lawyer, send_request(case, draft_id=draft.id))
        assert exc_info.value.code == ErrorCode.DRAFT_NOT_APPROVED
        assert exc_info.value.details["current_status"] == status.value
        assert await count_sends(db_session) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [DraftStatus.APPROVED, DraftStatus.MODIFIED])
    async def test_sendable_draft(self, service, db_session, lawyer, case, status):
        draft = await make_draft(db_session, case, status=status)
        await service.execute_send(lawyer, send_request(case, draft_id=draft.id))
        assert await count_sends(db_session) == 1

    @pytest.mark.asyncio
    async def test_send_without_draft(self, service, db_session, lawyer, case):
        send = await service.execute_send(
            lawyer,
            send_request(
                case,
                send_type=SendType.CLIENT_RESPONSE,
                recipient_type=RecipientType.CLIENT,
                recipient_name="Yamada Taro",
                send_method=SendMethod.EMAIL,
            ),
        )
        assert send.draft_id is None
        assert await count_sends(db_session) == 1


class TestSnapshot:

    @pytest.mark.asyncio
    async def test_snapshot_is_request_content(self, service, db_session, session_factory, lawyer, case, approved_draft):
        content = "Final wording as it left the office."
        send = await service.execute_send(lawyer, send_request(case, draft_id=approved_draft.id, content=content))

        approved_draft.final_content = "Edited afterwards"
        await db_session.commit()

        async with session_factory() as session:
            stored = await session.get(ExternalSend, send.id)
        assert stored.content_snapshot == content


class TestCreditorNotice:

    @pytest.mark.asyncio
    async def test_marked_by_creditor_id(self, service, session_factory, lawyer, case):
        target = next(c for c in case.creditors if c.name == "Blue Bank")
        await service.execute_send(lawyer, send_request(case, recipient_name="Blue Bank Ltd.", creditor_id=target.id))

        acme, blue = await load_creditors(session_factory, case.id)
        assert blue.is_noticed
        assert blue.notice_sent_by_id == lawyer.id
        assert not acme.is_noticed

    @pytest.mark.asyncio
    async def test_marked_by_name(self, service, session_factory, lawyer, case):
        await service.execute_send(lawyer, send_request(case, recipient_name="Acme Credit"))

        acme, blue = await load_creditors(session_factory, case.id)
        assert acme.is_noticed
        assert not blue.is_noticed

    @pytest.mark.asyncio
    async def test_unknown_creditor_still_sends(self, service, db_session, session_factory, lawyer, case):
        await service.execute_send(lawyer, send_request(case, recipient_name="Nobody Finance"))

        assert await count_sends(db_session) == 1
        assert not any(c.is_noticed for c in await load_creditors(session_factory, case.id))

    @pytest.mark.asyncio
    async def test_court_send_does_not_mark(self, service, session_factory, lawyer, case):
        await service.execute_send(
            lawyer,
            send_request(case, send_type=SendType.PETITION, recipient_type=RecipientType.COURT, recipient_name="Acme Credit"),
        )
        assert not any(c.is_noticed for c in await load_creditors(session_factory, case.id))

    @pytest.mark.asyncio
    async def test_marking_failure_keeps_send(self, service, db_session, session_factory, lawyer, case, monkeypatch, caplog):
        async def fail(*args, **kwargs):
            raise OperationalError("UPDATE creditors", {}, Exception("database is locked"))

        monkeypatch.setattr(service, "_mark_creditors_noticed", fail)

        with caplog.at_level("ERROR", logger="lexgate.services.send_gate_service"):
            send = await service.execute_send(lawyer, send_request(case))

        async with session_factory() as session:
            assert await session.get(ExternalSend, send.id) is not None
        assert len(await audit_entries(db_session, AuditAction.SEND_EXECUTE)) == 1
        assert "Failed to mark creditor noticed" in caplog.text


class TestListSends:

    @pytest.mark.asyncio
    async def test_tenant_scoped(self, service, db_session, lawyer, foreign_lawyer, case, foreign_case):
        await service.execute_send(lawyer, send_request(case))
        await service.execute_send(foreign_lawyer, send_request(foreign_case))

        sends = await service.list_sends(lawyer)
        assert len(sends) == 1
        assert sends[0].tenant_id == lawyer.tenant_id

    @pytest.mark.asyncio
    async def test_filter_by_case(self, service, db_session, lawyer, tenant_id, case):
        other_case = await make_case(db_session, tenant_id, case_number="2026-0002", client_name="Sato Hanako")
        await service.execute_send(lawyer, send_request(case))
        await service.execute_send(lawyer, send_request(other_case))

        assert len(await service.list_sends(lawyer)) == 2
        only = await service.list_sends(lawyer, case_id=other_case.id)
        assert [s.case_id for s in only] == [other_case.id]

    @pytest.mark.asyncio
    async def test_staff_and_admin_may_list(self, service, lawyer, staff, admin, case):
        await service.execute_send(lawyer, send_request(case))
        assert len(await service.list_sends(staff)) == 1
        assert len(await service.list_sends(admin)) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("who", ["client_principal", "tech_support"])
    async def test_other_roles_denied(self, request, service, db_session, who):
        principal = request.getfixturevalue(who)
        with pytest.raises(AuthorizationException):
            await service.list_sends(principal)
        denied = await audit_entries(db_session, AuditAction.PERMISSION_DENIED)
        assert len(denied) == 1
        assert denied[0].resource_type == "send"
