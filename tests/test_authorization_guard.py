"""
Tests for the authorization guard
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from lexgate.models.external_send import RecipientType, SendType
from lexgate.models.principal import Principal, Role
from lexgate.services.authorization_guard import (
    MessageType,
    can_approve_draft,
    can_perform_conflict_check,
    can_send,
    can_send_message_type,
    can_send_to_recipient,
    can_view_audit_logs,
    can_view_case,
    can_view_draft,
    require_audit_log_access,
    require_lawyer,
    require_permission,
    require_role,
    require_same_tenant,
    require_send_permission,
)
from lexgate.utils.error_handling import (
    AuthorizationException,
    ErrorCode,
    SendGateBlockedException,
    TenantMismatchException,
)
from lexgate.utils.permissions import Permission


def principal(role: Role, **kwargs) -> Principal:
    if role == Role.LAWYER:
        kwargs.setdefault("license_number", "L-1")
    return Principal(id=uuid4(), tenant_id=uuid4(), role=role, **kwargs)


NON_LAWYERS = [r for r in Role if r != Role.LAWYER]


class TestSendGate:
    """Only a lawyer may send legal content"""

    @pytest.mark.parametrize("send_type", list(SendType))
    def test_lawyer_can_send_every_type(self, send_type):
        assert can_send(principal(Role.LAWYER), send_type)
        require_send_permission(principal(Role.LAWYER), send_type)

    @pytest.mark.parametrize("role", NON_LAWYERS)
    @pytest.mark.parametrize("send_type", list(SendType))
    def test_non_lawyer_is_blocked(self, role, send_type):
        p = principal(role)
        assert not can_send(p, send_type)
        with pytest.raises(SendGateBlockedException) as exc_info:
            require_send_permission(p, send_type)
        assert exc_info.value.code == ErrorCode.SEND_GATE_BLOCKED
        assert exc_info.value.status_code == 403
        assert exc_info.value.attempted_action == f"send:{send_type.value}"

    def test_recipient_rules(self):
        assert can_send_to_recipient(principal(Role.STAFF), RecipientType.CLIENT)
        assert not can_send_to_recipient(principal(Role.STAFF), RecipientType.CREDITOR)
        assert not can_send_to_recipient(principal(Role.STAFF), RecipientType.COURT)
        assert can_send_to_recipient(principal(Role.LAWYER), RecipientType.COURT)
        assert not can_send_to_recipient(principal(Role.CLIENT), RecipientType.CLIENT)

    def test_message_type_rules(self):
        staff = principal(Role.STAFF)
        assert not can_send_message_type(staff, MessageType.LEGAL_RESPONSE)
        assert can_send_message_type(staff, MessageType.ADMIN_NOTICE)
        assert can_send_message_type(staff, MessageType.REMINDER)
        assert can_send_message_type(principal(Role.LAWYER), MessageType.LEGAL_RESPONSE)
        assert not can_send_message_type(principal(Role.LAWYER), MessageType.SYSTEM)


class TestDraftAndCaseRules:

    @pytest.mark.parametrize("role", list(Role))
    def test_draft_view_and_approve_are_lawyer_only(self, role):
        p = principal(role)
        assert can_view_draft(p) == (role == Role.LAWYER)
        assert can_approve_draft(p) == (role == Role.LAWYER)
        assert can_perform_conflict_check(p) == (role == Role.LAWYER)

    def test_case_visibility(self):
        staff = principal(Role.STAFF)
        client = principal(Role.CLIENT)
        assert can_view_case(principal(Role.LAWYER))
        assert can_view_case(principal(Role.ADMIN))
        assert can_view_case(staff, staff_id=staff.id)
        assert not can_view_case(staff, staff_id=uuid4())
        assert can_view_case(client, client_id=client.id)
        assert not can_view_case(client, client_id=uuid4())
        assert not can_view_case(principal(Role.TECH_SUPPORT))


class TestRequireFunctions:

    def test_require_lawyer(self):
        require_lawyer(principal(Role.LAWYER))
        with pytest.raises(AuthorizationException) as exc_info:
            require_lawyer(principal(Role.ADMIN), "draft:approve")
        assert exc_info.value.attempted_action == "draft:approve"
        assert exc_info.value.code == ErrorCode.LAWYER_REQUIRED

    def test_require_role(self):
        require_role(principal(Role.STAFF), [Role.STAFF, Role.LAWYER], "case:create")
        with pytest.raises(AuthorizationException):
            require_role(principal(Role.CLIENT), [Role.STAFF, Role.LAWYER], "case:create")

    def test_require_permission(self):
        require_permission(principal(Role.STAFF), Permission.CASE_CREATE)
        with pytest.raises(AuthorizationException) as exc_info:
            require_permission(principal(Role.CLIENT), Permission.CASE_CREATE)
        assert exc_info.value.code == ErrorCode.INSUFFICIENT_PERMISSIONS

    def test_require_same_tenant(self):
        p = principal(Role.LAWYER)
        require_same_tenant(p, p.tenant_id, "draft:view", "draft")
        with pytest.raises(TenantMismatchException):
            require_same_tenant(p, uuid4(), "draft:view", "draft")


class TestAuditLogAccess:

    def test_permission_holders(self):
        assert can_view_audit_logs(principal(Role.LAWYER))
        assert can_view_audit_logs(principal(Role.ADMIN))
        assert not can_view_audit_logs(principal(Role.STAFF))
        assert not can_view_audit_logs(principal(Role.CLIENT))

    def test_tech_support_needs_active_elevation(self):
        now = datetime.now(timezone.utc)
        assert not can_view_audit_logs(principal(Role.TECH_SUPPORT), now)
        assert can_view_audit_logs(principal(Role.TECH_SUPPORT, elevated_until=now + timedelta(minutes=5)), now)
        assert not can_view_audit_logs(principal(Role.TECH_SUPPORT, elevated_until=now - timedelta(seconds=1)), now)

    def test_elevation_is_tech_support_only(self):
        staff = principal(Role.STAFF, elevated_until=datetime.now(timezone.utc) + timedelta(hours=1))
        assert not can_view_audit_logs(staff)
        with pytest.raises(AuthorizationException):
            require_audit_log_access(staff)
