"""
Tests for the role/permission model

Covers:
1. Role table totality and separation of duties
2. Per-role scopes
3. Principal construction rules
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from lexgate.models.principal import Principal, Role
from lexgate.utils.permissions import (
    CASE_CONTENT_PERMISSIONS,
    LEGAL_AUTHORITY_PERMISSIONS,
    Permission,
    ROLE_PERMISSIONS,
    has_all_permissions,
    has_any_permission,
    has_permission,
    permissions_for,
    verify_role_permission_table,
)


SEND_PERMISSIONS = {
    Permission.SEND_LEGAL_RESPONSE,
    Permission.SEND_CREDITOR_NOTICE,
    Permission.SEND_COURT_DOCUMENT,
}
DRAFT_PERMISSIONS = {
    Permission.DRAFT_VIEW,
    Permission.DRAFT_APPROVE,
    Permission.DRAFT_MODIFY,
    Permission.DRAFT_REJECT,
}


def principal(role: Role, **kwargs) -> Principal:
    return Principal(id=uuid4(), tenant_id=uuid4(), role=role, **kwargs)


class TestRoleTable:
    """The static role -> permission table"""

    def test_every_role_has_a_permission_set(self):
        for role in Role:
            assert role in ROLE_PERMISSIONS
            assert isinstance(permissions_for(role), frozenset)

    def test_table_verifies(self):
        verify_role_permission_table()

    @pytest.mark.parametrize("role", [r for r in Role if r != Role.LAWYER])
    def test_only_lawyer_holds_legal_authority(self, role):
        assert not (permissions_for(role) & LEGAL_AUTHORITY_PERMISSIONS)

    @pytest.mark.parametrize("role", [r for r in Role if r != Role.LAWYER])
    def test_no_send_or_draft_permission_outside_lawyer(self, role):
        perms = permissions_for(role)
        assert not (perms & SEND_PERMISSIONS)
        assert not (perms & DRAFT_PERMISSIONS)

    def test_lawyer_holds_all_send_and_draft_permissions(self):
        perms = permissions_for(Role.LAWYER)
        assert SEND_PERMISSIONS <= perms
        assert DRAFT_PERMISSIONS <= perms

    def test_tech_support_has_system_config_only(self):
        assert permissions_for(Role.TECH_SUPPORT) == frozenset({Permission.SYSTEM_CONFIG})
        assert not (permissions_for(Role.TECH_SUPPORT) & CASE_CONTENT_PERMISSIONS)

    def test_admin_is_not_legal_authority(self):
        perms = permissions_for(Role.ADMIN)
        assert Permission.AUDIT_LOG_VIEW in perms
        assert Permission.USER_MANAGE in perms
        assert Permission.DRAFT_APPROVE not in perms
        assert not (perms & SEND_PERMISSIONS)

    def test_staff_scope(self):
        perms = permissions_for(Role.STAFF)
        assert Permission.CASE_VIEW_ASSIGNED in perms
        assert Permission.CASE_CREATE in perms
        assert Permission.SEND_ADMIN_MESSAGE in perms
        assert Permission.CASE_VIEW_ALL not in perms
        assert Permission.CONFLICT_CHECK not in perms

    def test_client_scope(self):
        assert permissions_for(Role.CLIENT) == frozenset({
            Permission.CASE_VIEW_OWN,
            Permission.DOCUMENT_UPLOAD,
            Permission.DOCUMENT_VIEW,
            Permission.MESSAGE_VIEW,
        })

    def test_tampered_table_fails_verification(self, monkeypatch):
        tampered = dict(ROLE_PERMISSIONS)
        tampered[Role.STAFF] = ROLE_PERMISSIONS[Role.STAFF] | {Permission.DRAFT_APPROVE}
        monkeypatch.setattr("lexgate.utils.permissions.ROLE_PERMISSIONS", tampered)
        with pytest.raises(RuntimeError):
            verify_role_permission_table()

    def test_missing_role_fails_verification(self, monkeypatch):
        tampered = {k: v for k, v in ROLE_PERMISSIONS.items() if k != Role.CLIENT}
        monkeypatch.setattr("lexgate.utils.permissions.ROLE_PERMISSIONS", tampered)
        with pytest.raises(RuntimeError):
            verify_role_permission_table()


class TestPermissionHelpers:

    @pytest.mark.parametrize("role", list(Role))
    @pytest.mark.parametrize("permission", list(Permission))
    def test_has_permission_matches_table(self, role, permission):
        assert has_permission(principal(role), permission) == (permission in ROLE_PERMISSIONS[role])

    def test_has_all_and_any(self):
        lawyer = principal(Role.LAWYER, license_number="L-1")
        staff = principal(Role.STAFF)
        assert has_all_permissions(lawyer, SEND_PERMISSIONS)
        assert not has_all_permissions(staff, [Permission.CASE_CREATE, Permission.DRAFT_VIEW])
        assert has_any_permission(staff, [Permission.CASE_CREATE, Permission.DRAFT_VIEW])
        assert not has_any_permission(staff, SEND_PERMISSIONS)

    def test_empty_requirements(self):
        staff = principal(Role.STAFF)
        assert has_all_permissions(staff, [])
        assert not has_any_permission(staff, [])


class TestPrincipal:

    def test_license_number_only_for_lawyers(self):
        with pytest.raises(ValueError):
            principal(Role.STAFF, license_number="L-1")

    def test_principal_is_immutable(self):
        p = principal(Role.LAWYER, license_number="L-1")
        with pytest.raises(Exception):
            p.role = Role.ADMIN

    def test_elevation_window(self):
        now = datetime.now(timezone.utc)
        active = principal(Role.TECH_SUPPORT, elevated_until=now + timedelta(minutes=10))
        expired = principal(Role.TECH_SUPPORT, elevated_until=now - timedelta(minutes=1))
        assert active.is_elevated(now)
        assert not expired.is_elevated(now)
        assert not principal(Role.TECH_SUPPORT).is_elevated(now)

    def test_elevation_does_not_change_permissions(self):
        elevated = principal(Role.TECH_SUPPORT, elevated_until=datetime.now(timezone.utc) + timedelta(hours=1))
        assert elevated.permissions == permissions_for(Role.TECH_SUPPORT)
