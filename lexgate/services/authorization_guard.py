"""
LexGate - Authorization Guard

Allow/deny decisions over a Principal. Pure: no database, no logging.

The `can_*` functions answer yes/no. The `require_*` functions raise an
AuthorizationException carrying the attempted action; the caller writes the
PERMISSION_DENIED audit entry before letting it propagate.

Draft review and legal sends are hard-coded to the lawyer role in addition
to the permission table, so a mistaken table edit cannot open them up.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, Optional
import uuid

from lexgate.models.principal import Principal, Role
from lexgate.models.external_send import RecipientType, SendType
from lexgate.utils.permissions import Permission, has_permission
from lexgate.utils.error_handling import (
    AuthorizationException,
    InsufficientPermissionsException,
    LawyerRequiredException,
    SendGateBlockedException,
    TenantMismatchException,
)


class MessageType(str, Enum):
    """Client-facing message categories."""
    LEGAL_RESPONSE = "LEGAL_RESPONSE"  # legal answer, lawyer only
    ADMIN_NOTICE = "ADMIN_NOTICE"      # administrative contact
    REMINDER = "REMINDER"              # document reminders
    SYSTEM = "SYSTEM"                  # internal only, never user-sent


# Each gated send type maps to exactly one send permission
SEND_TYPE_PERMISSIONS: Dict[SendType, Permission] = {
    SendType.CLIENT_RESPONSE: Permission.SEND_LEGAL_RESPONSE,
    SendType.RETENTION_NOTICE: Permission.SEND_CREDITOR_NOTICE,
    SendType.PETITION: Permission.SEND_COURT_DOCUMENT,
    SendType.SUPPLEMENTARY: Permission.SEND_COURT_DOCUMENT,
    SendType.COURT_RESPONSE: Permission.SEND_COURT_DOCUMENT,
}


# ===========================================
# ROLE / PERMISSION GATES
# ===========================================

def require_role(principal: Principal, roles: Iterable[Role], attempted_action: str) -> None:
    """Raise unless the principal holds one of the roles."""
    allowed = set(roles)
    if principal.role not in allowed:
        raise AuthorizationException(
            message=f"Role '{principal.role.value}' may not perform this operation",
            attempted_action=attempted_action,
            user_role=principal.role.value,
        )


def require_lawyer(principal: Principal, attempted_action: str = "lawyer_only") -> None:
    if principal.role != Role.LAWYER:
        raise LawyerRequiredException(attempted_action, user_role=principal.role.value)


def require_permission(principal: Principal, permission: Permission) -> None:
    if not has_permission(principal, permission):
        raise InsufficientPermissionsException(permission.value, user_role=principal.role.value)


def require_same_tenant(principal: Principal, tenant_id: uuid.UUID, attempted_action: str, resource_type: str) -> None:
    """Raise when the resource belongs to another tenant."""
    if tenant_id != principal.tenant_id:
        raise TenantMismatchException(attempted_action, resource_type)


# ===========================================
# SEND GATE
# ===========================================

def can_send(principal: Principal, send_type: SendType) -> bool:
    """
    Whether the principal may transmit legal content of this type.

    Lawyer role AND the matching send permission. Unknown send types are
    denied.
    """
    permission = SEND_TYPE_PERMISSIONS.get(send_type)
    if permission is None:
        return False
    return principal.role == Role.LAWYER and has_permission(principal, permission)


def require_send_permission(principal: Principal, send_type: SendType) -> None:
    """Single choke point for every outbound legal send."""
    if not can_send(principal, send_type):
        raise SendGateBlockedException(send_type.value, user_role=principal.role.value)


def can_send_to_recipient(principal: Principal, recipient_type: RecipientType) -> bool:
    if recipient_type == RecipientType.CLIENT:
        # administrative contact is allowed to staff; legal answers are gated by send type
        return principal.role in (Role.LAWYER, Role.STAFF)
    if recipient_type in (RecipientType.CREDITOR, RecipientType.COURT):
        return principal.role == Role.LAWYER
    return False


def can_send_message_type(principal: Principal, message_type: MessageType) -> bool:
    if message_type == MessageType.LEGAL_RESPONSE:
        return principal.role == Role.LAWYER
    if message_type in (MessageType.ADMIN_NOTICE, MessageType.REMINDER):
        return principal.role in (Role.LAWYER, Role.STAFF)
    return False


# ===========================================
# DRAFTS / CASES / AUDIT
# ===========================================

def can_view_draft(principal: Principal) -> bool:
    # Drafts are shown on the lawyer review screen only
    return principal.role == Role.LAWYER


def can_approve_draft(principal: Principal) -> bool:
    return principal.role == Role.LAWYER


def can_perform_conflict_check(principal: Principal) -> bool:
    return principal.role == Role.LAWYER


def can_view_case(
    principal: Principal,
    client_id: Optional[uuid.UUID] = None,
    lawyer_id: Optional[uuid.UUID] = None,
    staff_id: Optional[uuid.UUID] = None,
) -> bool:
    """Case visibility by role and assignment. Tenant is checked separately."""
    if principal.role in (Role.LAWYER, Role.ADMIN):
        return True
    if principal.role == Role.STAFF:
        return principal.id in (staff_id, lawyer_id)
    if principal.role == Role.CLIENT:
        return client_id is not None and client_id == principal.id
    # Tech support never sees case content
    return False


def can_view_audit_logs(principal: Principal, now: Optional[datetime] = None) -> bool:
    """AUDIT_LOG_VIEW permission, or tech support inside an active elevation window."""
    if has_permission(principal, Permission.AUDIT_LOG_VIEW):
        return True
    return principal.role == Role.TECH_SUPPORT and principal.is_elevated(now)


def require_audit_log_access(principal: Principal, now: Optional[datetime] = None) -> None:
    if not can_view_audit_logs(principal, now):
        raise InsufficientPermissionsException(
            Permission.AUDIT_LOG_VIEW.value,
            user_role=principal.role.value,
        )
