"""
LexGate - Permissions System

RBAC permissions for law-firm tenants.

Non-lawyer practice prevention:
- Drafts are visible to, and dispositioned by, lawyers only
- Legal content leaves the system (client, creditor, court) only from a lawyer
- Admin is system administration, never legal authority
- Tech support holds no case-content permission; audit-log read is granted
  only through time-boxed elevation (see Principal.elevated_until)

Permission Matrix:
==================

| Permission             | Lawyer | Staff | Client | Tech Support | Admin |
|------------------------|--------|-------|--------|--------------|-------|
| case:view:all          | X      |       |        |              | X     |
| case:view:assigned     |        | X     |        |              |       |
| case:view:own          |        |       | X      |              |       |
| case:create            | X      | X     |        |              |       |
| case:update            | X      |       |        |              |       |
| conflict:check         | X      |       |        |              |       |
| draft:view             | X      |       |        |              |       |
| draft:approve          | X      |       |        |              |       |
| draft:modify           | X      |       |        |              |       |
| draft:reject           | X      |       |        |              |       |
| send:legal_response    | X      |       |        |              |       |
| send:creditor_notice   | X      |       |        |              |       |
| send:court_document    | X      |       |        |              |       |
| send:admin_message     | X      | X     |        |              |       |
| document:upload        | X      | X     | X      |              |       |
| document:view          | X      | X     | X      |              |       |
| document:delete        | X      |       |        |              |       |
| message:send           | X      | X     |        |              |       |
| message:view           | X      | X     | X      |              |       |
| audit:view             | X      |       |        | (elevated)   | X     |
| user:manage            |        |       |        |              | X     |
| system:config          |        |       |        | X            | X     |
"""

from enum import Enum
from typing import Dict, FrozenSet, Iterable

from lexgate.models.principal import Principal, Role


# ===========================================
# PERMISSION ENUM
# ===========================================

class Permission(str, Enum):
    """Opaque capability tokens."""

    # Cases
    CASE_VIEW_ALL = "case:view:all"
    CASE_VIEW_ASSIGNED = "case:view:assigned"
    CASE_VIEW_OWN = "case:view:own"
    CASE_CREATE = "case:create"
    CASE_UPDATE = "case:update"

    # Conflict of interest
    CONFLICT_CHECK = "conflict:check"

    # Drafts (lawyer only)
    DRAFT_VIEW = "draft:view"
    DRAFT_APPROVE = "draft:approve"
    DRAFT_MODIFY = "draft:modify"
    DRAFT_REJECT = "draft:reject"

    # Send gate
    SEND_LEGAL_RESPONSE = "send:legal_response"      # legal answer to client
    SEND_CREDITOR_NOTICE = "send:creditor_notice"    # retention notice to creditor
    SEND_COURT_DOCUMENT = "send:court_document"      # petition / supplementary filing
    SEND_ADMIN_MESSAGE = "send:admin_message"        # administrative contact

    # Documents
    DOCUMENT_UPLOAD = "document:upload"
    DOCUMENT_VIEW = "document:view"
    DOCUMENT_DELETE = "document:delete"

    # Messages
    MESSAGE_SEND = "message:send"
    MESSAGE_VIEW = "message:view"

    # Audit
    AUDIT_LOG_VIEW = "audit:view"

    # Administration
    USER_MANAGE = "user:manage"
    SYSTEM_CONFIG = "system:config"


# Permissions that touch case content. Tech support must never hold one.
CASE_CONTENT_PERMISSIONS: FrozenSet[Permission] = frozenset({
    Permission.CASE_VIEW_ALL,
    Permission.CASE_VIEW_ASSIGNED,
    Permission.CASE_VIEW_OWN,
    Permission.CASE_CREATE,
    Permission.CASE_UPDATE,
    Permission.CONFLICT_CHECK,
    Permission.DRAFT_VIEW,
    Permission.DRAFT_APPROVE,
    Permission.DRAFT_MODIFY,
    Permission.DRAFT_REJECT,
    Permission.SEND_LEGAL_RESPONSE,
    Permission.SEND_CREDITOR_NOTICE,
    Permission.SEND_COURT_DOCUMENT,
    Permission.SEND_ADMIN_MESSAGE,
    Permission.DOCUMENT_UPLOAD,
    Permission.DOCUMENT_VIEW,
    Permission.DOCUMENT_DELETE,
    Permission.MESSAGE_SEND,
    Permission.MESSAGE_VIEW,
})

# Legal-authority permissions. Only the lawyer role may carry these.
LEGAL_AUTHORITY_PERMISSIONS: FrozenSet[Permission] = frozenset({
    Permission.DRAFT_VIEW,
    Permission.DRAFT_APPROVE,
    Permission.DRAFT_MODIFY,
    Permission.DRAFT_REJECT,
    Permission.SEND_LEGAL_RESPONSE,
    Permission.SEND_CREDITOR_NOTICE,
    Permission.SEND_COURT_DOCUMENT,
})


# ===========================================
# PERMISSION MAPPINGS
# ===========================================

ROLE_PERMISSIONS: Dict[Role, FrozenSet[Permission]] = {
    Role.LAWYER: frozenset({
        Permission.CASE_VIEW_ALL,
        Permission.CASE_CREATE,
        Permission.CASE_UPDATE,
        Permission.CONFLICT_CHECK,
        Permission.DRAFT_VIEW,
        Permission.DRAFT_APPROVE,
        Permission.DRAFT_MODIFY,
        Permission.DRAFT_REJECT,
        Permission.SEND_LEGAL_RESPONSE,
        Permission.SEND_CREDITOR_NOTICE,
        Permission.SEND_COURT_DOCUMENT,
        Permission.SEND_ADMIN_MESSAGE,
        Permission.DOCUMENT_UPLOAD,
        Permission.DOCUMENT_VIEW,
        Permission.DOCUMENT_DELETE,
        Permission.MESSAGE_SEND,
        Permission.MESSAGE_VIEW,
        Permission.AUDIT_LOG_VIEW,
    }),
    Role.STAFF: frozenset({
        Permission.CASE_VIEW_ASSIGNED,
        Permission.CASE_CREATE,
        Permission.SEND_ADMIN_MESSAGE,  # administrative contact only
        Permission.DOCUMENT_UPLOAD,
        Permission.DOCUMENT_VIEW,
        Permission.MESSAGE_SEND,
        Permission.MESSAGE_VIEW,
    }),
    Role.CLIENT: frozenset({
        Permission.CASE_VIEW_OWN,
        Permission.DOCUMENT_UPLOAD,
        Permission.DOCUMENT_VIEW,
        Permission.MESSAGE_VIEW,
    }),
    Role.TECH_SUPPORT: frozenset({
        Permission.SYSTEM_CONFIG,
        # AUDIT_LOG_VIEW only while elevated
    }),
    Role.ADMIN: frozenset({
        Permission.CASE_VIEW_ALL,
        Permission.AUDIT_LOG_VIEW,
        Permission.USER_MANAGE,
        Permission.SYSTEM_CONFIG,
        # NO draft approval, NO send: system administration is not legal authority
    }),
}


def verify_role_permission_table() -> None:
    """
    Verify the role table is total and respects separation of duties.

    Runs at import so a bad edit fails the process on startup instead of
    silently denying (or granting) by absence.
    """
    missing = [role.value for role in Role if role not in ROLE_PERMISSIONS]
    if missing:
        raise RuntimeError(f"Roles without a permission set: {missing}")

    for role, permissions in ROLE_PERMISSIONS.items():
        if role != Role.LAWYER and permissions & LEGAL_AUTHORITY_PERMISSIONS:
            leaked = sorted(p.value for p in permissions & LEGAL_AUTHORITY_PERMISSIONS)
            raise RuntimeError(f"{role.value} carries lawyer-only permissions: {leaked}")

    if ROLE_PERMISSIONS[Role.TECH_SUPPORT] & CASE_CONTENT_PERMISSIONS:
        raise RuntimeError("TECH_SUPPORT must not carry case-content permissions")


verify_role_permission_table()


# ===========================================
# PERMISSION HELPER FUNCTIONS
# ===========================================

def permissions_for(role: Role) -> FrozenSet[Permission]:
    """Get all permissions for a role. Total over Role."""
    return ROLE_PERMISSIONS[role]


def has_permission(principal: Principal, permission: Permission) -> bool:
    """Check if a principal holds a specific permission."""
    return permission in principal.permissions


def has_all_permissions(principal: Principal, permissions: Iterable[Permission]) -> bool:
    """Check if a principal holds every one of the permissions."""
    return all(p in principal.permissions for p in permissions)


def has_any_permission(principal: Principal, permissions: Iterable[Permission]) -> bool:
    """Check if a principal holds at least one of the permissions."""
    return any(p in principal.permissions for p in permissions)
