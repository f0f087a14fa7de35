"""
LexGate - Audit Log Model

Immutable, tenant-keyed audit trail of every sensitive action.

- Who: user_id + user_role at the time of the action
- What: action, resource_type/resource_id, case_id
- Where from: ip_address, user_agent
- Outcome: SUCCESS / FAILURE / DENIED
- details: action-specific payload (see lexgate.schemas.audit)

This table should have no UPDATE or DELETE permissions.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, DateTime, Enum, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from lexgate.database import Base


class AuditAction(str, enum.Enum):
    """Audit action types."""
    # Authentication
    AUTH_LOGIN = "AUTH_LOGIN"
    AUTH_LOGOUT = "AUTH_LOGOUT"
    AUTH_MFA_VERIFY = "AUTH_MFA_VERIFY"
    AUTH_LOGIN_FAILED = "AUTH_LOGIN_FAILED"

    # Cases
    CASE_VIEW = "CASE_VIEW"
    CASE_CREATE = "CASE_CREATE"
    CASE_UPDATE = "CASE_UPDATE"
    CASE_CONFLICT_CHECK = "CASE_CONFLICT_CHECK"
    CASE_RETAIN = "CASE_RETAIN"

    # Drafts (most important)
    DRAFT_VIEW = "DRAFT_VIEW"
    DRAFT_APPROVE = "DRAFT_APPROVE"
    DRAFT_MODIFY = "DRAFT_MODIFY"
    DRAFT_REJECT = "DRAFT_REJECT"

    # External send (most important)
    SEND_EXECUTE = "SEND_EXECUTE"

    # Documents
    DOCUMENT_UPLOAD = "DOCUMENT_UPLOAD"
    DOCUMENT_DOWNLOAD = "DOCUMENT_DOWNLOAD"
    DOCUMENT_DELETE = "DOCUMENT_DELETE"

    # Messages
    MESSAGE_SEND = "MESSAGE_SEND"

    # User administration
    USER_CREATE = "USER_CREATE"
    USER_UPDATE = "USER_UPDATE"
    USER_DELETE = "USER_DELETE"

    # Denials
    PERMISSION_DENIED = "PERMISSION_DENIED"


class AuditResult(str, enum.Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    DENIED = "DENIED"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditLog(Base):
    """Append-only audit entry."""

    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    # Actor (system actions have no user)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    user_role: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    action: Mapped[AuditAction] = mapped_column(
        Enum(AuditAction),
        nullable=False,
        index=True,
    )

    # Target
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False)
    resource_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    case_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)

    # Request context
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    result: Mapped[AuditResult] = mapped_column(
        Enum(AuditResult),
        default=AuditResult.SUCCESS,
        nullable=False,
    )
    details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # Server-assigned, never client supplied
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, action={self.action.value}, result={self.result.value})>"
