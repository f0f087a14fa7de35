"""
LexGate - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from lexgate.models.base import BaseModel, TimestampMixin, TenantMixin
from lexgate.models.principal import Principal, Role
from lexgate.models.case import Case, CaseType, CaseStatus, ConflictCheckStatus, Creditor
from lexgate.models.draft import Draft, DraftType, DraftStatus, SENDABLE_DRAFT_STATUSES
from lexgate.models.external_send import ExternalSend, SendType, RecipientType, SendMethod
from lexgate.models.audit import AuditLog, AuditAction, AuditResult

__all__ = [
    # Base
    "BaseModel",
    "TimestampMixin",
    "TenantMixin",
    # Principal
    "Principal",
    "Role",
    # Cases
    "Case",
    "CaseType",
    "CaseStatus",
    "ConflictCheckStatus",
    "Creditor",
    # Drafts
    "Draft",
    "DraftType",
    "DraftStatus",
    "SENDABLE_DRAFT_STATUSES",
    # Sends
    "ExternalSend",
    "SendType",
    "RecipientType",
    "SendMethod",
    # Audit
    "AuditLog",
    "AuditAction",
    "AuditResult",
]
