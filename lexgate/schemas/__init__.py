"""
LexGate - Schemas Package

Pydantic schemas for request/response validation.
"""

from lexgate.schemas.audit import (
    AuditDetails,
    DraftApproveDetails,
    DraftViewDetails,
    SendExecuteDetails,
    PermissionDeniedDetails,
    CaseCreateDetails,
    CaseConflictCheckDetails,
    GenericAuditDetails,
    parse_audit_details,
    AuditLogResponse,
    AuditLogListResponse,
    AnomalyReportResponse,
)
from lexgate.schemas.draft import (
    Flag,
    FlagSeverity,
    DraftCreate,
    DraftReviewAction,
    DraftReviewRequest,
    DraftResponse,
    DraftReviewResponse,
)
from lexgate.schemas.send import SendRequest, SendResponse, SendListResponse
from lexgate.schemas.case import (
    CaseCreate,
    CaseResponse,
    CaseDetailResponse,
    CaseListResponse,
    CreditorCreate,
    ConflictCheckDecision,
    ConflictCheckResult,
    AutoConflictCheckResponse,
)
