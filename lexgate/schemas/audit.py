"""
LexGate - Audit Schemas

Typed audit details and audit-log query responses.

Audit details are a tagged union keyed by action. Every details payload
carries its own `action` tag so a stored row can be parsed back into the
right model without consulting the row's action column.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter

from lexgate.models.audit import AuditAction, AuditResult


# =============================================================================
# AUDIT DETAILS
# =============================================================================

class DraftApproveDetails(BaseModel):
    """Written for every draft disposition (approve, modify, reject)."""
    action: Literal["DRAFT_APPROVE"] = "DRAFT_APPROVE"
    draft_type: str
    draft_version: int
    review_time_seconds: float
    has_modification: bool
    modification_summary: Optional[str] = None
    decision: Literal["approve", "modify", "reject"]
    flags_count: int = 0
    flags_acknowledged: bool = False
    comment: Optional[str] = None


class DraftViewDetails(BaseModel):
    action: Literal["DRAFT_VIEW"] = "DRAFT_VIEW"
    draft_type: str
    draft_version: int
    draft_status: str


class SendExecuteDetails(BaseModel):
    action: Literal["SEND_EXECUTE"] = "SEND_EXECUTE"
    send_type: str
    recipient_type: str
    recipient_name: str
    send_method: str
    confirmation_checked: bool
    draft_id: Optional[str] = None
    creditor_id: Optional[str] = None


class PermissionDeniedDetails(BaseModel):
    action: Literal["PERMISSION_DENIED"] = "PERMISSION_DENIED"
    attempted_action: str
    user_role: Optional[str] = None
    reason: Optional[str] = None


class CaseCreateDetails(BaseModel):
    action: Literal["CASE_CREATE"] = "CASE_CREATE"
    case_number: str
    case_type: str
    client_id: Optional[str] = None


class CaseConflictCheckDetails(BaseModel):
    action: Literal["CASE_CONFLICT_CHECK"] = "CASE_CONFLICT_CHECK"
    decision: Literal["APPROVED", "REJECTED"]
    reason: str
    client_name: Optional[str] = None
    creditor_names: List[str] = Field(default_factory=list)


class GenericAuditDetails(BaseModel):
    """Free-form details for actions without a dedicated shape."""
    model_config = ConfigDict(extra="allow")
    action: Optional[str] = None


_TYPED_DETAIL_TAGS = {
    "DRAFT_APPROVE",
    "DRAFT_VIEW",
    "SEND_EXECUTE",
    "PERMISSION_DENIED",
    "CASE_CREATE",
    "CASE_CONFLICT_CHECK",
}


def _details_tag(value: Any) -> str:
    action = value.get("action") if isinstance(value, dict) else getattr(value, "action", None)
    return action if action in _TYPED_DETAIL_TAGS else "generic"


AuditDetails = Annotated[
    Union[
        Annotated[DraftApproveDetails, Tag("DRAFT_APPROVE")],
        Annotated[DraftViewDetails, Tag("DRAFT_VIEW")],
        Annotated[SendExecuteDetails, Tag("SEND_EXECUTE")],
        Annotated[PermissionDeniedDetails, Tag("PERMISSION_DENIED")],
        Annotated[CaseCreateDetails, Tag("CASE_CREATE")],
        Annotated[CaseConflictCheckDetails, Tag("CASE_CONFLICT_CHECK")],
        Annotated[GenericAuditDetails, Tag("generic")],
    ],
    Discriminator(_details_tag),
]

audit_details_adapter: TypeAdapter = TypeAdapter(AuditDetails)


def parse_audit_details(data: Optional[Dict[str, Any]]):
    """Parse stored details JSON back into its typed model."""
    if data is None:
        return None
    return audit_details_adapter.validate_python(data)


# =============================================================================
# RESPONSES
# =============================================================================

class AuditLogResponse(BaseModel):
    """Single audit entry."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    user_id: Optional[UUID] = None
    user_role: Optional[str] = None
    action: AuditAction
    resource_type: str
    resource_id: Optional[str] = None
    case_id: Optional[UUID] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    result: AuditResult
    details: Optional[Dict[str, Any]] = None
    created_at: datetime


class AuditLogListResponse(BaseModel):
    """Paged audit entries."""
    items: List[AuditLogResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class QuickApprovalAnomalyResponse(BaseModel):
    user_id: str
    quick_approval_count: int
    average_review_seconds: float
    min_review_seconds: float
    threshold_seconds: int


class BulkApprovalAnomalyResponse(BaseModel):
    user_id: str
    window_start: datetime
    approval_count: int
    window_seconds: int


class AnomalyReportResponse(BaseModel):
    """Advisory anomaly report for one tenant."""
    tenant_id: UUID
    generated_at: datetime
    lookback_hours: int
    quick_approvals: List[QuickApprovalAnomalyResponse] = Field(default_factory=list)
    bulk_approvals: List[BulkApprovalAnomalyResponse] = Field(default_factory=list)
