"""
LexGate - Case Schemas

Pydantic schemas for case listing, creation and conflict checks.
"""

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from lexgate.models.case import CaseStatus, CaseType, ConflictCheckStatus


# =============================================================================
# CREDITORS
# =============================================================================

class CreditorCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: Optional[str] = None
    debt_amount: Optional[int] = Field(None, ge=0)
    debt_type: Optional[str] = Field(None, max_length=50)


class CreditorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    address: Optional[str] = None
    debt_amount: Optional[int] = None
    debt_type: Optional[str] = None
    notice_sent_at: Optional[datetime] = None
    notice_sent_by_id: Optional[UUID] = None


# =============================================================================
# CASES
# =============================================================================

class CaseCreate(BaseModel):
    """New case intake."""
    client_name: str = Field(..., min_length=1, max_length=255)
    client_email: Optional[EmailStr] = None
    client_id: Optional[UUID] = None
    case_type: CaseType = CaseType.BANKRUPTCY
    total_debt: Optional[int] = Field(None, ge=0)
    creditor_count: Optional[int] = Field(None, ge=0)
    creditors: List[CreditorCreate] = Field(default_factory=list)


class CaseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    case_number: str
    case_type: CaseType
    status: CaseStatus
    conflict_check_status: ConflictCheckStatus
    client_id: Optional[UUID] = None
    client_name: str
    lawyer_id: Optional[UUID] = None
    staff_id: Optional[UUID] = None
    total_debt: Optional[int] = None
    creditor_count: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CaseDetailResponse(CaseResponse):
    creditors: List[CreditorResponse] = Field(default_factory=list)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class CaseListResponse(BaseModel):
    cases: List[CaseResponse]
    pagination: Pagination


# =============================================================================
# CONFLICT CHECK
# =============================================================================

class ConflictCheckDecision(BaseModel):
    """Lawyer's conflict-of-interest decision."""
    decision: Literal["APPROVED", "REJECTED"]
    reason: str = Field(..., min_length=1)


class ConflictCheckResult(BaseModel):
    success: bool = True
    case_id: UUID
    conflict_check_status: ConflictCheckStatus
    conflict_check_at: Optional[datetime] = None
    status: CaseStatus
    message: str


class PotentialConflict(BaseModel):
    type: Literal["client_duplicate", "creditor_match"]
    case_id: UUID
    case_number: str
    matched_name: str
    details: str


class AutoConflictCheckResponse(BaseModel):
    """Automatic match against the tenant's other cases. Advisory only."""
    case_id: UUID
    client_name: str
    creditor_names: List[str]
    has_conflicts: bool
    potential_conflicts: List[PotentialConflict]
    message: str
