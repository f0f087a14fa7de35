"""
LexGate - Draft Schemas

Pydantic schemas for draft creation, review and display.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from lexgate.models.draft import DraftStatus, DraftType


class FlagSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class Flag(BaseModel):
    """
    Item a lawyer must look at before signing off.

    `message` describes what needs checking, `action` names the next step.
    Neither may state a legal conclusion.
    """
    kind: str = Field(..., min_length=1, max_length=50)
    severity: FlagSeverity = FlagSeverity.INFO
    message: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1)


class DraftReviewAction(str, Enum):
    APPROVE = "approve"
    MODIFY = "modify"
    REJECT = "reject"


class DraftCreate(BaseModel):
    """Draft produced by the drafting collaborator."""
    case_id: UUID
    draft_type: DraftType
    content: str = Field(..., min_length=1)
    flags: List[Flag] = Field(default_factory=list)


class DraftReviewRequest(BaseModel):
    """Lawyer's disposition of a pending draft."""
    action: DraftReviewAction
    final_content: Optional[str] = None
    comment: Optional[str] = Field(None, max_length=2000)
    review_start_time: datetime
    flags_acknowledged: bool = False


class DraftResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    case_id: UUID
    draft_type: DraftType
    version: int
    content: str
    flags: List[Flag] = Field(default_factory=list)
    status: DraftStatus
    reviewed_by_id: Optional[UUID] = None
    reviewed_at: Optional[datetime] = None
    review_comment: Optional[str] = None
    final_content: Optional[str] = None
    created_at: Optional[datetime] = None


class DraftReviewSummary(BaseModel):
    id: UUID
    status: DraftStatus
    version: int
    reviewed_at: Optional[datetime] = None


class DraftReviewResponse(BaseModel):
    success: bool = True
    draft: DraftReviewSummary
    message: str
