"""
LexGate - External Send Schemas
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from lexgate.models.external_send import RecipientType, SendMethod, SendType


class SendRequest(BaseModel):
    """
    Outbound legal content.

    confirmation_checked is accepted as false here; the gate itself refuses
    an unconfirmed send so the refusal is ordered after the role check.
    """
    case_id: UUID
    send_type: SendType
    recipient_type: RecipientType
    recipient_name: str = Field(..., min_length=1, max_length=255)
    recipient_address: Optional[str] = None
    draft_id: Optional[UUID] = None
    creditor_id: Optional[UUID] = None
    content: str = Field(..., min_length=1)
    send_method: SendMethod
    confirmation_checked: bool = False


class SendResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    case_id: UUID
    send_type: SendType
    recipient_type: RecipientType
    recipient_name: str
    recipient_address: Optional[str] = None
    draft_id: Optional[UUID] = None
    creditor_id: Optional[UUID] = None
    send_method: SendMethod
    sent_by_id: UUID
    sent_at: datetime
    confirmation_checked: bool


class SendListResponse(BaseModel):
    sends: List[SendResponse]
