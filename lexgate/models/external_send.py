"""
LexGate - External Send Model

Record of legal content leaving the system (client, creditor, court).

The content snapshot is the exact text that was sent. This table has no
UPDATE or DELETE path; the migration installs triggers that reject both.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from lexgate.database import Base


class SendType(str, enum.Enum):
    """What is being sent. Each value maps to one send permission."""
    RETENTION_NOTICE = "RETENTION_NOTICE"    # to creditors
    PETITION = "PETITION"                    # to court
    SUPPLEMENTARY = "SUPPLEMENTARY"          # supplementary filing to court
    COURT_RESPONSE = "COURT_RESPONSE"        # answer to court inquiry
    CLIENT_RESPONSE = "CLIENT_RESPONSE"      # legal answer to client


class RecipientType(str, enum.Enum):
    CLIENT = "CLIENT"
    CREDITOR = "CREDITOR"
    COURT = "COURT"


class SendMethod(str, enum.Enum):
    EMAIL = "EMAIL"
    POSTAL = "POSTAL"
    CERTIFIED_MAIL = "CERTIFIED_MAIL"
    FAX = "FAX"
    PORTAL = "PORTAL"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExternalSend(Base):
    """Append-only record of an executed external send."""

    __tablename__ = "external_sends"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("cases.id"),
        nullable=False,
        index=True,
    )

    send_type: Mapped[SendType] = mapped_column(Enum(SendType), nullable=False)
    recipient_type: Mapped[RecipientType] = mapped_column(Enum(RecipientType), nullable=False)
    recipient_name: Mapped[str] = mapped_column(String(255), nullable=False)
    recipient_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    creditor_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    draft_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("drafts.id"),
        nullable=True,
    )
    content_snapshot: Mapped[str] = mapped_column(Text, nullable=False)
    send_method: Mapped[SendMethod] = mapped_column(Enum(SendMethod), nullable=False)

    sent_by_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    confirmation_checked: Mapped[bool] = mapped_column(Boolean, nullable=False)

    def __repr__(self) -> str:
        return f"<ExternalSend(id={self.id}, type={self.send_type.value}, to={self.recipient_type.value})>"
