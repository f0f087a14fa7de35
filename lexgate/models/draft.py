"""
LexGate - Draft Model

AI-generated documents awaiting lawyer review.

State machine (one-way):

    PENDING ──approve──> APPROVED
       │
       ├────modify───> MODIFIED
       │
       └────reject───> REJECTED

Once a draft leaves PENDING it is immutable. A revision is a new draft
with a higher version in the same (case, draft_type) lineage.
"""

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lexgate.models.base import BaseModel, TenantMixin

if TYPE_CHECKING:
    from lexgate.models.case import Case


class DraftType(str, enum.Enum):
    """Kinds of generated documents."""
    RETENTION_NOTICE = "RETENTION_NOTICE"    # 受任通知
    PETITION = "PETITION"                    # 破産申立書
    STATEMENT = "STATEMENT"                  # 陳述書
    CREDITOR_LIST = "CREDITOR_LIST"          # 債権者一覧表
    ASSET_LIST = "ASSET_LIST"                # 財産目録
    INCOME_EXPENSE = "INCOME_EXPENSE"        # 家計収支表
    RESPONSE = "RESPONSE"                    # answer to a client question
    COURT_RESPONSE = "COURT_RESPONSE"        # answer to a court inquiry


class DraftStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    MODIFIED = "MODIFIED"
    REJECTED = "REJECTED"


# Statuses that may be referenced by an external send
SENDABLE_DRAFT_STATUSES = frozenset({DraftStatus.APPROVED, DraftStatus.MODIFIED})


class Draft(BaseModel, TenantMixin):
    """
    Draft model.

    flags is a JSON list of {"kind", "severity", "message", "action"} objects.
    """

    __tablename__ = "drafts"
    __table_args__ = (
        UniqueConstraint("case_id", "draft_type", "version", name="uq_drafts_lineage_version"),
    )

    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    draft_type: Mapped[DraftType] = mapped_column(Enum(DraftType), nullable=False)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)
    flags: Mapped[List[dict]] = mapped_column(JSON, default=list, nullable=False)

    status: Mapped[DraftStatus] = mapped_column(
        Enum(DraftStatus),
        default=DraftStatus.PENDING,
        nullable=False,
        index=True,
    )

    # Review
    reviewed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    review_comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    final_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    case: Mapped["Case"] = relationship("Case", back_populates="drafts")

    @property
    def is_pending(self) -> bool:
        return self.status == DraftStatus.PENDING

    @property
    def is_sendable(self) -> bool:
        return self.status in SENDABLE_DRAFT_STATUSES

    @property
    def flags_count(self) -> int:
        return len(self.flags or [])

    def __repr__(self) -> str:
        return f"<Draft(id={self.id}, type={self.draft_type.value}, v={self.version}, status={self.status.value})>"
