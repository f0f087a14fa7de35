"""
LexGate - Case and Creditor Models

A case is one debtor's insolvency matter within a law-firm tenant.
Creditors hang off the case and track whether the retention notice
(受任通知) has gone out.
"""

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import BigInteger, DateTime, Enum, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lexgate.models.base import BaseModel, TenantMixin

if TYPE_CHECKING:
    from lexgate.models.draft import Draft


class CaseType(str, enum.Enum):
    """Insolvency procedure."""
    BANKRUPTCY = "BANKRUPTCY"
    CIVIL_REHAB = "CIVIL_REHAB"
    VOLUNTARY_ARRANGEMENT = "VOLUNTARY_ARRANGEMENT"


class CaseStatus(str, enum.Enum):
    """Case lifecycle."""
    INQUIRY = "INQUIRY"
    CONSULTATION = "CONSULTATION"
    RETAINED = "RETAINED"
    DOCUMENT_COLLECTING = "DOCUMENT_COLLECTING"
    DRAFTING = "DRAFTING"
    FILED = "FILED"
    REJECTED = "REJECTED"


class ConflictCheckStatus(str, enum.Enum):
    """Conflict-of-interest check state. APPROVED/REJECTED are final."""
    PENDING = "PENDING"
    CHECKING = "CHECKING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Case(BaseModel, TenantMixin):
    """
    Case model.

    case_number is `<year>-<4-digit seq>` and unique per tenant.
    """

    __tablename__ = "cases"
    __table_args__ = (
        UniqueConstraint("tenant_id", "case_number", name="uq_cases_tenant_case_number"),
    )

    case_number: Mapped[str] = mapped_column(String(20), nullable=False)
    case_type: Mapped[CaseType] = mapped_column(
        Enum(CaseType),
        default=CaseType.BANKRUPTCY,
        nullable=False,
    )
    status: Mapped[CaseStatus] = mapped_column(
        Enum(CaseStatus),
        default=CaseStatus.INQUIRY,
        nullable=False,
        index=True,
    )

    # Parties (identities live in the identity provider)
    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    client_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    lawyer_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    staff_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)

    total_debt: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    creditor_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Conflict of interest
    conflict_check_status: Mapped[ConflictCheckStatus] = mapped_column(
        Enum(ConflictCheckStatus),
        default=ConflictCheckStatus.PENDING,
        nullable=False,
    )
    conflict_check_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    conflict_check_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    conflict_check_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    creditors: Mapped[List["Creditor"]] = relationship(
        "Creditor",
        back_populates="case",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    drafts: Mapped[List["Draft"]] = relationship(
        "Draft",
        back_populates="case",
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<Case(id={self.id}, case_number={self.case_number})>"


class Creditor(BaseModel, TenantMixin):
    """Creditor of a case."""

    __tablename__ = "creditors"

    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    debt_amount: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    debt_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Retention notice tracking
    notice_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notice_sent_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    case: Mapped["Case"] = relationship("Case", back_populates="creditors")

    @property
    def is_noticed(self) -> bool:
        return self.notice_sent_at is not None
