"""
LexGate - Approval Anomaly Detection

Batch scans over DRAFT_APPROVE audit entries that surface rubber-stamping:

- Quick approvals: a lawyer repeatedly signing off a draft within a few
  seconds of opening it.
- Bulk approvals: a lawyer dispositioning many drafts inside one short
  fixed time window.

Detectors are read-only and advisory. They never block a review; they
produce a report for the firm's administrators. Only SUCCESS entries count.
"""

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from lexgate.config import settings
from lexgate.models.audit import AuditLog, AuditResult
from lexgate.services.audit_service import AuditService

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class ApprovalRecord:
    """One draft disposition as seen by the detectors."""
    user_id: str
    created_at: datetime
    review_time_seconds: Optional[float]
    result: AuditResult = AuditResult.SUCCESS

    @classmethod
    def from_audit_log(cls, log: AuditLog) -> "ApprovalRecord":
        details = log.details or {}
        review_time = details.get("review_time_seconds")
        return cls(
            user_id=str(log.user_id) if log.user_id else "",
            created_at=_as_utc(log.created_at),
            review_time_seconds=float(review_time) if review_time is not None else None,
            result=log.result,
        )


@dataclass
class QuickApprovalAnomaly:
    """A lawyer with repeated sub-threshold reviews."""
    user_id: str
    quick_approval_count: int
    average_review_seconds: float
    min_review_seconds: float
    threshold_seconds: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "quick_approval_count": self.quick_approval_count,
            "average_review_seconds": self.average_review_seconds,
            "min_review_seconds": self.min_review_seconds,
            "threshold_seconds": self.threshold_seconds,
        }


@dataclass
class BulkApprovalAnomaly:
    """A lawyer with a burst of reviews inside one window."""
    user_id: str
    window_start: datetime
    approval_count: int
    window_seconds: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "window_start": self.window_start.isoformat(),
            "approval_count": self.approval_count,
            "window_seconds": self.window_seconds,
        }


@dataclass
class AnomalyReport:
    """Anomaly scan result for one tenant."""
    tenant_id: uuid.UUID
    generated_at: datetime
    lookback_hours: int
    quick_approvals: List[QuickApprovalAnomaly] = field(default_factory=list)
    bulk_approvals: List[BulkApprovalAnomaly] = field(default_factory=list)

    @property
    def has_anomalies(self) -> bool:
        return bool(self.quick_approvals or self.bulk_approvals)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tenant_id": str(self.tenant_id),
            "generated_at": self.generated_at.isoformat(),
            "lookback_hours": self.lookback_hours,
            "quick_approvals": [a.to_dict() for a in self.quick_approvals],
            "bulk_approvals": [a.to_dict() for a in self.bulk_approvals],
        }


# ===========================================
# DETECTORS
# ===========================================

def detect_quick_approvals(
    records: Iterable[ApprovalRecord],
    threshold_seconds: int,
    min_repetitions: int,
) -> List[QuickApprovalAnomaly]:
    """
    Flag actors with more than `min_repetitions` reviews faster than
    `threshold_seconds`.
    """
    quick_times: Dict[str, List[float]] = defaultdict(list)
    for record in records:
        if record.result != AuditResult.SUCCESS or record.review_time_seconds is None:
            continue
        if record.review_time_seconds < threshold_seconds:
            quick_times[record.user_id].append(record.review_time_seconds)

    anomalies = []
    for user_id, times in quick_times.items():
        if len(times) > min_repetitions:
            anomalies.append(QuickApprovalAnomaly(
                user_id=user_id,
                quick_approval_count=len(times),
                average_review_seconds=round(sum(times) / len(times), 2),
                min_review_seconds=min(times),
                threshold_seconds=threshold_seconds,
            ))

    return sorted(anomalies, key=lambda a: a.quick_approval_count, reverse=True)


def detect_bulk_approvals(
    records: Iterable[ApprovalRecord],
    threshold_count: int,
    window_seconds: int,
) -> List[BulkApprovalAnomaly]:
    """
    Flag (actor, window) buckets holding at least `threshold_count` reviews.

    Windows are fixed, aligned to the epoch: bucket = floor(ts / w) * w.
    """
    buckets: Dict[tuple, int] = defaultdict(int)
    for record in records:
        if record.result != AuditResult.SUCCESS:
            continue
        ts = _as_utc(record.created_at).timestamp()
        bucket = int(ts // window_seconds) * window_seconds
        buckets[(record.user_id, bucket)] += 1

    anomalies = [
        BulkApprovalAnomaly(
            user_id=user_id,
            window_start=datetime.fromtimestamp(bucket, tz=timezone.utc),
            approval_count=count,
            window_seconds=window_seconds,
        )
        for (user_id, bucket), count in buckets.items()
        if count >= threshold_count
    ]
    return sorted(anomalies, key=lambda a: (a.window_start, a.user_id))


# ===========================================
# SERVICE
# ===========================================

class ApprovalAnomalyService:
    """Runs the detectors against a tenant's audit log."""

    def __init__(self, db: AsyncSession, audit: AuditService):
        self.db = db
        self.audit = audit

    async def _load_records(self, tenant_id: uuid.UUID, now: Optional[datetime]) -> List[ApprovalRecord]:
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(hours=settings.anomaly_lookback_hours)
        logs = await self.audit.get_draft_approvals(tenant_id, since)
        return [ApprovalRecord.from_audit_log(log) for log in logs]

    async def find_quick_approvals(
        self,
        tenant_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> List[QuickApprovalAnomaly]:
        records = await self._load_records(tenant_id, now)
        return detect_quick_approvals(
            records,
            threshold_seconds=settings.quick_approval_threshold_seconds,
            min_repetitions=settings.quick_approval_min_repetitions,
        )

    async def find_bulk_approvals(
        self,
        tenant_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> List[BulkApprovalAnomaly]:
        records = await self._load_records(tenant_id, now)
        return detect_bulk_approvals(
            records,
            threshold_count=settings.bulk_approval_threshold_count,
            window_seconds=settings.bulk_approval_window_minutes * 60,
        )

    async def scan_tenant(self, tenant_id: uuid.UUID, now: Optional[datetime] = None) -> AnomalyReport:
        """Run both detectors over one tenant's lookback window."""
        now = now or datetime.now(timezone.utc)
        records = await self._load_records(tenant_id, now)

        report = AnomalyReport(
            tenant_id=tenant_id,
            generated_at=now,
            lookback_hours=settings.anomaly_lookback_hours,
            quick_approvals=detect_quick_approvals(
                records,
                threshold_seconds=settings.quick_approval_threshold_seconds,
                min_repetitions=settings.quick_approval_min_repetitions,
            ),
            bulk_approvals=detect_bulk_approvals(
                records,
                threshold_count=settings.bulk_approval_threshold_count,
                window_seconds=settings.bulk_approval_window_minutes * 60,
            ),
        )

        if report.has_anomalies:
            logger.warning(
                f"Approval anomalies in tenant {tenant_id}: "
                f"{len(report.quick_approvals)} quick, {len(report.bulk_approvals)} bulk"
            )
        return report

    async def scan_all_tenants(self, now: Optional[datetime] = None) -> List[AnomalyReport]:
        """Scan every tenant with review activity in the lookback window."""
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(hours=settings.anomaly_lookback_hours)
        reports = []
        for tenant_id in await self.audit.get_active_tenants(since):
            reports.append(await self.scan_tenant(tenant_id, now))
        return reports
