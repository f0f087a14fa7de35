"""
LexGate - Background Tasks

Task definitions that run either directly (development, tests) or via the
Celery wrappers in celery_tasks (production).
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lexgate.services.approval_anomaly_service import ApprovalAnomalyService
from lexgate.services.audit_service import AuditService

logger = logging.getLogger(__name__)


# ===========================================
# SCHEDULED TASK: APPROVAL ANOMALY SCAN
# ===========================================

async def scan_approval_anomalies(
    db: AsyncSession,
    session_factory: Optional[async_sessionmaker] = None,
    now: Optional[datetime] = None,
) -> dict:
    """
    Run the quick/bulk approval detectors for every active tenant.
    Should run hourly. Read-only.
    """
    if session_factory is None:
        from lexgate.database import async_session_maker
        session_factory = async_session_maker

    service = ApprovalAnomalyService(db, AuditService(db, session_factory))
    reports = await service.scan_all_tenants(now or datetime.now(timezone.utc))

    flagged = [report for report in reports if report.has_anomalies]
    for report in flagged:
        logger.warning(f"Approval anomaly report: {report.to_dict()}")

    logger.info(f"Scanned {len(reports)} tenants, {len(flagged)} with approval anomalies")
    return {
        "tenants_scanned": len(reports),
        "tenants_flagged": len(flagged),
        "reports": [report.to_dict() for report in flagged],
    }


class TaskRunner:
    """
    Simple task runner for development.
    In production, replace with Celery.
    """

    def __init__(self, db_session_factory: async_sessionmaker):
        self.db_session_factory = db_session_factory

    async def run_task(self, task_func, *args, **kwargs):
        """Run a single task with a new database session."""
        async with self.db_session_factory() as db:
            try:
                result = await task_func(db, *args, **kwargs)
                logger.info(f"Task {task_func.__name__} completed")
                return result
            except Exception as e:
                logger.error(f"Task {task_func.__name__} failed: {e}")
                raise

    async def run_scheduled_tasks(self) -> dict:
        """Run all scheduled tasks (for development/testing)."""
        results = {}

        tasks = [
            ("scan_approval_anomalies", scan_approval_anomalies),
        ]

        for name, task_func in tasks:
            try:
                result = await self.run_task(task_func, self.db_session_factory)
                results[name] = {"status": "success", "result": result}
            except Exception as e:
                results[name] = {"status": "error", "error": str(e)}

        return results
