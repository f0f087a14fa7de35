"""
Tests for the scheduled approval anomaly scan
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from lexgate.celery_app import celery_app
from lexgate.models.audit import AuditAction, AuditLog, AuditResult
from lexgate.tasks.scheduled_tasks import TaskRunner, scan_approval_anomalies


async def add_quick_approvals(db_session, tenant_id, user_id, count, at):
    for i in range(count):
        db_session.add(AuditLog(
            tenant_id=tenant_id,
            user_id=user_id,
            user_role="LAWYER",
            action=AuditAction.DRAFT_APPROVE,
            resource_type="draft",
            resource_id=str(uuid4()),
            result=AuditResult.SUCCESS,
            details={"action": "DRAFT_APPROVE", "review_time_seconds": 1.5},
            created_at=at + timedelta(minutes=5 * i),
        ))
    await db_session.commit()


class TestScanApprovalAnomalies:

    @pytest.mark.asyncio
    async def test_nothing_to_scan(self, db_session, session_factory):
        result = await scan_approval_anomalies(db_session, session_factory)
        assert result == {"tenants_scanned": 0, "tenants_flagged": 0, "reports": []}

    @pytest.mark.asyncio
    async def test_flagged_tenant_reported(self, db_session, session_factory, tenant_id, lawyer, caplog):
        now = datetime.now(timezone.utc)
        await add_quick_approvals(db_session, tenant_id, lawyer.id, 4, now - timedelta(hours=2))

        with caplog.at_level("WARNING", logger="lexgate.tasks.scheduled_tasks"):
            result = await scan_approval_anomalies(db_session, session_factory, now=now)

        assert result["tenants_scanned"] == 1
        assert result["tenants_flagged"] == 1
        report = result["reports"][0]
        assert report["tenant_id"] == str(tenant_id)
        assert report["quick_approvals"][0]["user_id"] == str(lawyer.id)
        assert "Approval anomaly report" in caplog.text


class TestTaskRunner:

    @pytest.mark.asyncio
    async def test_run_scheduled_tasks(self, db_session, session_factory, tenant_id, lawyer):
        await add_quick_approvals(db_session, tenant_id, lawyer.id, 4, datetime.now(timezone.utc) - timedelta(hours=1))

        results = await TaskRunner(session_factory).run_scheduled_tasks()
        scan = results["scan_approval_anomalies"]
        assert scan["status"] == "success"
        assert scan["result"]["tenants_flagged"] == 1

    @pytest.mark.asyncio
    async def test_failing_task_propagates(self, session_factory):
        async def broken(db):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await TaskRunner(session_factory).run_task(broken)


class TestCelerySchedule:

    def test_scan_is_scheduled_hourly(self):
        entry = celery_app.conf.beat_schedule["scan-approval-anomalies"]
        assert entry["task"] == "lexgate.tasks.celery_tasks.scan_approval_anomalies_task"
