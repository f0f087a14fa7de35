"""
LexGate - Celery Tasks

Celery entry points for scheduled operations.
"""

import asyncio
import logging
from typing import Any, Dict

from celery import shared_task

from lexgate.database import async_session_maker
from lexgate.tasks.scheduled_tasks import scan_approval_anomalies

logger = logging.getLogger(__name__)


def run_async(coro):
    """Helper to run async functions in Celery tasks."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


# ===========================================
# AUDIT TASKS
# ===========================================

@shared_task(name='lexgate.tasks.celery_tasks.scan_approval_anomalies_task')
def scan_approval_anomalies_task() -> Dict[str, Any]:
    """Hourly quick/bulk approval scan across tenants."""
    return run_async(_scan_approval_anomalies())


async def _scan_approval_anomalies() -> Dict[str, Any]:
    async with async_session_maker() as db:
        return await scan_approval_anomalies(db, async_session_maker)
