"""
LexGate - Background Tasks Package

Celery background tasks.
"""

from lexgate.tasks.scheduled_tasks import (
    scan_approval_anomalies,
    TaskRunner,
)

__all__ = [
    "scan_approval_anomalies",
    "TaskRunner",
]
