"""
LexGate - Celery Configuration

Celery configuration for background task processing.
Uses Redis as the message broker and result backend.
"""

from celery import Celery
from celery.schedules import crontab

from lexgate.config import settings


# Create Celery app
celery_app = Celery(
    'lexgate',
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=['lexgate.tasks.celery_tasks'],
)

# Celery configuration
celery_app.conf.update(
    # Serialization
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',

    # Timezone
    timezone='Asia/Tokyo',
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,  # 5 minutes
    task_soft_time_limit=240,

    # Worker settings
    worker_prefetch_multiplier=1,

    # Result backend settings
    result_expires=86400,  # 24 hours

    # Beat schedule for periodic tasks
    beat_schedule={
        # Quick/bulk approval scan every hour
        'scan-approval-anomalies': {
            'task': 'lexgate.tasks.celery_tasks.scan_approval_anomalies_task',
            'schedule': crontab(minute=5),
        },
    },
)


celery_app.conf.task_routes = {
    'lexgate.tasks.celery_tasks.*': {'queue': 'default'},
}
