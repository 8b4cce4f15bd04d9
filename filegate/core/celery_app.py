"""
Celery application: broker and result backend from settings.
Tasks are in filegate.workers.tasks (deletion loop, reconciliation).
"""
from celery import Celery
from celery.schedules import crontab

from filegate.core.config import settings

celery_app = Celery(
    "filegate",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "filegate.workers.tasks.deletions",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_track_started=True,
    task_time_limit=600,
    result_expires=3600,
    beat_schedule={
        "process-due-delivery-tickets": {
            "task": "filegate.workers.tasks.deletions.process_due_tickets",
            "schedule": settings.ticket_scan_interval_seconds,
        },
        "reconcile-source-posts": {
            "task": "filegate.workers.tasks.deletions.reconcile_source_posts",
            "schedule": crontab(minute=f"*/{settings.reconcile_interval_minutes}"),
        },
    },
)

celery_app.autodiscover_tasks(["filegate.workers.tasks"])
