"""
Celery tasks of the deletion side:
- process_due_tickets (beat, every ticket_scan_interval_seconds): durable self-destruct loop.
- execute_ticket (countdown = grace period): fast path for a single ticket.
- reconcile_source_posts (beat): probe live source posts, deactivate deleted ones.
"""
import logging

from filegate.core.celery_app import celery_app
from filegate.core.config import settings
from filegate.db.session import SessionLocal
from filegate.services.content.service import ContentRegistry
from filegate.services.content.source_posts import SourcePostStore
from filegate.services.deletion.executor import TicketExecutor
from filegate.services.deletion.synchronizer import DeletionSynchronizer
from filegate.services.telegram.client import TelegramClient

logger = logging.getLogger(__name__)


def schedule_ticket(ticket_id: str, countdown: int) -> None:
    """on_ticket_scheduled hook for DeliveryScheduler."""
    celery_app.send_task(
        "filegate.workers.tasks.deletions.execute_ticket",
        args=[ticket_id],
        countdown=countdown,
    )


@celery_app.task(
    name="filegate.workers.tasks.deletions.process_due_tickets",
    time_limit=120,
    soft_time_limit=110,
)
def process_due_tickets() -> dict:
    db = SessionLocal()
    telegram = TelegramClient()
    try:
        executor = TicketExecutor(db, telegram, lease_seconds=settings.ticket_claim_lease_seconds)
        result = executor.run_due(settings.ticket_batch_size).model_dump()
        if result["due"]:
            logger.info("process_due_tickets_done", extra={"count": result["due"]})
        return result
    except Exception:
        db.rollback()
        logger.exception("process_due_tickets_error")
        return {"ok": False, "error": "exception"}
    finally:
        telegram.close()
        db.close()


@celery_app.task(
    name="filegate.workers.tasks.deletions.execute_ticket",
    time_limit=60,
    soft_time_limit=55,
)
def execute_ticket(ticket_id: str) -> dict:
    db = SessionLocal()
    telegram = TelegramClient()
    try:
        executor = TicketExecutor(db, telegram, lease_seconds=settings.ticket_claim_lease_seconds)
        outcome, deleted = executor.execute(ticket_id)
        return {"ticket_id": ticket_id, "outcome": outcome, "deleted": deleted}
    except Exception:
        db.rollback()
        logger.exception("execute_ticket_error", extra={"ticket_id": ticket_id})
        return {"ticket_id": ticket_id, "outcome": None, "error": "exception"}
    finally:
        telegram.close()
        db.close()


@celery_app.task(
    name="filegate.workers.tasks.deletions.reconcile_source_posts",
    time_limit=300,
    soft_time_limit=290,
)
def reconcile_source_posts() -> dict:
    if not settings.reconcile_chat_id:
        return {"ok": True, "skipped": "reconcile_chat_id not configured"}
    db = SessionLocal()
    telegram = TelegramClient()
    try:
        registry = ContentRegistry(db)
        synchronizer = DeletionSynchronizer(registry, SourcePostStore(db), probe=telegram)
        result = synchronizer.reconcile(settings.reconcile_batch_size)
        logger.info("reconcile_source_posts_done", extra={"count": result["deleted"]})
        return result
    except Exception:
        db.rollback()
        logger.exception("reconcile_source_posts_error")
        return {"ok": False, "error": "exception"}
    finally:
        telegram.close()
        db.close()
