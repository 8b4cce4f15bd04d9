"""
Internal API (X-Admin-Key): push deletion signal, cron-driven deletion run, stats.
"""
import logging
import secrets
from typing import Iterator

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from filegate.core.config import settings
from filegate.db.session import get_db
from filegate.models.delivery_ticket import DeliveryTicket
from filegate.services.content.service import ContentRegistry
from filegate.services.content.source_posts import SourcePostStore
from filegate.services.deletion.executor import TicketExecutor
from filegate.services.deletion.synchronizer import DeletionSynchronizer
from filegate.services.telegram.client import TelegramClient
from filegate.utils.filesize import format_file_size

logger = logging.getLogger(__name__)


def require_admin_key(x_admin_key: str | None = Header(default=None)) -> None:
    expected = settings.admin_api_key
    if not expected:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin API disabled")
    if not x_admin_key or not secrets.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin key")


def get_telegram() -> Iterator[TelegramClient]:
    client = TelegramClient()
    try:
        yield client
    finally:
        client.close()


router = APIRouter(dependencies=[Depends(require_admin_key)])


class SourceDeletedIn(BaseModel):
    source_post_ids: list[int] = Field(..., min_length=1)


@router.post("/internal/source-deleted")
def source_deleted(payload: SourceDeletedIn, db: Session = Depends(get_db)) -> dict:
    """Push binding of source-post deletion."""
    synchronizer = DeletionSynchronizer(ContentRegistry(db), SourcePostStore(db))
    deactivated = synchronizer.on_source_deleted(payload.source_post_ids)
    logger.info("source_deleted_push", extra={"count": deactivated})
    return {"deactivated": deactivated}


@router.post("/internal/tick")
def tick(
    db: Session = Depends(get_db),
    telegram: TelegramClient = Depends(get_telegram),
) -> dict:
    """Run the deletion loop once (for cron setups without Celery beat)."""
    executor = TicketExecutor(db, telegram, lease_seconds=settings.ticket_claim_lease_seconds)
    return executor.run_due(settings.ticket_batch_size).model_dump()


@router.get("/admin/stats")
def stats(db: Session = Depends(get_db)) -> dict:
    data = ContentRegistry(db).stats()
    data["total_size_human"] = format_file_size(data["total_size"])
    data["pending_tickets"] = int(db.query(func.count(DeliveryTicket.id)).scalar() or 0)
    return data
