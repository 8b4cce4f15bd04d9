"""
Deletion loop: executes due DeliveryTickets.

A ticket is claimed with one guarded UPDATE (claimed_at lease), every message is
deleted once ("already gone" counts as done), then the row is removed whatever
the per-message outcome was. A claim older than the lease belongs to a crashed
worker and may be taken again.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from filegate.core.errors import TransportError
from filegate.models.delivery_ticket import DeliveryTicket
from filegate.schemas.vault import TickResult
from filegate.services.telegram.base import DeleteResult, MessagingGateway
from filegate.utils.metrics import messages_deleted_total, tickets_processed_total

logger = logging.getLogger(__name__)

COMPLETED = "completed"
PARTIAL = "partial"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TicketExecutor:
    def __init__(
        self,
        db: Session,
        gateway: MessagingGateway,
        lease_seconds: int = 300,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.db = db
        self.gateway = gateway
        self.lease_seconds = lease_seconds
        self.clock = clock

    def _claimable(self, now: datetime):
        stale = now - timedelta(seconds=self.lease_seconds)
        return (
            DeliveryTicket.delete_at <= now,
            or_(DeliveryTicket.claimed_at.is_(None), DeliveryTicket.claimed_at < stale),
        )

    def due_ticket_ids(self, limit: int = 100) -> list[str]:
        now = self.clock()
        rows = (
            self.db.query(DeliveryTicket.id)
            .filter(*self._claimable(now))
            .order_by(DeliveryTicket.delete_at.asc())
            .limit(limit)
            .all()
        )
        return [row[0] for row in rows]

    def run_due(self, limit: int = 100) -> TickResult:
        result = TickResult()
        ids = self.due_ticket_ids(limit)
        result.due = len(ids)
        for ticket_id in ids:
            try:
                outcome, deleted = self.execute(ticket_id)
            except Exception:
                logger.exception("ticket_execution_crashed", extra={"ticket_id": ticket_id})
                self.db.rollback()
                result.skipped += 1
                continue
            if outcome == COMPLETED:
                result.completed += 1
            elif outcome == PARTIAL:
                result.partial += 1
            else:
                result.skipped += 1
            result.deleted_messages += deleted
        return result

    def claim(self, ticket_id: str) -> bool:
        now = self.clock()
        res = self.db.execute(
            update(DeliveryTicket)
            .where(DeliveryTicket.id == ticket_id, *self._claimable(now))
            .values(claimed_at=now)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return res.rowcount == 1

    def execute(self, ticket_id: str) -> tuple[str | None, int]:
        """
        Returns (outcome, deleted_count). Outcome is None when the ticket is gone,
        not yet due or held by another worker.
        """
        if not self.claim(ticket_id):
            return None, 0

        ticket = (
            self.db.query(DeliveryTicket)
            .populate_existing()
            .filter(DeliveryTicket.id == ticket_id)
            .one_or_none()
        )
        if ticket is None:
            return None, 0

        chat_id = ticket.chat_id
        message_ids = list(ticket.message_ids or [])
        deleted = failed = 0
        for message_id in message_ids:
            try:
                status = self.gateway.delete_message(chat_id, message_id)
            except TransportError as e:
                failed += 1
                messages_deleted_total.labels(result="error").inc()
                logger.warning(
                    "ticket_message_delete_failed",
                    extra={"ticket_id": ticket_id, "chat_id": chat_id, "message_id": message_id, "error": str(e)},
                )
                continue
            deleted += 1
            messages_deleted_total.labels(
                result="already_gone" if status == DeleteResult.ALREADY_GONE else "ok"
            ).inc()

        # single attempt per ticket: dropped even if some deletions failed
        self.db.query(DeliveryTicket).filter(DeliveryTicket.id == ticket_id).delete(
            synchronize_session=False
        )
        self.db.commit()

        outcome = COMPLETED if failed == 0 else PARTIAL
        tickets_processed_total.labels(result=outcome).inc()
        logger.info(
            f"ticket_executed: {outcome}",
            extra={"ticket_id": ticket_id, "chat_id": chat_id, "count": deleted},
        )
        return outcome, deleted
