import logging
from datetime import datetime, timedelta, timezone
from typing import Callable
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from filegate.core.errors import (
    ContentNotFoundError,
    DeliveryFailedError,
    GateError,
    NoPendingRequestError,
    TransportError,
)
from filegate.gate.membership import MembershipGate
from filegate.models.content_record import ContentRecord
from filegate.models.delivery_ticket import DeliveryTicket
from filegate.schemas.vault import DeliveryOutcome
from filegate.services.content.service import ContentRegistry
from filegate.services.pending.service import PendingRequestStore
from filegate.services.telegram.base import MessagingGateway
from filegate.utils.metrics import deliveries_total

logger = logging.getLogger(__name__)

DEFAULT_NOTICE = "⏱️ This file will be deleted from the chat in {seconds} seconds."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeliveryScheduler:
    """
    Gate check, copy to the requester, download counter, durable deletion ticket.

    on_ticket_scheduled(ticket_id, countdown_seconds) is an optional fast path
    (a delayed Celery task); the ticket row is what guarantees deletion.
    """

    def __init__(
        self,
        db: Session,
        registry: ContentRegistry,
        gate: MembershipGate,
        pending: PendingRequestStore,
        gateway: MessagingGateway,
        grace_seconds: int = 30,
        notice_text: str = DEFAULT_NOTICE,
        clock: Callable[[], datetime] = _utcnow,
        on_ticket_scheduled: Callable[[str, int], None] | None = None,
    ) -> None:
        self.db = db
        self.registry = registry
        self.gate = gate
        self.pending = pending
        self.gateway = gateway
        self.grace_seconds = grace_seconds
        self.notice_text = notice_text
        self.clock = clock
        self.on_ticket_scheduled = on_ticket_scheduled

    def deliver(self, user_id: int, key: str, chat_id: int | None = None) -> DeliveryOutcome:
        """
        Raises ContentNotFoundError (missing or deactivated, same thing for the caller),
        GateError (request remembered for re-check) or DeliveryFailedError (retryable).
        """
        target_chat = chat_id if chat_id is not None else user_id

        record = self.registry.find_active_by_key(key)
        if record is None:
            deliveries_total.labels(outcome="not_found").inc()
            raise ContentNotFoundError(key)

        result = self.gate.evaluate(user_id)
        if not result.satisfied:
            self.pending.remember(user_id, key)
            deliveries_total.labels(outcome="gated").inc()
            logger.info("delivery_gated", extra={"user_id": user_id, "key": key})
            raise GateError(result)

        return self._send(user_id, record, target_chat)

    def recheck(self, user_id: int) -> DeliveryOutcome:
        """
        Replay the pending request once. A request that fails in transport goes back
        to the store so the next re-check can try again.
        """
        key = self.pending.consume(user_id)
        if key is None:
            result = self.gate.evaluate(user_id)
            if not result.satisfied:
                raise GateError(result)
            raise NoPendingRequestError()
        try:
            return self.deliver(user_id, key)
        except DeliveryFailedError:
            self.pending.remember(user_id, key)
            raise

    def schedule_deletion(self, chat_id: int, message_ids: list[int]) -> DeliveryTicket:
        now = self.clock()
        ticket = DeliveryTicket(
            id=str(uuid4()),
            chat_id=chat_id,
            message_ids=list(message_ids),
            delete_at=now + timedelta(seconds=self.grace_seconds),
            created_at=now,
        )
        ticket_id = ticket.id
        self.db.add(ticket)
        self.db.commit()
        if self.on_ticket_scheduled is not None:
            try:
                self.on_ticket_scheduled(ticket_id, self.grace_seconds)
            except Exception as e:
                # Beat scan picks the ticket up anyway
                logger.warning(
                    "ticket_fast_path_failed",
                    extra={"ticket_id": ticket_id, "error": str(e)},
                )
        return ticket

    def _send(self, user_id: int, record: ContentRecord, chat_id: int) -> DeliveryOutcome:
        key = record.key
        try:
            message_ids = list(self.gateway.copy_content(record.kind, dict(record.payload_ref or {}), chat_id))
        except TransportError as e:
            deliveries_total.labels(outcome="failed").inc()
            logger.warning(
                "delivery_copy_failed",
                extra={"user_id": user_id, "key": key, "error": str(e)},
            )
            raise DeliveryFailedError(key, e) from e

        notice = self.notice_text.format(seconds=self.grace_seconds)
        try:
            message_ids.append(self.gateway.send_message(chat_id, notice))
        except TransportError as e:
            logger.warning(
                "delivery_notice_failed",
                extra={"user_id": user_id, "key": key, "error": str(e)},
            )

        # Ticket first: the copy is in the user's chat and must always be cleaned up
        ticket = self.schedule_deletion(chat_id, message_ids)

        try:
            updated = self.registry.increment_download(key)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("download_count_failed", extra={"user_id": user_id, "key": key})
            updated = None
        else:
            if updated is None:
                # Deactivated while copying: the user got it, the ticket still cleans up
                logger.info("delivery_after_deactivation", extra={"user_id": user_id, "key": key})
        download_count = updated.download_count if updated is not None else None

        deliveries_total.labels(outcome="delivered").inc()
        logger.info(
            "delivery_sent",
            extra={"user_id": user_id, "key": key, "chat_id": chat_id, "ticket_id": ticket.id},
        )
        return DeliveryOutcome(
            key=key,
            chat_id=chat_id,
            message_ids=message_ids,
            ticket_id=ticket.id,
            delete_at=ticket.delete_at,
            download_count=download_count,
        )
