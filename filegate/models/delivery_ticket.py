from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import BigInteger, Column, DateTime, Index, JSON, String
from sqlalchemy.dialects.postgresql import JSONB

from filegate.db.base import Base


class DeliveryTicket(Base):
    """Durable obligation to delete delivered messages once delete_at has passed."""

    __tablename__ = "delivery_tickets"
    __table_args__ = (
        Index("ix_delivery_tickets_delete_at_chat", "delete_at", "chat_id"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    chat_id = Column(BigInteger, nullable=False, index=True)
    message_ids = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)
    delete_at = Column(DateTime(timezone=True), nullable=False)
    # Set when a worker takes the ticket; stale claims are re-taken after the lease.
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
