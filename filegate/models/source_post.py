from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime

from filegate.db.base import Base


class SourcePost(Base):
    """Known posts of the source channel (snapshot used by reconciliation)."""

    __tablename__ = "source_posts"

    source_post_id = Column(BigInteger, primary_key=True, autoincrement=False)
    chat_id = Column(BigInteger, nullable=False)
    seen_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    last_checked_at = Column(DateTime(timezone=True), nullable=True, index=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)
