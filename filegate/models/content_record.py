from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Integer, JSON, String
from sqlalchemy.dialects.postgresql import JSONB

from filegate.db.base import Base

CONTENT_KINDS = ("document", "photo", "video", "audio", "text")


class ContentRecord(Base):
    __tablename__ = "content_records"

    key = Column(String, primary_key=True)
    source_post_id = Column(BigInteger, nullable=False, index=True)
    kind = Column(String, nullable=False)  # document, photo, video, audio, text
    # Transport handle: {"file_id": ..., "from_chat_id": ..., "message_id": ...}
    payload_ref = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)
    display_name = Column(String, nullable=False, default="")
    size_bytes = Column(BigInteger, nullable=False, default=0)
    download_count = Column(Integer, nullable=False, default=0)
    last_accessed_at = Column(DateTime(timezone=True), nullable=True)
    active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
