import logging
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from filegate.core.errors import DuplicateKeyError
from filegate.models.content_record import ContentRecord

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContentRegistry:
    """
    Durable store of content records. Every mutation is a single statement committed
    on its own, so concurrent callers never race on a read-modify-write.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = _utcnow) -> None:
        self.db = db
        self.clock = clock

    def create(self, record: ContentRecord) -> ContentRecord:
        """Insert a new record. Raises DuplicateKeyError if the key is taken (existing row untouched)."""
        if record.created_at is None:
            record.created_at = self.clock()
        try:
            self.db.add(record)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateKeyError(record.key)
        self.db.refresh(record)
        logger.info(
            "content_created",
            extra={"key": record.key, "source_post_id": record.source_post_id},
        )
        return record

    def find_active_by_key(self, key: str) -> ContentRecord | None:
        return (
            self.db.query(ContentRecord)
            .populate_existing()
            .filter(ContentRecord.key == key, ContentRecord.active.is_(True))
            .one_or_none()
        )

    def find_active_by_source_post_id(self, source_post_id: int) -> ContentRecord | None:
        return (
            self.db.query(ContentRecord)
            .filter(
                ContentRecord.source_post_id == source_post_id,
                ContentRecord.active.is_(True),
            )
            .order_by(ContentRecord.created_at)
            .first()
        )

    def increment_download(self, key: str) -> ContentRecord | None:
        """Atomic +1 on an active record. None if missing or deactivated."""
        result = self.db.execute(
            update(ContentRecord)
            .where(ContentRecord.key == key, ContentRecord.active.is_(True))
            .values(
                download_count=ContentRecord.download_count + 1,
                last_accessed_at=self.clock(),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount == 0:
            return None
        return (
            self.db.query(ContentRecord)
            .populate_existing()
            .filter(ContentRecord.key == key)
            .one_or_none()
        )

    def deactivate_by_source_post_id(self, source_post_id: int) -> int:
        """Soft-delete every active record of a post. Returns how many changed (0 is fine)."""
        result = self.db.execute(
            update(ContentRecord)
            .where(
                ContentRecord.source_post_id == source_post_id,
                ContentRecord.active.is_(True),
            )
            .values(active=False)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        changed = result.rowcount or 0
        if changed:
            logger.info(
                "content_deactivated",
                extra={"source_post_id": source_post_id, "count": changed},
            )
        return changed

    def list_active(self, limit: int = 10, offset: int = 0) -> list[ContentRecord]:
        return (
            self.db.query(ContentRecord)
            .filter(ContentRecord.active.is_(True))
            .order_by(ContentRecord.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def key_exists(self, key: str) -> bool:
        """True for any record ever issued under this key, active or not."""
        return self.db.query(ContentRecord.key).filter(ContentRecord.key == key).first() is not None

    def stats(self) -> dict[str, Any]:
        total_files, total_downloads, total_size, avg_downloads = self.db.query(
            func.count(ContentRecord.key),
            func.coalesce(func.sum(ContentRecord.download_count), 0),
            func.coalesce(func.sum(ContentRecord.size_bytes), 0),
            func.coalesce(func.avg(ContentRecord.download_count), 0),
        ).one()
        active_files = (
            self.db.query(func.count(ContentRecord.key))
            .filter(ContentRecord.active.is_(True))
            .scalar()
        )
        return {
            "total_files": int(total_files or 0),
            "active_files": int(active_files or 0),
            "total_downloads": int(total_downloads or 0),
            "total_size": int(total_size or 0),
            "average_downloads": float(avg_downloads or 0),
        }
