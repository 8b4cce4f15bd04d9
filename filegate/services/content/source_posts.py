from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from filegate.models.source_post import SourcePost


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SourcePostStore:
    """Durable set of known source posts (replaces in-memory seen-message tracking)."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = _utcnow) -> None:
        self.db = db
        self.clock = clock

    def mark_seen(self, source_post_id: int, chat_id: int) -> bool:
        """Idempotent insert. True if the post was not known before."""
        if self.db.get(SourcePost, source_post_id) is not None:
            return False
        try:
            self.db.add(SourcePost(source_post_id=source_post_id, chat_id=chat_id, seen_at=self.clock()))
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return False
        return True

    def mark_deleted(self, source_post_id: int) -> bool:
        result = self.db.execute(
            update(SourcePost)
            .where(SourcePost.source_post_id == source_post_id, SourcePost.deleted_at.is_(None))
            .values(deleted_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return bool(result.rowcount)

    def touch_checked(self, source_post_id: int) -> None:
        self.db.execute(
            update(SourcePost)
            .where(SourcePost.source_post_id == source_post_id)
            .values(last_checked_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

    def list_live(self, limit: int = 100) -> list[SourcePost]:
        """Live posts, never-checked first, then least recently checked."""
        return (
            self.db.query(SourcePost)
            .filter(SourcePost.deleted_at.is_(None))
            .order_by(
                SourcePost.last_checked_at.is_(None).desc(),
                SourcePost.last_checked_at.asc(),
                SourcePost.source_post_id.asc(),
            )
            .limit(limit)
            .all()
        )
