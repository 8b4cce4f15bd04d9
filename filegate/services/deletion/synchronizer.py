"""
Source post deleted -> content records deactivated.

Two bindings feed on_source_deleted: a push signal (internal endpoint) and the
periodic reconcile() probe over known live posts. Both are idempotent.
"""
import logging
from typing import Iterable

from filegate.core.errors import TransportError
from filegate.services.content.service import ContentRegistry
from filegate.services.content.source_posts import SourcePostStore
from filegate.services.telegram.base import SourcePostProbe
from filegate.utils.metrics import content_deactivated_total

logger = logging.getLogger(__name__)


class DeletionSynchronizer:
    def __init__(
        self,
        registry: ContentRegistry,
        source_posts: SourcePostStore,
        probe: SourcePostProbe | None = None,
    ) -> None:
        self.registry = registry
        self.source_posts = source_posts
        self.probe = probe

    def on_source_deleted(self, source_post_ids: Iterable[int]) -> int:
        """Deactivate records of every given post. Returns total records changed."""
        total = 0
        for source_post_id in source_post_ids:
            changed = self.registry.deactivate_by_source_post_id(source_post_id)
            self.source_posts.mark_deleted(source_post_id)
            if changed:
                content_deactivated_total.inc(changed)
            total += changed
        return total

    def reconcile(self, limit: int = 100) -> dict:
        """Probe the least recently checked live posts; missing ones count as deleted."""
        if self.probe is None:
            return {"checked": 0, "deleted": 0, "errors": 0, "deactivated": 0}

        checked = deleted = errors = deactivated = 0
        for post in self.source_posts.list_live(limit):
            source_post_id = post.source_post_id
            chat_id = post.chat_id
            try:
                exists = self.probe.post_exists(chat_id, source_post_id)
            except TransportError as e:
                errors += 1
                logger.warning(
                    "reconcile_probe_failed",
                    extra={"source_post_id": source_post_id, "error": str(e)},
                )
                continue
            checked += 1
            self.source_posts.touch_checked(source_post_id)
            if not exists:
                deleted += 1
                deactivated += self.on_source_deleted([source_post_id])
                logger.info("source_post_missing", extra={"source_post_id": source_post_id})

        return {"checked": checked, "deleted": deleted, "errors": errors, "deactivated": deactivated}
