"""
VaultService: фасад для входящих событий: новый пост, запрос ключа, повторная
проверка подписки, удаление поста-источника, тик цикла удаления.
Бот, Celery и internal API вызывают только его.
"""
import logging

from filegate.core.errors import ContentNotFoundError, DuplicateKeyError, KeyIssuanceError
from filegate.models.content_record import ContentRecord
from filegate.schemas.vault import ContentMeta, DeliveryOutcome
from filegate.services.annotation.service import PostAnnotator
from filegate.services.content.service import ContentRegistry
from filegate.services.content.source_posts import SourcePostStore
from filegate.services.deletion.executor import TicketExecutor
from filegate.services.deletion.synchronizer import DeletionSynchronizer
from filegate.services.delivery.service import DeliveryScheduler
from filegate.services.keys.service import KeyGenerator
from filegate.utils.metrics import content_issued_total, key_collisions_total

logger = logging.getLogger(__name__)


class VaultService:
    def __init__(
        self,
        keys: KeyGenerator,
        registry: ContentRegistry,
        source_posts: SourcePostStore,
        delivery: DeliveryScheduler,
        synchronizer: DeletionSynchronizer,
        executor: TicketExecutor,
        annotator: PostAnnotator | None = None,
        max_key_attempts: int = 5,
        ticket_batch_size: int = 100,
    ) -> None:
        self.keys = keys
        self.registry = registry
        self.source_posts = source_posts
        self.delivery = delivery
        self.synchronizer = synchronizer
        self.executor = executor
        self.annotator = annotator
        self.max_key_attempts = max_key_attempts
        self.ticket_batch_size = ticket_batch_size

    def on_new_post(self, meta: ContentMeta) -> str:
        """
        Issue a key for a source post and annotate the post with it.
        Same post seen twice -> same key, no second annotation.
        """
        self.source_posts.mark_seen(meta.source_post_id, meta.chat_id)
        existing = self.registry.find_active_by_source_post_id(meta.source_post_id)
        if existing is not None:
            logger.info(
                "content_already_issued",
                extra={"source_post_id": meta.source_post_id, "key": existing.key},
            )
            return existing.key

        key = self._issue_record(meta)
        content_issued_total.labels(kind=meta.kind).inc()
        logger.info("content_issued", extra={"source_post_id": meta.source_post_id, "key": key})

        if self.annotator is not None:
            self.annotator.annotate(
                meta.chat_id, meta.source_post_id, key, meta.kind, meta.caption
            )
        return key

    def _issue_record(self, meta: ContentMeta) -> str:
        for attempt in range(1, self.max_key_attempts + 1):
            key = self.keys.issue()
            record = ContentRecord(
                key=key,
                source_post_id=meta.source_post_id,
                kind=meta.kind,
                payload_ref=dict(meta.payload_ref),
                display_name=meta.display_name or "",
                size_bytes=meta.size_bytes or 0,
                download_count=0,
                active=True,
            )
            try:
                self.registry.create(record)
            except DuplicateKeyError:
                key_collisions_total.inc()
                logger.warning("key_collision", extra={"key": key, "attempt": attempt})
                continue
            return key

        logger.error(
            "key_issuance_exhausted",
            extra={"source_post_id": meta.source_post_id, "attempt": self.max_key_attempts},
        )
        raise KeyIssuanceError(meta.source_post_id, self.max_key_attempts)

    def on_request(self, user_id: int, raw_key: str, chat_id: int | None = None) -> DeliveryOutcome:
        key = KeyGenerator.normalize(raw_key)
        if not key:
            raise ContentNotFoundError(key)
        return self.delivery.deliver(user_id, key, chat_id)

    def on_recheck(self, user_id: int) -> DeliveryOutcome:
        """Raises NoPendingRequestError when there is nothing to replay."""
        return self.delivery.recheck(user_id)

    def on_source_deleted(self, source_post_id: int) -> int:
        return self.synchronizer.on_source_deleted([source_post_id])

    def reconcile(self, limit: int = 100) -> dict:
        return self.synchronizer.reconcile(limit)

    def tick(self) -> dict:
        """One deletion-loop run over due tickets."""
        return self.executor.run_due(self.ticket_batch_size).model_dump()

    def stats(self) -> dict:
        return self.registry.stats()
