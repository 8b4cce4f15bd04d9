"""
Wiring: build VaultService from settings for one DB session.
Collaborators can be passed in (tests, workers that already hold a client).
"""
from typing import Callable

import redis
from sqlalchemy.orm import Session

from filegate.core.config import settings
from filegate.gate.config import get_gate_channels, get_gate_policy
from filegate.gate.membership import MembershipGate
from filegate.services.annotation.service import PostAnnotator
from filegate.services.content.service import ContentRegistry
from filegate.services.content.source_posts import SourcePostStore
from filegate.services.deletion.executor import TicketExecutor
from filegate.services.deletion.synchronizer import DeletionSynchronizer
from filegate.services.delivery.service import DeliveryScheduler
from filegate.services.keys.service import KeyGenerator
from filegate.services.pending.service import PendingRequestStore
from filegate.services.telegram.client import TelegramClient
from filegate.services.vault.service import VaultService

_redis_client: redis.Redis | None = None


def get_redis() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.Redis.from_url(settings.redis_url, decode_responses=True)
    return _redis_client


def build_vault(
    db: Session,
    telegram: TelegramClient | None = None,
    redis_client: redis.Redis | None = None,
    on_ticket_scheduled: Callable[[str, int], None] | None = None,
) -> VaultService:
    telegram = telegram or TelegramClient()
    registry = ContentRegistry(db)
    source_posts = SourcePostStore(db)
    pending = PendingRequestStore(
        redis_client or get_redis(),
        settings.state_secret,
        ttl_seconds=settings.pending_request_ttl,
    )
    gate = MembershipGate(telegram, get_gate_channels(), get_gate_policy())
    delivery = DeliveryScheduler(
        db,
        registry,
        gate,
        pending,
        telegram,
        grace_seconds=settings.delivery_grace_seconds,
        notice_text=settings.delivery_notice_text,
        on_ticket_scheduled=on_ticket_scheduled,
    )
    probe = telegram if settings.reconcile_chat_id else None
    annotator = None
    if settings.telegram_bot_username:
        annotator = PostAnnotator(
            telegram,
            settings.telegram_bot_username,
            max_attempts=settings.annotation_max_attempts,
            base_delay=settings.annotation_base_delay_seconds,
            max_retry_after=settings.annotation_max_retry_after_seconds,
        )
    return VaultService(
        keys=KeyGenerator(settings.key_length),
        registry=registry,
        source_posts=source_posts,
        delivery=delivery,
        synchronizer=DeletionSynchronizer(registry, source_posts, probe),
        executor=TicketExecutor(db, telegram, lease_seconds=settings.ticket_claim_lease_seconds),
        annotator=annotator,
        max_key_attempts=settings.key_issue_max_attempts,
        ticket_batch_size=settings.ticket_batch_size,
    )
