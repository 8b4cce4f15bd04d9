"""
Caption annotation of source posts: append key and direct link to the post caption.
Non-critical write: retried with bounded exponential backoff, then a reply message
in the source channel is used instead. Never raises to the intake path.
"""
import logging
import time
from typing import Callable

from filegate.core.errors import ForbiddenError, MessageGoneError, RateLimitedError, TransportError
from filegate.services.keys.service import build_direct_link
from filegate.services.telegram.base import MessagingGateway

logger = logging.getLogger(__name__)

CAPTION_LIMIT = 1024

ANNOTATED = "annotated"
FALLBACK = "fallback"
FAILED = "failed"


def build_annotation(key: str, link: str) -> str:
    return f"🔑 Key: {key}\n🔗 Direct Link: {link}"


def build_caption(caption: str | None, key: str, link: str) -> str:
    annotation = build_annotation(key, link)
    if caption:
        return f"{caption}\n\n{annotation}"
    return annotation


class PostAnnotator:
    def __init__(
        self,
        gateway: MessagingGateway,
        bot_username: str,
        max_attempts: int = 3,
        base_delay: float = 2.0,
        max_retry_after: float = 60.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.gateway = gateway
        self.bot_username = bot_username
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_retry_after = max_retry_after
        self.sleep = sleep

    def annotate(
        self,
        chat_id: int,
        message_id: int,
        key: str,
        kind: str,
        caption: str | None = None,
    ) -> str:
        """Returns ANNOTATED, FALLBACK or FAILED."""
        link = build_direct_link(self.bot_username, key)
        new_caption = build_caption(caption, key, link)

        # Text posts have no caption to edit
        if kind != "text" and len(new_caption) <= CAPTION_LIMIT:
            try:
                if self._edit_with_retry(chat_id, message_id, key, new_caption):
                    return ANNOTATED
            except MessageGoneError as e:
                # Source post deleted: nothing to edit or reply to
                logger.warning(
                    "annotation_source_gone",
                    extra={"chat_id": chat_id, "message_id": message_id, "key": key, "error": str(e)},
                )
                return FAILED

        return self._reply_fallback(chat_id, message_id, key, link)

    def _edit_with_retry(self, chat_id: int, message_id: int, key: str, caption: str) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            try:
                self.gateway.edit_caption(chat_id, message_id, caption)
                return True
            except MessageGoneError:
                raise
            except ForbiddenError as e:
                logger.warning(
                    "annotation_forbidden",
                    extra={"chat_id": chat_id, "message_id": message_id, "key": key, "error": str(e)},
                )
                return False
            except RateLimitedError as e:
                delay = min(float(e.retry_after), self.max_retry_after)
                logger.warning(
                    "annotation_rate_limited",
                    extra={"message_id": message_id, "attempt": attempt, "retry_after": delay},
                )
            except TransportError as e:
                delay = self.base_delay * (2 ** (attempt - 1))
                logger.warning(
                    "annotation_edit_failed",
                    extra={"message_id": message_id, "attempt": attempt, "error": str(e)},
                )
            if attempt < self.max_attempts:
                self.sleep(delay)
        return False

    def _reply_fallback(self, chat_id: int, message_id: int, key: str, link: str) -> str:
        try:
            self.gateway.send_message(chat_id, build_annotation(key, link), reply_to=message_id)
        except TransportError as e:
            logger.error(
                "annotation_fallback_failed",
                extra={"chat_id": chat_id, "message_id": message_id, "key": key, "error": str(e)},
            )
            return FAILED
        logger.info("annotation_fallback_sent", extra={"message_id": message_id, "key": key})
        return FALLBACK
