"""
Telegram client wrapper using httpx sync client.
Provides sync interface for Celery workers and for the bot via asyncio.to_thread.
Implements MessagingGateway, MembershipOracle and SourcePostProbe over the Bot API.
"""
import logging
import time
from typing import Any

import httpx
import pybreaker

from filegate.core.config import settings
from filegate.core.errors import (
    ForbiddenError,
    MessageGoneError,
    RateLimitedError,
    TransportError,
)
from filegate.services.telegram.base import (
    DeleteResult,
    MembershipOracle,
    MembershipStatus,
    MessagingGateway,
    SourcePostProbe,
)
from filegate.utils.metrics import (
    telegram_requests_total,
    telegram_request_duration_seconds,
)


logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"

# kind -> (Bot API method, file field)
SEND_METHODS = {
    "document": ("sendDocument", "document"),
    "photo": ("sendPhoto", "photo"),
    "video": ("sendVideo", "video"),
    "audio": ("sendAudio", "audio"),
}

CHAT_MEMBER_STATUSES = {
    "creator": MembershipStatus.OWNER,
    "administrator": MembershipStatus.ADMIN,
    "member": MembershipStatus.MEMBER,
    "left": MembershipStatus.NONE,
    "kicked": MembershipStatus.NONE,
}

GONE_MARKERS = (
    "message to delete not found",
    "message to copy not found",
    "message to forward not found",
    "message to edit not found",
    "message not found",
    "message_id_invalid",
)

FORBIDDEN_MARKERS = (
    "not enough rights",
    "message can't be edited",
    "have no rights",
)


class BadRequestError(TransportError):
    """4xx answer that is neither rate limiting nor a permissions problem."""


# Client-side answers say nothing about Telegram health: they must not open the breaker.
BREAKER_EXCLUDE = [BadRequestError, ForbiddenError, MessageGoneError, RateLimitedError]


def classify_api_error(method: str, result: dict[str, Any]) -> TransportError:
    """Map a Bot API error payload to the transport error taxonomy."""
    code = int(result.get("error_code") or 0)
    description = result.get("description", "Unknown error")
    lower = description.lower()
    message = f"{method} -> {code}: {description}"
    if code == 429:
        retry_after = (result.get("parameters") or {}).get("retry_after", 1)
        return RateLimitedError(message, retry_after=float(retry_after), description=description)
    if any(marker in lower for marker in GONE_MARKERS):
        return MessageGoneError(message, error_code=code, description=description)
    if code == 403 or any(marker in lower for marker in FORBIDDEN_MARKERS):
        return ForbiddenError(message, error_code=code, description=description)
    if 400 <= code < 500:
        return BadRequestError(message, error_code=code, description=description)
    return TransportError(message, error_code=code, description=description)


class TelegramClient(MessagingGateway, MembershipOracle, SourcePostProbe):
    """
    Sync Telegram client.
    Uses httpx sync client - no event loop issues.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        breaker: pybreaker.CircuitBreaker | None = None,
        use_breaker: bool = True,
        probe_chat_id: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._token = token or settings.telegram_bot_token
        self._base_url = f"{TELEGRAM_API_BASE}/bot{self._token}"
        self._client: httpx.Client | None = None
        self._transport = transport
        self._breaker = breaker
        self._use_breaker = use_breaker
        self._probe_chat_id = probe_chat_id if probe_chat_id is not None else settings.reconcile_chat_id

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of httpx client."""
        if self._client is None:
            self._client = httpx.Client(timeout=settings.http_client_timeout, transport=self._transport)
        return self._client

    @property
    def breaker(self) -> pybreaker.CircuitBreaker | None:
        if self._breaker is None and self._use_breaker:
            from filegate.services.circuit_breaker import get_circuit_breaker

            self._breaker = get_circuit_breaker("telegram", exclude=BREAKER_EXCLUDE)
        return self._breaker

    def _record_request(self, method: str, status: str, duration: float) -> None:
        telegram_requests_total.labels(method=method, status=status).inc()
        telegram_request_duration_seconds.labels(method=method).observe(duration)

    def _post(self, method: str, data: dict) -> dict:
        resp = self.client.post(f"{self._base_url}/{method}", json=data)
        result = resp.json()
        if not result.get("ok"):
            raise classify_api_error(method, result)
        return result

    def _api_call(self, method: str, data: dict) -> dict:
        """Make API call to Telegram. All failures come out as TransportError subclasses."""
        start = time.time()
        try:
            if self.breaker is not None:
                result = self.breaker.call(self._post, method, data)
            else:
                result = self._post(method, data)
        except pybreaker.CircuitBreakerError as e:
            self._record_request(method, "breaker_open", time.time() - start)
            raise TransportError(f"{method}: circuit open") from e
        except TransportError as e:
            self._record_request(method, "error", time.time() - start)
            logger.warning(f"Telegram API error: {e}")
            raise
        except (httpx.HTTPError, ValueError) as e:
            self._record_request(method, "error", time.time() - start)
            logger.warning("Telegram request failed", extra={"method": method, "error": str(e)})
            raise TransportError(f"{method}: {e}") from e
        self._record_request(method, "success", time.time() - start)
        return result

    # ----- MessagingGateway -----

    def copy_content(self, kind: str, payload_ref: dict[str, Any], chat_id: int) -> list[int]:
        """Media goes by file_id (no caption, so the key annotation is not leaked); text is copied."""
        file_id = payload_ref.get("file_id")
        if kind in SEND_METHODS and file_id:
            method, field = SEND_METHODS[kind]
            result = self._api_call(method, {"chat_id": int(chat_id), field: file_id})
            return [int(result["result"]["message_id"])]

        data: dict[str, Any] = {
            "chat_id": int(chat_id),
            "from_chat_id": payload_ref["from_chat_id"],
            "message_id": int(payload_ref["message_id"]),
        }
        if kind != "text":
            data["caption"] = ""
        result = self._api_call("copyMessage", data)
        return [int(result["result"]["message_id"])]

    def send_message(
        self,
        chat_id: int | str,
        text: str,
        reply_to: int | None = None,
        reply_markup: dict | None = None,
    ) -> int:
        """Send text message to chat; returns message id."""
        data: dict[str, Any] = {"chat_id": chat_id, "text": text, "disable_web_page_preview": True}
        if reply_to:
            data["reply_to_message_id"] = int(reply_to)
        if reply_markup:
            data["reply_markup"] = reply_markup
        result = self._api_call("sendMessage", data)
        return int(result["result"]["message_id"])

    def delete_message(self, chat_id: int | str, message_id: int) -> DeleteResult:
        try:
            self._api_call("deleteMessage", {"chat_id": chat_id, "message_id": int(message_id)})
        except MessageGoneError:
            return DeleteResult.ALREADY_GONE
        return DeleteResult.OK

    def edit_caption(self, chat_id: int | str, message_id: int, caption: str) -> None:
        self._api_call(
            "editMessageCaption",
            {"chat_id": chat_id, "message_id": int(message_id), "caption": caption},
        )

    # ----- MembershipOracle -----

    def get_membership_status(self, channel_ref: str, user_id: int) -> MembershipStatus:
        result = self._api_call("getChatMember", {"chat_id": channel_ref, "user_id": int(user_id)})
        member = result.get("result") or {}
        status = (member.get("status") or "").lower()
        if status == "restricted":
            return MembershipStatus.MEMBER if member.get("is_member") else MembershipStatus.NONE
        return CHAT_MEMBER_STATUSES.get(status, MembershipStatus.UNKNOWN)

    # ----- SourcePostProbe -----

    def post_exists(self, chat_id: int, message_id: int) -> bool:
        """Copy the post into the probe chat and remove the copy right away."""
        if not self._probe_chat_id:
            raise TransportError("reconcile_chat_id is not configured")
        try:
            result = self._api_call(
                "copyMessage",
                {
                    "chat_id": self._probe_chat_id,
                    "from_chat_id": int(chat_id),
                    "message_id": int(message_id),
                    "disable_notification": True,
                },
            )
        except MessageGoneError:
            return False
        copy_id = int(result["result"]["message_id"])
        try:
            self.delete_message(self._probe_chat_id, copy_id)
        except TransportError as e:
            logger.warning("probe_copy_cleanup_failed", extra={"message_id": copy_id, "error": str(e)})
        return True

    def close(self) -> None:
        """Close httpx client."""
        if self._client is not None:
            try:
                self._client.close()
            except Exception as e:
                logger.warning("Failed to close client", extra={"error": str(e)})
            finally:
                self._client = None
