"""
Pending content requests in Redis with signed serialization.
One slot per user: remember() overwrites (last request wins), consume() is GETDEL,
so a request is replayed at most once even when re-checks race.
"""
import logging
from datetime import datetime, timezone
from typing import Any

import redis
from itsdangerous import BadSignature, URLSafeTimedSerializer

logger = logging.getLogger(__name__)


class PendingRequestStore:
    def __init__(self, client: redis.Redis, secret: str, ttl_seconds: int = 0) -> None:
        self.client = client
        self.serializer = URLSafeTimedSerializer(secret, salt="pending-request")
        self.ttl_seconds = ttl_seconds

    def _key(self, user_id: int | str) -> str:
        return f"pending:{user_id}"

    def remember(self, user_id: int | str, key: str) -> None:
        payload = {
            "user_id": str(user_id),
            "key": key,
            "requested_at": datetime.now(timezone.utc).isoformat(),
        }
        signed = self.serializer.dumps(payload)
        if self.ttl_seconds > 0:
            self.client.set(self._key(user_id), signed, ex=self.ttl_seconds)
        else:
            self.client.set(self._key(user_id), signed)
        logger.info("pending_request_stored", extra={"user_id": user_id, "key": key})

    def consume(self, user_id: int | str) -> str | None:
        """Atomically take the pending key for this user (None if there is none)."""
        raw = self.client.getdel(self._key(user_id))
        if not raw:
            return None
        data = self._loads(raw)
        if not data or data.get("user_id") != str(user_id):
            logger.warning("pending_request_invalid", extra={"user_id": user_id})
            return None
        return data.get("key") or None

    def peek(self, user_id: int | str) -> dict[str, Any] | None:
        raw = self.client.get(self._key(user_id))
        if not raw:
            return None
        return self._loads(raw)

    def _loads(self, raw: str) -> dict[str, Any] | None:
        try:
            data = self.serializer.loads(raw)
        except BadSignature:
            return None
        return data if isinstance(data, dict) else None
