"""
Import of the legacy key map (file_keys.json: {key: {messageId, type, fileId, ...}}).
Existing keys are skipped, never overwritten.
"""
import logging
from datetime import datetime, timezone
from typing import Any

from filegate.core.errors import DuplicateKeyError
from filegate.models.content_record import CONTENT_KINDS, ContentRecord
from filegate.services.content.service import ContentRegistry
from filegate.services.content.source_posts import SourcePostStore

logger = logging.getLogger(__name__)


def _created_at(raw: Any) -> datetime | None:
    # legacy "date" is epoch milliseconds
    if isinstance(raw, (int, float)) and raw > 0:
        return datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
    return None


def legacy_entry_to_record(key: str, info: dict[str, Any], source_chat_id: int) -> ContentRecord:
    kind = info.get("type") or "document"
    if kind not in CONTENT_KINDS:
        raise ValueError(f"unknown content type: {kind}")
    message_id = int(info["messageId"])
    payload_ref: dict[str, Any] = {"from_chat_id": source_chat_id, "message_id": message_id}
    if info.get("fileId"):
        payload_ref["file_id"] = info["fileId"]
    return ContentRecord(
        key=str(key),
        source_post_id=message_id,
        kind=kind,
        payload_ref=payload_ref,
        display_name=info.get("fileName") or "unknown",
        size_bytes=int(info.get("fileSize") or 0),
        download_count=0,
        active=True,
        created_at=_created_at(info.get("date")),
    )


def import_legacy_keys(
    registry: ContentRegistry,
    source_posts: SourcePostStore,
    data: dict[str, dict[str, Any]],
    source_chat_id: int,
) -> dict[str, int]:
    migrated = skipped = failed = 0
    for key, info in data.items():
        if registry.key_exists(str(key)):
            skipped += 1
            continue
        try:
            record = legacy_entry_to_record(key, info, source_chat_id)
        except (KeyError, TypeError, ValueError) as e:
            failed += 1
            logger.warning("legacy_entry_invalid", extra={"key": key, "error": str(e)})
            continue
        try:
            registry.create(record)
        except DuplicateKeyError:
            skipped += 1
            continue
        source_posts.mark_seen(record.source_post_id, source_chat_id)
        migrated += 1
    logger.info("legacy_import_done", extra={"count": migrated})
    return {"migrated": migrated, "skipped": skipped, "failed": failed}
