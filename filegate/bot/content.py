"""
Source channel post -> ContentMeta.
Works on aiogram Message objects; only the fields below are read.
"""
from typing import Any

from filegate.schemas.vault import ContentMeta

DEFAULT_NAMES = {
    "photo": "photo.jpg",
    "video": "video.mp4",
    "audio": "audio.mp3",
}


def extract_content_meta(message: Any) -> ContentMeta | None:
    """None for posts without deliverable content (service messages, polls, ...)."""
    chat_id = message.chat.id
    base_ref = {"from_chat_id": chat_id, "message_id": message.message_id}

    kind = None
    file_obj = None
    if message.document:
        kind, file_obj = "document", message.document
    elif message.photo:
        # largest size is last
        kind, file_obj = "photo", message.photo[-1]
    elif message.video:
        kind, file_obj = "video", message.video
    elif message.audio:
        kind, file_obj = "audio", message.audio

    if kind is not None:
        return ContentMeta(
            source_post_id=message.message_id,
            chat_id=chat_id,
            kind=kind,
            payload_ref={**base_ref, "file_id": file_obj.file_id},
            display_name=getattr(file_obj, "file_name", None) or DEFAULT_NAMES.get(kind, ""),
            size_bytes=getattr(file_obj, "file_size", None) or 0,
            caption=message.caption,
        )

    if message.text:
        return ContentMeta(
            source_post_id=message.message_id,
            chat_id=chat_id,
            kind="text",
            payload_ref=base_ref,
            display_name="",
            size_bytes=len(message.text.encode("utf-8")),
        )
    return None
