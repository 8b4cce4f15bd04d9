"""
Vault DTOs: what intake receives from a source post and what delivery returns.
"""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ContentMeta(BaseModel):
    """A new source post as seen by the bot."""
    source_post_id: int
    chat_id: int
    kind: str = Field(..., description="document | photo | video | audio | text")
    payload_ref: dict[str, Any]
    display_name: str | None = None
    size_bytes: int | None = None
    caption: str | None = None


class DeliveryOutcome(BaseModel):
    """Successful delivery: copies sent and when they will be deleted."""
    key: str
    chat_id: int
    message_ids: list[int]
    ticket_id: str
    delete_at: datetime
    # None when the record was deactivated between lookup and increment
    download_count: int | None = None


class TickResult(BaseModel):
    """Summary of one deletion-loop run."""
    due: int = 0
    completed: int = 0
    partial: int = 0
    skipped: int = 0
    deleted_messages: int = 0
