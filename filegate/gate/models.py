"""
DTO membership gate: GateChannel (config), GateResult (output of evaluate).
"""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

GatePolicy = Literal["all", "any"]


class GateChannel(BaseModel):
    """One gate channel: chat ref for getChatMember plus what to show in the join prompt."""

    ref: str = Field(..., description="@username or numeric chat id")
    title: str = ""
    url: str = ""

    model_config = {"frozen": True}

    @property
    def label(self) -> str:
        return self.title or self.ref

    @property
    def join_url(self) -> str:
        if self.url:
            return self.url
        if self.ref.startswith("@"):
            return f"https://t.me/{self.ref[1:]}"
        return ""


class GateResult(BaseModel):
    """Gate decision plus per-channel membership (for channel-specific prompts)."""

    satisfied: bool
    per_channel: dict[str, bool] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def missing(self) -> list[str]:
        return [ref for ref, ok in self.per_channel.items() if not ok]
