"""
Тупой слой: на вход GateResult + каналы, на выход reply_markup (dict для Telegram API).
Без i18n; текст кнопок простой (константы).
"""
from __future__ import annotations

from typing import Any

from filegate.gate.models import GateChannel, GateResult

CHECK_MEMBERSHIP_CALLBACK = "check_membership"


def build_join_markup(result: GateResult, channels: list[GateChannel]) -> dict[str, Any]:
    """
    One join button per channel the user is missing (channels without a URL are skipped),
    then the "check membership" button that triggers the re-check.
    """
    rows: list[list[dict[str, Any]]] = []
    for channel in channels:
        if result.per_channel.get(channel.ref, False):
            continue
        url = channel.join_url
        if not url:
            continue
        rows.append([{"text": f"📢 Join {channel.label}", "url": url}])
    rows.append([{"text": "✅ Check membership", "callback_data": CHECK_MEMBERSHIP_CALLBACK}])
    return {"inline_keyboard": rows}


def build_membership_text(result: GateResult, channels: list[GateChannel]) -> str:
    """Status line per channel (✅/❌) followed by the join instruction."""
    lines = ["📢 Your membership status:", ""]
    for channel in channels:
        emoji = "✅" if result.per_channel.get(channel.ref, False) else "❌"
        lines.append(f"{emoji} {channel.label}")
    lines.append("")
    lines.append("Join the channels above, then press «Check membership» to get your file.")
    return "\n".join(lines)
