"""
Gate config: typed wrappers over filegate.core.config.settings.
"""
from __future__ import annotations

import json

from filegate.core.config import settings
from filegate.gate.models import GateChannel, GatePolicy


def get_gate_channels() -> list[GateChannel]:
    """Parse gate_channels JSON. Plain strings are accepted as bare refs."""
    raw = json.loads(settings.gate_channels or "[]")
    channels: list[GateChannel] = []
    for item in raw:
        if isinstance(item, str):
            channels.append(GateChannel(ref=item))
        else:
            channels.append(GateChannel(**item))
    return channels


def get_gate_policy() -> GatePolicy:
    return settings.gate_policy  # type: ignore[return-value]
