"""
Membership gate (внутренняя библиотека).
Decision (MembershipGate.evaluate) и рендеринг подсказки (keyboard) разделены; контракт через GateResult.
"""
from filegate.gate.config import get_gate_channels, get_gate_policy
from filegate.gate.keyboard import (
    CHECK_MEMBERSHIP_CALLBACK,
    build_join_markup,
    build_membership_text,
)
from filegate.gate.membership import MembershipGate
from filegate.gate.models import GateChannel, GatePolicy, GateResult

__all__ = [
    "CHECK_MEMBERSHIP_CALLBACK",
    "GateChannel",
    "GatePolicy",
    "GateResult",
    "MembershipGate",
    "build_join_markup",
    "build_membership_text",
    "get_gate_channels",
    "get_gate_policy",
]
