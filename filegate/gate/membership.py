"""
Decision only: MembershipGate.evaluate(user_id) -> GateResult.
Fails closed: any oracle error or unknown status counts as "not a member" for that channel.
"""
from __future__ import annotations

import logging

from filegate.gate.models import GateChannel, GatePolicy, GateResult
from filegate.services.telegram.base import MembershipOracle, MembershipStatus

logger = logging.getLogger(__name__)


class MembershipGate:
    def __init__(
        self,
        oracle: MembershipOracle,
        channels: list[GateChannel],
        policy: GatePolicy = "all",
    ) -> None:
        self.oracle = oracle
        self.channels = list(channels)
        self.policy = policy

    def evaluate(self, user_id: int) -> GateResult:
        """
        Check every configured channel (no short-circuit, the prompt needs the full map).
        No channels configured -> gate is open.
        """
        if not self.channels:
            return GateResult(satisfied=True, per_channel={})

        per_channel: dict[str, bool] = {}
        for channel in self.channels:
            per_channel[channel.ref] = self._is_member(channel, user_id)

        if self.policy == "any":
            satisfied = any(per_channel.values())
        else:
            satisfied = all(per_channel.values())

        logger.info(
            "gate_evaluated",
            extra={"user_id": user_id, "count": sum(per_channel.values())},
        )
        return GateResult(satisfied=satisfied, per_channel=per_channel)

    def _is_member(self, channel: GateChannel, user_id: int) -> bool:
        try:
            status = self.oracle.get_membership_status(channel.ref, user_id)
        except Exception as e:
            logger.warning(
                "gate_membership_query_failed",
                extra={"user_id": user_id, "chat_id": channel.ref, "error": str(e)},
            )
            return False
        if not isinstance(status, MembershipStatus):
            return False
        return status.is_member
