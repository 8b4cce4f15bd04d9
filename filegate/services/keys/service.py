import logging
import secrets

logger = logging.getLogger(__name__)

DEEP_LINK_PREFIX = "get_"


class KeyGenerator:
    """
    Fixed-length numeric keys without a leading zero (9 digits -> 9 * 10^8 keys).
    Collisions are possible; uniqueness is confirmed by ContentRegistry.create.
    """

    def __init__(self, length: int = 9) -> None:
        self.length = length
        self._low = 10 ** (length - 1)
        self._span = 9 * self._low

    def issue(self) -> str:
        return str(self._low + secrets.randbelow(self._span))

    @staticmethod
    def normalize(raw: str) -> str:
        """'get_123456789' / ' 123456789 ' -> '123456789'. Case is kept: legacy keys are mixed-case."""
        value = (raw or "").strip()
        if value.startswith(DEEP_LINK_PREFIX):
            value = value[len(DEEP_LINK_PREFIX):]
        return value


def build_direct_link(bot_username: str, key: str) -> str:
    """Deep link that opens the bot with /start get_<key>."""
    return f"https://t.me/{bot_username}?start={DEEP_LINK_PREFIX}{key}"
