"""
Abstract transport collaborators consumed by the vault core.
TelegramClient implements all three; tests substitute in-memory fakes.
"""
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any


class DeleteResult(str, Enum):
    OK = "ok"
    ALREADY_GONE = "already_gone"


class MembershipStatus(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"
    OWNER = "owner"
    NONE = "none"
    UNKNOWN = "unknown"

    @property
    def is_member(self) -> bool:
        return self in (MembershipStatus.MEMBER, MembershipStatus.ADMIN, MembershipStatus.OWNER)


class MessagingGateway(ABC):
    """Outbound messaging. Errors surface as filegate.core.errors.TransportError subclasses."""

    @abstractmethod
    def copy_content(self, kind: str, payload_ref: dict[str, Any], chat_id: int) -> list[int]:
        """Deliver content to chat_id; return ids of the produced messages."""
        pass

    @abstractmethod
    def send_message(self, chat_id: int | str, text: str, reply_to: int | None = None) -> int:
        """Send a text message; return its id."""
        pass

    @abstractmethod
    def delete_message(self, chat_id: int | str, message_id: int) -> DeleteResult:
        """Delete a message. A message that is already gone is not an error."""
        pass

    @abstractmethod
    def edit_caption(self, chat_id: int | str, message_id: int, caption: str) -> None:
        pass


class MembershipOracle(ABC):
    @abstractmethod
    def get_membership_status(self, channel_ref: str, user_id: int) -> MembershipStatus:
        pass


class SourcePostProbe(ABC):
    @abstractmethod
    def post_exists(self, chat_id: int, message_id: int) -> bool:
        """True if the post is still present. Raises TransportError when unsure."""
        pass
