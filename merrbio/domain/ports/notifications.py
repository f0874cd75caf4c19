from __future__ import annotations

from typing import Protocol

from ..models import ChatMessageView


class Notifier(Protocol):
    """Fire-and-forget delivery to a user's live channel.

    Implementations must return immediately; delivery happens off the
    caller's path and a failed delivery is never reported back.
    """

    def notify_user(self, user_id: int, title: str, message: str) -> None:
        ...

    def push_chat_message(self, user_id: int, message: ChatMessageView) -> None:
        ...

    def push_read_receipt(self, user_id: int, conversation_id: int, reader_id: int) -> None:
        ...


class ChatReminderSender(Protocol):
    """Out-of-band channel used to remind users about unread messages."""

    def send_chat_reminder(
        self,
        to_email: str,
        sender_name: str,
        message_preview: str,
        conversation_title: str,
    ) -> bool:
        ...
