from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..application.services.user_service import UserService
from ..domain.models import Message
from ..domain.ports.notifications import ChatReminderSender
from ..domain.ports.persistence import PersistenceGateway

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 100


def message_preview(content: str, limit: int = PREVIEW_LENGTH) -> str:
    if len(content) <= limit:
        return content
    return content[: limit - 3] + "..."


class ChatReminderService:
    """Periodically emails users about chat messages they have left unread.

    A message qualifies when it is unread, older than the threshold and was
    either never reminded about or last reminded before the threshold. The
    reminder stamp is written only after the email went out, so a failed
    send is retried on the next sweep.
    """

    def __init__(
        self,
        persistence: PersistenceGateway,
        sender: ChatReminderSender,
        users: UserService,
        *,
        threshold_hours: int = 6,
        interval_seconds: int = 3600,
    ) -> None:
        self._persistence = persistence
        self._sender = sender
        self._users = users
        self._threshold = timedelta(hours=threshold_hours)
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task[None]] = None
        self._shutdown = asyncio.Event()

    async def start(self) -> None:
        if self._task is not None:
            return
        logger.info(
            "Starting chat reminder sweep every %ss (threshold %s).", self._interval, self._threshold
        )
        self._shutdown = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(self._run(), name="chat-reminders")

    async def stop(self) -> None:
        if self._task is None:
            return
        logger.info("Stopping chat reminder sweep.")
        self._shutdown.set()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    async def _run(self) -> None:
        while not self._shutdown.is_set():
            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=self._interval)
                break
            except asyncio.TimeoutError:
                pass
            try:
                await asyncio.to_thread(self.run_once)
            except Exception:
                logger.exception("Chat reminder sweep failed.")

    def run_once(self, now: Optional[datetime] = None) -> int:
        """Run a single sweep and return how many reminders were sent."""
        now = now or datetime.now(timezone.utc)
        cutoff = now - self._threshold
        pending = self._persistence.find_unread_messages_older_than(cutoff)
        if not pending:
            logger.debug("No unread messages older than %s.", cutoff.isoformat())
            return 0

        logger.info("Found %s unread messages needing a reminder.", len(pending))
        sent = 0
        for message in pending:
            try:
                if self._remind(message, now):
                    sent += 1
            except Exception:
                logger.exception("Failed to send reminder for message %s.", message.id)
        logger.info("Chat reminder sweep sent %s of %s reminders.", sent, len(pending))
        return sent

    def _remind(self, message: Message, now: datetime) -> bool:
        conversation = self._persistence.get_conversation(message.conversation_id)
        if conversation is None:
            logger.warning("Message %s belongs to a missing conversation.", message.id)
            return False

        recipient = self._persistence.get_user_by_id(conversation.other_party(message.sender_id))
        if recipient is None:
            logger.warning("Recipient for message %s no longer exists.", message.id)
            return False

        delivered = self._sender.send_chat_reminder(
            to_email=recipient.email,
            sender_name=self._users.display_name(message.sender_id),
            message_preview=message_preview(message.content),
            conversation_title=conversation.title or "Conversation",
        )
        if not delivered:
            logger.error("Reminder email for message %s was not delivered.", message.id)
            return False

        self._persistence.mark_notification_sent(message.id, now)
        return True
