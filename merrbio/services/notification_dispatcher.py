from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder

from ..domain.models import ChatMessageView
from .chat_connections import ChatConnectionManager

logger = logging.getLogger(__name__)


def chat_message_payload(message: ChatMessageView) -> Dict[str, Any]:
    return jsonable_encoder(
        {
            "id": message.id,
            "conversationId": message.conversation_id,
            "senderId": message.sender_id,
            "senderName": message.sender_name,
            "content": message.content,
            "isRead": message.is_read,
            "createdAt": message.created_at.isoformat(),
        }
    )


@dataclass(slots=True)
class PushJob:
    user_id: int
    frame: Dict[str, Any]


class NotificationDispatcher:
    """Background workers that push realtime frames to connected users.

    ``notify_user`` and ``push_chat_message`` never block and never raise:
    callers may run on the event loop or in a worker thread, and a user
    without a live connection simply misses the push.
    """

    def __init__(self, connections: ChatConnectionManager, *, max_workers: int = 2) -> None:
        self._connections = connections
        self._max_workers = max(1, max_workers)
        self._queue: Optional[asyncio.Queue[Optional[PushJob]]] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._workers: List[asyncio.Task[None]] = []
        self._shutdown = asyncio.Event()

    async def start(self) -> None:
        if self._workers:
            return
        logger.info("Starting notification dispatcher with %s workers.", self._max_workers)
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._shutdown = asyncio.Event()
        for _ in range(self._max_workers):
            task = self._loop.create_task(self._worker(), name="notification-dispatcher")
            self._workers.append(task)

    async def stop(self) -> None:
        if not self._workers or self._queue is None:
            return
        logger.info("Stopping notification dispatcher.")
        self._shutdown.set()
        for _ in self._workers:
            await self._queue.put(None)
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()
        self._loop = None

    # Notifier API ---------------------------------------------------------
    def notify_user(self, user_id: int, title: str, message: str) -> None:
        frame = {
            "type": "notification",
            "data": {
                "title": title,
                "message": message,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        }
        self.submit(PushJob(user_id=user_id, frame=frame))

    def push_chat_message(self, user_id: int, message: ChatMessageView) -> None:
        self.submit(PushJob(user_id=user_id, frame={"type": "message", "data": chat_message_payload(message)}))

    def push_read_receipt(self, user_id: int, conversation_id: int, reader_id: int) -> None:
        frame = {
            "type": "read",
            "data": {"conversationId": conversation_id, "readerId": reader_id},
        }
        self.submit(PushJob(user_id=user_id, frame=frame))

    def submit(self, job: PushJob) -> None:
        loop, queue = self._loop, self._queue
        if loop is None or queue is None or self._shutdown.is_set():
            logger.warning("Notification dispatcher is not running; dropping push for user %s.", job.user_id)
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            queue.put_nowait(job)
            return
        try:
            loop.call_soon_threadsafe(queue.put_nowait, job)
        except RuntimeError:
            logger.warning("Event loop closed; dropping push for user %s.", job.user_id)

    async def drain(self) -> None:
        """Wait until every queued push has been attempted."""
        if self._queue is not None:
            await self._queue.join()

    # Workers ----------------------------------------------------------------
    async def _worker(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            job = await queue.get()
            if job is None:
                queue.task_done()
                break
            try:
                delivered = await self._connections.send_to_user(job.user_id, job.frame)
                if not delivered:
                    logger.debug("User %s is offline; %s frame not delivered.", job.user_id, job.frame["type"])
            except Exception:
                logger.exception("Unexpected error while pushing to user %s.", job.user_id)
            finally:
                queue.task_done()
