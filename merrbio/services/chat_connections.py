import asyncio
import logging
import uuid
from typing import Any, Dict, List, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)


class ChatConnectionManager:
    """Tracks live chat sockets and which user each one belongs to."""

    def __init__(self) -> None:
        self._sockets: Dict[str, WebSocket] = {}
        self._owners: Dict[str, int] = {}
        self._by_user: Dict[int, Set[str]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        async with self._lock:
            self._sockets[connection_id] = websocket
        logger.debug("WebSocket %s connected. Total: %s", connection_id, len(self._sockets))
        return connection_id

    async def register(self, connection_id: str, user_id: int) -> None:
        async with self._lock:
            if connection_id not in self._sockets:
                return
            previous = self._owners.get(connection_id)
            if previous is not None and previous != user_id:
                self._by_user.get(previous, set()).discard(connection_id)
            self._owners[connection_id] = user_id
            self._by_user.setdefault(user_id, set()).add(connection_id)
        logger.debug("WebSocket %s subscribed for user %s", connection_id, user_id)

    async def disconnect(self, connection_id: str) -> None:
        async with self._lock:
            self._sockets.pop(connection_id, None)
            user_id = self._owners.pop(connection_id, None)
            if user_id is not None:
                connections = self._by_user.get(user_id)
                if connections is not None:
                    connections.discard(connection_id)
                    if not connections:
                        del self._by_user[user_id]
        logger.debug("WebSocket %s disconnected. Total: %s", connection_id, len(self._sockets))

    async def send_to_user(self, user_id: int, payload: Dict[str, Any]) -> bool:
        """Push a frame to every socket of a user. Returns True if any accepted it."""
        async with self._lock:
            targets = [
                (connection_id, self._sockets[connection_id])
                for connection_id in self._by_user.get(user_id, ())
                if connection_id in self._sockets
            ]
        if not targets:
            return False

        data = jsonable_encoder(payload)
        delivered = False
        stale: List[str] = []
        for connection_id, websocket in targets:
            try:
                await websocket.send_json(data)
                delivered = True
            except Exception:
                logger.exception("Failed to push to WebSocket %s; removing connection.", connection_id)
                stale.append(connection_id)

        for connection_id in stale:
            await self.disconnect(connection_id)
        return delivered
