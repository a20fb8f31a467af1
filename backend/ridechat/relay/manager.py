"""WebSocket connection manager for the development chat relay.

The relay speaks the same wire protocol as the production chat service so the
messaging client can be exercised end to end on a laptop:

    - one room per ``roomId`` query parameter (``general`` when absent),
    - a history array pushed once on connect, only when the room has history,
    - every inbound message broadcast to the whole room, sender included.

History is an in-memory tail per room.  Nothing is persisted.

Thread Safety:
    Designed for a single event loop.  It is NOT thread-safe.
"""
import asyncio
import logging
from typing import Dict, List

from fastapi import WebSocket

from ridechat.chat.models import ChatMessage
from ridechat.config import RelaySettings

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50
DEFAULT_ROOM = "general"


class RelayManager:
    """Tracks room connections and the recent message tail of each room.

    Note:
        A module-level instance is shared by all WebSocket handlers.
    """

    def __init__(
        self,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        default_room: str = DEFAULT_ROOM,
    ) -> None:
        self.history_limit = history_limit
        self.default_room = default_room

        # room_id -> list of active WebSocket connections
        self.active_connections: Dict[str, List[WebSocket]] = {}

        # room_id -> most recent messages, oldest first
        self.message_history: Dict[str, List[ChatMessage]] = {}

    def configure(self, settings: RelaySettings) -> None:
        """Apply relay settings loaded at startup."""
        self.history_limit = settings.history_limit
        self.default_room = settings.default_room

    def resolve_room(self, room_id: str) -> str:
        room_id = (room_id or "").strip()
        return room_id or self.default_room

    async def connect(self, websocket: WebSocket, room_id: str) -> List[ChatMessage]:
        """Accept a connection into *room_id*.

        Returns:
            The room's current history (oldest first) for the caller to send.
        """
        await websocket.accept()
        self.active_connections.setdefault(room_id, []).append(websocket)
        return list(self.message_history.get(room_id, []))

    def disconnect(self, websocket: WebSocket, room_id: str) -> None:
        connections = self.active_connections.get(room_id)
        if connections and websocket in connections:
            connections.remove(websocket)
        if connections is not None and not connections:
            del self.active_connections[room_id]

    def add_message(self, room_id: str, message: ChatMessage) -> ChatMessage:
        """Store *message* in the room tail.

        The room id is always the connection's room, whatever the client
        claimed.

        Returns:
            The message as stored and broadcast.
        """
        if message.roomId != room_id:
            message = message.model_copy(update={"roomId": room_id})

        history = self.message_history.setdefault(room_id, [])
        history.append(message)
        if len(history) > self.history_limit:
            del history[: len(history) - self.history_limit]
        return message

    async def broadcast(self, message: dict, room_id: str) -> None:
        """Send *message* to every connection in *room_id* concurrently.

        Connections that fail are dropped from the room.
        """
        connections = list(self.active_connections.get(room_id, []))
        if not connections:
            return

        results = await asyncio.gather(
            *[self._safe_send(conn, message) for conn in connections],
            return_exceptions=True
        )

        failed_connections = [
            conn for conn, success in zip(connections, results)
            if success is not True
        ]
        self._cleanup_connections(room_id, failed_connections)

    async def _safe_send(self, connection: WebSocket, message: dict) -> bool:
        try:
            await connection.send_json(message)
            return True
        except Exception as e:
            logger.debug(f"Failed to send to connection: {e}")
            return False

    def _cleanup_connections(
        self, room_id: str, failed_connections: List[WebSocket]
    ) -> None:
        for conn in failed_connections:
            self.disconnect(conn, room_id)
            logger.debug(f"Removed dead connection from room {room_id}")

    def get_room_size(self, room_id: str) -> int:
        """Get the number of active connections in a room."""
        return len(self.active_connections.get(room_id, []))

    def get_history(self, room_id: str) -> List[ChatMessage]:
        """Get the stored message tail for a room."""
        return list(self.message_history.get(room_id, []))

    def clear_room(self, room_id: str) -> None:
        """Forget all connections and history for a room."""
        self.active_connections.pop(room_id, None)
        self.message_history.pop(room_id, None)


# Global manager instance
manager = RelayManager()
