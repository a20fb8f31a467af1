"""Relay router providing the room WebSocket and a history endpoint.

This module provides:
    - WebSocket /ws?roomId=<id>: Real-time room messaging
    - GET /rooms/{room_id}/history: Stored message tail (diagnostics)

The WebSocket protocol has no envelope:
    - server -> client, once on connect: JSON array of messages (history),
      skipped when the room has none
    - client -> server: one message object per frame
    - server -> room: the stored message object, echoed to the sender too
"""
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ridechat.chat.models import ChatMessage

from .manager import manager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/rooms/{room_id}/history")
async def get_room_history(room_id: str) -> JSONResponse:
    """Return the stored history of a room, oldest first.

    Example:
        GET /rooms/r42/history
    """
    messages = manager.get_history(room_id)
    return JSONResponse({
        "roomId": room_id,
        "messages": [msg.model_dump(exclude_none=True) for msg in messages],
    })


@router.websocket("/ws")
async def websocket_room_endpoint(
    websocket: WebSocket,
    roomId: Optional[str] = Query(None, description="Room to join"),
) -> None:
    """Relay messages between every client connected to one room.

    Args:
        websocket: The WebSocket connection.
        roomId: Room identifier; ``general`` (configurable) when missing.
    """
    room_id = manager.resolve_room(roomId or "")
    history = await manager.connect(websocket, room_id)
    logger.info(
        f"[WS] Connection accepted into room {room_id}. "
        f"Room now has {manager.get_room_size(room_id)} connections"
    )

    try:
        if history:
            await websocket.send_json([msg.model_dump(exclude_none=True) for msg in history])
            logger.debug(f"[WS] Sent {len(history)} history message(s) for room {room_id}")

        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            data = frame.get("text")
            if data is None:
                logger.warning(f"[WS] Ignoring non-text frame in room {room_id}")
                continue
            try:
                incoming = ChatMessage.model_validate_json(data)
            except ValidationError as e:
                logger.warning(f"[WS] Ignoring malformed frame in room {room_id}: {e.error_count()} error(s)")
                continue

            stored = manager.add_message(room_id, incoming)
            await manager.broadcast(stored.model_dump(exclude_none=True), room_id)

    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket, room_id)
        logger.info(
            f"[WS] Connection left room {room_id}. "
            f"{manager.get_room_size(room_id)} connections remain"
        )
