"""Room messaging client.

Usage:
    from ridechat.chat import RoomMessagingSession, UserIdentity

    identity = UserIdentity(display_name="Alice", user_id="u1")
    async with RoomMessagingSession(identity) as session:
        await session.connect("r42")
        await session.send("On my way")
"""
from .errors import EmptyMessageError, FrameDecodeError, RideChatError, SessionConnectError
from .frames import HistoryFrame, LiveFrame, decode_frame, encode_outgoing, format_timestamp
from .models import ChatMessage, SessionSnapshot, UserIdentity, ensure_sendable, is_own_message
from .session import RoomMessagingSession

__all__ = [
    "ChatMessage",
    "EmptyMessageError",
    "FrameDecodeError",
    "HistoryFrame",
    "LiveFrame",
    "RideChatError",
    "RoomMessagingSession",
    "SessionConnectError",
    "SessionSnapshot",
    "UserIdentity",
    "decode_frame",
    "encode_outgoing",
    "ensure_sendable",
    "format_timestamp",
    "is_own_message",
]
