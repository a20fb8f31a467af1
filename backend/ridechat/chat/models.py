"""Data models for room messaging.

Wire field names are camelCase, exactly as the chat service sends them.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .errors import EmptyMessageError


class ChatMessage(BaseModel):
    """A single unit of room communication.

    Attributes:
        username: Sender's display name (not unique).
        content: Message text, stored exactly as typed.
        roomId: Room this message belongs to.
        timestamp: Local wall-clock time of sending, formatted ``HH:MM``.
        senderId: Logical identity of the sender, when known.
        senderPicture: Avatar URL, filled in by the server only.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    username: str = Field(..., description="Display name of the sender")
    content: str = Field(..., description="Message content")
    roomId: str = Field(..., description="Room ID this message belongs to")
    timestamp: str = Field(default="", description="Send time as HH:MM")
    senderId: Optional[str] = Field(default=None, description="User ID of the sender")
    senderPicture: Optional[str] = Field(
        default=None,
        description="Avatar URL (server-populated)"
    )

    def outgoing_payload(self) -> dict:
        """Fields a client is allowed to put on the wire."""
        return self.model_dump(exclude={"senderPicture"}, exclude_none=True)


@dataclass(frozen=True)
class UserIdentity:
    """Local user, as supplied by the authentication collaborator."""
    display_name: str
    user_id: Optional[str] = None
    picture: Optional[str] = None
    token: Optional[str] = None


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a session handed to observers."""
    room_id: Optional[str]
    messages: Tuple[ChatMessage, ...]
    is_connected: bool


def is_own_message(message: ChatMessage, identity: UserIdentity) -> bool:
    """Return True if *message* was authored by *identity*.

    ``senderId`` wins whenever the message carries one; history written
    before ids were sent only has the display name to go on.
    """
    if message.senderId:
        return bool(identity.user_id) and message.senderId == identity.user_id
    return bool(identity.display_name) and message.username == identity.display_name


def ensure_sendable(content: str) -> str:
    """Reject blank input before it reaches a session.

    Returns the content unchanged so it is sent as typed.
    """
    if not content or not content.strip():
        raise EmptyMessageError()
    return content
