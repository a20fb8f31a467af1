"""Wire codec for the room channel.

The channel carries no envelope or kind tag.  The shape of the JSON payload
decides what a frame means:

    - an array of message objects is a history frame (sent once, right after
      the connection opens, oldest first),
    - a single message object is a live frame.

Anything else is a decode failure.
"""
import json
from dataclasses import dataclass
from datetime import datetime
from typing import List, Tuple, Union

from pydantic import TypeAdapter, ValidationError

from .errors import FrameDecodeError
from .models import ChatMessage

_HISTORY_ADAPTER = TypeAdapter(List[ChatMessage])


@dataclass(frozen=True)
class HistoryFrame:
    """Authoritative room history; replaces the whole log."""
    messages: Tuple[ChatMessage, ...]


@dataclass(frozen=True)
class LiveFrame:
    """One newly sent message; appended to the log."""
    message: ChatMessage


Frame = Union[HistoryFrame, LiveFrame]


def decode_frame(raw: Union[str, bytes]) -> Frame:
    """Decode one inbound payload.

    Raises:
        FrameDecodeError: If the payload is not JSON, or is JSON of neither
            shape (including an array holding a non-message element).
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise FrameDecodeError(f"Frame is not valid JSON: {e}", raw) from e

    if isinstance(data, list):
        try:
            messages = _HISTORY_ADAPTER.validate_python(data)
        except ValidationError as e:
            raise FrameDecodeError(
                f"History frame holds an invalid message: {e.error_count()} error(s)",
                raw,
            ) from e
        return HistoryFrame(messages=tuple(messages))

    if isinstance(data, dict):
        try:
            message = ChatMessage.model_validate(data)
        except ValidationError as e:
            raise FrameDecodeError(
                f"Live frame is not a message: {e.error_count()} error(s)",
                raw,
            ) from e
        return LiveFrame(message=message)

    raise FrameDecodeError(f"Unexpected frame shape: {type(data).__name__}", raw)


def encode_outgoing(message: ChatMessage) -> str:
    """Serialize a locally authored message for sending."""
    return json.dumps(message.outgoing_payload(), ensure_ascii=False)


def format_timestamp(moment: datetime) -> str:
    """24-hour, zero-padded ``HH:MM`` without seconds."""
    return moment.strftime("%H:%M")
