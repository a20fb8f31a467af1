"""Tests for the room channel codec."""
import json
from datetime import datetime

import pytest

from ridechat.chat.errors import FrameDecodeError
from ridechat.chat.frames import (
    HistoryFrame,
    LiveFrame,
    decode_frame,
    encode_outgoing,
    format_timestamp,
)
from ridechat.chat.models import ChatMessage


BOB = {"username": "Bob", "content": "hi", "roomId": "r42", "timestamp": "09:00"}


class TestDecodeFrame:

    def test_array_is_history(self):
        frame = decode_frame(json.dumps([BOB, {**BOB, "content": "again"}]))
        assert isinstance(frame, HistoryFrame)
        assert [m.content for m in frame.messages] == ["hi", "again"]

    def test_empty_array_is_empty_history(self):
        frame = decode_frame("[]")
        assert isinstance(frame, HistoryFrame)
        assert frame.messages == ()

    def test_object_is_live(self):
        frame = decode_frame(json.dumps(BOB))
        assert isinstance(frame, LiveFrame)
        assert frame.message == ChatMessage(**BOB)

    def test_bytes_payload_accepted(self):
        frame = decode_frame(json.dumps(BOB).encode("utf-8"))
        assert isinstance(frame, LiveFrame)

    def test_optional_fields_decoded(self):
        frame = decode_frame(json.dumps({**BOB, "senderId": "u2", "senderPicture": "https://img/b.png"}))
        assert frame.message.senderId == "u2"
        assert frame.message.senderPicture == "https://img/b.png"

    def test_unknown_fields_ignored(self):
        frame = decode_frame(json.dumps({**BOB, "id": 7, "createdAt": "2026-10-19T09:00:00Z"}))
        assert frame.message.model_dump(exclude_none=True) == BOB

    def test_missing_timestamp_defaults_to_empty(self):
        frame = decode_frame(json.dumps({"username": "Bob", "content": "hi", "roomId": "r42"}))
        assert frame.message.timestamp == ""

    @pytest.mark.parametrize("raw", [
        "",
        "{not json",
        "null",
        "42",
        '"just a string"',
        "true",
    ])
    def test_non_message_payloads_rejected(self, raw):
        with pytest.raises(FrameDecodeError):
            decode_frame(raw)

    def test_object_missing_required_fields_rejected(self):
        with pytest.raises(FrameDecodeError) as exc_info:
            decode_frame(json.dumps({"type": "typing", "userId": "u2"}))
        assert "Live frame" in str(exc_info.value)

    def test_array_with_non_message_rejected(self):
        with pytest.raises(FrameDecodeError) as exc_info:
            decode_frame(json.dumps([BOB, "oops"]))
        assert "History frame" in str(exc_info.value)

    def test_error_keeps_raw_payload(self):
        with pytest.raises(FrameDecodeError) as exc_info:
            decode_frame("{bad")
        assert exc_info.value.raw == "{bad"


class TestEncodeOutgoing:

    def test_wire_shape(self):
        message = ChatMessage(username="Alice", content="yo", roomId="r42", timestamp="09:05", senderId="u1")
        assert json.loads(encode_outgoing(message)) == {
            "username": "Alice",
            "content": "yo",
            "roomId": "r42",
            "timestamp": "09:05",
            "senderId": "u1",
        }

    def test_sender_picture_never_sent(self):
        message = ChatMessage(
            username="Alice", content="yo", roomId="r42", timestamp="09:05",
            senderId="u1", senderPicture="https://img/a.png",
        )
        assert "senderPicture" not in json.loads(encode_outgoing(message))

    def test_non_ascii_kept_readable(self):
        message = ChatMessage(username="小明", content="到了嗎？", roomId="r42", timestamp="09:05")
        assert "到了嗎？" in encode_outgoing(message)


class TestFormatTimestamp:

    @pytest.mark.parametrize("moment, expected", [
        (datetime(2026, 10, 19, 9, 5, 59), "09:05"),
        (datetime(2026, 10, 19, 0, 0), "00:00"),
        (datetime(2026, 10, 19, 23, 59), "23:59"),
        (datetime(2026, 10, 19, 13, 7), "13:07"),
    ])
    def test_hh_mm_24h(self, moment, expected):
        assert format_timestamp(moment) == expected
