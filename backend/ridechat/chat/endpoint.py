"""Resolve the WebSocket endpoint for a room.

The chat transport's security tier follows the page the client was served
from: an ``https`` page talks ``wss``, anything else talks ``ws``.
"""
import re
from typing import Optional
from urllib.parse import urlencode, urlsplit

CHAT_PATH = "/ws"

_SCHEME_PREFIX = re.compile(r"^https?://", re.IGNORECASE)


def websocket_scheme(page_url: str) -> str:
    """Return ``wss`` for pages loaded over https, else ``ws``."""
    return "wss" if urlsplit(page_url).scheme.lower() == "https" else "ws"


def resolve_host(page_url: str, api_url: str = "") -> str:
    """Host (and optional path prefix) the chat service is reached at.

    A configured API URL wins, with its http(s) scheme stripped; otherwise
    the page's own host is used.
    """
    if api_url:
        return _SCHEME_PREFIX.sub("", api_url).rstrip("/")

    host = urlsplit(page_url).netloc
    if not host:
        raise ValueError(f"Page URL has no host: {page_url!r}")
    return host


def build_room_url(room_id: str, page_url: str, api_url: Optional[str] = "") -> str:
    """Full WebSocket URL for *room_id*, e.g. ``ws://localhost:8000/ws?roomId=r42``."""
    if not room_id:
        raise ValueError("room_id must not be empty")

    scheme = websocket_scheme(page_url)
    host = resolve_host(page_url, api_url or "")
    return f"{scheme}://{host}{CHAT_PATH}?{urlencode({'roomId': room_id})}"
