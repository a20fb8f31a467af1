"""Exceptions raised by the room messaging client."""


class RideChatError(Exception):
    """Base exception for ride chat errors."""


class SessionConnectError(RideChatError):
    """Raised when a room connection cannot be opened."""
    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Could not connect to {url}: {reason}")


class FrameDecodeError(RideChatError):
    """Raised when an inbound frame is neither a history nor a live message."""
    def __init__(self, message: str, raw: object = None):
        self.raw = raw
        super().__init__(message)


class EmptyMessageError(RideChatError, ValueError):
    """Raised when a caller tries to send blank content."""
    def __init__(self, message: str = "Nothing to send"):
        super().__init__(message)
