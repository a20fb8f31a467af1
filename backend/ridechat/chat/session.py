"""Client-side session for one ride chat room.

A ``RoomMessagingSession`` owns exactly one WebSocket connection bound to one
room and one local identity, plus the ordered message log for that room.

Protocol (see ``frames``):
    - Right after the connection opens the server pushes the room history as
      one JSON array.  It replaces the whole log.
    - Every later frame is a single message object, appended to the log.
    - Outgoing messages are not added to the log locally.  The server echoes
      them back to every connection in the room, the sender included, and
      that echo is the copy that gets displayed.

Threading:
    All state changes happen on the event loop that called ``connect``.
    The session is NOT thread-safe.

Usage:
    identity = UserIdentity(display_name="Alice", user_id="u1")
    async with RoomMessagingSession(identity) as session:
        session.subscribe(render)
        await session.connect("r42")
        if session.is_connected:
            await session.send("hello")
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from ridechat.config import AppConfig, get_config

from .endpoint import build_room_url
from .errors import FrameDecodeError, SessionConnectError
from .frames import HistoryFrame, decode_frame, encode_outgoing, format_timestamp
from .models import ChatMessage, SessionSnapshot, UserIdentity, is_own_message

logger = logging.getLogger(__name__)

# connector(url, headers) -> open connection with send(), close() and
# async iteration over inbound text frames.
Connector = Callable[[str, Dict[str, str]], Awaitable[Any]]
Listener = Callable[[SessionSnapshot], None]

# Errors that mean "the transport is gone" rather than a bug in this module.
TRANSPORT_ERRORS = (ConnectionClosed, OSError, asyncio.TimeoutError)
CONNECT_ERRORS = TRANSPORT_ERRORS + (WebSocketException,)


class RoomMessagingSession:
    """One live connection + one message log for a (room, identity) pair.

    Attributes:
        identity: The local user; used for outgoing messages and for
            deciding which messages are "mine".
    """

    def __init__(
        self,
        identity: UserIdentity,
        *,
        config: Optional[AppConfig] = None,
        page_url: Optional[str] = None,
        connector: Optional[Connector] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """Create a disconnected session.

        Args:
            identity: Local user supplied by the auth collaborator.
            config: Application config; defaults to ``get_config()``.
            page_url: Origin the hosting page was served from.  Overrides
                ``chat.page_url`` and decides ws vs wss.
            connector: Coroutine factory opening the transport.  Defaults to
                the ``websockets`` asyncio client.
            clock: Returns the current local time; used for timestamps.
        """
        self.identity = identity
        self._settings = (config or get_config()).chat
        self._page_url = page_url or self._settings.page_url
        self._connector = connector or self._open_websocket
        self._clock = clock or datetime.now

        self._room_id: Optional[str] = None
        self._messages: List[ChatMessage] = []
        self._connected = False
        self._connection: Any = None
        self._reader: Optional[asyncio.Task] = None
        self._listeners: List[Listener] = []

        # Bumped on every connect/close so a connect that lost a race with a
        # newer connect/close can tell its connection is no longer wanted.
        self._generation = 0

    # ---------------- observation ----------------

    @property
    def room_id(self) -> Optional[str]:
        return self._room_id

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def messages(self) -> tuple:
        """The message log in display order."""
        return tuple(self._messages)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            room_id=self._room_id,
            messages=tuple(self._messages),
            is_connected=self._connected,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* with a snapshot after every state change.

        Returns:
            A callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def is_mine(self, message: ChatMessage) -> bool:
        """Whether *message* was authored by the local user."""
        return is_own_message(message, self.identity)

    # ---------------- lifecycle ----------------

    async def connect(self, room_id: str) -> None:
        """Bind the session to *room_id* and open its connection.

        Any existing connection is torn down first and the log is emptied,
        so nothing from a previous room survives.

        Raises:
            ValueError: If *room_id* is empty.
            SessionConnectError: If the connection cannot be opened.  The
                session is left disconnected; nothing is retried.
        """
        if not room_id:
            raise ValueError("room_id must not be empty")

        await self.close()
        generation = self._generation

        url = build_room_url(room_id, self._page_url, self._settings.api_url)
        logger.info("Connecting to room %s at %s", room_id, url)

        try:
            connection = await self._connector(url, self._handshake_headers())
        except CONNECT_ERRORS as e:
            logger.warning("Connection to room %s failed: %s", room_id, e)
            raise SessionConnectError(url, str(e)) from e

        if generation != self._generation:
            # close() or another connect() ran while we were waiting.
            logger.debug("Discarding superseded connection to room %s", room_id)
            await self._close_quietly(connection)
            return

        self._room_id = room_id
        self._connection = connection
        self._connected = True
        self._reader = asyncio.create_task(self._receive_loop(connection))
        logger.info("Connected to room %s", room_id)
        self._notify()

    async def close(self) -> None:
        """Close the connection and clear the log.

        Safe to call repeatedly, including on a session that never
        connected.
        """
        self._generation += 1
        connection, reader = self._connection, self._reader
        had_state = bool(connection is not None or self._messages or self._room_id)

        room_id = self._room_id
        self._connection = None
        self._reader = None
        self._connected = False
        self._messages = []
        self._room_id = None

        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
        if connection is not None:
            await self._close_quietly(connection)
        if reader is not None and reader is not asyncio.current_task():
            await asyncio.gather(reader, return_exceptions=True)

        if had_state:
            logger.debug("Session for room %s torn down", room_id)
            self._notify()

    async def wait_closed(self) -> None:
        """Wait until the current connection stops delivering frames."""
        reader = self._reader
        if reader is not None:
            await asyncio.wait({reader})

    async def __aenter__(self) -> "RoomMessagingSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---------------- sending ----------------

    async def send(self, content: str) -> bool:
        """Send *content* to the bound room.

        The message is not added to the log; it shows up once the server
        echoes it back.  Callers are expected to reject blank input first
        (see ``ensure_sendable``).

        Returns:
            True if a frame was written, False if the session was not
            connected or the write failed.  Nothing is queued for later.
        """
        connection = self._connection
        if not self._connected or connection is None:
            logger.debug("Send suppressed: not connected")
            return False

        message = ChatMessage(
            username=self.identity.display_name,
            content=content,
            roomId=self._room_id,
            timestamp=format_timestamp(self._clock()),
            senderId=self.identity.user_id or None,
        )
        try:
            await connection.send(encode_outgoing(message))
        except TRANSPORT_ERRORS as e:
            logger.warning("Send to room %s failed: %s", self._room_id, e)
            if connection is self._connection:
                self._connected = False
                self._notify()
            return False
        return True

    # ---------------- internal ----------------

    async def _open_websocket(self, url: str, headers: Dict[str, str]):
        return await ws_connect(
            url,
            additional_headers=headers or None,
            open_timeout=self._settings.open_timeout,
        )

    def _handshake_headers(self) -> Dict[str, str]:
        if self.identity.token:
            return {"Authorization": f"Bearer {self.identity.token}"}
        return {}

    async def _receive_loop(self, connection) -> None:
        try:
            async for raw in connection:
                if connection is not self._connection:
                    break
                self._handle_frame(raw)
        except TRANSPORT_ERRORS as e:
            logger.info("Connection to room %s lost: %s", self._room_id, e)
        finally:
            if connection is self._connection and self._connected:
                self._connected = False
                logger.info("Disconnected from room %s", self._room_id)
                self._notify()

    def _handle_frame(self, raw) -> None:
        try:
            frame = decode_frame(raw)
        except FrameDecodeError as e:
            logger.warning("Dropping malformed frame in room %s: %s", self._room_id, e)
            return

        if isinstance(frame, HistoryFrame):
            self._messages = [m for m in frame.messages if self._belongs_here(m)]
            logger.debug(
                "History for room %s: %d message(s)", self._room_id, len(self._messages)
            )
        else:
            if not self._belongs_here(frame.message):
                return
            self._messages.append(frame.message)
        self._notify()

    def _belongs_here(self, message: ChatMessage) -> bool:
        if message.roomId == self._room_id:
            return True
        logger.warning(
            "Dropping message for room %s received in room %s",
            message.roomId,
            self._room_id,
        )
        return False

    async def _close_quietly(self, connection) -> None:
        try:
            await connection.close()
        except TRANSPORT_ERRORS as e:
            logger.debug("Ignoring error while closing connection: %s", e)

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener failed")
