"""Terminal chat client.

Owns a ``RoomMessagingSession`` the way the web chat widget does: it supplies
the identity and room, renders the log, gates sending on connectivity and
rejects blank input before it reaches the session.
"""
import argparse
import asyncio
from typing import Callable, List, Optional, Tuple

from ridechat.chat.errors import EmptyMessageError, SessionConnectError
from ridechat.chat.models import ChatMessage, SessionSnapshot, UserIdentity, ensure_sendable
from ridechat.chat.session import RoomMessagingSession
from ridechat.config import AppConfig, configure_logging, get_config, load_config


HELP_TEXT = (
    "\nCommands:\n"
    "  /room <id>   Switch to another room\n"
    "  /help        Show this help\n"
    "  /quit        Exit\n"
    "Anything else is sent to the current room.\n"
)


def format_message(message: ChatMessage, mine: bool) -> str:
    author = "me" if mine else message.username
    return f"[{message.timestamp}] {author}: {message.content}"


class ChatConsole:
    """Renders session snapshots and interprets input lines."""

    def __init__(
        self,
        session: RoomMessagingSession,
        out: Callable[[str], None] = print,
    ) -> None:
        self.session = session
        self.out = out
        self._shown: Tuple[ChatMessage, ...] = ()
        self._was_connected = False
        self._watcher: Optional[asyncio.Task] = None
        self._unsubscribe = session.subscribe(self.render)

    def render(self, snapshot: SessionSnapshot) -> None:
        if snapshot.is_connected != self._was_connected:
            self._was_connected = snapshot.is_connected
            state = "connected" if snapshot.is_connected else "disconnected"
            self.out(f"* {state} ({snapshot.room_id or 'no room'})")

        messages = snapshot.messages
        if messages[: len(self._shown)] == self._shown:
            fresh = messages[len(self._shown):]
        else:
            # History replaced the log; show it from the top.
            fresh = messages

        for message in fresh:
            self.out(format_message(message, self.session.is_mine(message)))
        self._shown = messages

    async def handle_line(self, line: str) -> bool:
        """Process one input line.

        Returns:
            False when the user asked to quit.
        """
        command = line.strip()
        if command in ("/quit", "/exit"):
            return False

        if command == "/help":
            self.out(HELP_TEXT)
            return True

        parts = command.split(maxsplit=1)
        if parts and parts[0] == "/room":
            if len(parts) < 2:
                self.out("Usage: /room <id>")
                return True
            await self.switch_room(parts[1])
            return True

        try:
            content = ensure_sendable(line)
        except EmptyMessageError as e:
            self.out(str(e))
            return True

        if not self.session.is_connected:
            self.out("Not connected; message not sent.")
            return True

        if not await self.session.send(content):
            self.out("Send failed; connection lost.")
        return True

    async def switch_room(self, room_id: str) -> None:
        try:
            await self.session.connect(room_id)
        except SessionConnectError as e:
            self.out(f"Could not join {room_id}: {e.reason}")
            return

        if self._watcher is not None:
            self._watcher.cancel()
        self._watcher = asyncio.create_task(self._report_when_closed(room_id))

    async def _report_when_closed(self, room_id: str) -> None:
        await self.session.wait_closed()
        # A room switch or close() also ends the reader; only a drop is news.
        if self.session.room_id == room_id and not self.session.is_connected:
            self.out(f"Connection to {room_id} lost. Use /room {room_id} to rejoin.")

    def detach(self) -> None:
        self._unsubscribe()
        if self._watcher is not None:
            self._watcher.cancel()
            self._watcher = None


def _client_config(args: argparse.Namespace) -> AppConfig:
    config = load_config(args.config) if args.config else get_config()
    if args.api_url is not None:
        chat = config.chat.model_copy(update={"api_url": args.api_url})
        config = config.model_copy(update={"chat": chat})
    return config


async def run_console(args: argparse.Namespace) -> None:
    config = _client_config(args)
    configure_logging(config.logging.level)

    identity = UserIdentity(
        display_name=args.name,
        user_id=args.user_id,
        token=args.token,
    )
    async with RoomMessagingSession(identity, config=config, page_url=args.page_url) as session:
        console = ChatConsole(session)
        await console.switch_room(args.room)
        console.out("Type /help for commands.")
        try:
            while True:
                try:
                    line = await asyncio.to_thread(input, "")
                except EOFError:
                    break
                if not await console.handle_line(line):
                    break
        finally:
            console.detach()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Join a ride chat room from the terminal")
    parser.add_argument("--room", required=True, help="Room (ride) id to join")
    parser.add_argument("--name", required=True, help="Display name")
    parser.add_argument("--user-id", default=None, help="Stable user id")
    parser.add_argument("--token", default=None, help="Authorization token")
    parser.add_argument("--page-url", default=None, help="Origin the client is served from")
    parser.add_argument("--api-url", default=None, help="Chat service URL (overrides config)")
    parser.add_argument("--config", default=None, help="Path to ridechat.settings.yaml")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``ridechat-cli``."""
    args = build_parser().parse_args(argv)
    try:
        asyncio.run(run_console(args))
    except KeyboardInterrupt:
        pass
    finally:
        print("\nExiting...")


if __name__ == "__main__":
    main()
