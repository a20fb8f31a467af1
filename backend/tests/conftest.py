"""Shared test fixtures and configuration for ride chat tests."""
import asyncio
import json
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from ridechat.chat.models import UserIdentity
from ridechat.config import AppConfig
from ridechat.main import app
from ridechat.relay.manager import manager

_END = object()
_DROP = object()


class FakeConnection:
    """In-memory stand-in for a websockets client connection.

    Frames pushed with ``push`` are yielded by async iteration, in order.
    """

    def __init__(self):
        self.sent = []
        self.closed = False
        self.close_calls = 0
        self._inbound = asyncio.Queue()

    def push(self, payload):
        if not isinstance(payload, (str, bytes)):
            payload = json.dumps(payload)
        self._inbound.put_nowait(payload)

    def drop(self):
        """Simulate the server going away."""
        self._inbound.put_nowait(_DROP)

    async def send(self, data):
        if self.closed:
            raise ConnectionClosedOK(None, None)
        self.sent.append(data)

    async def close(self):
        self.close_calls += 1
        if not self.closed:
            self.closed = True
            self._inbound.put_nowait(_END)

    def sent_json(self):
        return [json.loads(frame) for frame in self.sent]

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._inbound.get()
        if item is _END:
            raise StopAsyncIteration
        if item is _DROP:
            self.closed = True
            raise ConnectionClosedError(None, None)
        return item


class FakeConnector:
    """Connector recording every connection attempt."""

    def __init__(self):
        self.connections = []
        self.urls = []
        self.headers = []
        self.fail_with = None
        self.gate = None

    async def __call__(self, url, headers):
        self.urls.append(url)
        self.headers.append(headers)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        connection = FakeConnection()
        self.connections.append(connection)
        return connection

    @property
    def last(self) -> FakeConnection:
        return self.connections[-1]


async def _settle():
    for _ in range(10):
        await asyncio.sleep(0)


FIXED_NOW = datetime(2026, 10, 19, 9, 5, 42)


@pytest.fixture
def settle():
    """Let the session's reader task catch up with pushed frames."""
    return _settle


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def fake_connector():
    return FakeConnector()


@pytest.fixture
def slow_connector():
    """Connector that holds every handshake until ``gate`` is set."""
    connector = FakeConnector()
    connector.gate = asyncio.Event()
    return connector


@pytest.fixture
def config():
    return AppConfig()


@pytest.fixture
def alice():
    return UserIdentity(display_name="Alice", user_id="u1")


@pytest.fixture
def api_client():
    """Provide a TestClient for the relay app."""
    return TestClient(app)


@pytest.fixture(autouse=True)
def cleanup_rooms():
    """Clean up relay rooms after each test to avoid interference."""
    yield
    rooms_to_clear = list(manager.active_connections.keys()) + list(manager.message_history.keys())
    for room_id in set(rooms_to_clear):
        manager.clear_room(room_id)
