"""Shared fixtures for relay tests."""

import json

import pytest
from websockets.protocol import State

from relay import Broadcaster, ChatSession, RoomRegistry


class MockWebSocket:
    """Mock WebSocket connection recording every frame sent to it."""

    def __init__(self, name: str = "client"):
        self.name = name
        self.sent_messages = []
        self.state = State.OPEN

    async def send(self, message):
        self.sent_messages.append(message)

    def events(self):
        """Decoded frames received so far."""
        return [json.loads(m) for m in self.sent_messages]

    def clear(self):
        self.sent_messages.clear()

    def __repr__(self):
        return f"MockWebSocket({self.name!r})"


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def dispatcher(registry):
    return Broadcaster(registry)


@pytest.fixture
def make_session(registry, dispatcher):
    """Create a (connection, session) pair sharing the test registry."""

    def _make(name: str = "client"):
        connection = MockWebSocket(name)
        return connection, ChatSession(connection, registry, dispatcher)

    return _make
