"""
Chat Client for the Termchat Relay

This module provides the ChatClient class, which manages one WebSocket
connection to a relay server: joining a room, sending messages, and
dispatching incoming events to callbacks for the UI layer.

Usage:
    client = ChatClient("ws://localhost:443")
    await client.connect()
    await client.join("alice", "lobby", "secret")
    await client.receive_messages()
"""

import logging
from typing import Callable, Optional

import websockets
from websockets.asyncio.client import ClientConnection, connect

from relay.schemas import (
    ChatMessage,
    ErrorEvent,
    JoinNotice,
    JoinRequest,
    LeaveNotice,
    ProtocolError,
    SendMessageRequest,
    parse_server_event,
)

logger = logging.getLogger(__name__)


class ChatClient:
    """
    Client for a termchat relay server.

    Attributes:
        server_url: WebSocket URL of the relay (e.g., ws://localhost:443)
        websocket: Active WebSocket connection (None if not connected)
        username: Name used in the last join request
        chatname: Room name used in the last join request
        joined: True once the server acknowledged the join
    """

    def __init__(
        self,
        server_url: str,
        websocket_factory: Optional[Callable] = None,
    ):
        """
        Initialize the chat client.

        Args:
            server_url: WebSocket URL of the relay server
            websocket_factory: Optional factory for creating WebSocket
                             connections (for dependency injection/testing)
        """
        self.server_url = server_url
        self.websocket: Optional[ClientConnection] = None
        self._websocket_factory = websocket_factory or connect
        self._connected = False

        self.username: Optional[str] = None
        self.chatname: Optional[str] = None
        self.joined = False

        # Callbacks for UI integration
        self._on_join: Optional[Callable[[JoinNotice], None]] = None
        self._on_leave: Optional[Callable[[LeaveNotice], None]] = None
        self._on_message: Optional[Callable[[ChatMessage], None]] = None
        self._on_error: Optional[Callable[[ErrorEvent], None]] = None

        logger.info("ChatClient initialized for server: %s", server_url)

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to a server."""
        return self._connected and self.websocket is not None

    async def connect(self) -> None:
        """
        Establish the WebSocket connection to the relay.

        Raises:
            ConnectionError: If connection fails
        """
        try:
            logger.info("Connecting to %s...", self.server_url)
            self.websocket = await self._websocket_factory(self.server_url)
            self._connected = True
            logger.info("Successfully connected to relay server")
        except Exception as e:
            logger.error("Failed to connect to relay: %s", e)
            raise ConnectionError(
                f"Could not connect to {self.server_url}: {e}"
            ) from e

    async def disconnect(self) -> None:
        """Close the WebSocket connection."""
        if self.websocket:
            await self.websocket.close()
            self.websocket = None
            self._connected = False
            self.joined = False
            logger.info("Disconnected from relay server")

    async def join(self, username: str, chatname: str, password: str) -> None:
        """
        Ask the server to put this connection in a room.

        The server answers with a join event carrying our username; it is
        delivered to the on_join callback by receive_messages().

        Raises:
            ConnectionError: If not connected to a server
        """
        if not self.is_connected:
            raise ConnectionError("Not connected to a relay server")

        self.username = username
        self.chatname = chatname
        self.joined = False
        request = JoinRequest(
            username=username, chatname=chatname, password=password
        )
        await self.websocket.send(request.to_json())
        logger.info(
            "Sent join request for room '%s' as %s", chatname, username
        )

    async def send_message(self, content: str) -> None:
        """
        Send a chat message to the current room.

        Raises:
            ConnectionError: If not connected to a server
        """
        if not self.is_connected:
            raise ConnectionError("Not connected to a relay server")

        request = SendMessageRequest(content=content)
        await self.websocket.send(request.to_json())

    async def receive_messages(self) -> None:
        """
        Receive server events until the connection closes.

        Each event is handed to the matching callback. Frames that cannot
        be parsed are logged and skipped.
        """
        if not self.is_connected:
            raise ConnectionError("Not connected to a relay server")

        logger.info("Starting message receive loop")

        try:
            async for message in self.websocket:
                self._process_incoming_message(message)
        except websockets.exceptions.ConnectionClosed:
            logger.warning("Connection closed by server")
        finally:
            self._connected = False
            self.joined = False

    def _process_incoming_message(self, message: str) -> None:
        try:
            event = parse_server_event(message)
        except ProtocolError as e:
            logger.error("Ignoring malformed frame from server: %s", e)
            return

        if isinstance(event, JoinNotice):
            if event.username == self.username and not self.joined:
                self.joined = True
            if self._on_join:
                self._on_join(event)
        elif isinstance(event, LeaveNotice):
            if self._on_leave:
                self._on_leave(event)
        elif isinstance(event, ChatMessage):
            if self._on_message:
                self._on_message(event)
        elif isinstance(event, ErrorEvent):
            logger.warning("Server error: %s", event.message)
            if self._on_error:
                self._on_error(event)
        else:
            logger.debug("Ignoring unknown frame: %s", message)

    def set_on_join(self, callback: Callable[[JoinNotice], None]) -> None:
        """Register callback for join acks and join notices."""
        self._on_join = callback

    def set_on_leave(self, callback: Callable[[LeaveNotice], None]) -> None:
        """Register callback for members leaving the room."""
        self._on_leave = callback

    def set_on_message(self, callback: Callable[[ChatMessage], None]) -> None:
        """Register callback for chat messages (including our own echo)."""
        self._on_message = callback

    def set_on_error(self, callback: Callable[[ErrorEvent], None]) -> None:
        """Register callback for error events."""
        self._on_error = callback
