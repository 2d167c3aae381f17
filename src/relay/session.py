"""
Connection Session Handler

One ChatSession exists per client connection. It interprets the frames
the client sends, updates the room registry and asks the dispatcher to
notify the affected connections.

States:
    UNJOINED -> JOINED -> CLOSED
"""

import logging
from enum import Enum
from typing import Any, Optional, Union

from .dispatcher import Broadcaster
from .room_identity import identify
from .room_registry import Departure, RoomRegistry
from .schemas import (
    NOT_JOINED_ERROR,
    ChatMessage,
    ErrorEvent,
    JoinNotice,
    JoinRequest,
    LeaveNotice,
    ProtocolError,
    SendMessageRequest,
    parse_client_event,
)

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Lifecycle states of a client session."""

    UNJOINED = "UNJOINED"
    JOINED = "JOINED"
    CLOSED = "CLOSED"


class ChatSession:
    """
    Per-connection state machine.

    Attributes:
        connection: The client's WebSocket connection
        registry: Shared room registry
        dispatcher: Shared broadcast dispatcher
        state: Current SessionState
    """

    def __init__(
        self,
        connection: Any,
        registry: RoomRegistry,
        dispatcher: Broadcaster,
    ):
        """
        Initialize a session for a newly opened connection.

        Args:
            connection: The client's WebSocket connection
            registry: Shared room registry
            dispatcher: Shared broadcast dispatcher
        """
        self.connection = connection
        self.registry = registry
        self.dispatcher = dispatcher
        self.state = SessionState.UNJOINED

    @property
    def room_id(self) -> Optional[str]:
        """ID of the room this session is in, if any."""
        return self.registry.room_of(self.connection)

    @property
    def username(self) -> Optional[str]:
        """Display name used in the current room, if any."""
        return self.registry.display_name_of(self.connection)

    async def handle_message(self, message: Union[str, bytes]):
        """
        Process one frame received from the client.

        Args:
            message: The raw frame (JSON text)
        """
        if self.state is SessionState.CLOSED:
            logger.debug("Ignoring frame received after close")
            return

        try:
            event = parse_client_event(message)
        except ProtocolError as e:
            logger.error(f"Rejected frame from {id(self.connection)}: {e}")
            self.send_error(str(e))
            return

        if isinstance(event, JoinRequest):
            self.handle_join(event)
        elif isinstance(event, SendMessageRequest):
            self.handle_chat_message(event)
        else:
            logger.warning(f"Unknown message type: {event.event_type}")

    def handle_join(self, request: JoinRequest):
        """
        Move this connection into the room named by the request.

        Any current membership is dropped first and announced to that
        room, even when re-joining the same room.

        Args:
            request: A validated join request
        """
        room_id = identify(request.chatname, request.password)
        departure = self.registry.join(
            room_id, self.connection, request.username
        )
        if departure:
            self._announce_departure(departure)

        self.state = SessionState.JOINED

        notice = JoinNotice(username=request.username)
        self.dispatcher.send(self.connection, notice)
        self.dispatcher.broadcast(room_id, notice, exclude=self.connection)

        logger.info(f"User {request.username} joined room {request.chatname}")

    def handle_chat_message(self, request: SendMessageRequest):
        """
        Relay a chat message to the whole room, sender included.

        Args:
            request: A validated message request
        """
        room_id = self.room_id
        if room_id is None:
            self.send_error(NOT_JOINED_ERROR)
            return

        username = self.username
        self.dispatcher.broadcast(
            room_id, ChatMessage(username=username, content=request.content)
        )
        logger.info(f"Message from {username}: {request.content}")

    def send_error(self, message: str):
        """Send an error event to this connection only."""
        self.dispatcher.send(self.connection, ErrorEvent(message=message))

    def close(self):
        """
        Remove the connection from its room after the transport is gone.

        Safe to call more than once and on sessions that never joined.
        """
        if self.state is SessionState.CLOSED:
            return

        departure = self.registry.leave(self.connection)
        if departure:
            self._announce_departure(departure)
        self.state = SessionState.CLOSED

    def _announce_departure(self, departure: Departure):
        # On a same-room re-join the connection is already back in the room
        if departure.username:
            self.dispatcher.broadcast(
                departure.room_id,
                LeaveNotice(username=departure.username),
                exclude=self.connection,
            )
        logger.info(
            f"User {departure.username} left room {departure.room_id[:12]} "
            f"({departure.remaining} remaining)"
        )
