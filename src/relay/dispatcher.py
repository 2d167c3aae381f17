"""
Broadcast Dispatcher

Delivers events to the connections of a room. Each recipient gets its own
delivery task, so a slow client never holds up the others and no registry
lock is held while a frame is being written.
"""

import asyncio
import logging
from typing import Any, Optional, Set

import websockets
from websockets.protocol import State

from .room_registry import RoomRegistry
from .schemas import BaseEvent

logger = logging.getLogger(__name__)


def is_open(connection: Any) -> bool:
    """Check whether a connection can currently accept frames."""
    return connection.state is State.OPEN


class Broadcaster:
    """
    Fire-and-forget delivery of events to rooms and single connections.

    Attributes:
        registry: Room registry used to look up room membership
    """

    def __init__(self, registry: RoomRegistry):
        """
        Initialize the dispatcher.

        Args:
            registry: The room registry to read memberships from
        """
        self.registry = registry
        self._pending: Set[asyncio.Task] = set()

    def broadcast(
        self,
        room_id: str,
        event: BaseEvent,
        exclude: Optional[Any] = None,
    ) -> int:
        """
        Send an event to every open connection in a room.

        The event is serialized once and the same frame goes to each
        recipient. Closed connections are skipped without error.

        Args:
            room_id: The room ID
            event: The event to deliver
            exclude: Optional connection to leave out (e.g. the sender)

        Returns:
            int: Number of connections a delivery was scheduled for
        """
        members = self.registry.members(room_id)
        if not members:
            return 0

        frame = event.to_json()
        recipients = 0
        for connection in members:
            if connection is exclude or not is_open(connection):
                continue
            self._schedule(connection, frame)
            recipients += 1

        logger.debug(
            f"Broadcast {event.event_type} to {recipients} member(s) "
            f"of room {room_id[:12]}"
        )
        return recipients

    def send(self, connection: Any, event: BaseEvent) -> bool:
        """
        Send an event to a single connection.

        Args:
            connection: The recipient
            event: The event to deliver

        Returns:
            bool: True if a delivery was scheduled
        """
        if not is_open(connection):
            logger.debug(f"Dropped {event.event_type}: connection not open")
            return False
        self._schedule(connection, event.to_json())
        return True

    def _schedule(self, connection: Any, frame: str):
        task = asyncio.create_task(self._deliver(connection, frame))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, connection: Any, frame: str):
        try:
            await connection.send(frame)
        except websockets.exceptions.ConnectionClosed:
            logger.debug(f"Connection {id(connection)} closed during send")
        except Exception as e:
            logger.error(f"Failed to deliver to {id(connection)}: {e}")

    def pending_count(self) -> int:
        """Number of deliveries still in flight."""
        return len(self._pending)

    async def flush(self):
        """Wait for all in-flight deliveries to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))
