"""
Room Registry for the Relay Server

This module keeps the in-memory membership of every active chat room.
Rooms exist only while they have members: the first join creates a room
and the last leave removes it.

Two structures are maintained together under one lock:
    - room_id -> Room (connection -> display name)
    - connection -> room_id (so a connection's room is found without a scan)
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class Room:
    """
    A chat room and its current members.

    Attributes:
        room_id: Identifier derived from the room name and password
        members: Maps each member connection to its display name
    """

    room_id: str
    members: Dict[Any, str] = field(default_factory=dict)

    @property
    def member_count(self) -> int:
        """Number of connections currently in the room."""
        return len(self.members)


@dataclass(frozen=True)
class Departure:
    """
    Result of removing a connection from a room.

    Attributes:
        room_id: Room the connection was removed from
        username: Display name the connection had in that room
        remaining: Members left in the room after the removal
        room_deleted: True if the removal emptied (and deleted) the room
    """

    room_id: str
    username: Optional[str]
    remaining: int
    room_deleted: bool


class RoomRegistry:
    """
    Tracks which connections are in which rooms.

    All methods are synchronous and hold the lock only for dictionary
    operations, so nothing ever sends or awaits while holding it.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._rooms: Dict[str, Room] = {}
        self._connection_rooms: Dict[Any, str] = {}
        self._lock = threading.Lock()

    def join(
        self, room_id: str, connection: Any, display_name: str
    ) -> Optional[Departure]:
        """
        Add a connection to a room, leaving its current room first.

        The connection is always removed from the room it is in, even if
        that is the room it is joining, so callers can announce the leave
        before announcing the join.

        Args:
            room_id: Room to join
            connection: The member's connection
            display_name: Name shown to other members (duplicates allowed)

        Returns:
            Departure from the previous room, or None if it was in no room
        """
        with self._lock:
            departure = self._remove(connection)

            room = self._rooms.get(room_id)
            if room is None:
                room = Room(room_id=room_id)
                self._rooms[room_id] = room
                logger.info(f"Created room {room_id[:12]}")

            room.members[connection] = display_name
            self._connection_rooms[connection] = room_id
            member_count = room.member_count

        logger.debug(
            f"{display_name} added to room {room_id[:12]} "
            f"({member_count} members)"
        )
        return departure

    def leave(self, connection: Any) -> Optional[Departure]:
        """
        Remove a connection from whatever room it is in.

        Args:
            connection: The connection to remove

        Returns:
            Departure describing the removal, or None if it was in no room
        """
        with self._lock:
            return self._remove(connection)

    def _remove(self, connection: Any) -> Optional[Departure]:
        # Caller must hold self._lock
        room_id = self._connection_rooms.pop(connection, None)
        if room_id is None:
            return None

        room = self._rooms[room_id]
        username = room.members.pop(connection, None)
        room_deleted = not room.members
        if room_deleted:
            del self._rooms[room_id]
            logger.info(f"Deleted empty room {room_id[:12]}")

        return Departure(
            room_id=room_id,
            username=username,
            remaining=room.member_count,
            room_deleted=room_deleted,
        )

    def room_of(self, connection: Any) -> Optional[str]:
        """Return the id of the room the connection is in, if any."""
        with self._lock:
            return self._connection_rooms.get(connection)

    def display_name_of(self, connection: Any) -> Optional[str]:
        """Return the connection's display name in its room, if any."""
        with self._lock:
            room_id = self._connection_rooms.get(connection)
            if room_id is None:
                return None
            return self._rooms[room_id].members.get(connection)

    def members(self, room_id: str) -> List[Any]:
        """
        Snapshot the connections currently in a room.

        Args:
            room_id: The room ID

        Returns:
            A new list of member connections (empty if no such room)
        """
        with self._lock:
            room = self._rooms.get(room_id)
            return list(room.members) if room else []

    def member_names(self, room_id: str) -> List[str]:
        """Snapshot the display names of a room's members."""
        with self._lock:
            room = self._rooms.get(room_id)
            return list(room.members.values()) if room else []

    def has_room(self, room_id: str) -> bool:
        """Check whether a room currently exists."""
        with self._lock:
            return room_id in self._rooms

    def room_count(self) -> int:
        """Number of active rooms."""
        return len(self._rooms)
