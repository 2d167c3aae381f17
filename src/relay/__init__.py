"""
Relay Server Package

This package provides the termchat relay: room identity, the room
registry, the broadcast dispatcher, per-connection sessions and the
WebSocket server that ties them together.
"""

from .dispatcher import Broadcaster
from .room_identity import identify
from .room_registry import Departure, Room, RoomRegistry
from .session import ChatSession, SessionState
from .websocket_server import WebSocketServer

__all__ = [
    "Broadcaster",
    "identify",
    "Departure",
    "Room",
    "RoomRegistry",
    "ChatSession",
    "SessionState",
    "WebSocketServer",
]
