"""
Schema Definitions for the Relay Server

Event classes for every frame type exchanged with clients, and the
parsers that turn raw frames into them.
"""

from .events import (
    INVALID_FORMAT_ERROR,
    JOIN_FIELDS_ERROR,
    NOT_JOINED_ERROR,
    BaseEvent,
    ChatMessage,
    ClientEvent,
    ErrorEvent,
    EventValidationError,
    InvalidMessageFormat,
    JoinNotice,
    JoinRequest,
    LeaveNotice,
    ProtocolError,
    SendMessageRequest,
    ServerEvent,
    UnknownEvent,
    decode_frame,
    parse_client_event,
    parse_server_event,
)

__all__ = [
    "INVALID_FORMAT_ERROR",
    "JOIN_FIELDS_ERROR",
    "NOT_JOINED_ERROR",
    "BaseEvent",
    "ChatMessage",
    "ClientEvent",
    "ErrorEvent",
    "EventValidationError",
    "InvalidMessageFormat",
    "JoinNotice",
    "JoinRequest",
    "LeaveNotice",
    "ProtocolError",
    "SendMessageRequest",
    "ServerEvent",
    "UnknownEvent",
    "decode_frame",
    "parse_client_event",
    "parse_server_event",
]
