"""
Event Schema Definitions

Every frame exchanged with a client is a flat JSON object whose ``type``
key selects one of the event classes below. Client events are validated
once, when they are parsed, so the session handler only ever sees
well-formed events.
"""

import json
from dataclasses import asdict, dataclass, fields
from typing import Any, ClassVar, Dict, Optional, Type, TypeVar, Union

from ..utils.validation import (
    is_optional_string,
    missing_fields,
    validate_message_content,
)

T = TypeVar("T", bound="BaseEvent")

INVALID_FORMAT_ERROR = "Invalid message format"
JOIN_FIELDS_ERROR = "Username, chatname, and password are required"
NOT_JOINED_ERROR = "You must join a room before sending messages"


class ProtocolError(ValueError):
    """Base class for client frames that cannot be acted upon."""


class InvalidMessageFormat(ProtocolError):
    """The frame is not a JSON object of the expected shape."""

    def __init__(self, detail: str = ""):
        super().__init__(INVALID_FORMAT_ERROR)
        self.detail = detail


class EventValidationError(ProtocolError):
    """The frame is well-formed but a required field is missing or empty."""


class BaseEvent:
    """
    Base class for event schemas.

    Provides serialization to the flat wire format and the default
    deserialization used by subclasses.
    """

    event_type: ClassVar[str] = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary with the 'type' key first."""
        return {"type": self.event_type, **asdict(self)}

    def to_json(self) -> str:
        """Convert to a JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
        """
        Create instance from a decoded frame.

        Args:
            data: Dictionary containing the event fields.

        Returns:
            Instance of the event class.
        """
        return cls._from_data(data)

    @classmethod
    def from_json(cls: Type[T], json_str: str) -> T:
        """Create instance from a JSON string."""
        return cls.from_dict(decode_frame(json_str))

    @classmethod
    def _from_data(cls: Type[T], data: Dict[str, Any]) -> T:
        """
        Pick this class's fields out of the frame, checking their types.

        Raises:
            InvalidMessageFormat: If a field is present but not a string
        """
        values = {}
        for f in fields(cls):
            value = data.get(f.name)
            if not is_optional_string(value):
                raise InvalidMessageFormat(
                    f"Field '{f.name}' must be a string"
                )
            values[f.name] = value
        return cls(**values)


# Client -> server events


@dataclass
class JoinRequest(BaseEvent):
    """
    Request to join (or switch to) a room.

    Attributes:
        username: Display name to use in the room
        chatname: Room name
        password: Shared room password
    """

    event_type: ClassVar[str] = "join"

    username: str
    chatname: str
    password: str

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "JoinRequest":
        """Create from frame data, requiring all three fields."""
        request = super()._from_data(data)
        if missing_fields(asdict(request)):
            raise EventValidationError(JOIN_FIELDS_ERROR)
        return request


@dataclass
class SendMessageRequest(BaseEvent):
    """
    Request to send a message to the sender's current room.

    Attributes:
        content: The message text, relayed as received
    """

    event_type: ClassVar[str] = "message"

    content: str

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "SendMessageRequest":
        """Create from frame data, rejecting blank content."""
        request = super()._from_data(data)
        is_valid, error = validate_message_content(request.content)
        if not is_valid:
            raise EventValidationError(error)
        return request


@dataclass
class UnknownEvent:
    """A well-formed frame whose type the server does not handle."""

    event_type: Optional[Any]


# Server -> client events


@dataclass
class JoinNotice(BaseEvent):
    """Sent to a joining member as an ack and to the others as a notice."""

    event_type: ClassVar[str] = "join"

    username: str


@dataclass
class LeaveNotice(BaseEvent):
    """Sent to the remaining members when someone leaves."""

    event_type: ClassVar[str] = "leave"

    username: str


@dataclass
class ChatMessage(BaseEvent):
    """A chat message, sent to every member including the sender."""

    event_type: ClassVar[str] = "message"

    username: str
    content: str


@dataclass
class ErrorEvent(BaseEvent):
    """Human-readable error sent only to the offending connection."""

    event_type: ClassVar[str] = "error"

    message: str


ClientEvent = Union[JoinRequest, SendMessageRequest, UnknownEvent]
ServerEvent = Union[JoinNotice, LeaveNotice, ChatMessage, ErrorEvent]

CLIENT_EVENT_TYPES: Dict[str, Type[BaseEvent]] = {
    JoinRequest.event_type: JoinRequest,
    SendMessageRequest.event_type: SendMessageRequest,
}

SERVER_EVENT_TYPES: Dict[str, Type[BaseEvent]] = {
    JoinNotice.event_type: JoinNotice,
    LeaveNotice.event_type: LeaveNotice,
    ChatMessage.event_type: ChatMessage,
    ErrorEvent.event_type: ErrorEvent,
}


def decode_frame(raw: Union[str, bytes]) -> Dict[str, Any]:
    """
    Decode a text frame into a JSON object.

    Raises:
        InvalidMessageFormat: If the frame is not JSON or not an object
    """
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError) as e:
        raise InvalidMessageFormat(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise InvalidMessageFormat("Frame is not a JSON object")
    return data


def parse_client_event(raw: Union[str, bytes]) -> ClientEvent:
    """
    Parse and validate a frame received from a client.

    Args:
        raw: The frame payload

    Returns:
        A JoinRequest, SendMessageRequest or UnknownEvent

    Raises:
        InvalidMessageFormat: If the frame is malformed
        EventValidationError: If a required field is missing or empty
    """
    data = decode_frame(raw)
    event_type = data.get("type")
    event_class = (
        CLIENT_EVENT_TYPES.get(event_type)
        if isinstance(event_type, str)
        else None
    )
    if event_class is None:
        return UnknownEvent(event_type)
    return event_class.from_dict(data)


def parse_server_event(raw: Union[str, bytes]) -> Optional[ServerEvent]:
    """
    Parse a frame received from the server.

    Args:
        raw: The frame payload

    Returns:
        The event, or None if its type is not recognized

    Raises:
        InvalidMessageFormat: If the frame is malformed
    """
    data = decode_frame(raw)
    event_type = data.get("type")
    event_class = (
        SERVER_EVENT_TYPES.get(event_type)
        if isinstance(event_type, str)
        else None
    )
    if event_class is None:
        return None
    return event_class.from_dict(data)
