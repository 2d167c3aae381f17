"""
Room Identity

Derives the identifier of a chat room from its name and shared password.
Clients that present the same pair end up in the same room without any
central allocation step, so the password is the only thing keeping a room
private.
"""

import hashlib

# Width of the length prefix written before each field
LENGTH_PREFIX_BYTES = 8


def identify(room_name: str, secret: str) -> str:
    """
    Compute the room identifier for a (room name, password) pair.

    Each field is UTF-8 encoded and prefixed with its byte length, so two
    different pairs can never feed the same bytes into the hash
    (``("a:b", "c")`` and ``("a", "b:c")`` stay distinct).

    Args:
        room_name: Human-readable chat room name
        secret: Shared room password

    Returns:
        str: 64-character hex SHA-256 digest
    """
    digest = hashlib.sha256()
    for part in (room_name, secret):
        encoded = part.encode("utf-8")
        digest.update(len(encoded).to_bytes(LENGTH_PREFIX_BYTES, "big"))
        digest.update(encoded)
    return digest.hexdigest()
