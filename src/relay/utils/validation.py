"""
Validation Utilities

Contains utility functions for validating fields of client events.
"""

from typing import Any, Dict, List, Optional, Tuple

EMPTY_CONTENT_ERROR = "Message content cannot be empty"


def is_optional_string(value: Any) -> bool:
    """Return True if value is a string or absent (None)."""
    return value is None or isinstance(value, str)


def missing_fields(values: Dict[str, Optional[str]]) -> List[str]:
    """
    List the required fields that are absent or empty.

    Args:
        values: Mapping of field name to received value

    Returns:
        list: Names of missing fields, in the order given
    """
    return [name for name, value in values.items() if not value]


def validate_message_content(
    content: Optional[str],
) -> Tuple[bool, Optional[str]]:
    """
    Validate chat message content.

    Args:
        content: The message content to validate

    Returns:
        tuple: (is_valid, error_message)
            - is_valid: True if content has non-whitespace characters
            - error_message: Error message if invalid, None if valid
    """
    if not content or not content.strip():
        return False, EMPTY_CONTENT_ERROR

    return True, None
