"""
Utilities for the Relay Server

This module contains helper functions shared by the event schemas.
"""

from .validation import (
    EMPTY_CONTENT_ERROR,
    is_optional_string,
    missing_fields,
    validate_message_content,
)

__all__ = [
    "EMPTY_CONTENT_ERROR",
    "is_optional_string",
    "missing_fields",
    "validate_message_content",
]
