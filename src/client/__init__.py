"""
Client Package

This package provides the client side of termchat: the ChatClient that
talks to a relay server, client-side slash commands, and the terminal
user interface.
"""

from .chat_client import ChatClient
from .commands import CommandResult, is_command, run_command

__all__ = [
    "ChatClient",
    "CommandResult",
    "is_command",
    "run_command",
]
