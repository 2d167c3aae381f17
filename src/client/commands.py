"""
Slash Commands

Commands typed in the message box that start with "/" are handled by the
client instead of being sent as chat messages.
"""

import random
from dataclasses import dataclass
from typing import Callable, Optional

HELP_TEXT = (
    "Commands: /help show this list, "
    "/roll roll a six-sided die, "
    "/quit leave termchat"
)


@dataclass
class CommandResult:
    """
    Outcome of a slash command.

    Attributes:
        notice: Text to show locally (not sent to the room)
        outgoing: Chat message to send to the room
        quit: True if the application should exit
    """

    notice: Optional[str] = None
    outgoing: Optional[str] = None
    quit: bool = False


def is_command(text: str) -> bool:
    """Check whether input text is a slash command."""
    return text.startswith("/")


def run_command(
    text: str,
    username: str,
    roll: Callable[[], int] = lambda: random.randint(1, 6),
) -> CommandResult:
    """
    Execute a slash command.

    Args:
        text: The full input, starting with "/"
        username: Name of the local user, used in /roll announcements
        roll: Die roller (injected in tests)

    Returns:
        CommandResult describing what the caller should do
    """
    name = text[1:].split(maxsplit=1)[0].lower() if text[1:].strip() else ""

    if name == "help":
        return CommandResult(notice=HELP_TEXT)
    if name == "roll":
        return CommandResult(outgoing=f"{username} rolled a {roll()} 🎲")
    if name == "quit":
        return CommandResult(quit=True)

    return CommandResult(notice=f"Unknown command: /{name}. Try /help")
