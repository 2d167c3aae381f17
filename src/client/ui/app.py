"""
Chat Application UI

Main application class for the termchat terminal UI.
Built using the Textual framework.
"""

import asyncio
import logging
import os
from typing import Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import (
    Container,
    Horizontal,
    ScrollableContainer,
    Vertical,
)
from textual.css.query import NoMatches
from textual.widgets import Button, Footer, Header, Input, Label, Static

from relay.schemas import ChatMessage, ErrorEvent, JoinNotice, LeaveNotice

from ..chat_client import ChatClient
from ..commands import is_command, run_command

logger = logging.getLogger(__name__)

DEFAULT_SERVER = "ws://localhost:443"


class MessageDisplay(Static):
    """Widget for displaying a single chat message."""

    def __init__(
        self,
        username: str,
        message_content: str,
        is_own_message: bool = False,
    ) -> None:
        """Initialize message display."""
        super().__init__()
        self.msg_username = username
        self.msg_content = message_content
        self.is_own_message = is_own_message

    def compose(self) -> ComposeResult:
        """Compose the message display."""
        prefix = "You" if self.is_own_message else self.msg_username
        yield Static(f"[bold cyan]{prefix}[/]", classes="message-content")
        # Chat text is shown verbatim, never parsed as markup
        yield Static(
            self.msg_content, classes="message-content", markup=False
        )


class SystemMessage(Static):
    """Widget for displaying system messages and notifications."""

    def __init__(self, message: str, message_type: str = "info") -> None:
        """Initialize system message display."""
        self.message = message
        self.message_type = message_type
        super().__init__()

    def compose(self) -> ComposeResult:
        """Compose the system message."""
        color = {
            "info": "blue",
            "warning": "yellow",
            "error": "red",
            "success": "green",
        }.get(self.message_type, "white")
        yield Static(
            f"[{color}]⚡ {self.message}[/]", classes="system-message"
        )


class ConnectionScreen(Container):
    """Screen for entering server and room details."""

    def compose(self) -> ComposeResult:
        """Compose the connection screen."""
        yield Static(
            "[bold blue]Termchat[/]",
            id="title",
            classes="screen-title",
        )
        yield Static(
            "Enter a room name and password to join:", classes="subtitle"
        )
        with Vertical(id="connection-form"):
            yield Label("Username:")
            yield Input(
                placeholder="Enter your username...", id="username-input"
            )
            yield Label("Server:")
            yield Input(
                value=os.environ.get("TERMCHAT_SERVER", DEFAULT_SERVER),
                placeholder="ws://host:port",
                id="server-input",
            )
            yield Label("Chat name:")
            yield Input(placeholder="Room name...", id="chatname-input")
            yield Label("Password:")
            yield Input(
                placeholder="Room password...",
                password=True,
                id="password-input",
            )
            yield Button("Join", id="join-btn", variant="primary")
        yield Static("", id="connection-status", classes="status-message")


class ChatScreen(Container):
    """Screen for chatting in a room."""

    def compose(self) -> ComposeResult:
        """Compose the chat screen."""
        with Vertical(id="chat-main"):
            yield Static("", id="room-header", classes="room-header")
            yield ScrollableContainer(id="messages-container")
            with Horizontal(id="message-input-row"):
                yield Input(
                    placeholder="Type a message or /help...",
                    id="message-input",
                )
                yield Button("Send", id="send-btn", variant="primary")
                yield Button("Leave", id="leave-btn", variant="warning")


class ChatApp(App):
    """Main chat application."""

    CSS = """
    Screen {
        layout: vertical;
    }

    .screen-title {
        text-align: center;
        padding: 1 0;
        text-style: bold;
    }

    .subtitle {
        text-align: center;
        padding: 0 0 1 0;
    }

    ConnectionScreen {
        align: center middle;
    }

    #connection-form {
        align: center middle;
        padding: 2;
        width: 60;
        height: auto;
    }

    #connection-form Input {
        margin: 0 0 1 0;
    }

    #connection-form Button {
        margin: 1 0 0 0;
        width: 100%;
    }

    .status-message {
        text-align: center;
        padding: 1;
    }

    ChatScreen {
        height: 100%;
    }

    .room-header {
        padding: 1;
        background: $surface;
        text-align: center;
    }

    #messages-container {
        height: 1fr;
        padding: 1;
    }

    #message-input-row {
        height: 3;
        padding: 0 1;
    }

    #message-input {
        width: 1fr;
    }

    #message-input-row Button {
        margin: 0 0 0 1;
    }

    MessageDisplay {
        padding: 0 0 1 0;
    }

    .message-content {
        padding: 0 1;
    }

    .own-message .message-content {
        text-align: right;
    }

    SystemMessage {
        padding: 0 0 1 0;
    }

    .system-message {
        text-align: center;
        text-style: italic;
    }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", show=True),
        Binding("escape", "go_back", "Leave", show=True),
    ]

    def __init__(self) -> None:
        """Initialize the chat application."""
        super().__init__()
        self.client: Optional[ChatClient] = None
        self.username: Optional[str] = None
        self.chatname: Optional[str] = None
        self._current_screen = "connection"
        self._receive_task: Optional[asyncio.Task] = None
        self._awaiting_ack = False

    def compose(self) -> ComposeResult:
        """Compose the main application layout."""
        yield Header()
        yield ConnectionScreen(id="connection-screen")
        yield ChatScreen(id="chat-screen")
        yield Footer()

    def on_mount(self) -> None:
        """Handle application mount."""
        self._show_screen("connection")

    def _show_screen(self, screen_name: str) -> None:
        """Show a specific screen and hide others."""
        screens = {
            "connection": "connection-screen",
            "chat": "chat-screen",
        }

        for name, screen_id in screens.items():
            try:
                screen = self.query_one(f"#{screen_id}")
                screen.display = name == screen_name
            except NoMatches:
                pass

        self._current_screen = screen_name

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button press events."""
        button_id = event.button.id

        if button_id == "join-btn":
            await self._handle_join()
        elif button_id == "send-btn":
            await self._handle_send_message()
        elif button_id == "leave-btn":
            await self._handle_leave()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        """Handle input submit events (Enter key)."""
        if event.input.id == "message-input":
            await self._handle_send_message()
        else:
            await self._handle_join()

    async def _handle_join(self) -> None:
        """Connect to the server and join the requested room."""
        status = self.query_one("#connection-status", Static)
        values = {
            name: self.query_one(f"#{name}-input", Input).value
            for name in ("username", "server", "chatname", "password")
        }
        # Room name and password feed the room id and are sent verbatim
        values["username"] = values["username"].strip()
        values["server"] = values["server"].strip()

        missing = [name for name, value in values.items() if not value]
        if missing:
            status.update(f"[red]Please enter a {missing[0]}[/]")
            return

        server = values["server"]
        ws_url = server if "://" in server else f"ws://{server}"

        status.update("[yellow]Connecting...[/]")
        try:
            self.client = ChatClient(ws_url)
            self.client.set_on_join(self._on_join_received)
            self.client.set_on_leave(self._on_leave_received)
            self.client.set_on_message(self._on_message_received)
            self.client.set_on_error(self._on_error_received)

            await self.client.connect()
            self._awaiting_ack = True
            await self.client.join(
                values["username"], values["chatname"], values["password"]
            )
        except Exception as e:
            logger.error("Join failed: %s", e)
            status.update(f"[red]Connection failed: {e}[/]")
            self._awaiting_ack = False
            await self.client.disconnect()
            self.client = None
            return

        self.username = values["username"]
        self.chatname = values["chatname"]
        status.update("")
        self._update_header()
        self._show_screen("chat")
        self._start_message_receiver()
        self.query_one("#message-input", Input).focus()

    async def _handle_send_message(self) -> None:
        """Send the typed message or run a slash command."""
        if not self.client or not self.client.is_connected:
            return

        message_input = self.query_one("#message-input", Input)
        content = message_input.value.strip()
        if not content:
            return
        message_input.value = ""

        if is_command(content):
            result = run_command(content, self.username or "")
            if result.notice:
                self._add_system_message(result.notice, "info")
            if result.quit:
                await self._handle_leave()
                self.exit()
                return
            if not result.outgoing:
                return
            content = result.outgoing

        try:
            await self.client.send_message(content)
        except Exception as e:
            logger.error("Failed to send message: %s", e)
            self._add_system_message(f"Failed to send message: {e}", "error")

    async def _handle_leave(self) -> None:
        """Disconnect and go back to the connection screen."""
        if self._receive_task:
            self._receive_task.cancel()
            self._receive_task = None
        if self.client:
            await self.client.disconnect()
            self.client = None

        try:
            messages = self.query_one(
                "#messages-container", ScrollableContainer
            )
            await messages.remove_children()
        except NoMatches:
            pass
        self._show_screen("connection")

    def _update_header(self) -> None:
        """Update the chat screen header with the room name."""
        try:
            header = self.query_one("#room-header", Static)
            header.update(
                f"[bold]Room: {self.chatname}[/] | You: {self.username}"
            )
        except NoMatches:
            pass

    def _start_message_receiver(self) -> None:
        """Start the background task for receiving messages."""
        if self._receive_task:
            self._receive_task.cancel()

        async def receive_loop():
            try:
                if self.client:
                    await self.client.receive_messages()
            except asyncio.CancelledError:
                return
            except Exception as err:
                logger.error("Message receiver error: %s", err)
            self.call_later(
                lambda: self._add_system_message(
                    "Connection to server lost", "error"
                )
            )

        self._receive_task = asyncio.create_task(receive_loop())

    def _on_join_received(self, event: JoinNotice) -> None:
        """Callback for join acks and notices."""
        if self._awaiting_ack and event.username == self.username:
            self._awaiting_ack = False
            text = f"You joined {self.chatname}"
            message_type = "success"
        else:
            text = f"{event.username} joined the room"
            message_type = "info"
        self.call_later(lambda: self._add_system_message(text, message_type))

    def _on_leave_received(self, event: LeaveNotice) -> None:
        """Callback when a member leaves the room."""
        self.call_later(
            lambda: self._add_system_message(
                f"{event.username} left the room", "info"
            )
        )

    def _on_message_received(self, event: ChatMessage) -> None:
        """Callback when a chat message arrives."""
        self.call_later(lambda: self._add_chat_message(event))

    def _on_error_received(self, event: ErrorEvent) -> None:
        """Callback when the server reports an error."""
        self.call_later(
            lambda: self._add_system_message(event.message, "error")
        )

    def _add_chat_message(self, message: ChatMessage) -> None:
        """Add a chat message to the display."""
        try:
            messages = self.query_one(
                "#messages-container", ScrollableContainer
            )
            is_own = message.username == self.username
            msg_widget = MessageDisplay(
                username=message.username,
                message_content=message.content,
                is_own_message=is_own,
            )
            if is_own:
                msg_widget.add_class("own-message")
            messages.mount(msg_widget)
            messages.scroll_end()
        except NoMatches:
            pass

    def _add_system_message(
        self, message: str, message_type: str = "info"
    ) -> None:
        """Add a system message to the display."""
        try:
            messages = self.query_one(
                "#messages-container", ScrollableContainer
            )
            messages.mount(SystemMessage(message, message_type))
            messages.scroll_end()
        except NoMatches:
            pass

    def action_go_back(self) -> None:
        """Handle back action."""
        if self._current_screen == "chat":
            self.run_worker(self._handle_leave(), exclusive=True)
