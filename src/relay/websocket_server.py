"""
WebSocket Server for the Relay

Accepts client connections, runs a ChatSession for each of them, and
answers plain HTTP status requests on the same port.
"""

import json
import logging
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Dict, Optional, Set
from urllib.parse import urlsplit

import websockets
from websockets.asyncio.server import ServerConnection, serve
from websockets.http11 import Request, Response

from .dispatcher import Broadcaster
from .room_registry import RoomRegistry
from .session import ChatSession

logger = logging.getLogger(__name__)

SERVER_STATUS = "Termchat Backend Server Running"


class WebSocketServer:
    """
    WebSocket server for handling client connections.

    Every connection gets its own ChatSession; all sessions share the
    same room registry and dispatcher.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        dispatcher: Broadcaster,
        host: str,
        port: int,
    ):
        """
        Initialize the WebSocket server.

        Args:
            registry: The room registry shared by all sessions
            dispatcher: The broadcast dispatcher shared by all sessions
            host: Host address to bind to
            port: Port to listen on (0 picks a free port)
        """
        self.registry = registry
        self.dispatcher = dispatcher
        self.host = host
        self.port = port
        self.clients: Set[ServerConnection] = set()
        self.server = None

    async def start(self):
        """Start the WebSocket server."""
        self.server = await serve(
            self.handle_client,
            self.host,
            self.port,
            process_request=self.process_request,
        )
        # Resolve the real port when bound to port 0
        self.port = self.server.sockets[0].getsockname()[1]
        logger.info(
            f"WebSocket server started on ws://{self.host}:{self.port}"
        )

    async def stop(self):
        """Stop the server, closing every client connection."""
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            await self.dispatcher.flush()
            logger.info("WebSocket server stopped")

    async def handle_client(self, websocket: ServerConnection):
        """
        Handle a client connection until it closes.

        Args:
            websocket: The WebSocket connection
        """
        self.clients.add(websocket)
        client_id = id(websocket)
        session = ChatSession(websocket, self.registry, self.dispatcher)
        logger.info(f"Client {client_id} connected")

        try:
            async for message in websocket:
                await session.handle_message(message)
        except websockets.exceptions.ConnectionClosed:
            logger.info(f"Client {client_id} connection lost")
        except Exception as e:
            logger.error(f"Error handling client {client_id}: {e}")
        finally:
            session.close()
            self.clients.discard(websocket)
            logger.info(f"Client {client_id} disconnected")

    def process_request(
        self, connection: ServerConnection, request: Request
    ) -> Optional[Response]:
        """
        Answer plain HTTP requests before the WebSocket handshake.

        Upgrade requests return None so the handshake continues.

        Args:
            connection: The connection being opened
            request: The HTTP request

        Returns:
            A status response, or None for WebSocket upgrades
        """
        upgrade = request.headers.get("Upgrade", "")
        if upgrade.lower() == "websocket":
            return None

        path = urlsplit(request.path).path
        if path == "/":
            return self._json_response(connection, self.status())
        if path == "/health":
            return self._json_response(connection, {"status": "healthy"})

        return connection.respond(HTTPStatus.NOT_FOUND, "Not Found\n")

    def status(self) -> Dict[str, Any]:
        """Summary of the server reported on the status endpoint."""
        return {
            "status": SERVER_STATUS,
            "activeRooms": self.registry.room_count(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @staticmethod
    def _json_response(
        connection: ServerConnection, body: Dict[str, Any]
    ) -> Response:
        response = connection.respond(HTTPStatus.OK, json.dumps(body) + "\n")
        del response.headers["Content-Type"]
        response.headers["Content-Type"] = "application/json"
        return response
