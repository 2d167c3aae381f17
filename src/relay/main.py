#!/usr/bin/env python3
"""
Termchat Relay Server

Group chat relay: clients join password-protected rooms over WebSocket
and every message is broadcast to the room.
"""

import asyncio
import logging
import os
import signal
import sys

from .dispatcher import Broadcaster
from .room_registry import RoomRegistry
from .websocket_server import WebSocketServer

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 443  # served behind HTTPS termination


def configure_logging(level_name: str = "INFO"):
    """Configure root logging for the server process."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def run_server(host: str, port: int):
    """
    Run the relay until SIGINT or SIGTERM is received.

    Args:
        host: Host address to bind to
        port: Port to listen on
    """
    registry = RoomRegistry()
    dispatcher = Broadcaster(registry)
    ws_server = WebSocketServer(registry, dispatcher, host, port)

    await ws_server.start()
    logger.info(f"Termchat relay running on port {ws_server.port}")

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _request_shutdown, sig, stop_event)

    try:
        await stop_event.wait()
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        await ws_server.stop()
        logger.info("Server closed")


def _request_shutdown(sig: signal.Signals, stop_event: asyncio.Event):
    logger.info(f"Received {sig.name}, shutting down gracefully")
    stop_event.set()


def main():
    """Main entry point for the relay server."""
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"))

    host = os.environ.get("HOST", DEFAULT_HOST)
    port = int(os.environ.get("PORT", str(DEFAULT_PORT)))

    logger.info("Starting termchat relay server...")
    try:
        asyncio.run(run_server(host, port))
    except KeyboardInterrupt:
        logger.info("Shutting down relay server...")
        sys.exit(0)


if __name__ == "__main__":
    main()
