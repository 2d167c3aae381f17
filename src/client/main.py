#!/usr/bin/env python3
"""
Termchat Client Application

Terminal client for the termchat relay, built on the Textual framework.
"""

import logging
import sys

# Configure logging to file to avoid interfering with UI
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.FileHandler("termchat_client.log", mode="a")],
)

logger = logging.getLogger(__name__)


def main():
    """Main entry point for the chat client."""
    logger.info("Starting termchat client...")

    from .ui import ChatApp

    try:
        ChatApp().run()
    except KeyboardInterrupt:
        print("\nExiting...")
        sys.exit(0)


if __name__ == "__main__":
    main()
