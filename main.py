"""
Support bot entry point.

Serves the chat API with uvicorn, or runs the console chat for manual
testing.

Usage:
    HTTP API:     python main.py
    Console mode: python main.py console
"""

import logging
import sys

from support_bot.config import settings

logger = logging.getLogger(__name__)


def _run_server() -> None:
    """Start the HTTP API (requires API keys)."""
    import uvicorn

    from support_bot.server import build_app

    app = build_app(settings)
    logger.info("Serving %s support API on %s:%d", settings.store.name, settings.server.host, settings.server.port)
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.log_level.lower(),
    )


def _run_console_mode() -> None:
    """Start the interactive console chat."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    session.run()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode()
    else:
        _run_server()
