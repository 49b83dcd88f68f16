"""
ChatMind - Main Entry Point
===========================

This is the main entry point for the service. It:
1. Loads configuration
2. Creates the Slack app (when Slack tokens are configured)
3. Creates the organizational store and the agent router
4. Registers Slack handlers and connects Socket Mode
5. Serves the HTTP API with uvicorn until interrupted

Run with:
    python -m chatmind.main

Or after installing:
    chatmind
"""

import asyncio
import sys

import uvicorn

from chatmind.agent.core import AgentRouter
from chatmind.api import create_app
from chatmind.storage import create_store
from chatmind.utils.config import get_config, is_openai_configured
from chatmind.utils.logger import logger

main_logger = logger.child("Main")

_UVICORN_LEVELS = {"debug": "debug", "info": "info", "warn": "warning", "warning": "warning", "error": "error"}


async def main():
    """
    Main async entry point.

    Initializes all components and serves until shutdown.
    """
    main_logger.info("Starting ChatMind...")

    try:
        # 1. Load configuration
        config = get_config()
        if not is_openai_configured():
            main_logger.warning("OPENAI_API_KEY is not set; agent requests will fail until it is")

        # 2. Create the Slack app, if configured
        slack_app = None
        if config.slack.enabled:
            main_logger.info("Creating Slack app...")
            from chatmind.slack import create_slack_app
            slack_app = create_slack_app(config.slack)

        # 3. Store and router
        main_logger.info(f"Creating {config.store.backend} store...")
        store = create_store(config, slack_client=slack_app.client if slack_app else None)
        router = AgentRouter.from_config(config, store)

        # 4. Slack handlers and Socket Mode
        handler = None
        if slack_app is not None:
            from chatmind.slack import create_socket_handler, register_handlers
            register_handlers(slack_app, router)
            handler = create_socket_handler(slack_app, config.slack)
            main_logger.info("Connecting Socket Mode...")
            await handler.connect_async()

        # 5. HTTP API
        app = create_app(router, config)
        server = uvicorn.Server(uvicorn.Config(
            app,
            host=config.server.host,
            port=config.server.port,
            log_level=_UVICORN_LEVELS.get(config.log_level.lower(), "info"),
        ))

        main_logger.info(f"ChatMind is running on {config.server.host}:{config.server.port}. Press Ctrl+C to stop.")
        try:
            await server.serve()
        finally:
            await _shutdown(handler)

    except KeyboardInterrupt:
        main_logger.info("Received interrupt signal")
    except Exception as e:
        main_logger.error("Failed to start ChatMind", e)
        sys.exit(1)


async def _shutdown(handler):
    """
    Graceful shutdown.

    Args:
        handler: The Socket Mode handler, if Slack was connected
    """
    main_logger.info("Shutting down...")
    if handler is not None:
        await handler.close_async()
    main_logger.info("Shutdown complete")


def run():
    """
    Synchronous entry point.

    This is called when running with the `chatmind` command.
    """
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
