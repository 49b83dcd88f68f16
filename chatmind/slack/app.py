"""
Slack Bolt App
==============

Creates the Slack Bolt application used as a second front-end to the
agents (the HTTP API being the first).

Socket Mode is used so the bot needs no public URL: the same process
that serves the HTTP API keeps a WebSocket open to Slack.
"""

from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler
from slack_bolt.async_app import AsyncApp

from chatmind.agent.errors import ConfigurationError
from chatmind.utils.config import SlackConfig
from chatmind.utils.logger import Logger

logger = Logger("SlackApp")


def create_slack_app(slack: SlackConfig) -> AsyncApp:
    """
    Create the Bolt app.

    Args:
        slack: Slack tokens from configuration

    Returns:
        Configured AsyncApp instance

    Raises:
        ConfigurationError: If no bot token is configured
    """
    if not slack.bot_token:
        raise ConfigurationError("Slack bot token not configured (set SLACK_BOT_TOKEN)")

    app = AsyncApp(
        token=slack.bot_token,
        signing_secret=slack.signing_secret,
    )
    logger.info("Slack Bolt app created")
    return app


def create_socket_handler(app: AsyncApp, slack: SlackConfig) -> AsyncSocketModeHandler:
    """
    Create a Socket Mode handler for the app.

    Raises:
        ConfigurationError: If no app-level token is configured
    """
    if not slack.app_token:
        raise ConfigurationError("Slack app token not configured (set SLACK_APP_TOKEN)")

    handler = AsyncSocketModeHandler(app=app, app_token=slack.app_token)
    logger.info("Socket Mode handler created")
    return handler
