"""
Slack Integration
=================

Slack front-end for the agents:
- Bolt app and Socket Mode handler
- Event handlers (mentions, DMs, /chatmind)
"""

from chatmind.slack.app import create_slack_app, create_socket_handler
from chatmind.slack.handlers import register_handlers

__all__ = ["create_slack_app", "create_socket_handler", "register_handlers"]
