"""
HTTP API
========

FastAPI application exposing the agents over HTTP and WebSocket.
"""

from chatmind.api.app import create_app

__all__ = ["create_app"]
