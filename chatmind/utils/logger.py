"""
Logger Utility
==============

Context-aware, colour-coded logging for every ChatMind component.

Each component creates its own logger with a short context name, so a
single request can be followed through the pipeline:

    [2024-05-02T10:30:00] [INFO] [Router] Dispatching ToneAnalysis
    [2024-05-02T10:30:01] [WARN] [Normalizer] Tone response was not JSON, using fallback

Features:
1. Log levels (DEBUG, INFO, WARNING, ERROR) filtered by LOG_LEVEL
2. Child loggers for nested contexts (Router:LLM)
3. Optional structured data rendered as JSON under the message
4. Exceptions rendered as type + message, never as raw stack traces

Usage:
    from chatmind.utils.logger import Logger, preview

    log = Logger("Router")
    log.info("Dispatching", {"kind": "OrgBrain"})
    log.debug(f"Query: {preview(query)}")
"""

import json
import os
import sys
from datetime import datetime
from enum import IntEnum
from typing import Any


class LogLevel(IntEnum):
    """Numeric log levels. Higher values are more severe."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


class Colors:
    """ANSI escape codes for colored terminal output."""
    RESET = "\033[0m"
    DEBUG = "\033[36m"    # Cyan
    INFO = "\033[32m"     # Green
    WARNING = "\033[33m"  # Yellow
    ERROR = "\033[31m"    # Red
    DIM = "\033[2m"


_LEVEL_NAMES = {
    "DEBUG": LogLevel.DEBUG,
    "INFO": LogLevel.INFO,
    "WARNING": LogLevel.WARNING,
    "WARN": LogLevel.WARNING,
    "ERROR": LogLevel.ERROR,
}


def _level_from_env() -> LogLevel:
    """Read LOG_LEVEL from the environment, defaulting to INFO."""
    return _LEVEL_NAMES.get(os.getenv("LOG_LEVEL", "INFO").upper(), LogLevel.INFO)


def preview(text: Any, limit: int = 100) -> str:
    """
    Shorten a value for log output.

    Request bodies and model output can be long; logs only ever get
    the first `limit` characters.

    Args:
        text: Any value, converted with str()
        limit: Maximum characters to keep

    Returns:
        The (possibly truncated) text with an ellipsis when cut
    """
    value = "" if text is None else str(text)
    if len(value) <= limit:
        return value
    return value[:limit] + "..."


class Logger:
    """
    A context-aware logger with colored output.

    Example:
        log = Logger("Context")
        log.info("Gathering context", {"kind": "OrgBrain"})

        slack_log = log.child("Slack")   # logs as [Context:Slack]
        slack_log.error("Read failed", exc)
    """

    def __init__(self, context: str = ""):
        """
        Args:
            context: Prefix shown on every line (e.g. "Router", "LLM")
        """
        self.context = context
        self._min_level = _level_from_env()

    def child(self, child_context: str) -> "Logger":
        """Create a logger whose context is nested under this one."""
        if self.context:
            return Logger(f"{self.context}:{child_context}")
        return Logger(child_context)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= self._min_level

    def _format_message(self, level_name: str, message: str, color: str) -> str:
        timestamp = datetime.now().isoformat(timespec="seconds")
        context_str = f"[{self.context}] " if self.context else ""
        return (
            f"{Colors.DIM}[{timestamp}]{Colors.RESET} "
            f"{color}[{level_name}]{Colors.RESET} "
            f"{context_str}{message}"
        )

    def _log(
        self,
        level: LogLevel,
        level_name: str,
        color: str,
        message: str,
        data: dict[str, Any] | None = None
    ) -> None:
        if not self.is_enabled_for(level):
            return

        # Errors go to stderr so they survive stdout redirection
        stream = sys.stderr if level >= LogLevel.ERROR else sys.stdout
        print(self._format_message(level_name, message, color), file=stream)

        if data:
            rendered = json.dumps(data, indent=2, default=str)
            print(f"{Colors.DIM}{rendered}{Colors.RESET}", file=stream)

    def debug(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log a debug message. Only shown when LOG_LEVEL=DEBUG."""
        self._log(LogLevel.DEBUG, "DEBUG", Colors.DEBUG, message, data)

    def info(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log an info message."""
        self._log(LogLevel.INFO, "INFO", Colors.INFO, message, data)

    def warning(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Log a warning: something degraded but the request still succeeds."""
        self._log(LogLevel.WARNING, "WARN", Colors.WARNING, message, data)

    def error(
        self,
        message: str,
        error: BaseException | None = None,
        data: dict[str, Any] | None = None
    ) -> None:
        """
        Log an error message.

        Args:
            message: The error message
            error: Optional exception; its type and message are included
            data: Optional extra structured data
        """
        details = dict(data or {})
        if error is not None:
            details["error_type"] = type(error).__name__
            details["error_message"] = str(error)
        self._log(LogLevel.ERROR, "ERROR", Colors.ERROR, message, details or None)


# Default logger instance for general use
logger = Logger("ChatMind")
