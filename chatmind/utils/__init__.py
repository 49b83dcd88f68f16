"""
Utilities Module
================

Common utilities shared across the application:
- logger: Structured logging with levels and context
- config: Centralized configuration management
"""

from chatmind.utils.logger import Logger, logger
from chatmind.utils.config import get_config, Config

__all__ = ["Logger", "logger", "get_config", "Config"]
