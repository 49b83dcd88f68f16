"""
Configuration Management
========================

Centralized configuration for the whole service. All environment
variables are read, typed and defaulted here.

Note that the OpenAI API key is deliberately optional at load time: a
missing key must not stop the service from starting. Every agent call
checks for it and fails with a ConfigurationError (HTTP 500 with a
descriptive message), so operators see the fault in responses.

Usage:
    from chatmind.utils.config import get_config

    config = get_config()
    print(config.openai.model)
    print(config.agents.org_brain_message_limit)
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from chatmind.utils.logger import Logger

logger = Logger("Config")


def _optional(name: str, default: str) -> str:
    """Get an environment variable, or `default` when unset or empty."""
    return os.getenv(name) or default


def _optional_int(name: str, default: int | None) -> int | None:
    """
    Get an optional integer environment variable.

    Args:
        name: The environment variable name
        default: Value used when unset or not a valid integer

    Returns:
        The integer value or the default
    """
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"{name} is not a valid integer, using default: {default}")
        return default


def _optional_float(name: str, default: float) -> float:
    """Get an optional float environment variable."""
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"{name} is not a valid number, using default: {default}")
        return default


def _csv(name: str, default: str) -> tuple[str, ...]:
    """Split a comma-separated environment variable into a tuple."""
    raw = _optional(name, default)
    return tuple(part.strip() for part in raw.split(",") if part.strip())


# ==============================================================================
# Configuration Dataclasses
# ==============================================================================

@dataclass(frozen=True)
class OpenAIConfig:
    """LLM provider configuration."""
    api_key: str | None        # None is allowed; surfaced per request
    model: str
    base_url: str | None       # For OpenAI-compatible providers
    timeout_seconds: float


@dataclass(frozen=True)
class AgentLimits:
    """
    Context caps per agent kind.

    These are plain constants, not business rules: OrgBrain gets a wider
    view of the organization than reply suggestions do.
    """
    org_brain_message_limit: int
    org_brain_document_limit: int | None   # None = all pinned documents
    reply_message_limit: int
    reply_document_limit: int
    tone_debounce_ms: int


@dataclass(frozen=True)
class SlackConfig:
    """Slack API configuration (optional)."""
    bot_token: str | None       # xoxb-... token for bot operations
    app_token: str | None       # xapp-... token for Socket Mode
    signing_secret: str | None

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token and self.app_token)


@dataclass(frozen=True)
class StoreConfig:
    """Where organizational context is read from."""
    backend: str                # "slack" or "memory"
    seed_file: Path | None      # JSON snapshot for the in-memory store


@dataclass(frozen=True)
class ServerConfig:
    """HTTP server configuration."""
    host: str
    port: int
    cors_allow_origins: tuple[str, ...]


@dataclass(frozen=True)
class Config:
    """
    Root configuration object.

        config = get_config()
        config.openai.api_key
        config.agents.reply_message_limit
        config.server.port
    """
    openai: OpenAIConfig
    agents: AgentLimits
    slack: SlackConfig
    store: StoreConfig
    server: ServerConfig
    log_level: str


def load_config() -> Config:
    """
    Load configuration from the environment (and a .env file if present).

    Returns:
        Config: The typed configuration
    """
    # Search from the working directory, not from the installed package
    load_dotenv(find_dotenv(usecwd=True))

    slack = SlackConfig(
        bot_token=os.getenv("SLACK_BOT_TOKEN"),
        app_token=os.getenv("SLACK_APP_TOKEN"),
        signing_secret=os.getenv("SLACK_SIGNING_SECRET"),
    )

    seed_file = os.getenv("ORG_SEED_FILE")

    return Config(
        openai=OpenAIConfig(
            api_key=os.getenv("OPENAI_API_KEY") or None,
            model=_optional("OPENAI_MODEL", "gpt-4o-mini"),
            base_url=os.getenv("OPENAI_BASE_URL") or None,
            timeout_seconds=_optional_float("OPENAI_TIMEOUT_SECONDS", 30.0),
        ),
        agents=AgentLimits(
            org_brain_message_limit=_optional_int("ORG_BRAIN_MESSAGE_LIMIT", 50),
            org_brain_document_limit=_optional_int("ORG_BRAIN_DOCUMENT_LIMIT", None),
            reply_message_limit=_optional_int("REPLY_MESSAGE_LIMIT", 20),
            reply_document_limit=_optional_int("REPLY_DOCUMENT_LIMIT", 5),
            tone_debounce_ms=_optional_int("TONE_DEBOUNCE_MS", 500),
        ),
        slack=slack,
        store=StoreConfig(
            backend=_optional("ORG_STORE", "slack" if slack.bot_token else "memory").lower(),
            seed_file=Path(seed_file) if seed_file else None,
        ),
        server=ServerConfig(
            host=_optional("API_HOST", "0.0.0.0"),
            port=_optional_int("API_PORT", 8000),
            cors_allow_origins=_csv("CORS_ALLOW_ORIGINS", "*"),
        ),
        log_level=_optional("LOG_LEVEL", "info"),
    )


# ==============================================================================
# Singleton
# ==============================================================================

_config_instance: Config | None = None


def get_config() -> Config:
    """Get the configuration, loading it on first access."""
    global _config_instance
    if _config_instance is None:
        _config_instance = load_config()
    return _config_instance


def reset_config() -> None:
    """Forget the cached configuration (used by tests and reloads)."""
    global _config_instance
    _config_instance = None


def is_openai_configured() -> bool:
    """Check if a provider credential is present."""
    return get_config().openai.api_key is not None
