"""
Organizational Data Stores
==========================

Read-only access to the organization's channels, messages and pinned
documents. The context aggregator only ever calls the three reads
defined by OrgStore; every read is idempotent.

Implementations:
- InMemoryOrgStore: rows held in memory (optionally seeded from JSON)
- SlackOrgStore: reads a Slack workspace through the Web API
"""

from slack_sdk.web.async_client import AsyncWebClient

from chatmind.agent.errors import ConfigurationError
from chatmind.storage.base import OrgStore
from chatmind.storage.memory import InMemoryOrgStore
from chatmind.storage.slack_store import SlackOrgStore
from chatmind.utils.config import Config
from chatmind.utils.logger import Logger

logger = Logger("Storage")


def create_store(config: Config, slack_client: AsyncWebClient | None = None) -> OrgStore:
    """
    Create the store selected by ORG_STORE.

    Args:
        config: Loaded configuration
        slack_client: Existing Slack client to reuse (e.g. the Bolt app's)

    Raises:
        ConfigurationError: For an unknown backend or a Slack store
            without a bot token
    """
    backend = config.store.backend

    if backend == "slack":
        if slack_client is None:
            if not config.slack.bot_token:
                raise ConfigurationError("ORG_STORE=slack requires SLACK_BOT_TOKEN")
            slack_client = AsyncWebClient(token=config.slack.bot_token)
        logger.info("Using Slack organizational store")
        return SlackOrgStore(slack_client)

    if backend == "memory":
        if config.store.seed_file:
            return InMemoryOrgStore.from_file(config.store.seed_file)
        logger.warning("Using an empty in-memory store (set ORG_SEED_FILE to load data)")
        return InMemoryOrgStore()

    raise ConfigurationError(f"Unknown ORG_STORE backend: {backend}")


__all__ = ["OrgStore", "InMemoryOrgStore", "SlackOrgStore", "create_store"]
