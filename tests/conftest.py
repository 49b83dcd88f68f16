"""Shared test fixtures for the ChatMind test suite.

Provides a seeded in-memory organization, a mocked OpenAI SDK client,
and a router wired to both. No test touches the network.
"""

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from chatmind.agent.context import ContextAggregator
from chatmind.agent.core import AgentRouter
from chatmind.agent.llm import LLMClient
from chatmind.storage.memory import InMemoryOrgStore
from chatmind.utils.config import (
    AgentLimits,
    Config,
    OpenAIConfig,
    ServerConfig,
    SlackConfig,
    StoreConfig,
    reset_config,
)

MESSAGE_COUNT = 60
DOCUMENT_COUNT = 7


def make_completion(content: str | None) -> Any:
    """Shape of an OpenAI chat completion, as far as LLMClient reads it."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


# ============================================================================
# Test Isolation
# ============================================================================


@pytest.fixture(autouse=True)
def clear_config():
    """Drop the cached configuration between tests."""
    reset_config()
    yield
    reset_config()


# ============================================================================
# Organization data
# ============================================================================


@pytest.fixture
def org_rows() -> dict[str, list[dict]]:
    """Two public channels, one private channel, 60 messages, 7 pinned docs.

    "Message 59" is the newest public message and "Doc 6" the newest doc.
    """
    messages = [
        {
            "channel_id": "c1" if i % 2 else "c2",
            "user_id": "u2" if i % 3 == 0 else "u1",
            "content": f"Message {i}",
            "created_at": f"2024-05-01T10:{i:02d}:00Z",
        }
        for i in range(MESSAGE_COUNT)
    ]
    messages.append({
        "channel_id": "c3",
        "user_id": "u1",
        "content": "Secret salary discussion",
        "created_at": "2024-06-01T09:00:00Z",
    })

    documents = [
        {
            "title": f"Doc {i}",
            "content": f"Contents of document {i}. " * 20,
            "channel_id": "c1",
            "created_by": "u1",
            "created_at": f"2024-04-0{i + 1}T08:00:00Z",
        }
        for i in range(DOCUMENT_COUNT)
    ]

    return {
        "channels": [
            {"id": "c1", "name": "general", "description": "Company-wide announcements", "is_public": True},
            {"id": "c2", "name": "engineering", "description": None, "is_public": True},
            {"id": "c3", "name": "leadership", "description": "Private", "is_public": False},
        ],
        "users": [
            {"id": "u1", "display_name": "Ada", "username": "ada"},
            {"id": "u2", "display_name": None, "username": "grace"},
        ],
        "messages": messages,
        "pinned_documents": documents,
    }


@pytest.fixture
def org_store(org_rows) -> InMemoryOrgStore:
    return InMemoryOrgStore(**org_rows)


@pytest.fixture
def thread_messages() -> list[dict]:
    return [
        {"user": {"name": "Ada"}, "content": "Can we ship the release on Friday?"},
        {"user": {"name": "Grace"}, "content": "QA still has two bugs open."},
    ]


# ============================================================================
# Mock External Dependencies
# ============================================================================


@pytest.fixture
def openai_client() -> MagicMock:
    """Mock AsyncOpenAI client; create() answers with plain text by default."""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=make_completion("Hello from the model"))
    return client


@pytest.fixture
def llm(openai_client) -> LLMClient:
    return LLMClient(api_key="test-key", client=openai_client)


@pytest.fixture
def router(org_store, llm) -> AgentRouter:
    return AgentRouter(aggregator=ContextAggregator(org_store), llm=llm)


@pytest.fixture
def config() -> Config:
    return Config(
        openai=OpenAIConfig(api_key="test-key", model="gpt-4o-mini", base_url=None, timeout_seconds=30.0),
        agents=AgentLimits(
            org_brain_message_limit=50,
            org_brain_document_limit=None,
            reply_message_limit=20,
            reply_document_limit=5,
            tone_debounce_ms=100,
        ),
        slack=SlackConfig(bot_token=None, app_token=None, signing_secret=None),
        store=StoreConfig(backend="memory", seed_file=None),
        server=ServerConfig(host="127.0.0.1", port=8000, cors_allow_origins=("*",)),
        log_level="info",
    )
