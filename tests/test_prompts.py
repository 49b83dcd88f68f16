"""Tests for prompt composition."""

from datetime import datetime, timezone

import pytest

from chatmind.agent.prompts import (
    GENERATION_SETTINGS,
    REPLY_USER_INSTRUCTION,
    build_prompt,
    render_document_excerpts,
    render_transcript,
)
from chatmind.agent.types import (
    AgentKind,
    AgentRequest,
    Channel,
    ChannelMessage,
    Message,
    OrganizationalContext,
    PinnedDocument,
)

WHEN = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def context() -> OrganizationalContext:
    return OrganizationalContext(
        channels=(
            Channel(id="c1", name="general", description="Company-wide announcements"),
            Channel(id="c2", name="engineering"),
        ),
        recent_messages=(
            ChannelMessage(channel_name="engineering", author_name="Ada", content="Release is Friday", created_at=WHEN),
        ),
        pinned_documents=(
            PinnedDocument(title="Release plan", content="x" * 300, channel_name="general", author_name="Grace"),
        ),
    )


@pytest.fixture
def thread() -> tuple[Message, ...]:
    return (
        Message(author="Ada", content="Can we ship Friday?"),
        Message(author="Grace", content="Two bugs left."),
    )


@pytest.mark.parametrize(
    ("kind", "temperature", "max_tokens"),
    [
        (AgentKind.ORG_BRAIN, 0.7, 1000),
        (AgentKind.REPLY_SUGGESTION, 0.7, 500),
        (AgentKind.TONE_ANALYSIS, 0.4, 300),
        (AgentKind.MEETING_NOTES, 0.5, 900),
    ],
)
def test_generation_settings_are_fixed_per_kind(kind, temperature, max_tokens):
    settings = GENERATION_SETTINGS[kind]
    assert (settings.temperature, settings.max_tokens) == (temperature, max_tokens)


class TestOrgBrainPrompt:
    def test_system_prompt_renders_context(self, context):
        prompt = build_prompt(AgentRequest(kind=AgentKind.ORG_BRAIN, query="When do we ship?"), context)

        assert "Channel: general - Company-wide announcements" in prompt.system
        assert "Channel: engineering - No description" in prompt.system
        assert "[engineering] Ada: Release is Friday (2024-05-01)" in prompt.system
        assert 'Document: "Release plan" in general by Grace:' in prompt.system

    def test_user_prompt_is_the_query(self, context):
        prompt = build_prompt(AgentRequest(kind=AgentKind.ORG_BRAIN, query="When do we ship?"), context)

        assert prompt.user == "When do we ship?"
        assert prompt.settings == GENERATION_SETTINGS[AgentKind.ORG_BRAIN]

    def test_context_docs_are_appended(self):
        request = AgentRequest(kind=AgentKind.ORG_BRAIN, query="Summarize", context_docs=("doc one", "doc two"))

        prompt = build_prompt(request)

        assert prompt.user.startswith("Summarize\n\nContext from organization documents and channels:\n")
        assert prompt.user.endswith("doc one\n\ndoc two")

    def test_empty_context_placeholders(self):
        prompt = build_prompt(AgentRequest(kind=AgentKind.ORG_BRAIN, query="Anything?"))

        assert "No channels available." in prompt.system
        assert "No recent messages available." in prompt.system
        assert "No pinned documents available." in prompt.system


class TestReplyPrompt:
    def test_user_prompt(self, thread, context):
        prompt = build_prompt(AgentRequest(kind=AgentKind.REPLY_SUGGESTION, thread_messages=thread), context)

        assert prompt.user == (
            f"{REPLY_USER_INSTRUCTION}\n\nThread messages:\n"
            "1. Ada: Can we ship Friday?\n"
            "2. Grace: Two bugs left."
        )

    def test_system_prompt_uses_undated_messages_and_excerpts(self, thread, context):
        prompt = build_prompt(AgentRequest(kind=AgentKind.REPLY_SUGGESTION, thread_messages=thread), context)

        assert "[engineering] Ada: Release is Friday\n" in prompt.system
        assert "(2024-05-01)" not in prompt.system
        assert f'Document: "Release plan" - {"x" * 200}...' in prompt.system
        assert "x" * 201 not in prompt.system

    def test_excerpt_of_short_document_still_has_ellipsis(self):
        rendered = render_document_excerpts([PinnedDocument(title="Tiny", content="short")])

        assert rendered == 'Document: "Tiny" - short...'


class TestToneAndNotesPrompts:
    def test_tone_user_prompt_is_the_text(self):
        prompt = build_prompt(AgentRequest(kind=AgentKind.TONE_ANALYSIS, query="Send it ASAP!!!"))

        assert prompt.user == "Send it ASAP!!!"
        assert "Only output JSON." in prompt.system

    def test_notes_default_title(self, thread):
        prompt = build_prompt(AgentRequest(kind=AgentKind.MEETING_NOTES, thread_messages=thread))

        assert "# Meeting Notes" in prompt.system
        assert prompt.user == "Thread transcript:\n\n1. Ada: Can we ship Friday?\n2. Grace: Two bugs left."

    @pytest.mark.parametrize(("title", "heading"), [("Sprint Sync", "# Sprint Sync"), ("   ", "# Meeting Notes")])
    def test_notes_title(self, thread, title, heading):
        prompt = build_prompt(AgentRequest(kind=AgentKind.MEETING_NOTES, thread_messages=thread, title=title))

        assert heading in prompt.system


def test_build_prompt_is_deterministic(thread, context):
    request = AgentRequest(kind=AgentKind.REPLY_SUGGESTION, thread_messages=thread)

    assert build_prompt(request, context) == build_prompt(request, context)


def test_transcript_keeps_caller_order():
    messages = [Message(author="B", content="second"), Message(author="A", content="first")]

    assert render_transcript(messages) == "1. B: second\n2. A: first"
