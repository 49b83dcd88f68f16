"""Tests for request validation and end-to-end dispatch through the router."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from chatmind.agent.context import ContextAggregator
from chatmind.agent.core import THREAD_REQUIRED, AgentRouter, build_request
from chatmind.agent.errors import CallerError, ProviderError
from chatmind.agent.llm import LLMClient
from chatmind.agent.types import (
    AgentEnvelope,
    AgentKind,
    MeetingNotes,
    OrgBrainAnswer,
    ReplySuggestions,
    ToneAnalysis,
)

from conftest import make_completion


class TestBuildRequest:
    def test_org_brain_accepts_query_or_prompt(self):
        assert build_request("OrgBrain", {"query": "Q1"}).query == "Q1"
        assert build_request("OrgBrain", {"prompt": "Q2"}).query == "Q2"

    @pytest.mark.parametrize("payload", [{}, {"query": ""}, {"query": "   "}, {"query": 42}, None])
    def test_org_brain_requires_query(self, payload):
        with pytest.raises(CallerError, match="Query is required"):
            build_request(AgentKind.ORG_BRAIN, payload)

    def test_context_docs_must_be_a_list(self):
        with pytest.raises(CallerError):
            build_request(AgentKind.ORG_BRAIN, {"query": "Q", "contextDocs": "not a list"})

    def test_context_docs_drop_blanks(self):
        request = build_request(AgentKind.ORG_BRAIN, {"query": "Q", "contextDocs": ["a", " ", "b"]})

        assert request.context_docs == ("a", "b")

    @pytest.mark.parametrize("payload", [{}, {"prompt": ""}, {"prompt": ["x"]}])
    def test_tone_requires_prompt(self, payload):
        with pytest.raises(CallerError, match=r"prompt \(message string\) is required"):
            build_request(AgentKind.TONE_ANALYSIS, payload)

    @pytest.mark.parametrize("kind", [AgentKind.REPLY_SUGGESTION, AgentKind.MEETING_NOTES])
    @pytest.mark.parametrize("messages", [None, [], "hello", {"content": "x"}])
    def test_thread_kinds_require_messages(self, kind, messages):
        with pytest.raises(CallerError) as exc_info:
            build_request(kind, {"threadMessages": messages})

        assert exc_info.value.message == THREAD_REQUIRED

    def test_thread_entries_must_be_objects(self):
        with pytest.raises(CallerError, match="threadMessages entries must be objects"):
            build_request(AgentKind.REPLY_SUGGESTION, {"threadMessages": ["hi"]})

    def test_thread_message_shapes(self):
        request = build_request(AgentKind.MEETING_NOTES, {
            "threadMessages": [
                {"user": {"name": "Ada"}, "content": "one"},
                {"author": "Grace", "content": "two"},
                {"content": {"rich": True}},
            ],
            "title": "Sprint Sync",
        })

        assert [m.author for m in request.thread_messages] == ["Ada", "Grace", "User"]
        assert request.thread_messages[2].content == '{"rich": true}'
        assert request.title == "Sprint Sync"

    def test_body_must_be_an_object(self):
        with pytest.raises(CallerError, match="Request body must be a JSON object"):
            build_request(AgentKind.TONE_ANALYSIS, ["prompt"])

    @pytest.mark.parametrize(
        ("name", "kind"),
        [
            ("OrgBrain", AgentKind.ORG_BRAIN),
            ("AutoReplyComposer", AgentKind.REPLY_SUGGESTION),
            ("ToneImpactMeter", AgentKind.TONE_ANALYSIS),
            ("MeetingNotesGen", AgentKind.MEETING_NOTES),
            ("tone-impact-meter", AgentKind.TONE_ANALYSIS),
        ],
    )
    def test_agent_aliases(self, name, kind):
        assert AgentKind.parse(name) is kind

    def test_unknown_agent(self):
        with pytest.raises(CallerError, match="Unknown agent: Foo"):
            build_request("Foo", {})


class TestDispatchScenarios:
    @pytest.mark.asyncio
    async def test_org_brain_answer_with_sources(self, router, openai_client):
        envelope = await router.dispatch("OrgBrain", {"query": "What ships Friday?"})

        assert envelope.success
        assert isinstance(envelope.data, OrgBrainAnswer)
        assert envelope.data.to_dict() == {
            "response": "Hello from the model",
            "sources": {"channels": 2, "messages": 50, "documents": 7},
        }
        kwargs = openai_client.chat.completions.create.call_args.kwargs
        assert (kwargs["temperature"], kwargs["max_tokens"]) == (0.7, 1000)
        assert kwargs["messages"][1]["content"] == "What ships Friday?"

    @pytest.mark.asyncio
    async def test_reply_suggestions(self, router, openai_client, thread_messages):
        openai_client.chat.completions.create.return_value = make_completion(json.dumps([
            {"tone": "Professional", "content": "I'll confirm with QA today."},
            {"tone": "Collaborative", "content": "Let's fix those bugs together!"},
            {"tone": "Concise", "content": "Friday if QA clears."},
        ]))

        envelope = await router.suggest_replies(thread_messages)

        assert isinstance(envelope.data, ReplySuggestions)
        body = envelope.data.to_dict()
        assert len(body["suggestions"]) == 3
        assert body["context"] == {"threadMessages": 2, "recentMessages": 20, "documents": 5}

    @pytest.mark.asyncio
    async def test_tone_without_prompt_never_calls_provider(self, router, openai_client):
        envelope = await router.dispatch("ToneAnalysis", {})

        assert not envelope.success
        assert envelope.error == "prompt (message string) is required"
        assert envelope.error_type == "CallerError"
        assert envelope.status_code == 400
        openai_client.chat.completions.create.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("kind", "payload"),
        [
            (AgentKind.ORG_BRAIN, {"query": "Anything new?"}),
            (AgentKind.REPLY_SUGGESTION, {"threadMessages": [{"author": "Ada", "content": "Ship it?"}]}),
            (AgentKind.TONE_ANALYSIS, {"prompt": "Send it now."}),
            (AgentKind.MEETING_NOTES, {"threadMessages": [{"author": "Ada", "content": "Ship it?"}]}),
        ],
    )
    async def test_missing_api_key_fails_before_any_read(self, openai_client, kind, payload):
        store = MagicMock()
        store.list_public_channels = AsyncMock(return_value=[])
        router = AgentRouter(ContextAggregator(store), LLMClient(api_key=None, client=openai_client))

        envelope = await router.dispatch(kind, payload)

        assert not envelope.success
        assert envelope.error_type == "ConfigurationError"
        assert envelope.status_code == 500
        assert "OPENAI_API_KEY" in envelope.error
        store.list_public_channels.assert_not_awaited()
        openai_client.chat.completions.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_tone_analysis(self, router, openai_client):
        openai_client.chat.completions.create.return_value = make_completion(
            '{"tone": "urgent", "impact": "high", "confidence": 0.9, "suggestions": ["Add context"]}'
        )

        envelope = await router.analyze_tone("Need this NOW")

        assert envelope.data == ToneAnalysis(tone="urgent", impact="high", confidence=90, suggestions=("Add context",))
        kwargs = openai_client.chat.completions.create.call_args.kwargs
        assert (kwargs["temperature"], kwargs["max_tokens"]) == (0.4, 300)

    @pytest.mark.asyncio
    async def test_meeting_notes(self, router, openai_client, thread_messages):
        openai_client.chat.completions.create.return_value = make_completion("# Sprint Sync\n\n## Summary\n...")

        envelope = await router.generate_notes(thread_messages, title="Sprint Sync")

        assert envelope.data == MeetingNotes(markdown_text="# Sprint Sync\n\n## Summary\n...")
        system_prompt = openai_client.chat.completions.create.call_args.kwargs["messages"][0]["content"]
        assert "# Sprint Sync" in system_prompt


class TestDispatchFailures:
    @pytest.mark.asyncio
    async def test_provider_failure(self, router, openai_client):
        openai_client.chat.completions.create.return_value = make_completion("")

        envelope = await router.analyze_tone("hello")

        assert envelope.to_dict() == {"success": False, "data": None, "error": "No content generated by the model"}
        assert envelope.error_type == ProviderError.__name__

    @pytest.mark.asyncio
    async def test_aggregation_failure_skips_provider(self, openai_client):
        store = MagicMock()
        store.list_public_channels = AsyncMock(side_effect=ConnectionError("db down"))
        router = AgentRouter(ContextAggregator(store), LLMClient(api_key="k", client=openai_client))

        envelope = await router.ask("Q")

        assert envelope.error_type == "AggregationError"
        assert envelope.status_code == 500
        openai_client.chat.completions.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_envelope(self, router, openai_client):
        openai_client.chat.completions.create.side_effect = RuntimeError("boom")

        envelope = await router.analyze_tone("hello")

        assert not envelope.success
        assert envelope.error == "boom"
        assert envelope.error_type == "InternalError"
        assert envelope.status_code == 500

    @pytest.mark.asyncio
    async def test_empty_thread(self, router):
        envelope = await router.dispatch(AgentKind.MEETING_NOTES, {"threadMessages": []})

        assert envelope.error == THREAD_REQUIRED


@pytest.mark.asyncio
async def test_concurrent_requests_are_independent(router, openai_client):
    openai_client.chat.completions.create.side_effect = [
        make_completion("first answer"),
        make_completion('{"tone": "positive"}'),
    ]

    answer, tone = await asyncio.gather(
        router.ask("What ships Friday?"),
        router.analyze_tone("Great work everyone!"),
    )

    assert {answer.data.__class__, tone.data.__class__} == {OrgBrainAnswer, ToneAnalysis}
    assert openai_client.chat.completions.create.await_count == 2


class TestEnvelope:
    def test_success_requires_data(self):
        with pytest.raises(ValueError):
            AgentEnvelope(success=True)

    def test_failure_requires_error(self):
        with pytest.raises(ValueError):
            AgentEnvelope(success=False)

    def test_failure_cannot_carry_data(self):
        with pytest.raises(ValueError):
            AgentEnvelope(success=False, data=MeetingNotes("x"), error="oops")

    def test_fail_from_string(self):
        envelope = AgentEnvelope.fail("oops")

        assert envelope.error_type == "InternalError"
        assert envelope.status_code == 500
