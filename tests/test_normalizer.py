"""Tests for turning raw model output into agent results."""

import json

import pytest

from chatmind.agent.normalizer import (
    DEFAULT_REPLY,
    coerce_confidence,
    normalize,
    normalize_reply_suggestions,
    normalize_tone,
    run_chain,
)
from chatmind.agent.types import (
    AgentKind,
    AgentRequest,
    Channel,
    Message,
    MeetingNotes,
    OrganizationalContext,
    OrgBrainAnswer,
    ReplySuggestions,
    ToneAnalysis,
)


class TestRunChain:
    def test_first_match_wins(self):
        def never(raw):
            return None

        def upper(raw):
            return raw.upper()

        def lower(raw):
            return raw.lower()

        assert run_chain("Ab", [never, upper, lower]) == ("AB", "upper")

    def test_no_match(self):
        assert run_chain("x", [lambda raw: None]) == (None, None)


class TestReplySuggestions:
    def test_json_array_of_objects(self):
        raw = json.dumps([
            {"tone": "Professional", "content": "Thanks, I'll confirm the date by noon."},
            {"tone": "Collaborative", "content": "Let's pair on the two open bugs today!"},
            {"tone": "Concise", "content": "Friday works."},
        ])

        suggestions = normalize_reply_suggestions(raw)

        assert [s.tone for s in suggestions] == ["Professional", "Collaborative", "Concise"]
        assert suggestions[2].content == "Friday works."

    def test_json_array_of_strings_gets_inferred_tones(self):
        raw = '["Sounds good.", "A concise answer: yes.", "Happy to help"]'

        suggestions = normalize_reply_suggestions(raw)

        assert [s.content for s in suggestions] == ["Sounds good.", "A concise answer: yes.", "Happy to help"]
        assert suggestions[0].tone == "Professional"
        assert suggestions[1].tone == "Concise"

    def test_fenced_json_with_prose(self):
        raw = 'Here you go:\n```json\n[{"tone": "Concise", "text": "Yes."}]\n```\nHope that helps.'

        suggestions = normalize_reply_suggestions(raw)

        assert suggestions[0].content == "Yes."
        assert suggestions[0].tone == "Concise"

    def test_object_with_suggestions_key(self):
        raw = '{"suggestions": ["One", "Two", "Three"]}'

        suggestions = normalize_reply_suggestions(raw)

        assert [s.content for s in suggestions] == ["One", "Two", "Three"]

    def test_unknown_tone_label_falls_back_to_content(self):
        raw = '[{"tone": "Snarky", "content": "Collaborative effort, team!"}]'

        suggestions = normalize_reply_suggestions(raw)

        assert suggestions[0].tone == "Collaborative"

    def test_enumerated_lines(self):
        raw = (
            "Here are three options:\n"
            "1. Professional: Thank you, I will follow up by Friday.\n"
            "2. Collaborative: Great idea, let's work on it together!\n"
            "3. Concise: Will do."
        )

        suggestions = normalize_reply_suggestions(raw)

        assert len(suggestions) == 3
        assert suggestions[0].content == "Professional: Thank you, I will follow up by Friday."
        assert [s.tone for s in suggestions] == ["Professional", "Collaborative", "Concise"]

    def test_enumerated_continuation_lines_are_joined(self):
        raw = "1. First reply\ncontinues here\n2. Second reply\n- Third reply"

        suggestions = normalize_reply_suggestions(raw)

        assert [s.content for s in suggestions] == [
            "First reply continues here",
            "Second reply",
            "Third reply",
        ]

    def test_quoted_enumerated_lines_are_unquoted(self):
        raw = '1) "Sure, sounds good."\n2) "Let me check."\n3) "No."'

        suggestions = normalize_reply_suggestions(raw)

        assert suggestions[0].content == "Sure, sounds good."

    def test_plain_lines(self):
        raw = "Sounds good to me.\nLet me check with QA.\nFriday it is."

        suggestions = normalize_reply_suggestions(raw)

        assert [s.content for s in suggestions] == [
            "Sounds good to me.",
            "Let me check with QA.",
            "Friday it is.",
        ]

    def test_pads_to_three_with_default(self):
        suggestions = normalize_reply_suggestions("Only one idea.")

        assert len(suggestions) == 3
        assert suggestions[0].content == "Only one idea."
        assert suggestions[1] == DEFAULT_REPLY
        assert suggestions[2] == DEFAULT_REPLY

    def test_truncates_to_three(self):
        raw = json.dumps(["a", "b", "c", "d", "e"])

        suggestions = normalize_reply_suggestions(raw)

        assert [s.content for s in suggestions] == ["a", "b", "c"]

    @pytest.mark.parametrize("raw", ["", "   ", "\n\n"])
    def test_empty_output_gives_three_defaults(self, raw):
        assert normalize_reply_suggestions(raw) == (DEFAULT_REPLY,) * 3


class TestToneNormalization:
    def test_plain_json(self):
        raw = json.dumps({
            "tone": "urgent",
            "impact": "high",
            "confidence": 88,
            "suggestions": ["Add a deadline", "Say why it matters"],
            "analysis": "The message demands immediate action.",
        })

        result = normalize_tone(raw)

        assert result == ToneAnalysis(
            tone="urgent",
            impact="high",
            confidence=88,
            suggestions=("Add a deadline", "Say why it matters"),
            analysis="The message demands immediate action.",
        )

    def test_fenced_json(self):
        raw = 'Sure!\n```json\n{"tone": "positive", "impact": "low", "confidence": 60}\n```'

        result = normalize_tone(raw)

        assert (result.tone, result.impact, result.confidence) == ("positive", "low", 60)

    def test_json_embedded_in_prose(self):
        raw = 'My analysis: {"tone": "weak", "impact": "medium", "confidence": "70%"} as requested.'

        result = normalize_tone(raw)

        assert (result.tone, result.confidence) == ("weak", 70)

    def test_nested_analysis_object_is_unwrapped(self):
        raw = json.dumps({"analysis": {"tone": "aggressive", "impact": "high", "confidence": 91}})

        result = normalize_tone(raw)

        assert (result.tone, result.impact, result.confidence) == ("aggressive", "high", 91)
        assert result.analysis is None

    def test_fields_default_independently(self):
        result = normalize_tone('{"tone": "sarcastic", "impact": "HIGH"}')

        assert result.tone == "neutral"
        assert result.impact == "high"
        assert result.confidence == 75
        assert result.suggestions == ()
        assert result.analysis is None

    def test_label_found_inside_phrase(self):
        assert normalize_tone('{"tone": "Very Positive"}').tone == "positive"

    def test_suggestions_cleaned_and_capped(self):
        raw = json.dumps({"suggestions": ["a", 3, "", "b", "c", "d", "e"]})

        assert normalize_tone(raw).suggestions == ("a", "b", "c", "d")

    def test_non_string_analysis_is_stringified(self):
        result = normalize_tone('{"tone": "neutral", "analysis": ["short", "clear"]}')

        assert result.analysis == '["short", "clear"]'

    def test_unparseable_text_falls_back(self):
        raw = "The tone is fine, I think."

        result = normalize_tone(raw)

        assert result == ToneAnalysis(tone="neutral", impact="medium", confidence=75, suggestions=(), analysis=raw)

    def test_json_array_falls_back(self):
        assert normalize_tone('["neutral"]').analysis == '["neutral"]'


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (85, 85),
        (85.4, 85),
        ("85", 85),
        (" 85% ", 85),
        (0.85, 85),
        (150, 100),
        (-5, 0),
        ("high", 75),
        (None, 75),
        (True, 75),
        (float("nan"), 75),
        (float("inf"), 75),
        ([80], 75),
        (10 ** 400, 100),
        (-(10 ** 400), 0),
    ],
)
def test_coerce_confidence(value, expected):
    assert coerce_confidence(value) == expected


class TestNormalize:
    def test_org_brain_uses_context_counts(self):
        context = OrganizationalContext(channels=(Channel(id="c1", name="general"),))

        result = normalize(AgentKind.ORG_BRAIN, "The launch is Friday.", context=context)

        assert isinstance(result, OrgBrainAnswer)
        assert result.to_dict() == {
            "response": "The launch is Friday.",
            "sources": {"channels": 1, "messages": 0, "documents": 0},
        }

    def test_reply_counts_thread_messages(self):
        request = AgentRequest(
            kind=AgentKind.REPLY_SUGGESTION,
            thread_messages=(Message(author="Ada", content="hi"),),
        )

        result = normalize(AgentKind.REPLY_SUGGESTION, "ok", request=request)

        assert isinstance(result, ReplySuggestions)
        assert result.to_dict()["context"] == {"threadMessages": 1, "recentMessages": 0, "documents": 0}

    def test_meeting_notes_pass_through(self):
        markdown = "# Sprint Sync\n\n## Summary\nShipped."

        result = normalize(AgentKind.MEETING_NOTES, markdown)

        assert result == MeetingNotes(markdown_text=markdown)

    @pytest.mark.parametrize("kind", list(AgentKind))
    def test_none_output_never_raises(self, kind):
        assert normalize(kind, None) is not None

    @pytest.mark.parametrize("raw", ["[" * 5000, "[" * 5000 + "]" * 5000, '{"a": ' + "[" * 5000 + "]" * 5000 + "}"])
    def test_deeply_nested_output_degrades(self, raw):
        replies = normalize(AgentKind.REPLY_SUGGESTION, raw)
        tone = normalize(AgentKind.TONE_ANALYSIS, raw)

        assert len(replies.suggestions) == 3
        assert tone == ToneAnalysis(analysis=raw)

    def test_huge_integer_confidence_is_clamped(self):
        raw = '{"tone": "urgent", "confidence": 1' + "0" * 400 + "}"

        result = normalize(AgentKind.TONE_ANALYSIS, raw)

        assert result.tone == "urgent"
        assert result.confidence == 100
