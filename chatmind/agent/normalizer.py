"""
Response Normalization
======================

Turns free-form model output into typed agent results. Models answer
in JSON, prose, numbered lists or broken JSON, so each kind runs an
ordered chain of parse strategies:

    raw text ──► strategy 1 ──► strategy 2 ──► ... ──► fixed default
                     │              │
                     └──── first match wins ────┘

A strategy is a pure function that returns a parsed value, or None for
"no match, try the next one". The chain always ends in a default, so
normalize() never raises.

Per kind:
    OrgBrain         text used as-is; source counts come from the context
    ReplySuggestion  JSON array -> enumerated lines -> plain lines, then
                     padded/truncated to exactly three suggestions
    ToneAnalysis     JSON object (bare, fenced, or embedded in prose),
                     then per-field defaults; whole-result fallback if
                     nothing parses
    MeetingNotes     Markdown passed through untouched
"""

import json
import math
import re
from typing import Any, Callable, Sequence, TypeVar

from chatmind.agent.types import (
    IMPACTS,
    REPLY_TONES,
    TONES,
    AgentKind,
    AgentRequest,
    AgentResult,
    MeetingNotes,
    OrganizationalContext,
    OrgBrainAnswer,
    ReplySuggestion,
    ReplySuggestions,
    ToneAnalysis,
)
from chatmind.utils.logger import Logger, preview

logger = Logger("Normalizer")

T = TypeVar("T")
Strategy = Callable[[str], "T | None"]

REPLY_COUNT = 3
DEFAULT_REPLY = ReplySuggestion(
    content="Thanks for sharing! I'll review this and get back to you.",
    tone="Professional",
)

DEFAULT_TONE = "neutral"
DEFAULT_IMPACT = "medium"
DEFAULT_CONFIDENCE = 75
MAX_TONE_SUGGESTIONS = 4

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)```", re.DOTALL | re.IGNORECASE)
_ORDINAL_RE = re.compile(r"^\s*(?:\d+[.)]|[-•])\s*")


def run_chain(raw: str, strategies: Sequence[Strategy]) -> tuple[Any, str | None]:
    """
    Apply strategies left to right.

    Returns:
        (value, strategy name) for the first match, or (None, None)
    """
    for strategy in strategies:
        value = strategy(raw)
        if value is not None:
            return value, strategy.__name__
    return None, None


# ==============================================================================
# JSON extraction
# ==============================================================================

def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError, RecursionError):
        return None


def _extract_balanced(text: str, open_char: str, close_char: str) -> str | None:
    """Find the first balanced open/close span, skipping over JSON strings."""
    start = text.find(open_char)
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape = False
    for i, ch in enumerate(text[start:], start):
        if escape:
            escape = False
            continue
        if ch == "\\":
            escape = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == open_char:
            depth += 1
        elif ch == close_char:
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def json_direct(raw: str) -> Any:
    """The whole text is JSON."""
    return _loads(raw.strip())


def json_fenced(raw: str) -> Any:
    """JSON inside a ```json fenced block."""
    match = _FENCE_RE.search(raw)
    return _loads(match.group(1).strip()) if match else None


def json_embedded_object(raw: str) -> Any:
    """A {...} object surrounded by prose."""
    span = _extract_balanced(raw, "{", "}")
    return _loads(span) if span else None


def json_embedded_array(raw: str) -> Any:
    """A [...] array surrounded by prose."""
    span = _extract_balanced(raw, "[", "]")
    return _loads(span) if span else None


# ==============================================================================
# Reply suggestions
# ==============================================================================

def _match_reply_tone(text: str) -> str | None:
    lowered = text.lower()
    for tone in REPLY_TONES:
        if tone.lower() in lowered:
            return tone
    return None


def infer_reply_tone(text: str) -> str:
    """Pick the first tone label mentioned in `text`; Professional if none."""
    return _match_reply_tone(text) or "Professional"


def _strip_ordinal(line: str) -> str:
    content = _ORDINAL_RE.sub("", line, count=1).strip()
    if len(content) >= 2 and content[0] == content[-1] == '"':
        content = content[1:-1].strip()
    return content


def _suggestion_from_item(item: Any) -> ReplySuggestion | None:
    if isinstance(item, str):
        content = item.strip()
        return ReplySuggestion(content=content, tone=infer_reply_tone(content)) if content else None

    if isinstance(item, dict):
        content = next(
            (item[key] for key in ("content", "text", "reply", "suggestion", "message")
             if isinstance(item.get(key), str) and item[key].strip()),
            None,
        )
        if content is None:
            return None
        label = item.get("tone")
        tone = _match_reply_tone(label) if isinstance(label, str) else None
        return ReplySuggestion(content=content.strip(), tone=tone or infer_reply_tone(content))

    return None


def json_suggestions(raw: str) -> list[ReplySuggestion] | None:
    """A JSON array of strings/objects, or an object with a suggestions array."""
    data, strategy = run_chain(raw, [json_direct, json_fenced, json_embedded_array])
    if isinstance(data, dict):
        data = data.get("suggestions", data.get("replies"))
    if not isinstance(data, list):
        return None

    suggestions = []
    for item in data:
        suggestion = _suggestion_from_item(item)
        if suggestion is not None:
            suggestions.append(suggestion)

    # A bracketed fragment inside prose ("[1, 2]") is not an answer
    if not suggestions and strategy == json_embedded_array.__name__:
        return None
    return suggestions


def enumerated_line_suggestions(raw: str) -> list[ReplySuggestion] | None:
    """
    Numbered or dashed lines. Unmarked lines directly below a marked
    line continue it; anything before the first marker is ignored.
    """
    items: list[str] = []
    current: str | None = None

    for line in raw.splitlines():
        if _ORDINAL_RE.match(line):
            if current is not None:
                items.append(current)
            current = line
        elif not line.strip():
            if current is not None:
                items.append(current)
            current = None
        elif current is not None:
            current = f"{current} {line.strip()}"

    if current is not None:
        items.append(current)

    suggestions = []
    for item in items:
        content = _strip_ordinal(item)
        if content:
            suggestions.append(ReplySuggestion(content=content, tone=infer_reply_tone(item)))
    return suggestions or None


def plain_line_suggestions(raw: str) -> list[ReplySuggestion] | None:
    """Every non-blank line is a suggestion."""
    suggestions = []
    for line in raw.splitlines():
        content = _strip_ordinal(line)
        if content:
            suggestions.append(ReplySuggestion(content=content, tone=infer_reply_tone(line)))
    return suggestions or None


REPLY_STRATEGIES: list[Strategy] = [
    json_suggestions,
    enumerated_line_suggestions,
    plain_line_suggestions,
]


def normalize_reply_suggestions(raw: str) -> tuple[ReplySuggestion, ...]:
    """
    Parse reply suggestions, always returning exactly three.

    Missing entries are filled with DEFAULT_REPLY; extra entries are dropped.
    """
    suggestions, strategy = run_chain(raw, REPLY_STRATEGIES)
    suggestions = list(suggestions or [])[:REPLY_COUNT]

    if len(suggestions) < REPLY_COUNT:
        logger.warning(
            f"Only {len(suggestions)} reply suggestions parsed, padding with defaults",
            {"strategy": strategy, "raw": preview(raw)},
        )
    while len(suggestions) < REPLY_COUNT:
        suggestions.append(DEFAULT_REPLY)

    return tuple(suggestions)


# ==============================================================================
# Tone analysis
# ==============================================================================

TONE_STRATEGIES: list[Strategy] = [json_direct, json_fenced, json_embedded_object]


def _pick_label(value: Any, allowed: Sequence[str], default: str) -> str:
    if not isinstance(value, str):
        return default
    lowered = value.strip().lower()
    if lowered in allowed:
        return lowered
    for label in allowed:
        if re.search(rf"\b{label}\b", lowered):
            return label
    return default


def coerce_confidence(value: Any) -> int:
    """
    Coerce a confidence value into an integer 0-100.

    Numbers and numeric strings ("85", "85%") are rounded and clamped;
    fractions below 1 (0.85) are read as percentages. Anything else
    gets the default of 75.
    """
    if isinstance(value, bool):
        return DEFAULT_CONFIDENCE
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%").strip())
        except ValueError:
            return DEFAULT_CONFIDENCE
    if isinstance(value, int):
        # May be too large to convert to float
        return max(0, min(100, value))
    if not isinstance(value, float) or not math.isfinite(value):
        return DEFAULT_CONFIDENCE

    if isinstance(value, float) and 0 < value < 1:
        value *= 100
    return max(0, min(100, int(round(value))))


def _coerce_suggestions(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return ()
    cleaned = [s.strip() for s in value if isinstance(s, str) and s.strip()]
    return tuple(cleaned[:MAX_TONE_SUGGESTIONS])


def _coerce_analysis(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


def tone_from_mapping(data: dict) -> ToneAnalysis:
    """Build a ToneAnalysis from parsed JSON, defaulting each field on its own."""
    # Some models nest the whole result under "analysis"
    nested = data.get("analysis")
    if isinstance(nested, dict):
        data = nested

    return ToneAnalysis(
        tone=_pick_label(data.get("tone"), TONES, DEFAULT_TONE),
        impact=_pick_label(data.get("impact"), IMPACTS, DEFAULT_IMPACT),
        confidence=coerce_confidence(data.get("confidence")),
        suggestions=_coerce_suggestions(data.get("suggestions")),
        analysis=_coerce_analysis(data.get("analysis")),
    )


def fallback_tone(raw: str) -> ToneAnalysis:
    return ToneAnalysis(
        tone=DEFAULT_TONE,
        impact=DEFAULT_IMPACT,
        confidence=DEFAULT_CONFIDENCE,
        suggestions=(),
        analysis=raw,
    )


def normalize_tone(raw: str) -> ToneAnalysis:
    # Only a JSON object counts as a match here; a bare string or list moves on
    for strategy in TONE_STRATEGIES:
        data = strategy(raw)
        if isinstance(data, dict):
            return tone_from_mapping(data)

    logger.warning("Tone response was not a JSON object, using fallback", {"raw": preview(raw)})
    return fallback_tone(raw)


# ==============================================================================
# Entry point
# ==============================================================================

def normalize(
    kind: AgentKind,
    raw_text: str | None,
    context: OrganizationalContext | None = None,
    request: AgentRequest | None = None
) -> AgentResult:
    """
    Convert raw model output into the result type for `kind`.

    Args:
        kind: The agent that produced the text
        raw_text: Model output (None is treated as empty)
        context: The context used for the prompt (for source counts)
        request: The originating request (for thread size)

    Returns:
        A complete AgentResult; never raises for any input text
    """
    raw = raw_text if isinstance(raw_text, str) else ""
    context = context or OrganizationalContext.empty()

    if kind is AgentKind.ORG_BRAIN:
        return OrgBrainAnswer(response_text=raw, sources=context.source_counts())

    if kind is AgentKind.REPLY_SUGGESTION:
        return ReplySuggestions(
            suggestions=normalize_reply_suggestions(raw),
            thread_message_count=len(request.thread_messages) if request else 0,
            recent_message_count=len(context.recent_messages),
            document_count=len(context.pinned_documents),
        )

    if kind is AgentKind.TONE_ANALYSIS:
        return normalize_tone(raw)

    return MeetingNotes(markdown_text=raw)
