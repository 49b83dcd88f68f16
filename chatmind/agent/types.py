"""
Agent Types
===========

Data model shared by every stage of the agent pipeline:

    AgentRequest ──► OrganizationalContext ──► AgentResult ──► AgentEnvelope

All of these are created per request and never mutated: dataclasses
are frozen and sequences are stored as tuples. Nothing here outlives
the request that built it.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union

from chatmind.agent.errors import AgentError, CallerError


# ==============================================================================
# Agent kinds
# ==============================================================================

class AgentKind(str, Enum):
    """The four supported agents. Selects the prompt template and normalizer."""
    ORG_BRAIN = "OrgBrain"
    REPLY_SUGGESTION = "ReplySuggestion"
    TONE_ANALYSIS = "ToneAnalysis"
    MEETING_NOTES = "MeetingNotes"

    @classmethod
    def parse(cls, value: "AgentKind | str | None") -> "AgentKind":
        """
        Resolve an agent identifier.

        Accepts the canonical names, the older product names
        (AutoReplyComposer, ToneImpactMeter, MeetingNotesGen) and the
        endpoint slugs (ask-org-brain, tone-impact-meter, ...).

        Raises:
            CallerError: If the identifier is unknown
        """
        if isinstance(value, AgentKind):
            return value
        if isinstance(value, str):
            kind = _KIND_ALIASES.get(value.strip().lower())
            if kind is not None:
                return kind
        raise CallerError(f"Unknown agent: {value}")


_KIND_ALIASES: dict[str, AgentKind] = {
    "orgbrain": AgentKind.ORG_BRAIN,
    "ask-org-brain": AgentKind.ORG_BRAIN,
    "replysuggestion": AgentKind.REPLY_SUGGESTION,
    "autoreplycomposer": AgentKind.REPLY_SUGGESTION,
    "auto-reply-composer": AgentKind.REPLY_SUGGESTION,
    "toneanalysis": AgentKind.TONE_ANALYSIS,
    "toneimpactmeter": AgentKind.TONE_ANALYSIS,
    "tone-impact-meter": AgentKind.TONE_ANALYSIS,
    "meetingnotes": AgentKind.MEETING_NOTES,
    "meetingnotesgen": AgentKind.MEETING_NOTES,
    "meeting-notes-gen": AgentKind.MEETING_NOTES,
}


# ==============================================================================
# Caller input
# ==============================================================================

@dataclass(frozen=True)
class Message:
    """
    A chat message supplied by the caller (a thread entry).

    Attributes:
        author: Display name of the sender
        content: Message text
        timestamp: When it was sent, if known
    """
    author: str
    content: str
    timestamp: datetime | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "Message":
        """
        Build a Message from a JSON object.

        Accepts `{"user": {"name": ...}, "content": ...}` as sent by the
        chat UI, or `{"author": ..., "content": ...}`. A missing author
        becomes "User"; non-string content is rendered as JSON.

        Raises:
            CallerError: If the entry is not an object
        """
        if isinstance(payload, Message):
            return payload
        if not isinstance(payload, dict):
            raise CallerError("threadMessages entries must be objects")

        user = payload.get("user")
        author = None
        if isinstance(user, dict):
            author = user.get("name") or user.get("display_name") or user.get("username")
        author = author or payload.get("author") or "User"

        content = payload.get("content", "")
        if not isinstance(content, str):
            content = json.dumps(content, default=str)

        return cls(
            author=str(author),
            content=content,
            timestamp=_parse_timestamp(payload.get("timestamp") or payload.get("created_at")),
        )


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


@dataclass(frozen=True)
class AgentRequest:
    """
    A validated agent invocation.

    Which fields matter depends on the kind: OrgBrain and ToneAnalysis
    use `query`; ReplySuggestion and MeetingNotes use `thread_messages`.
    """
    kind: AgentKind
    query: str | None = None
    thread_messages: tuple[Message, ...] = ()
    title: str | None = None
    context_docs: tuple[str, ...] = ()


# ==============================================================================
# Organizational context
# ==============================================================================

@dataclass(frozen=True)
class Channel:
    """A public channel."""
    id: str
    name: str
    description: str | None = None


@dataclass(frozen=True)
class ChannelMessage:
    """A message read from a channel, with names already resolved."""
    channel_name: str
    author_name: str
    content: str
    created_at: datetime


@dataclass(frozen=True)
class PinnedDocument:
    """A pinned document (or pinned message) in the organization."""
    title: str
    content: str
    channel_name: str | None = None
    author_name: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class OrganizationalContext:
    """
    Snapshot of organizational data used to ground a prompt.

    Built fresh for every request and never cached: a stale snapshot
    would misinform the model.
    """
    channels: tuple[Channel, ...] = ()
    recent_messages: tuple[ChannelMessage, ...] = ()
    pinned_documents: tuple[PinnedDocument, ...] = ()

    @classmethod
    def empty(cls) -> "OrganizationalContext":
        return cls()

    def source_counts(self) -> "SourceCounts":
        return SourceCounts(
            channel_count=len(self.channels),
            message_count=len(self.recent_messages),
            document_count=len(self.pinned_documents),
        )


# ==============================================================================
# Agent results
# ==============================================================================

TONES = ("aggressive", "weak", "confusing", "neutral", "positive", "professional", "casual", "urgent")
IMPACTS = ("high", "medium", "low")
REPLY_TONES = ("Professional", "Collaborative", "Concise")


@dataclass(frozen=True)
class SourceCounts:
    channel_count: int = 0
    message_count: int = 0
    document_count: int = 0

    def to_dict(self) -> dict:
        return {
            "channels": self.channel_count,
            "messages": self.message_count,
            "documents": self.document_count,
        }


@dataclass(frozen=True)
class OrgBrainAnswer:
    response_text: str
    sources: SourceCounts = field(default_factory=SourceCounts)

    def to_dict(self) -> dict:
        return {"response": self.response_text, "sources": self.sources.to_dict()}


@dataclass(frozen=True)
class ReplySuggestion:
    content: str
    tone: str = "Professional"

    def to_dict(self) -> dict:
        return {"content": self.content, "tone": self.tone}


@dataclass(frozen=True)
class ReplySuggestions:
    """Exactly three suggestions once normalized, plus the context sizes used."""
    suggestions: tuple[ReplySuggestion, ...]
    thread_message_count: int = 0
    recent_message_count: int = 0
    document_count: int = 0

    def to_dict(self) -> dict:
        return {
            "suggestions": [s.to_dict() for s in self.suggestions],
            "context": {
                "threadMessages": self.thread_message_count,
                "recentMessages": self.recent_message_count,
                "documents": self.document_count,
            },
        }


@dataclass(frozen=True)
class ToneAnalysis:
    """
    Tone and impact of a message.

    Attributes:
        tone: One of TONES
        impact: One of IMPACTS
        confidence: Integer 0-100
        suggestions: Up to four rewrites or improvements
        analysis: Short explanation, or the raw model text on fallback
    """
    tone: str = "neutral"
    impact: str = "medium"
    confidence: int = 75
    suggestions: tuple[str, ...] = ()
    analysis: str | None = None

    def to_dict(self) -> dict:
        return {
            "tone": self.tone,
            "impact": self.impact,
            "confidence": self.confidence,
            "suggestions": list(self.suggestions),
            "analysis": self.analysis,
        }


@dataclass(frozen=True)
class MeetingNotes:
    """Markdown notes, passed through untouched."""
    markdown_text: str

    def to_dict(self) -> dict:
        return {"notes": self.markdown_text}


AgentResult = Union[OrgBrainAnswer, ReplySuggestions, ToneAnalysis, MeetingNotes]


# ==============================================================================
# Envelope
# ==============================================================================

@dataclass(frozen=True)
class AgentEnvelope:
    """
    Uniform success/error wrapper returned by the router.

    Invariant: success carries data and no error; failure carries an
    error and no data. `error_type` names the AgentError subclass so the
    HTTP layer can choose a status code.
    """
    success: bool
    data: AgentResult | None = None
    error: str | None = None
    error_type: str | None = None

    def __post_init__(self):
        if self.success and (self.data is None or self.error is not None):
            raise ValueError("A successful envelope needs data and no error")
        if not self.success and (self.error is None or self.data is not None):
            raise ValueError("A failed envelope needs an error and no data")

    @classmethod
    def ok(cls, data: AgentResult) -> "AgentEnvelope":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: AgentError | str, error_type: str | None = None) -> "AgentEnvelope":
        if isinstance(error, AgentError):
            return cls(success=False, error=error.message, error_type=error.error_type)
        return cls(success=False, error=str(error) or "Unknown error", error_type=error_type or "InternalError")

    @property
    def status_code(self) -> int:
        """HTTP-style status for this envelope."""
        if self.success:
            return 200
        return 400 if self.error_type == CallerError.__name__ else 500

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "data": self.data.to_dict() if self.data is not None else None,
            "error": self.error,
        }
