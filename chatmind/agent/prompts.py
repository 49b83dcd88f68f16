"""
Prompt Builder
==============

Turns a request plus its organizational context into a system prompt
and a user prompt. Pure functions only: no I/O, no clock reads.

Every kind has fixed generation settings. They are not caller
configurable, so output formats stay predictable:

    OrgBrain         temperature 0.7, 1000 tokens
    ReplySuggestion  temperature 0.7,  500 tokens
    ToneAnalysis     temperature 0.4,  300 tokens
    MeetingNotes     temperature 0.5,  900 tokens
"""

from dataclasses import dataclass
from typing import Sequence

from chatmind.agent.types import (
    AgentKind,
    AgentRequest,
    Channel,
    ChannelMessage,
    Message,
    OrganizationalContext,
    PinnedDocument,
)

# Reply suggestions only need the gist of each document
DOCUMENT_EXCERPT_LENGTH = 200

DEFAULT_NOTES_TITLE = "Meeting Notes"

REPLY_USER_INSTRUCTION = "Generate 3 reply suggestions for this conversation thread."


@dataclass(frozen=True)
class GenerationSettings:
    temperature: float
    max_tokens: int


@dataclass(frozen=True)
class Prompt:
    system: str
    user: str
    settings: GenerationSettings


GENERATION_SETTINGS: dict[AgentKind, GenerationSettings] = {
    AgentKind.ORG_BRAIN: GenerationSettings(temperature=0.7, max_tokens=1000),
    AgentKind.REPLY_SUGGESTION: GenerationSettings(temperature=0.7, max_tokens=500),
    AgentKind.TONE_ANALYSIS: GenerationSettings(temperature=0.4, max_tokens=300),
    AgentKind.MEETING_NOTES: GenerationSettings(temperature=0.5, max_tokens=900),
}


# ==============================================================================
# Rendering helpers
# ==============================================================================

def render_channels(channels: Sequence[Channel]) -> str:
    if not channels:
        return "No channels available."
    return "\n".join(
        f"Channel: {c.name} - {c.description or 'No description'}" for c in channels
    )


def render_recent_messages(messages: Sequence[ChannelMessage], with_dates: bool = True) -> str:
    """Render as `[channel] author: content (date)`."""
    if not messages:
        return "No recent messages available."
    lines = []
    for m in messages:
        line = f"[{m.channel_name}] {m.author_name}: {m.content}"
        if with_dates:
            line += f" ({m.created_at.strftime('%Y-%m-%d')})"
        lines.append(line)
    return "\n".join(lines)


def render_documents(documents: Sequence[PinnedDocument]) -> str:
    if not documents:
        return "No pinned documents available."
    blocks = []
    for d in documents:
        header = f'Document: "{d.title}" in {d.channel_name or "General"}'
        if d.author_name:
            header += f" by {d.author_name}"
        blocks.append(f"{header}:\n{d.content}")
    return "\n\n".join(blocks)


def render_document_excerpts(documents: Sequence[PinnedDocument]) -> str:
    if not documents:
        return "No pinned documents available."
    return "\n".join(
        f'Document: "{d.title}" - {d.content[:DOCUMENT_EXCERPT_LENGTH]}...' for d in documents
    )


def render_transcript(messages: Sequence[Message]) -> str:
    """Render a thread as `1. author: content` lines, in the caller's order."""
    return "\n".join(
        f"{index}. {m.author}: {m.content}" for index, m in enumerate(messages, start=1)
    )


# ==============================================================================
# Per-kind builders
# ==============================================================================

def _org_brain(request: AgentRequest, context: OrganizationalContext) -> tuple[str, str]:
    system = f"""You are OrgBrain, an AI assistant that helps users find information across their organization's chat channels and documents.

Available Channels:
{render_channels(context.channels)}

Recent Messages:
{render_recent_messages(context.recent_messages)}

Pinned Documents:
{render_documents(context.pinned_documents)}

Please provide a helpful summary based on the user's query. Focus on relevant information from the channels and documents. If you can't find specific information, let the user know what channels or documents might be relevant."""

    user = request.query or ""
    if request.context_docs:
        user += "\n\nContext from organization documents and channels:\n" + "\n\n".join(request.context_docs)
    return system, user


def _reply_suggestion(request: AgentRequest, context: OrganizationalContext) -> tuple[str, str]:
    transcript = render_transcript(request.thread_messages)

    system = f"""You are an AI assistant that suggests intelligent replies for team chat conversations.

Current Thread Context:
{transcript}

Recent Organizational Context:
{render_recent_messages(context.recent_messages, with_dates=False)}

Relevant Documents:
{render_document_excerpts(context.pinned_documents)}

Based on the thread conversation and organizational context, suggest exactly 3 different reply options with different tones:
1. Professional - formal and business-appropriate
2. Collaborative - friendly and team-oriented
3. Concise - brief and to the point

Each suggestion should be contextually relevant to the conversation and appropriate for the team setting.
Return a JSON array of 3 objects, each with a "tone" field (Professional, Collaborative or Concise) and a "content" field holding the reply text."""

    user = f"{REPLY_USER_INSTRUCTION}\n\nThread messages:\n{transcript}"
    return system, user


_TONE_SYSTEM_PROMPT = """You are an assistant that analyzes the tone and potential impact of a chat message.
Return a short JSON object with the following fields:
{
  "tone": one of ["aggressive","weak","confusing","neutral","positive","professional","casual","urgent"],
  "impact": one of ["high","medium","low"],
  "confidence": number from 0 to 100,
  "suggestions": array of 2-4 short actionable rewrites/improvements,
  "analysis": one or two concise sentences explaining why
}
Only output JSON."""


def _tone_analysis(request: AgentRequest, context: OrganizationalContext) -> tuple[str, str]:
    return _TONE_SYSTEM_PROMPT, request.query or ""


def _meeting_notes(request: AgentRequest, context: OrganizationalContext) -> tuple[str, str]:
    title = (request.title or "").strip() or DEFAULT_NOTES_TITLE

    system = f"""You are an assistant that generates concise, well-structured meeting notes from a chat thread.
Return ONLY Markdown with the following sections when possible:

# {title}

## Summary
One or two paragraphs summarizing key points.

## Decisions
- Bullet list of decisions (if any)

## Action Items
- Owner - Action (Due date if mentioned)

## Risks/Concerns
- Bullet list (if any)

## Detailed Discussion
- Brief bullets capturing main discussion points."""

    user = f"Thread transcript:\n\n{render_transcript(request.thread_messages)}"
    return system, user


_BUILDERS = {
    AgentKind.ORG_BRAIN: _org_brain,
    AgentKind.REPLY_SUGGESTION: _reply_suggestion,
    AgentKind.TONE_ANALYSIS: _tone_analysis,
    AgentKind.MEETING_NOTES: _meeting_notes,
}


def build_prompt(request: AgentRequest, context: OrganizationalContext | None = None) -> Prompt:
    """
    Compose the prompt pair for a request.

    Args:
        request: The validated request (its kind selects the template)
        context: Organizational context; ignored by kinds that don't use it

    Returns:
        Prompt with system text, user text and fixed generation settings
    """
    context = context or OrganizationalContext.empty()
    system, user = _BUILDERS[request.kind](request, context)
    return Prompt(system=system, user=user, settings=GENERATION_SETTINGS[request.kind])
