"""
Slack Event Handlers
====================

Routes Slack events to the agents.

Event Types:
- app_mention: "@ChatMind <question>" asks OrgBrain. Inside a thread,
  "@ChatMind notes [title]" summarizes the thread and "@ChatMind suggest"
  proposes three replies to it.
- message.im: Direct messages are OrgBrain questions.
- /chatmind: "tone <text>" scores a draft; "help" lists the commands.

Handler Pattern:
    1. Receive event from Slack
    2. Build the agent payload (thread replies are fetched when needed)
    3. Dispatch through the AgentRouter
    4. Reply in the thread with the formatted result or the error

The router never raises, so handlers only have to deal with Slack API
failures themselves.
"""

import re
from typing import TYPE_CHECKING

from slack_bolt.async_app import AsyncAck, AsyncApp, AsyncSay
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from chatmind.agent.types import (
    AgentEnvelope,
    MeetingNotes,
    Message,
    OrgBrainAnswer,
    ReplySuggestions,
    ToneAnalysis,
)
from chatmind.storage.slack_store import NameResolver, ts_to_datetime
from chatmind.utils.logger import Logger, preview

if TYPE_CHECKING:
    from chatmind.agent.core import AgentRouter

logger = Logger("Handlers")

_MENTION_RE = re.compile(r"<@[A-Z0-9]+>")

# Global router reference (set during registration)
_router: "AgentRouter | None" = None

HELP_TEXT = """*ChatMind* - Organizational assistant

*In any channel:*
- `@ChatMind <question>` - Ask about channels, recent discussions and pinned docs

*Inside a thread:*
- `@ChatMind notes [title]` - Meeting notes for the thread
- `@ChatMind suggest` - Three reply suggestions

*Commands:*
- `/chatmind tone <draft>` - Tone and impact of a draft message
- `/chatmind help` - Show this help message
"""


def register_handlers(app: AsyncApp, router: "AgentRouter") -> None:
    """
    Register all event handlers with the Slack app.

    Args:
        app: The Bolt app instance
        router: Agent router that runs every request
    """
    global _router
    _router = router

    app.event("app_mention")(handle_mention)
    app.event("message")(handle_message)
    app.command("/chatmind")(handle_command)

    logger.info("Registered Slack event handlers")


# ==============================================================================
# Formatting
# ==============================================================================

def format_answer(answer: OrgBrainAnswer) -> str:
    sources = answer.sources
    return (
        f"{answer.response_text}\n\n"
        f"_Sources: {sources.channel_count} channels, "
        f"{sources.message_count} messages, {sources.document_count} documents_"
    )


def format_suggestions(result: ReplySuggestions) -> str:
    lines = ["*Suggested replies:*"]
    for i, suggestion in enumerate(result.suggestions, 1):
        lines.append(f"{i}. _{suggestion.tone}_: {suggestion.content}")
    return "\n".join(lines)


def format_tone(analysis: ToneAnalysis) -> str:
    lines = [
        f"*Tone:* {analysis.tone}   *Impact:* {analysis.impact}   "
        f"*Confidence:* {analysis.confidence}%"
    ]
    if analysis.analysis:
        lines.append(analysis.analysis)
    for suggestion in analysis.suggestions:
        lines.append(f"- {suggestion}")
    return "\n".join(lines)


def format_envelope(envelope: AgentEnvelope) -> str:
    """Render a router result as Slack mrkdwn."""
    if not envelope.success:
        return f"Sorry, I couldn't complete that: {envelope.error}"

    data = envelope.data
    if isinstance(data, OrgBrainAnswer):
        return format_answer(data)
    if isinstance(data, ReplySuggestions):
        return format_suggestions(data)
    if isinstance(data, ToneAnalysis):
        return format_tone(data)
    if isinstance(data, MeetingNotes):
        return data.markdown_text
    return str(data)


# ==============================================================================
# Thread helpers
# ==============================================================================

async def fetch_thread(
    client: AsyncWebClient,
    channel_id: str,
    thread_ts: str,
    exclude_ts: str | None = None
) -> list[Message]:
    """
    Read a thread's messages, oldest first, as agent Messages.

    Bot messages and the triggering mention (`exclude_ts`) are skipped.
    """
    response = await client.conversations_replies(channel=channel_id, ts=thread_ts)
    names = NameResolver(client)

    messages = []
    for msg in response.get("messages", []):
        if msg.get("bot_id") or msg.get("subtype") or msg.get("ts") == exclude_ts:
            continue
        messages.append(Message(
            author=await names.resolve(msg.get("user")),
            content=msg.get("text", ""),
            timestamp=ts_to_datetime(msg.get("ts")),
        ))
    return messages


# ==============================================================================
# Handlers
# ==============================================================================

async def handle_mention(
    event: dict,
    say: AsyncSay,
    client: AsyncWebClient
) -> None:
    """
    Handle @mentions of the bot in channels.

    Args:
        event: The Slack event data
        say: Function to send messages
        client: Slack API client
    """
    thread_ts = event.get("thread_ts") or event.get("ts")

    if _router is None:
        logger.error("Router not initialized")
        await say(text="Sorry, I'm still starting up. Please try again in a moment.", thread_ts=thread_ts)
        return

    channel_id = event.get("channel")
    text = _MENTION_RE.sub("", event.get("text", "")).strip()

    if not text:
        await say(text=HELP_TEXT, thread_ts=thread_ts)
        return

    logger.info(f"Mention in {channel_id}: {preview(text, 50)}")

    command, _, rest = text.partition(" ")
    command = command.lower()
    in_thread = event.get("thread_ts") is not None

    try:
        if in_thread and command in ("notes", "suggest"):
            thread = await fetch_thread(client, channel_id, event["thread_ts"], exclude_ts=event.get("ts"))
            if command == "notes":
                envelope = await _router.generate_notes(thread, title=rest.strip() or None)
            else:
                envelope = await _router.suggest_replies(thread)
        else:
            envelope = await _router.ask(text)

    except SlackApiError as e:
        logger.error("Failed to read thread", e)
        await say(text="Sorry, I couldn't read this thread.", thread_ts=thread_ts)
        return

    await say(text=format_envelope(envelope), thread_ts=thread_ts)


async def handle_message(
    event: dict,
    say: AsyncSay
) -> None:
    """
    Handle direct messages to the bot as OrgBrain questions.

    Args:
        event: The Slack event data
        say: Function to send messages
    """
    # Only handle DMs (channel_type == "im")
    if event.get("channel_type") != "im":
        return

    # Ignore bot messages (including our own) and edits/deletes
    if event.get("bot_id") or event.get("subtype"):
        return

    text = event.get("text", "").strip()
    if not text:
        return

    if _router is None:
        logger.error("Router not initialized")
        await say(text="Sorry, I'm still starting up. Please try again in a moment.")
        return

    logger.info(f"DM from {event.get('user')}: {preview(text, 50)}")
    envelope = await _router.ask(text)
    await say(text=format_envelope(envelope))


async def handle_command(
    ack: AsyncAck,
    command: dict,
    say: AsyncSay
) -> None:
    """
    Handle the /chatmind slash command.

    - /chatmind tone <text> - Tone analysis of a draft
    - /chatmind help - Show help

    Args:
        ack: Acknowledge function (must be called within 3 seconds)
        command: The command data
        say: Function to send messages
    """
    await ack()

    if _router is None:
        await say(text="Sorry, I'm still starting up.")
        return

    text = command.get("text", "").strip()
    subcommand, _, rest = text.partition(" ")
    subcommand = subcommand.lower()

    if subcommand in ("", "help"):
        await say(text=HELP_TEXT)

    elif subcommand == "tone":
        if not rest.strip():
            await say(text="Usage: `/chatmind tone <your draft message>`")
            return
        envelope = await _router.analyze_tone(rest.strip())
        await say(text=format_envelope(envelope))

    else:
        await say(text=f"Unknown command: `{subcommand}`. Try `/chatmind help`")
