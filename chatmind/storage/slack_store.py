"""
Slack Store
===========

Reads organizational context from a Slack workspace:

- Public channels: conversations.list (public_channel, not archived)
- Recent messages: conversations.history per channel, merged newest-first
- Pinned documents: pins.list per channel (pinned files and messages)
- Display names: users.info, cached for the duration of one read only

Slack API Notes:
- Uses the slack_sdk async client; failed calls raise SlackApiError
- The bot must have channels:read, channels:history, pins:read, users:read
- Rate limits apply; reads are sequential per channel to stay polite
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Sequence

from chatmind.agent.types import Channel, ChannelMessage, PinnedDocument
from chatmind.storage.base import OrgStore
from chatmind.utils.logger import Logger

if TYPE_CHECKING:
    from slack_sdk.web.async_client import AsyncWebClient

logger = Logger("SlackStore")

# Pinned messages have no title; use the start of their text
_TITLE_LENGTH = 60

_DOCUMENT_TYPES = ("file", "message")


def ts_to_datetime(ts: str | float | None) -> datetime:
    """Convert a Slack timestamp ("1714550400.000200") to an aware datetime."""
    try:
        return datetime.fromtimestamp(float(ts), tz=timezone.utc)
    except (TypeError, ValueError):
        return datetime.fromtimestamp(0, tz=timezone.utc)


class NameResolver:
    """Resolves user IDs to display names, memoized for one read."""

    def __init__(self, client: "AsyncWebClient"):
        self.client = client
        self._names: dict[str, str] = {}

    async def resolve(self, user_id: str | None) -> str:
        if not user_id:
            return "Unknown"
        if user_id not in self._names:
            response = await self.client.users_info(user=user_id)
            user = response.get("user") or {}
            profile = user.get("profile") or {}
            self._names[user_id] = (
                profile.get("display_name")
                or profile.get("real_name")
                or user.get("name")
                or user_id
            )
        return self._names[user_id]


class SlackOrgStore(OrgStore):
    """
    Organizational store backed by the Slack Web API.

    Example:
        store = SlackOrgStore(app.client)
        channels = await store.list_public_channels()
        messages = await store.recent_messages(channels, limit=50)
    """

    def __init__(self, client: "AsyncWebClient", page_size: int = 200):
        """
        Args:
            client: Async Slack client (bot token)
            page_size: Page size for conversations.list
        """
        self.client = client
        self.page_size = page_size

    async def list_public_channels(self) -> list[Channel]:
        channels: list[Channel] = []
        cursor = None

        while True:
            response = await self.client.conversations_list(
                types="public_channel",
                exclude_archived=True,
                limit=self.page_size,
                cursor=cursor,
            )
            for raw in response.get("channels", []):
                purpose = (raw.get("purpose") or {}).get("value")
                topic = (raw.get("topic") or {}).get("value")
                channels.append(Channel(
                    id=raw["id"],
                    name=raw.get("name", raw["id"]),
                    description=purpose or topic or None,
                ))

            cursor = (response.get("response_metadata") or {}).get("next_cursor")
            if not cursor:
                break

        logger.debug(f"Listed {len(channels)} public channels")
        return channels

    async def recent_messages(
        self,
        channels: Sequence[Channel],
        limit: int
    ) -> list[ChannelMessage]:
        if limit <= 0 or not channels:
            return []

        # Each channel can contribute at most `limit` messages to the merge
        collected: list[tuple[str, Channel, dict]] = []
        for channel in channels:
            response = await self.client.conversations_history(channel=channel.id, limit=limit)
            for msg in response.get("messages", []):
                if msg.get("subtype"):  # joins, edits, bot notices
                    continue
                collected.append((msg.get("ts", "0"), channel, msg))

        collected.sort(key=lambda item: float(item[0] or 0), reverse=True)

        names = NameResolver(self.client)
        result = []
        for ts, channel, msg in collected[:limit]:
            result.append(ChannelMessage(
                channel_name=channel.name,
                author_name=await names.resolve(msg.get("user")),
                content=msg.get("text", ""),
                created_at=ts_to_datetime(ts),
            ))
        return result

    async def pinned_documents(
        self,
        channels: Sequence[Channel],
        limit: int | None = None
    ) -> list[PinnedDocument]:
        items: list[tuple[float, Channel, dict]] = []
        for channel in channels:
            response = await self.client.pins_list(channel=channel.id)
            for item in response.get("items", []):
                if item.get("type") not in _DOCUMENT_TYPES:
                    logger.debug(f"Skipping pinned item of type {item.get('type')}")
                    continue
                items.append((float(item.get("created") or 0), channel, item))

        items.sort(key=lambda entry: entry[0], reverse=True)
        if limit is not None:
            items = items[:limit]

        names = NameResolver(self.client)
        return [await self._to_document(item, channel, names) for _, channel, item in items]

    async def _to_document(
        self,
        item: dict,
        channel: Channel,
        names: NameResolver
    ) -> PinnedDocument:
        """Turn a pinned file or message into a document."""
        created_at = ts_to_datetime(item.get("created"))

        if item.get("type") == "file":
            file = item.get("file") or {}
            return PinnedDocument(
                title=file.get("title") or file.get("name") or "Untitled",
                content=file.get("plain_text") or file.get("preview") or "",
                channel_name=channel.name,
                author_name=await names.resolve(item.get("created_by") or file.get("user")),
                created_at=created_at,
            )

        message = item.get("message") or {}
        text = message.get("text", "")
        first_line = text.strip().splitlines()[0] if text.strip() else "Pinned message"
        return PinnedDocument(
            title=first_line[:_TITLE_LENGTH],
            content=text,
            channel_name=channel.name,
            author_name=await names.resolve(message.get("user") or item.get("created_by")),
            created_at=created_at,
        )
