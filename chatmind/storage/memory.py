"""
In-Memory Store
===============

Holds organizational rows in memory, in the same shape as the chat
database tables:

    channels:          {id, name, description, is_public}
    users:             {id, username, display_name}
    messages:          {channel_id, user_id, content, created_at}
    pinned_documents:  {title, content, channel_id, created_by, created_at}

Useful for local development (seeded from a JSON file) and for tests.
Rows are never modified by reads.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from chatmind.agent.types import Channel, ChannelMessage, PinnedDocument
from chatmind.storage.base import OrgStore
from chatmind.utils.logger import Logger

logger = Logger("MemoryStore")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _as_datetime(value: Any) -> datetime:
    """Parse a created_at column; unparseable values sort as oldest."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return _EPOCH
    else:
        return _EPOCH
    # Mixed naive/aware values cannot be compared, so normalize to UTC
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class InMemoryOrgStore(OrgStore):
    """
    Organizational store backed by plain lists of row dicts.

    Example:
        store = InMemoryOrgStore(
            channels=[{"id": "c1", "name": "general", "is_public": True}],
            users=[{"id": "u1", "display_name": "Ada"}],
            messages=[{"channel_id": "c1", "user_id": "u1",
                       "content": "Launch is Friday", "created_at": "2024-05-01T09:00:00"}],
        )
    """

    def __init__(
        self,
        channels: list[dict] | None = None,
        users: list[dict] | None = None,
        messages: list[dict] | None = None,
        pinned_documents: list[dict] | None = None
    ):
        self._channels = list(channels or [])
        self._users = {u["id"]: u for u in (users or []) if "id" in u}
        self._messages = list(messages or [])
        self._documents = list(pinned_documents or [])

    @classmethod
    def from_file(cls, path: Path) -> "InMemoryOrgStore":
        """
        Load a JSON snapshot with `channels`, `users`, `messages` and
        `pinned_documents` arrays.
        """
        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        store = cls(
            channels=data.get("channels"),
            users=data.get("users"),
            messages=data.get("messages"),
            pinned_documents=data.get("pinned_documents"),
        )
        logger.info(
            f"Loaded snapshot from {path}",
            {
                "channels": len(store._channels),
                "messages": len(store._messages),
                "documents": len(store._documents),
            },
        )
        return store

    def _display_name(self, user_id: str | None) -> str:
        user = self._users.get(user_id or "")
        if not user:
            return "Unknown"
        return user.get("display_name") or user.get("username") or "Unknown"

    def _channel_names(self) -> dict[str, str]:
        return {c["id"]: c.get("name", "") for c in self._channels if "id" in c}

    async def list_public_channels(self) -> list[Channel]:
        return [
            Channel(id=c["id"], name=c.get("name", ""), description=c.get("description"))
            for c in self._channels
            if c.get("is_public", True)
        ]

    async def recent_messages(
        self,
        channels: Sequence[Channel],
        limit: int
    ) -> list[ChannelMessage]:
        names = {c.id: c.name for c in channels}
        rows = [m for m in self._messages if m.get("channel_id") in names]
        rows.sort(key=lambda m: _as_datetime(m.get("created_at")), reverse=True)

        return [
            ChannelMessage(
                channel_name=names[m["channel_id"]],
                author_name=self._display_name(m.get("user_id")),
                content=m.get("content", ""),
                created_at=_as_datetime(m.get("created_at")),
            )
            for m in rows[:limit]
        ]

    async def pinned_documents(
        self,
        channels: Sequence[Channel],
        limit: int | None = None
    ) -> list[PinnedDocument]:
        names = self._channel_names()
        names.update({c.id: c.name for c in channels})

        rows = sorted(
            self._documents,
            key=lambda d: _as_datetime(d.get("created_at")),
            reverse=True,
        )
        if limit is not None:
            rows = rows[:limit]

        return [
            PinnedDocument(
                title=d.get("title", ""),
                content=d.get("content", ""),
                channel_name=names.get(d.get("channel_id")) if d.get("channel_id") else None,
                author_name=self._display_name(d.get("created_by")) if d.get("created_by") else None,
                created_at=_as_datetime(d.get("created_at")),
            )
            for d in rows
        ]
