"""Read interface for organizational data."""

from abc import ABC, abstractmethod
from typing import Sequence

from chatmind.agent.types import Channel, ChannelMessage, PinnedDocument


class OrgStore(ABC):
    """
    The three reads the context aggregator issues.

    Implementations must not mutate anything and must raise (not return
    partial data) when a read fails.
    """

    @abstractmethod
    async def list_public_channels(self) -> list[Channel]:
        """Return every public channel."""

    @abstractmethod
    async def recent_messages(
        self,
        channels: Sequence[Channel],
        limit: int
    ) -> list[ChannelMessage]:
        """
        Return messages posted in `channels`, newest first.

        Args:
            channels: Channels to read from (public channels only)
            limit: Maximum number of messages across all channels
        """

    @abstractmethod
    async def pinned_documents(
        self,
        channels: Sequence[Channel],
        limit: int | None = None
    ) -> list[PinnedDocument]:
        """
        Return pinned documents, newest first.

        Args:
            channels: Public channels, used to resolve channel names
            limit: Maximum number of documents, or None for all
        """
