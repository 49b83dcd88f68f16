"""
Context Aggregation
===================

Gathers the organizational context that grounds a prompt:

- Public channels (name + description)
- Recent messages from those channels, newest first, capped per agent
- Pinned documents, newest first, optionally capped per agent

Which agents get context:

    OrgBrain         channels + 50 messages + all documents
    ReplySuggestion  channels + 20 messages + 5 documents
    ToneAnalysis     nothing (scores only the caller's text)
    MeetingNotes     nothing (summarizes only the caller's thread)

The caps come from configuration (see AgentLimits). A fresh snapshot is
built for every request; nothing is cached between requests.

Failure policy:
    If any read fails the whole aggregation fails with AggregationError.
    An empty result is not a failure: prompts render empty sections as
    "no data available".
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from chatmind.agent.errors import AggregationError
from chatmind.agent.types import AgentKind, OrganizationalContext
from chatmind.utils.logger import Logger

if TYPE_CHECKING:
    from chatmind.storage.base import OrgStore

logger = Logger("Context")


@dataclass(frozen=True)
class ContextLimits:
    """How much context one agent kind reads."""
    message_limit: int
    document_limit: int | None   # None = all pinned documents


@dataclass(frozen=True)
class ContextPolicy:
    """
    Per-kind context limits. Kinds without limits get no context.

    Example:
        policy = ContextPolicy.from_config(get_config().agents)
        policy.limits_for(AgentKind.ORG_BRAIN)   # ContextLimits(50, None)
        policy.limits_for(AgentKind.TONE_ANALYSIS)  # None
    """
    org_brain: ContextLimits = ContextLimits(message_limit=50, document_limit=None)
    reply_suggestion: ContextLimits = ContextLimits(message_limit=20, document_limit=5)

    @classmethod
    def from_config(cls, agents) -> "ContextPolicy":
        return cls(
            org_brain=ContextLimits(
                message_limit=agents.org_brain_message_limit,
                document_limit=agents.org_brain_document_limit,
            ),
            reply_suggestion=ContextLimits(
                message_limit=agents.reply_message_limit,
                document_limit=agents.reply_document_limit,
            ),
        )

    def limits_for(self, kind: AgentKind) -> ContextLimits | None:
        if kind is AgentKind.ORG_BRAIN:
            return self.org_brain
        if kind is AgentKind.REPLY_SUGGESTION:
            return self.reply_suggestion
        return None


class ContextAggregator:
    """
    Builds OrganizationalContext snapshots from an OrgStore.

    Example:
        aggregator = ContextAggregator(InMemoryOrgStore.from_file(path))
        context = await aggregator.gather(AgentKind.ORG_BRAIN)
        print(context.source_counts())
    """

    def __init__(self, store: "OrgStore", policy: ContextPolicy | None = None):
        """
        Args:
            store: Where organizational data is read from
            policy: Per-kind caps (defaults: 50/all and 20/5)
        """
        self.store = store
        self.policy = policy or ContextPolicy()

    async def gather(self, kind: AgentKind) -> OrganizationalContext:
        """
        Gather context for one agent invocation.

        Args:
            kind: The agent being run

        Returns:
            A new, immutable context snapshot (empty for kinds that
            don't use organizational context)

        Raises:
            AggregationError: If any store read fails
        """
        limits = self.policy.limits_for(kind)
        if limits is None:
            logger.debug(f"Skipping context aggregation for {kind.value}")
            return OrganizationalContext.empty()

        try:
            channels = await self.store.list_public_channels()
            messages = await self.store.recent_messages(channels, limit=limits.message_limit)
            documents = await self.store.pinned_documents(channels, limit=limits.document_limit)
        except Exception as e:
            logger.error(f"Context read failed for {kind.value}", e)
            raise AggregationError(f"Failed to load organizational context: {e}") from e

        # Stores are trusted to sort and cap, but the caps are enforced here too
        messages = messages[:limits.message_limit]
        if limits.document_limit is not None:
            documents = documents[:limits.document_limit]

        context = OrganizationalContext(
            channels=tuple(channels),
            recent_messages=tuple(messages),
            pinned_documents=tuple(documents),
        )
        logger.debug(f"Gathered context for {kind.value}", context.source_counts().to_dict())
        return context
