"""
Agent Router
============

The public entry point of the agent pipeline. Every agent call goes
through dispatch():

    dispatch(kind, payload)
         │
         ▼
    Validate payload ──── bad ────► CallerError (400, nothing else runs)
         │
         ▼
    Check credential ─── missing ─► ConfigurationError (500, no network)
         │
         ▼
    Gather context (OrgBrain, ReplySuggestion only)
         │
         ▼
    Build prompt ──► LLM completion ──► Normalize
         │
         ▼
    AgentEnvelope {success, data | error}

The router never raises: every failure, expected or not, comes back as
a failed envelope. It holds no per-request state, so concurrent calls
are independent.
"""

import time
from typing import TYPE_CHECKING, Any, Sequence

from chatmind.agent.context import ContextAggregator, ContextPolicy
from chatmind.agent.errors import AgentError, CallerError
from chatmind.agent.llm import LLMClient
from chatmind.agent.normalizer import normalize
from chatmind.agent.prompts import build_prompt
from chatmind.agent.types import (
    AgentEnvelope,
    AgentKind,
    AgentRequest,
    AgentResult,
    Message,
)
from chatmind.utils.config import Config
from chatmind.utils.logger import Logger, preview

if TYPE_CHECKING:
    from chatmind.storage.base import OrgStore

logger = Logger("Router")

THREAD_REQUIRED = "threadMessages: non-empty array required"


# ==============================================================================
# Payload validation
# ==============================================================================

def _thread_messages(payload: dict) -> tuple[Message, ...]:
    messages = payload.get("threadMessages")
    if not isinstance(messages, (list, tuple)) or not messages:
        raise CallerError(THREAD_REQUIRED)
    return tuple(Message.from_payload(m) for m in messages)


def build_request(kind: AgentKind | str, payload: Any) -> AgentRequest:
    """
    Validate a raw payload for an agent kind.

    Args:
        kind: Agent identifier
        payload: The decoded JSON body (or an AgentRequest)

    Returns:
        A validated AgentRequest

    Raises:
        CallerError: If required fields are missing or malformed
    """
    kind = AgentKind.parse(kind)

    if isinstance(payload, AgentRequest):
        payload = {
            "query": payload.query,
            "prompt": payload.query,
            "threadMessages": list(payload.thread_messages),
            "title": payload.title,
            "contextDocs": list(payload.context_docs),
        }
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise CallerError("Request body must be a JSON object")

    if kind is AgentKind.ORG_BRAIN:
        # The combined endpoint sends the question as "prompt"
        query = payload.get("query") or payload.get("prompt")
        if not isinstance(query, str) or not query.strip():
            raise CallerError("Query is required")

        docs = payload.get("contextDocs") or []
        if not isinstance(docs, (list, tuple)):
            raise CallerError("contextDocs must be an array of strings")
        return AgentRequest(
            kind=kind,
            query=query,
            context_docs=tuple(str(d) for d in docs if str(d).strip()),
        )

    if kind is AgentKind.TONE_ANALYSIS:
        prompt = payload.get("prompt")
        if not isinstance(prompt, str) or not prompt.strip():
            raise CallerError("prompt (message string) is required")
        return AgentRequest(kind=kind, query=prompt)

    thread = _thread_messages(payload)
    if kind is AgentKind.MEETING_NOTES:
        title = payload.get("title")
        return AgentRequest(
            kind=kind,
            thread_messages=thread,
            title=title if isinstance(title, str) else None,
        )
    return AgentRequest(kind=kind, thread_messages=thread)


# ==============================================================================
# Router
# ==============================================================================

class AgentRouter:
    """
    Runs agent requests through aggregation, prompting, the LLM and
    normalization.

    Example:
        router = AgentRouter(
            aggregator=ContextAggregator(store),
            llm=LLMClient(api_key="sk-..."),
        )

        envelope = await router.dispatch("ToneAnalysis", {"prompt": "ASAP!!!"})
        if envelope.success:
            print(envelope.data.tone)
        else:
            print(envelope.error)
    """

    def __init__(
        self,
        aggregator: ContextAggregator,
        llm: LLMClient,
        timeout: float | None = None
    ):
        """
        Args:
            aggregator: Context source for OrgBrain and ReplySuggestion
            llm: Provider client
            timeout: Optional per-call LLM timeout override in seconds
        """
        self.aggregator = aggregator
        self.llm = llm
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: Config, store: "OrgStore") -> "AgentRouter":
        return cls(
            aggregator=ContextAggregator(store, ContextPolicy.from_config(config.agents)),
            llm=LLMClient.from_config(config.openai),
        )

    async def run(self, request: AgentRequest) -> AgentResult:
        """
        Run a validated request and return its result.

        Raises:
            AgentError: ConfigurationError, AggregationError or ProviderError
        """
        # Fail fast before any outbound read or provider call
        self.llm.ensure_configured()

        context = await self.aggregator.gather(request.kind)
        prompt = build_prompt(request, context)
        raw_text = await self.llm.complete(
            prompt.system,
            prompt.user,
            settings=prompt.settings,
            timeout=self.timeout,
        )
        return normalize(request.kind, raw_text, context=context, request=request)

    async def dispatch(self, kind: AgentKind | str, payload: Any) -> AgentEnvelope:
        """
        Validate, run and wrap one agent call.

        Args:
            kind: Agent identifier (AgentKind or its name/alias)
            payload: Decoded JSON body for the agent

        Returns:
            AgentEnvelope; never raises
        """
        started = time.perf_counter()
        label = kind.value if isinstance(kind, AgentKind) else str(kind)

        try:
            request = build_request(kind, payload)
            logger.info(f"Dispatching {request.kind.value}", _describe(request))

            result = await self.run(request)

            elapsed_ms = int((time.perf_counter() - started) * 1000)
            logger.info(f"{request.kind.value} completed in {elapsed_ms}ms")
            return AgentEnvelope.ok(result)

        except CallerError as e:
            logger.warning(f"Rejected {label} request: {e.message}")
            return AgentEnvelope.fail(e)
        except AgentError as e:
            logger.error(f"{label} failed", e)
            return AgentEnvelope.fail(e)
        except Exception as e:
            logger.error(f"Unexpected error in {label}", e)
            return AgentEnvelope.fail(str(e) or type(e).__name__, "InternalError")

    # ------------------------------------------------------------------
    # Convenience wrappers
    # ------------------------------------------------------------------

    async def ask(self, query: str, context_docs: Sequence[str] = ()) -> AgentEnvelope:
        return await self.dispatch(AgentKind.ORG_BRAIN, {"query": query, "contextDocs": list(context_docs)})

    async def suggest_replies(self, thread_messages: Sequence[Message | dict]) -> AgentEnvelope:
        return await self.dispatch(AgentKind.REPLY_SUGGESTION, {"threadMessages": list(thread_messages)})

    async def analyze_tone(self, text: str) -> AgentEnvelope:
        return await self.dispatch(AgentKind.TONE_ANALYSIS, {"prompt": text})

    async def generate_notes(
        self,
        thread_messages: Sequence[Message | dict],
        title: str | None = None
    ) -> AgentEnvelope:
        return await self.dispatch(
            AgentKind.MEETING_NOTES,
            {"threadMessages": list(thread_messages), "title": title},
        )


def _describe(request: AgentRequest) -> dict:
    """Loggable summary of a request (truncated text only)."""
    summary: dict[str, Any] = {}
    if request.query:
        summary["query"] = preview(request.query)
    if request.thread_messages:
        summary["thread_messages"] = len(request.thread_messages)
    if request.context_docs:
        summary["context_docs"] = len(request.context_docs)
    return summary
