"""
Agent Service Client
====================

Async client for the ChatMind HTTP API, for front-ends and scripts.

Every call goes to the combined POST /ai-service endpoint with the
agent name in the body, and every call returns a plain dict:

    {"success": True, "data": {...}, "error": None}
    {"success": False, "data": None, "error": "HTTP 400: Query is required"}

HTTP errors, network errors and invalid responses are all reported
this way; the client never raises.

Usage:
    client = AgentServiceClient("http://localhost:8000")
    result = await client.analyze_tone("Can you send it ASAP?")
    if result["success"]:
        print(result["data"]["tone"])
"""

from typing import Any, Sequence

import httpx

from chatmind.utils.logger import Logger, preview

logger = Logger("Client")

DEFAULT_TIMEOUT = 60.0


class AgentServiceClient:
    """
    One method per agent, mirroring the HTTP endpoints.

    Example:
        client = AgentServiceClient("http://localhost:8000", api_key="anon-key")
        notes = await client.generate_meeting_notes(messages, title="Sprint sync")
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None
    ):
        """
        Args:
            base_url: Root URL of the API (e.g. http://localhost:8000)
            api_key: Sent as Bearer token and `apikey` header when set
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key
        return headers

    async def call_agent(self, agent: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Call one agent through the combined endpoint.

        Args:
            agent: Agent name (e.g. "OrgBrain", "ToneImpactMeter")
            payload: Body fields besides `agent`

        Returns:
            {"success": bool, "data": dict | None, "error": str | None}
        """
        body = {"agent": agent, **payload}
        logger.debug(f"Calling {agent}", {"payload": preview(body)})

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/ai-service",
                    headers=self._headers(),
                    json=body,
                )

            if response.status_code >= 400:
                logger.error(f"{agent} returned HTTP {response.status_code}: {preview(response.text)}")
                return _failure(f"HTTP {response.status_code}: {_error_message(response)}")

            return {"success": True, "data": response.json(), "error": None}

        except httpx.HTTPError as e:
            logger.error(f"Request to {agent} failed", e)
            return _failure(str(e) or type(e).__name__)
        except ValueError as e:
            logger.error(f"{agent} returned invalid JSON", e)
            return _failure("Invalid JSON in response")

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------

    async def ask_org_brain(self, query: str, context_docs: Sequence[str] = ()) -> dict[str, Any]:
        return await self.call_agent("OrgBrain", {"prompt": query, "contextDocs": list(context_docs)})

    async def suggest_reply(self, thread_messages: Sequence[dict]) -> dict[str, Any]:
        return await self.call_agent("AutoReplyComposer", {"threadMessages": list(thread_messages)})

    async def analyze_tone(self, message: str) -> dict[str, Any]:
        return await self.call_agent("ToneImpactMeter", {"prompt": message})

    async def generate_meeting_notes(
        self,
        thread_messages: Sequence[dict],
        title: str | None = None
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"threadMessages": list(thread_messages)}
        if title:
            payload["title"] = title
        return await self.call_agent("MeetingNotesGen", payload)


def _failure(error: str) -> dict[str, Any]:
    return {"success": False, "data": None, "error": error}


def _error_message(response: httpx.Response) -> str:
    """The `error` field of an error body, else the raw text."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text or response.reason_phrase
