"""
Agent Endpoints
===============

One POST endpoint per agent, plus a combined endpoint:

    POST /ask-org-brain        {query, contextDocs?}
    POST /auto-reply-composer  {threadMessages}
    POST /tone-impact-meter    {prompt}
    POST /meeting-notes-gen    {threadMessages, title?}
    POST /ai-service           {agent, prompt?, threadMessages?, contextDocs?, title?}

Responses are the agent result as JSON (200), or {"error": message}
with 400 for caller errors and 500 for everything else. Each path also
answers a bare OPTIONS request with the CORS allow-lists.
"""

import json
from typing import Any

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from chatmind.agent.core import AgentRouter
from chatmind.agent.types import AgentEnvelope, AgentKind
from chatmind.utils.logger import Logger, preview

logger = Logger("API")

router = APIRouter()

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]
CORS_ALLOW_METHODS = ["POST", "OPTIONS"]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS),
    "Access-Control-Allow-Methods": ", ".join(CORS_ALLOW_METHODS),
}

AGENT_PATHS = {
    "/ask-org-brain": AgentKind.ORG_BRAIN,
    "/auto-reply-composer": AgentKind.REPLY_SUGGESTION,
    "/tone-impact-meter": AgentKind.TONE_ANALYSIS,
    "/meeting-notes-gen": AgentKind.MEETING_NOTES,
}


class InvalidBody(Exception):
    """The request body is not a JSON object."""


def get_router(request: Request) -> AgentRouter:
    return request.app.state.router


async def _read_json(request: Request) -> dict:
    raw = await request.body()
    try:
        body = json.loads(raw) if raw else {}
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidBody("Invalid JSON in request body") from e
    if not isinstance(body, dict):
        raise InvalidBody("Request body must be a JSON object")
    return body


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code, headers=CORS_HEADERS)


def envelope_response(envelope: AgentEnvelope) -> JSONResponse:
    """Convert a router envelope into the HTTP response."""
    if envelope.success:
        return JSONResponse(envelope.data.to_dict(), status_code=200, headers=CORS_HEADERS)
    return _error(envelope.error, envelope.status_code)


async def _handle(request: Request, kind: AgentKind | str | None = None) -> JSONResponse:
    try:
        body = await _read_json(request)
    except InvalidBody as e:
        logger.warning(f"{request.url.path}: {e}")
        return _error(str(e), 400)

    logger.debug(f"{request.url.path} received", {"body": preview(json.dumps(body, default=str))})

    if kind is None:
        kind = body.get("agent")
        if not kind:
            return _error("agent is required", 400)

    envelope = await get_router(request).dispatch(kind, body)
    return envelope_response(envelope)


# ==============================================================================
# Routes
# ==============================================================================

@router.post("/ask-org-brain")
async def ask_org_brain(request: Request) -> JSONResponse:
    """Answer a question from channels, recent messages and pinned documents."""
    return await _handle(request, AgentKind.ORG_BRAIN)


@router.post("/auto-reply-composer")
async def auto_reply_composer(request: Request) -> JSONResponse:
    """Suggest three replies for a thread."""
    return await _handle(request, AgentKind.REPLY_SUGGESTION)


@router.post("/tone-impact-meter")
async def tone_impact_meter(request: Request) -> JSONResponse:
    """Score the tone and impact of a message."""
    return await _handle(request, AgentKind.TONE_ANALYSIS)


@router.post("/meeting-notes-gen")
async def meeting_notes_gen(request: Request) -> JSONResponse:
    """Generate Markdown meeting notes from a thread."""
    return await _handle(request, AgentKind.MEETING_NOTES)


@router.post("/ai-service")
async def ai_service(request: Request) -> JSONResponse:
    """Run any agent named by the body's `agent` field."""
    return await _handle(request)


async def preflight() -> Response:
    """No-op CORS pre-flight answer."""
    return Response(status_code=200, headers=CORS_HEADERS)


for _path in [*AGENT_PATHS, "/ai-service"]:
    router.add_api_route(_path, preflight, methods=["OPTIONS"], include_in_schema=False)


def health() -> dict[str, Any]:
    return {"status": "healthy"}


router.add_api_route("/health", health, methods=["GET"], tags=["Monitoring"])
