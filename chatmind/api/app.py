"""
API Application
===============

Builds the FastAPI application:

- CORS middleware with an explicit header allow-list
- Agent routes (POST per agent, /ai-service, OPTIONS pre-flight)
- Live tone WebSocket
- /health

The AgentRouter is created once and shared through app.state; it holds
no per-request state, so concurrent requests are independent.

Served by chatmind.main (see run()).
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chatmind import __version__
from chatmind.agent.core import AgentRouter
from chatmind.api import live, routes
from chatmind.storage import create_store
from chatmind.utils.config import Config, get_config
from chatmind.utils.logger import Logger

logger = Logger("API")


def create_app(router: AgentRouter | None = None, config: Config | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        router: Agent router to serve (built from config when omitted)
        config: Configuration (loaded from the environment when omitted)

    Returns:
        Configured FastAPI application
    """
    config = config or get_config()
    if router is None:
        router = AgentRouter.from_config(config, create_store(config))

    app = FastAPI(
        title="ChatMind Agents API",
        description="Organizational Q&A, reply suggestions, tone analysis and meeting notes",
        version=__version__,
    )
    app.state.router = router
    app.state.tone_debounce_ms = config.agents.tone_debounce_ms

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.server.cors_allow_origins),
        allow_methods=routes.CORS_ALLOW_METHODS,
        allow_headers=routes.CORS_ALLOW_HEADERS,
    )

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.url.path}", exc)
        return JSONResponse({"error": str(exc) or "Internal server error"}, status_code=500, headers=routes.CORS_HEADERS)

    app.include_router(routes.router)
    app.include_router(live.router)

    logger.info(f"API ready (model {config.openai.model}, store {config.store.backend})")
    return app
