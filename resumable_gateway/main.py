"""
Main application entry point for the resumable streaming gateway.

Initializes:
- FastAPI application with CORS for the configured frontend origin
- Session store, upstream client and lifecycle manager
- Chat, health, metrics and sync endpoints
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from . import __version__
from .api import chat, health, metrics, sync
from .config import settings
from .core.lifecycle import SessionLifecycleManager
from .core.session import SessionStore
from .observability.logging import configure_logging
from .protocol.errors import GatewayError
from .protocol.messages import ErrorCode, ErrorResponse
from .upstream.client import UpstreamCompletionClient

logger = logging.getLogger(__name__)


def build_lifecycle_manager() -> SessionLifecycleManager:
    """Lifecycle manager wired to the configured upstream."""
    return SessionLifecycleManager(
        store=SessionStore(),
        upstream=UpstreamCompletionClient(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    1. Configure logging
    2. Start session eviction (when a TTL is configured)

    Shutdown:
    1. Stop eviction and cancel in-flight producers
    2. Close the upstream HTTP client
    """
    configure_logging()
    logger.info("Starting resumable streaming gateway...")

    manager: SessionLifecycleManager = app.state.lifecycle
    manager.start()
    health.mark_startup_complete()

    logger.info(
        f"Resumable server running on http://{settings.host}:{settings.port} "
        f"(upstream: {settings.upstream_base_url}, model: {settings.upstream_model})"
    )

    yield

    logger.info("Shutting down resumable streaming gateway...")
    await manager.stop()

    aclose = getattr(manager.upstream, "aclose", None)
    if aclose is not None:
        await aclose()

    logger.info("Shutdown complete")


def cors_headers() -> dict[str, str]:
    """Cross-origin headers sent on every response, preflight or not."""
    return {
        "Access-Control-Allow-Origin": settings.cors_origin,
        "Access-Control-Allow-Methods": ", ".join(settings.cors_methods),
        "Access-Control-Allow-Headers": ", ".join(settings.cors_headers),
        "Access-Control-Allow-Credentials": "true",
    }


async def gateway_error_handler(request: Request, exc: GatewayError) -> Response:
    """Map gateway errors that escape a route to HTTP responses."""
    if exc.code == ErrorCode.SESSION_NOT_FOUND:
        return PlainTextResponse("Session not found", status_code=404)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error=exc.message).model_dump(),
    )


def create_app(lifecycle: SessionLifecycleManager | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        lifecycle: Pre-built lifecycle manager (tests inject one with a fake upstream)
    """
    app = FastAPI(
        title="Resumable Streaming Gateway",
        description="Resumable SSE streaming in front of an OpenAI-compatible completion API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.lifecycle = lifecycle or build_lifecycle_manager()

    @app.middleware("http")
    async def cors(request: Request, call_next) -> Response:
        """Attach the configured cross-origin headers to every response."""
        headers = cors_headers()
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=headers)
        response = await call_next(request)
        response.headers.update(headers)
        return response

    app.add_exception_handler(GatewayError, gateway_error_handler)

    app.include_router(chat.router)
    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(sync.router)

    @app.get("/")
    async def root() -> dict:
        """Root endpoint with service info."""
        return {
            "service": "resumable-gateway",
            "version": __version__,
            "status": "running",
            "start": "/api/chat/start",
            "stream": "/api/chat/stream?sessionId=<id>&lastChunkIndex=<n>",
            "health": "/health",
            "metrics": "/metrics",
            "sync": "/ws/sync",
        }

    # Registered last so every real route matches first
    @app.api_route(
        "/{path:path}",
        methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        include_in_schema=False,
    )
    async def not_found(path: str) -> PlainTextResponse:
        """Unknown routes."""
        return PlainTextResponse("Not Found", status_code=404)

    return app


app = create_app()


def run() -> None:
    """Run the application with uvicorn."""
    uvicorn.run(
        "resumable_gateway.main:app",
        host=settings.host,
        port=settings.port,
        workers=1,  # Sessions live in process memory
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
