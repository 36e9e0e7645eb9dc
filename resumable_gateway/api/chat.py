"""
Resumable chat streaming endpoints.

Provides:
- POST /api/chat/start - start a generation, returns its session id
- GET /api/chat/stream - SSE replay + live tail from a chunk offset
"""

import logging
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from pydantic import ValidationError

from ..core.lifecycle import SessionLifecycleManager
from ..protocol.errors import GatewayError, InvalidRequestError, SessionNotFoundError
from ..protocol.messages import (
    ErrorResponse,
    StartRequest,
    StartResponse,
    StreamEvent,
    format_sse,
)
from .dependencies import get_lifecycle_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def parse_chunk_index(raw: str | None) -> int:
    """
    Parse the lastChunkIndex query value.

    Missing, non-numeric or negative values start from the beginning.
    """
    if raw is None or raw.strip() == "":
        return 0
    try:
        value = int(raw.strip())
    except ValueError:
        logger.debug(f"Ignoring non-numeric lastChunkIndex: {raw!r}")
        return 0
    return max(value, 0)


def error_response(message: str, status_code: int = 500) -> JSONResponse:
    """JSON error body for the start endpoint."""
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


@router.post("/start", response_model=StartResponse)
async def start_chat(
    request: Request,
    manager: SessionLifecycleManager = Depends(get_lifecycle_manager),
) -> StartResponse | JSONResponse:
    """
    Start a new generation.

    The upstream call runs in the background; the response carries only
    the session id to attach to.
    """
    try:
        try:
            body = await request.json()
        except ValueError:
            raise InvalidRequestError("Request body must be valid JSON")

        try:
            start = StartRequest.model_validate(body)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "body"
            raise InvalidRequestError(f"Invalid start request: {field}: {first['msg']}")

        session_id = await manager.start_session(start.message)
        return StartResponse(session_id=session_id)

    except GatewayError as e:
        logger.warning(f"Start error: {e.message}")
        return error_response(e.message)
    except Exception as e:
        logger.exception("Start error")
        return error_response(str(e) or e.__class__.__name__)


async def _sse_body(events: AsyncGenerator[StreamEvent, None]) -> AsyncGenerator[str, None]:
    try:
        async for event in events:
            yield format_sse(event)
    finally:
        await events.aclose()


@router.get("/stream", response_model=None)
async def stream_chat(
    request: Request,
    session_id: str | None = Query(default=None, alias="sessionId"),
    last_chunk_index: str | None = Query(default=None, alias="lastChunkIndex"),
    manager: SessionLifecycleManager = Depends(get_lifecycle_manager),
) -> StreamingResponse | PlainTextResponse:
    """
    Attach to a session.

    Replays chunks from `lastChunkIndex`, then tails new ones until the
    session ends (one `done` or `error` event) or the client disconnects.
    """
    from_index = parse_chunk_index(last_chunk_index)

    try:
        events = await manager.attach(
            session_id,
            from_index=from_index,
            is_disconnected=request.is_disconnected,
        )
    except SessionNotFoundError:
        logger.info(f"Stream request for unknown session: {session_id}")
        return PlainTextResponse("Session not found", status_code=404)

    return StreamingResponse(
        _sse_body(events),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
