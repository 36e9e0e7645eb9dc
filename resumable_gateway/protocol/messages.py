"""Pydantic models for the HTTP, SSE and sync WebSocket protocol messages."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================


class StreamEventType(str, Enum):
    """Event types carried in the SSE stream."""

    CONTENT = "content"
    DONE = "done"
    ERROR = "error"


class ErrorCode(str, Enum):
    """Error codes for gateway errors."""

    INVALID_REQUEST = "INVALID_REQUEST"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    UPSTREAM_FAILURE = "UPSTREAM_FAILURE"
    MALFORMED_FRAGMENT = "MALFORMED_FRAGMENT"


class SyncMessageType(str, Enum):
    """Message types for the sync WebSocket."""

    # Client -> Server
    MESSAGE_SYNC_REQUEST = "MESSAGE_SYNC_REQUEST"

    # Server -> Client
    WELCOME = "welcome"
    MESSAGE_SYNC_RESPONSE = "MESSAGE_SYNC_RESPONSE"
    ERROR = "ERROR"


# =============================================================================
# HTTP request / response bodies
# =============================================================================


class StartRequest(BaseModel):
    """Body of POST /api/chat/start."""

    message: str = Field(..., strict=True, description="Prompt forwarded to the upstream model")


class StartResponse(BaseModel):
    """Response of POST /api/chat/start."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId", description="Session identifier")


class ErrorResponse(BaseModel):
    """Error body for failed requests."""

    error: str = Field(..., description="Human-readable error message")


# =============================================================================
# SSE stream events
# =============================================================================


class ContentEvent(BaseModel):
    """One produced chunk."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal[StreamEventType.CONTENT] = StreamEventType.CONTENT
    content: str = Field(..., description="Chunk text")
    chunk_index: int = Field(..., alias="chunkIndex", ge=0, description="Zero-based chunk index")


class DoneEvent(BaseModel):
    """Session completed successfully."""

    type: Literal[StreamEventType.DONE] = StreamEventType.DONE


class ErrorEvent(BaseModel):
    """Session ended with an error."""

    type: Literal[StreamEventType.ERROR] = StreamEventType.ERROR
    error: str = Field(..., description="Human-readable error message")


StreamEvent = ContentEvent | DoneEvent | ErrorEvent


def format_sse(event: StreamEvent) -> str:
    """Serialize an event as a single SSE `data:` record."""
    return f"data: {event.model_dump_json(by_alias=True)}\n\n"


# =============================================================================
# Sync WebSocket messages
# =============================================================================


class SyncRequestMessage(BaseModel):
    """Client request to sync a message record."""

    type: SyncMessageType = SyncMessageType.MESSAGE_SYNC_REQUEST
    data: dict[str, Any] = Field(default_factory=dict, description="Message record to sync")


class WelcomeMessage(BaseModel):
    """Greeting sent when a sync client connects."""

    type: Literal[SyncMessageType.WELCOME] = SyncMessageType.WELCOME
    message: str = Field(..., description="Greeting text")
    timestamp: str = Field(..., description="ISO-8601 server time")


class SyncResponseMessage(BaseModel):
    """Echo of the synced record with its sync status."""

    type: Literal[SyncMessageType.MESSAGE_SYNC_RESPONSE] = SyncMessageType.MESSAGE_SYNC_RESPONSE
    data: dict[str, Any] = Field(..., description="Synced message record")


class SyncErrorMessage(BaseModel):
    """Error reply on the sync WebSocket."""

    type: Literal[SyncMessageType.ERROR] = SyncMessageType.ERROR
    message: str = Field(..., description="Error description")
