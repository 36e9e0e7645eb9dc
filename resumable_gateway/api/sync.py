"""
WebSocket endpoint for client message sync.

Handles the sync protocol:
- Server greets each connection with a welcome message
- MESSAGE_SYNC_REQUEST is acknowledged with MESSAGE_SYNC_RESPONSE
- Anything else gets an ERROR reply; the connection stays open
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from ..protocol.messages import (
    SyncErrorMessage,
    SyncMessageType,
    SyncRequestMessage,
    SyncResponseMessage,
    WelcomeMessage,
)

logger = logging.getLogger(__name__)

router = APIRouter()

SYNCED = "synced"


async def send_error(websocket: WebSocket, message: str) -> None:
    """Send error message to client."""
    await websocket.send_json(SyncErrorMessage(message=message).model_dump(mode="json"))


def sync_message(data: dict[str, Any]) -> SyncResponseMessage:
    """Acknowledge a message record as synced."""
    return SyncResponseMessage(data={**data, "syncStatus": SYNCED})


async def handle_message(websocket: WebSocket, raw_data: str) -> None:
    """Parse one client frame and reply."""
    try:
        data = json.loads(raw_data)
        if not isinstance(data, dict):
            raise ValueError("message must be a JSON object")
    except ValueError:
        await send_error(websocket, "Invalid message format")
        return

    logger.debug(f"Received sync message: {data.get('type')}")

    if data.get("type") != SyncMessageType.MESSAGE_SYNC_REQUEST.value:
        await send_error(websocket, "Invalid type")
        return

    try:
        msg = SyncRequestMessage.model_validate(data)
    except ValidationError:
        await send_error(websocket, "Invalid message format")
        return

    response = sync_message(msg.data)
    await websocket.send_json(response.model_dump(mode="json"))


@router.websocket("/ws/sync")
async def websocket_sync(websocket: WebSocket) -> None:
    """
    WebSocket endpoint for message sync.

    Protocol:
    1. Server sends welcome with a timestamp
    2. Client sends MESSAGE_SYNC_REQUEST with a data record
    3. Server replies MESSAGE_SYNC_RESPONSE with the record marked synced
    """
    await websocket.accept()
    logger.info("WebSocket client connected")

    welcome = WelcomeMessage(
        message="Connected to WebSocket server!",
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    await websocket.send_json(welcome.model_dump(mode="json"))

    try:
        while True:
            raw_data = await websocket.receive_text()
            await handle_message(websocket, raw_data)
    except WebSocketDisconnect as e:
        logger.info(f"WebSocket disconnected: {e.code} {e.reason or ''}".rstrip())
