"""
Python client for the resumable streaming gateway.

Provides an HTTP client that starts generations and follows their SSE
stream, re-attaching from the last received chunk when the connection
drops, and a WebSocket client for the message-sync endpoint.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Optional

import httpx
from websockets.asyncio.client import ClientConnection, connect

logger = logging.getLogger(__name__)


class StreamError(Exception):
    """Raised when the session ends with an error event."""


class SessionNotFound(Exception):
    """Raised when the gateway does not know the session id."""


@dataclass
class StreamChunk:
    """A content chunk received from the gateway."""

    index: int
    content: str


class ResumableStreamClient:
    """
    HTTP client for the resumable streaming gateway.

    Usage:
        async with ResumableStreamClient("http://localhost:3001") as client:
            session_id = await client.start("Hello!")
            async for chunk in client.stream(session_id):
                print(chunk.content, end="", flush=True)
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3001",
        max_reconnects: int = 5,
        reconnect_delay: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize HTTP client.

        Args:
            base_url: Base URL of the gateway
            max_reconnects: Re-attach attempts after a dropped stream
            reconnect_delay: Seconds to wait before re-attaching
            transport: Optional httpx transport
        """
        self._base_url = base_url.rstrip("/")
        self._max_reconnects = max_reconnects
        self._reconnect_delay = reconnect_delay
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(30.0, read=None),
            transport=transport,
        )

    async def __aenter__(self) -> "ResumableStreamClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def start(self, message: str) -> str:
        """
        Start a generation.

        Args:
            message: Prompt for the upstream model

        Returns:
            Session ID
        """
        response = await self._client.post("/api/chat/start", json={"message": message})
        if response.status_code != 200:
            error = response.json().get("error", response.text)
            raise RuntimeError(f"Failed to start session: {error}")

        session_id = response.json()["sessionId"]
        logger.info(f"Session started: {session_id}")
        return session_id

    async def stream(
        self,
        session_id: str,
        last_chunk_index: int = 0,
    ) -> AsyncGenerator[StreamChunk, None]:
        """
        Stream chunks of a session, resuming after dropped connections.

        Args:
            session_id: Session to attach to
            last_chunk_index: First chunk index to request

        Yields:
            StreamChunk for each content event, in index order
        """
        next_index = last_chunk_index
        reconnects = 0

        while True:
            try:
                async for event in self._attach(session_id, next_index):
                    event_type = event.get("type")

                    if event_type == "content":
                        index = event["chunkIndex"]
                        if index < next_index:
                            continue
                        next_index = index + 1
                        reconnects = 0
                        yield StreamChunk(index=index, content=event["content"])

                    elif event_type == "done":
                        return

                    elif event_type == "error":
                        raise StreamError(event.get("error", "Unknown error"))

                # Stream closed without a terminal event
                raise httpx.RemoteProtocolError("Stream ended before done/error")

            except httpx.TransportError as e:
                reconnects += 1
                if reconnects > self._max_reconnects:
                    raise
                logger.warning(
                    f"Stream for {session_id} dropped ({e!r}), "
                    f"resuming from chunk {next_index} "
                    f"(attempt {reconnects}/{self._max_reconnects})"
                )
                await asyncio.sleep(self._reconnect_delay)

    async def _attach(
        self,
        session_id: str,
        from_index: int,
    ) -> AsyncGenerator[dict[str, Any], None]:
        params = {"sessionId": session_id, "lastChunkIndex": str(from_index)}
        async with self._client.stream("GET", "/api/chat/stream", params=params) as response:
            if response.status_code == 404:
                raise SessionNotFound(session_id)
            response.raise_for_status()

            async for line in response.aiter_lines():
                if not line.startswith("data: "):
                    continue
                try:
                    yield json.loads(line[6:])
                except json.JSONDecodeError:
                    logger.debug(f"Skipping undecodable event: {line!r}")
                    continue

    async def generate(self, message: str) -> str:
        """Start a generation and return its full text."""
        session_id = await self.start(message)
        parts = [chunk.content async for chunk in self.stream(session_id)]
        return "".join(parts)

    async def health_check(self) -> bool:
        """Check if the gateway is healthy."""
        try:
            response = await self._client.get("/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False


class SyncWebSocketClient:
    """
    WebSocket client for the message-sync endpoint.

    Usage:
        async with SyncWebSocketClient("ws://localhost:3001") as client:
            synced = await client.sync({"id": "m1", "content": "hi"})
    """

    def __init__(self, url: str = "ws://localhost:3001"):
        self._ws_url = f"{url.rstrip('/')}/ws/sync"
        self._ws: Optional[ClientConnection] = None
        self.welcome: Optional[dict[str, Any]] = None

    async def __aenter__(self) -> "SyncWebSocketClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def connect(self) -> None:
        """Connect and consume the welcome message."""
        if self._ws is not None:
            return
        self._ws = await connect(self._ws_url)
        self.welcome = json.loads(await self._ws.recv())
        logger.info(f"Connected to {self._ws_url}")

    async def close(self) -> None:
        """Close the WebSocket connection."""
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
            logger.info("WebSocket connection closed")

    async def sync(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Sync one message record.

        Returns:
            The record as acknowledged by the server
        """
        if self._ws is None:
            await self.connect()

        await self._ws.send(json.dumps({"type": "MESSAGE_SYNC_REQUEST", "data": data}))
        reply = json.loads(await self._ws.recv())

        if reply["type"] == "ERROR":
            raise RuntimeError(f"Sync failed: {reply['message']}")
        return reply["data"]


# Example usage
async def main():
    """Example usage of the gateway clients."""
    async with ResumableStreamClient("http://localhost:3001") as client:
        if await client.health_check():
            print("Gateway is healthy!")

        session_id = await client.start("Tell me a short joke.")
        async for chunk in client.stream(session_id):
            print(chunk.content, end="", flush=True)
        print("\n")

    async with SyncWebSocketClient("ws://localhost:3001") as ws_client:
        print(await ws_client.sync({"id": "local-1", "content": "hello"}))


if __name__ == "__main__":
    asyncio.run(main())
