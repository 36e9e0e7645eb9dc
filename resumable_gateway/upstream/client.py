"""
Streaming client for an OpenAI-compatible chat completions API.

Provides:
- One streaming POST per prompt via httpx
- SSE line decoding into text deltas
- Malformed fragments skipped, upstream failures raised
"""

import json
import logging
from typing import Any, AsyncGenerator

import httpx

from ..config import settings
from ..observability.metrics import record_malformed_fragment
from ..protocol.errors import MalformedUpstreamFragmentError, UpstreamFailureError

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_MARKER = "[DONE]"


class StreamFinished(Exception):
    """Raised by `decode_fragment` on the upstream end-of-stream marker."""


def decode_fragment(line: str) -> str | None:
    """
    Decode one upstream SSE line into its text delta.

    Args:
        line: Raw line from the upstream response body

    Returns:
        The delta text (possibly empty), or None for lines carrying no delta

    Raises:
        StreamFinished: On `data: [DONE]`
        UpstreamFailureError: On an in-band upstream error payload
        MalformedUpstreamFragmentError: If the payload cannot be decoded
    """
    line = line.strip()
    if not line or line.startswith(":"):
        return None
    if not line.startswith(DATA_PREFIX):
        # event:, id:, retry: fields carry no content
        return None

    payload = line[len(DATA_PREFIX):].strip()
    if payload == DONE_MARKER:
        raise StreamFinished()

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise MalformedUpstreamFragmentError(payload, f"invalid JSON ({e.msg})")

    if not isinstance(data, dict):
        raise MalformedUpstreamFragmentError(payload, "expected a JSON object")

    if "error" in data:
        raise UpstreamFailureError(_error_message(data["error"]))

    choices = data.get("choices")
    if not choices:
        return None
    if not isinstance(choices, list) or not isinstance(choices[0], dict):
        raise MalformedUpstreamFragmentError(payload, "unexpected choices shape")

    delta = choices[0].get("delta") or {}
    if not isinstance(delta, dict):
        raise MalformedUpstreamFragmentError(payload, "unexpected delta shape")

    content = delta.get("content")
    if content is None:
        return None
    if not isinstance(content, str):
        raise MalformedUpstreamFragmentError(payload, "delta content is not text")
    return content


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error.get("code") or "Upstream error")
    return str(error) or "Upstream error"


class UpstreamCompletionClient:
    """
    Client for the upstream completion service.

    Usage:
        client = UpstreamCompletionClient()
        async for delta in client.stream_completion("Hello"):
            print(delta, end="")
        await client.aclose()
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize upstream client.

        Args:
            base_url: API base URL (defaults to settings)
            api_key: Bearer token (defaults to settings)
            model: Model name (defaults to settings)
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = (base_url or settings.upstream_base_url).rstrip("/")
        self.model = model or settings.upstream_model
        api_key = api_key if api_key is not None else settings.upstream_api_key

        headers = {"Accept": "text/event-stream"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(None, connect=settings.upstream_connect_timeout_seconds),
            transport=transport,
        )

    def build_payload(self, prompt: str) -> dict[str, Any]:
        """Request body for a streaming completion of one user message."""
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": True,
        }

    async def stream_completion(self, prompt: str) -> AsyncGenerator[str, None]:
        """
        Stream text deltas for a prompt.

        Yields:
            Text deltas in arrival order (may be empty strings)

        Raises:
            UpstreamFailureError: On transport errors, non-success status
                or an in-band error payload
        """
        try:
            async with self._client.stream(
                "POST",
                "/chat/completions",
                json=self.build_payload(prompt),
            ) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise UpstreamFailureError(
                        _status_message(response.status_code, body),
                        status_code=response.status_code,
                    )

                async for line in response.aiter_lines():
                    try:
                        delta = decode_fragment(line)
                    except StreamFinished:
                        return
                    except MalformedUpstreamFragmentError as e:
                        record_malformed_fragment()
                        logger.warning(f"Skipping fragment: {e.message}")
                        continue

                    if delta is not None:
                        yield delta

        except httpx.HTTPError as e:
            raise UpstreamFailureError(
                f"Upstream request failed: {str(e) or e.__class__.__name__}"
            ) from e

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()


def _status_message(status_code: int, body: str) -> str:
    detail = body.strip()
    try:
        data = json.loads(detail)
    except json.JSONDecodeError:
        pass
    else:
        if isinstance(data, dict) and "error" in data:
            detail = _error_message(data["error"])

    message = f"{status_code} status code"
    if detail:
        message += f": {detail[:500]}"
    return message
