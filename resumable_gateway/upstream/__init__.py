"""Upstream module for the completion API client."""

from .client import (
    StreamFinished,
    UpstreamCompletionClient,
    decode_fragment,
)

__all__ = [
    "UpstreamCompletionClient",
    "StreamFinished",
    "decode_fragment",
]
