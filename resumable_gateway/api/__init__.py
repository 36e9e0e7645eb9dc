"""API module for HTTP, SSE and WebSocket endpoints."""

from . import chat, health, metrics, sync

__all__ = [
    "chat",
    "health",
    "metrics",
    "sync",
]
