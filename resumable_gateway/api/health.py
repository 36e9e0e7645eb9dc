"""
Health check endpoints for the streaming gateway.

Provides:
- /health - Plain "OK" for load balancers
- /health/live - Liveness probe (service is running)
- /health/ready - Readiness probe (startup complete)
- /health/status - Detailed session and producer counts
"""

import logging
import time
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse

from ..config import settings
from ..core.lifecycle import SessionLifecycleManager
from .dependencies import get_lifecycle_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

# Startup state
_startup_complete = False
_startup_time: float | None = None


def mark_startup_complete() -> None:
    """Mark startup as complete (called from the lifespan handler)."""
    global _startup_complete, _startup_time
    _startup_complete = True
    _startup_time = time.time()
    logger.info("Startup marked as complete")


def is_startup_complete() -> bool:
    """Check if startup is complete."""
    return _startup_complete


def _uptime_seconds() -> float:
    return round(time.time() - _startup_time, 1) if _startup_time else 0


@router.get("", response_class=PlainTextResponse)
async def health() -> str:
    """Simple health check."""
    return "OK"


@router.get("/live")
async def liveness() -> dict[str, str]:
    """
    Liveness probe.

    Returns 200 if the service is alive.
    """
    return {"status": "alive"}


@router.get("/ready")
async def readiness(
    manager: SessionLifecycleManager = Depends(get_lifecycle_manager),
) -> dict[str, Any]:
    """
    Readiness probe.

    Returns 503 until the lifespan handler has finished startup.
    """
    if not _startup_complete:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Startup not complete",
        )

    return {
        "status": "ready",
        "sessions": len(manager.store),
        "active_producers": manager.active_producers,
        "uptime_seconds": _uptime_seconds(),
    }


@router.get("/status")
async def detailed_status(
    manager: SessionLifecycleManager = Depends(get_lifecycle_manager),
) -> dict[str, Any]:
    """
    Detailed status endpoint for monitoring.

    Returns session counts, retention policy and upstream target.
    """
    store = manager.store
    total = len(store)
    in_flight = store.active_sessions

    return {
        "status": "ready" if _startup_complete else "not_ready",
        "sessions": {
            "total": total,
            "in_flight": in_flight,
            "finished": total - in_flight,
        },
        "active_producers": manager.active_producers,
        "retention": {
            "policy": repr(manager.eviction_policy),
            "ttl_seconds": settings.session_ttl_seconds,
        },
        "upstream": {
            "base_url": settings.upstream_base_url,
            "model": settings.upstream_model,
        },
        "uptime_seconds": _uptime_seconds(),
    }
