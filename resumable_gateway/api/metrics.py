"""
Prometheus scrape endpoint.

Session gauges are refreshed from the store on every scrape, so they stay
correct regardless of which code path last touched the store.
"""

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from ..core.lifecycle import SessionLifecycleManager
from ..observability.metrics import update_session_metrics
from .dependencies import get_lifecycle_manager

router = APIRouter(tags=["metrics"])


@router.get("/metrics", include_in_schema=False)
async def scrape(
    manager: SessionLifecycleManager = Depends(get_lifecycle_manager),
) -> Response:
    """All gateway collectors in Prometheus text format."""
    update_session_metrics(len(manager.store), manager.store.active_sessions)
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)
