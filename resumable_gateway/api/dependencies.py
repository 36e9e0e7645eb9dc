"""FastAPI dependencies shared by the routers."""

from fastapi import Request

from ..core.lifecycle import SessionLifecycleManager


def get_lifecycle_manager(request: Request) -> SessionLifecycleManager:
    """Lifecycle manager stored on the application state."""
    manager = getattr(request.app.state, "lifecycle", None)
    if manager is None:
        raise RuntimeError("Session lifecycle manager not initialized")
    return manager
