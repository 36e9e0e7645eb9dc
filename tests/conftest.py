"""
Pytest fixtures for the streaming gateway tests.

The upstream completion API is replaced by scripted fakes so sessions can
be driven fragment by fragment without network access.
"""

from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio

from resumable_gateway.core.eviction import RetainForever
from resumable_gateway.core.lifecycle import SessionLifecycleManager
from resumable_gateway.core.session import SessionStore
from resumable_gateway.protocol.errors import UpstreamFailureError

from .fakes import ControlledUpstream, ScriptedUpstream, make_client


@pytest.fixture
def store() -> SessionStore:
    """Empty session store."""
    return SessionStore()


@pytest.fixture
def hello_upstream() -> ScriptedUpstream:
    """Upstream emitting "H", "el", "lo" then closing."""
    return ScriptedUpstream(["H", "el", "lo"])


@pytest.fixture
def failing_upstream() -> ScriptedUpstream:
    """Upstream emitting one fragment then failing with a status error."""
    return ScriptedUpstream(
        ["partial"],
        error=UpstreamFailureError("500 status code: upstream exploded", status_code=500),
    )


@pytest.fixture
def controlled_upstream() -> ControlledUpstream:
    """Upstream driven by the test."""
    return ControlledUpstream()


@pytest_asyncio.fixture
async def make_manager(store):
    """Factory for lifecycle managers over the shared store."""
    managers: list[SessionLifecycleManager] = []

    def _make(upstream, **kwargs) -> SessionLifecycleManager:
        kwargs.setdefault("eviction_policy", RetainForever())
        kwargs.setdefault("poll_interval", 0.01)
        manager = SessionLifecycleManager(store=store, upstream=upstream, **kwargs)
        managers.append(manager)
        return manager

    yield _make

    for manager in managers:
        await manager.stop()


@pytest.fixture
def manager(make_manager, hello_upstream) -> SessionLifecycleManager:
    """Lifecycle manager backed by the "Hello" upstream."""
    return make_manager(hello_upstream)


@pytest_asyncio.fixture
async def async_client(manager) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Async HTTP client for the gateway app."""
    async with make_client(manager) as client:
        yield client
