"""
Session lifecycle: start sessions, attach publishers, evict finished sessions.

The manager owns the producer tasks so their lifetime is independent of
the request that started them and of any attached client.
"""

import asyncio
import logging
import time
from typing import TYPE_CHECKING, AsyncGenerator

from ..config import settings
from ..observability.metrics import record_session_started, record_sessions_evicted
from ..protocol.errors import InvalidRequestError
from ..protocol.messages import StreamEvent
from .eviction import EvictionPolicy, policy_from_ttl
from .producer import run_producer
from .publisher import DisconnectCheck, publish_session
from .session import SessionStore

if TYPE_CHECKING:
    from ..upstream.client import UpstreamCompletionClient

logger = logging.getLogger(__name__)


class SessionLifecycleManager:
    """
    Binds start requests to session creation plus one producer task, and
    attach requests to publishers.

    Features:
    - Exactly one producer per session, never cancelled by clients
    - Pluggable eviction of finished sessions (retain forever by default)
    - Graceful shutdown of in-flight producers
    """

    def __init__(
        self,
        store: SessionStore,
        upstream: "UpstreamCompletionClient",
        eviction_policy: EvictionPolicy | None = None,
        cleanup_interval: float | None = None,
        poll_interval: float | None = None,
    ):
        """
        Initialize lifecycle manager.

        Args:
            store: Session store shared with publishers
            upstream: Completion client used by producers
            eviction_policy: Policy for dropping finished sessions
            cleanup_interval: Seconds between eviction passes
            poll_interval: Publisher re-check interval
        """
        self.store = store
        self.upstream = upstream
        self.eviction_policy = eviction_policy or policy_from_ttl(settings.session_ttl_seconds)
        self.cleanup_interval = cleanup_interval or settings.cleanup_interval_seconds
        self.poll_interval = poll_interval or settings.poll_interval_seconds

        self._producers: dict[str, asyncio.Task] = {}
        self._cleanup_task: asyncio.Task | None = None

    # -------------------------------------------------------------------------
    # Start / attach
    # -------------------------------------------------------------------------

    async def start_session(self, prompt: str) -> str:
        """
        Create a session and launch its producer.

        Returns immediately; production continues in the background.

        Args:
            prompt: User message forwarded to the upstream API

        Returns:
            New session id

        Raises:
            InvalidRequestError: If prompt is not a string
        """
        if not isinstance(prompt, str):
            raise InvalidRequestError("message must be a string")

        session = await self.store.create()
        session_id = session.session_id
        logger.info(f"Starting new session: {session_id}")

        task = asyncio.create_task(
            run_producer(self.store, self.upstream, session_id, prompt),
            name=f"producer-{session_id}",
        )
        self._producers[session_id] = task
        task.add_done_callback(lambda t, sid=session_id: self._on_producer_done(sid, t))

        record_session_started()
        return session_id

    def _on_producer_done(self, session_id: str, task: asyncio.Task) -> None:
        self._producers.pop(session_id, None)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Producer for session {session_id} crashed: {exc!r}",
                exc_info=exc,
            )

    async def attach(
        self,
        session_id: str | None,
        from_index: int = 0,
        is_disconnected: DisconnectCheck | None = None,
    ) -> AsyncGenerator[StreamEvent, None]:
        """
        Open a publisher on a session.

        The session is resolved eagerly so an unknown id fails before any
        stream is established.

        Raises:
            SessionNotFoundError: If the id is unknown
        """
        session = await self.store.get(session_id)
        logger.info(f"Stream request for session: {session_id}, from index: {from_index}")
        return publish_session(
            session,
            from_index=from_index,
            is_disconnected=is_disconnected,
            poll_interval=self.poll_interval,
        )

    @property
    def active_producers(self) -> int:
        """Number of producer tasks still running."""
        return len(self._producers)

    # -------------------------------------------------------------------------
    # Eviction
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start background eviction task if the policy can evict."""
        if self._cleanup_task is None and self.eviction_policy.evicts:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            logger.info(f"Session cleanup task started ({self.eviction_policy!r})")

    async def stop(self) -> None:
        """Stop the eviction task and cancel in-flight producers."""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
            logger.info("Session cleanup task stopped")

        producers = list(self._producers.values())
        for task in producers:
            task.cancel()
        if producers:
            await asyncio.gather(*producers, return_exceptions=True)
            logger.info(f"Cancelled {len(producers)} in-flight producers")

    async def _cleanup_loop(self) -> None:
        """Periodically evict finished sessions."""
        while True:
            try:
                await asyncio.sleep(self.cleanup_interval)
                await self.evict_expired()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception(f"Error in session cleanup: {e}")

    async def evict_expired(self, now: float | None = None) -> int:
        """
        Remove sessions the eviction policy selects.

        Returns:
            Number of sessions removed
        """
        now = time.monotonic() if now is None else now
        expired = [
            session.session_id
            for session in self.store
            if self.eviction_policy.should_evict(session, now)
        ]

        for session_id in expired:
            await self.store.remove(session_id)

        if expired:
            record_sessions_evicted(len(expired))
            logger.info(f"Evicted {len(expired)} finished sessions")
        return len(expired)
