"""
Session state and the in-memory session store.

Implements:
- Append-only chunk log per session
- First-write-wins terminal state (completed or error)
- Change notification so publishers wake on every append
- Store-level locking for create/append/terminal/remove
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Iterator
from uuid import uuid4

from ..observability.metrics import (
    record_chunk_appended,
    update_session_metrics,
)
from ..protocol.errors import SessionNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Chunk:
    """One unit of produced text with its position in the log."""

    index: int
    content: str


@dataclass
class Session:
    """
    Server-side record of one generation.

    The chunk log is append-only; `completed` and `error` are written at
    most once between them. Readers take `changed_signal()` before reading
    and wait on it afterwards so no append is missed.
    """

    session_id: str

    chunks: list[Chunk] = field(default_factory=list, init=False)
    completed: bool = field(default=False, init=False)
    error: str | None = field(default=None, init=False)

    created_at: float = field(default_factory=time.monotonic, init=False)
    finished_at: float | None = field(default=None, init=False)

    _changed: asyncio.Event = field(default_factory=asyncio.Event, init=False, repr=False)

    @property
    def is_terminal(self) -> bool:
        """Whether the session reached completed or error."""
        return self.completed or self.error is not None

    @property
    def chunk_count(self) -> int:
        """Number of chunks produced so far."""
        return len(self.chunks)

    def chunks_from(self, index: int) -> list[Chunk]:
        """Snapshot of chunks with index >= `index`."""
        return self.chunks[max(index, 0):]

    def changed_signal(self) -> asyncio.Event:
        """Event set on the next append or terminal transition."""
        return self._changed

    def _notify(self) -> None:
        self._changed.set()
        self._changed = asyncio.Event()

    def _append(self, content: str) -> Chunk:
        chunk = Chunk(index=len(self.chunks), content=content)
        self.chunks.append(chunk)
        self._notify()
        return chunk

    def _finish(self, error: str | None) -> bool:
        if self.is_terminal:
            return False
        if error is None:
            self.completed = True
        else:
            self.error = error
        self.finished_at = time.monotonic()
        self._notify()
        return True


class SessionStore:
    """
    Registry of sessions keyed by id.

    Only the producer of a session mutates it, through `append`,
    `mark_completed` and `mark_error`. Publishers read via `get`.
    """

    def __init__(self):
        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()

    async def create(self) -> Session:
        """
        Create a new empty session.

        Returns:
            New Session, already visible to `get`
        """
        async with self._lock:
            session_id = str(uuid4())
            while session_id in self._sessions:
                session_id = str(uuid4())

            session = Session(session_id=session_id)
            self._sessions[session_id] = session
            update_session_metrics(len(self._sessions))

            logger.info(
                f"Session {session_id} created (total: {len(self._sessions)})"
            )
            return session

    async def get(self, session_id: str | None) -> Session:
        """
        Get session by ID.

        Raises:
            SessionNotFoundError: If the id is unknown
        """
        session = self._sessions.get(session_id) if session_id else None
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def append(self, session_id: str, content: str) -> Chunk | None:
        """
        Append content as the next chunk.

        Empty content and appends to a finished session are ignored.

        Returns:
            The appended Chunk, or None if nothing was appended

        Raises:
            SessionNotFoundError: If the id is unknown
        """
        async with self._lock:
            session = await self.get(session_id)

            if not content:
                return None

            if session.is_terminal:
                logger.warning(
                    f"Session {session_id}: ignoring append after terminal state"
                )
                return None

            chunk = session._append(content)
            record_chunk_appended()
            logger.debug(f"Added chunk {chunk.index} to session {session_id}")
            return chunk

    async def mark_completed(self, session_id: str) -> bool:
        """
        Mark session as successfully completed.

        Returns:
            True if this call set the terminal state, False if already terminal
        """
        async with self._lock:
            session = await self.get(session_id)
            changed = session._finish(error=None)
            if changed:
                logger.info(
                    f"Session {session_id} completed, total chunks: {session.chunk_count}"
                )
            return changed

    async def mark_error(self, session_id: str, message: str) -> bool:
        """
        Mark session as failed.

        Returns:
            True if this call set the terminal state, False if already terminal
        """
        async with self._lock:
            session = await self.get(session_id)
            changed = session._finish(error=message or "Unknown error")
            if changed:
                logger.info(f"Session {session_id} failed: {session.error}")
            return changed

    async def remove(self, session_id: str) -> Session | None:
        """
        Remove and return session.

        Returns:
            Removed session or None if not found
        """
        async with self._lock:
            session = self._sessions.pop(session_id, None)
            if session:
                update_session_metrics(len(self._sessions))
                logger.info(
                    f"Session {session_id} removed (total: {len(self._sessions)})"
                )
            return session

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def active_sessions(self) -> int:
        """Number of sessions that have not reached a terminal state."""
        return sum(1 for session in self._sessions.values() if not session.is_terminal)
