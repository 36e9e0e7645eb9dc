"""
Stream publisher: replays a session's chunk log and tails live growth.

Each attached connection gets its own publisher. Publishers never mutate
the session; they stop on the terminal event or when the client goes away.
"""

import asyncio
import logging
from typing import AsyncGenerator, Awaitable, Callable

from ..config import settings
from ..observability.metrics import gateway_active_publishers, record_event_sent
from ..protocol.messages import ContentEvent, DoneEvent, ErrorEvent, StreamEvent
from .session import Session

logger = logging.getLogger(__name__)

DisconnectCheck = Callable[[], Awaitable[bool]]


def terminal_event(session: Session) -> StreamEvent:
    """Terminal event for a finished session."""
    if session.error is not None:
        return ErrorEvent(error=session.error)
    return DoneEvent()


async def publish_session(
    session: Session,
    from_index: int = 0,
    is_disconnected: DisconnectCheck | None = None,
    poll_interval: float | None = None,
) -> AsyncGenerator[StreamEvent, None]:
    """
    Yield stream events for `session` starting at chunk `from_index`.

    Buffered chunks are replayed first, then new chunks are yielded as they
    are appended. Ends after exactly one done/error event, or silently when
    `is_disconnected` reports the client is gone.

    Args:
        session: Session to read
        from_index: First chunk index to send
        is_disconnected: Async callable checked between waits
        poll_interval: Max seconds to wait for a change before re-checking
    """
    poll_interval = poll_interval or settings.poll_interval_seconds
    next_index = max(from_index, 0)
    session_id = session.session_id
    finished = False

    gateway_active_publishers.inc()
    logger.info(f"Publisher attached to session {session_id} from index {next_index}")

    try:
        while True:
            # Grab the signal before reading so an append after the read wakes us
            changed = session.changed_signal()
            terminal = session.is_terminal
            pending = session.chunks_from(next_index)

            for chunk in pending:
                record_event_sent("content")
                yield ContentEvent(content=chunk.content, chunk_index=chunk.index)
            if pending:
                next_index = pending[-1].index + 1

            if terminal:
                event = terminal_event(session)
                record_event_sent(event.type.value)
                finished = True
                yield event
                return

            if is_disconnected is not None and await is_disconnected():
                logger.info(f"Client disconnected from session {session_id}")
                return

            try:
                await asyncio.wait_for(changed.wait(), timeout=poll_interval)
            except asyncio.TimeoutError:
                pass
    finally:
        gateway_active_publishers.dec()
        logger.info(
            f"Publisher detached from session {session_id} at index {next_index} "
            f"({'finished' if finished else 'client gone'})"
        )
