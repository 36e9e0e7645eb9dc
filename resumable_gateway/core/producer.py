"""
Producer task: drives one upstream completion into a session's chunk log.

The producer runs detached from any client connection. Every outcome is
recorded on the session; nothing is written to a connection directly.
"""

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from ..observability.logging import session_context
from ..observability.metrics import (
    gateway_active_producers,
    record_first_chunk,
    record_session_finished,
)
from ..protocol.errors import UpstreamFailureError
from .session import SessionStore

if TYPE_CHECKING:
    from ..upstream.client import UpstreamCompletionClient

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Generation cancelled"


async def run_producer(
    store: SessionStore,
    upstream: "UpstreamCompletionClient",
    session_id: str,
    prompt: str,
) -> None:
    """
    Stream a completion for `prompt` into session `session_id`.

    Non-empty deltas are appended in arrival order. Exhaustion marks the
    session completed; any failure marks it errored. No retries.

    Args:
        store: Session store owning the session
        upstream: Client exposing `stream_completion(prompt)`
        session_id: Target session
        prompt: User message forwarded verbatim
    """
    with session_context(session_id):
        await _produce(store, upstream, session_id, prompt)


async def _produce(
    store: SessionStore,
    upstream: "UpstreamCompletionClient",
    session_id: str,
    prompt: str,
) -> None:
    logger.info(f"Processing stream for session: {session_id}")
    start_time = time.monotonic()
    first_chunk_seen = False
    gateway_active_producers.inc()

    try:
        async for delta in upstream.stream_completion(prompt):
            if not delta:
                continue
            chunk = await store.append(session_id, delta)
            if chunk is not None and not first_chunk_seen:
                first_chunk_seen = True
                record_first_chunk(time.monotonic() - start_time)

    except asyncio.CancelledError:
        logger.warning(f"Producer for session {session_id} cancelled")
        await store.mark_error(session_id, CANCELLED_MESSAGE)
        record_session_finished("error", time.monotonic() - start_time)
        raise

    except UpstreamFailureError as e:
        logger.error(f"Stream error for session {session_id}: {e.message}")
        await store.mark_error(session_id, e.message)
        record_session_finished("error", time.monotonic() - start_time)

    except Exception as e:
        logger.exception(f"Unexpected error producing session {session_id}")
        await store.mark_error(session_id, str(e) or e.__class__.__name__)
        record_session_finished("error", time.monotonic() - start_time)

    else:
        await store.mark_completed(session_id)
        record_session_finished("completed", time.monotonic() - start_time)

    finally:
        gateway_active_producers.dec()
