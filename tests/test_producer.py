"""
Tests for the producer task.
"""

import asyncio

import pytest

from resumable_gateway.core.producer import CANCELLED_MESSAGE, run_producer
from resumable_gateway.core.session import SessionStore

from .fakes import ControlledUpstream, ScriptedUpstream, full_text, settle


class TestRunProducer:
    """Tests for run_producer."""

    @pytest.mark.asyncio
    async def test_appends_fragments_and_completes(self, store: SessionStore, hello_upstream):
        """Each fragment becomes a chunk; exhaustion completes the session."""
        session = await store.create()

        await run_producer(store, hello_upstream, session.session_id, "hi")

        assert [(c.index, c.content) for c in session.chunks] == [(0, "H"), (1, "el"), (2, "lo")]
        assert session.completed is True
        assert session.error is None
        assert hello_upstream.prompts == ["hi"]

    @pytest.mark.asyncio
    async def test_skips_empty_fragments(self, store: SessionStore):
        """Empty deltas never take an index."""
        upstream = ScriptedUpstream(["", "a", "", "b", ""])
        session = await store.create()

        await run_producer(store, upstream, session.session_id, "x")

        assert [(c.index, c.content) for c in session.chunks] == [(0, "a"), (1, "b")]
        assert session.completed

    @pytest.mark.asyncio
    async def test_upstream_failure_marks_error(self, store: SessionStore, failing_upstream):
        """Upstream failures end the session in error, keeping earlier chunks."""
        session = await store.create()

        await run_producer(store, failing_upstream, session.session_id, "hi")

        assert session.error == "500 status code: upstream exploded"
        assert session.completed is False
        assert [c.content for c in session.chunks] == ["partial"]

    @pytest.mark.asyncio
    async def test_unexpected_exception_marks_error(self, store: SessionStore):
        """Any other exception is recorded, not propagated."""
        upstream = ScriptedUpstream(["a"], error=ValueError("decoder blew up"))
        session = await store.create()

        await run_producer(store, upstream, session.session_id, "hi")

        assert session.error == "decoder blew up"

    @pytest.mark.asyncio
    async def test_exception_without_message_uses_class_name(self, store: SessionStore):
        upstream = ScriptedUpstream([], error=RuntimeError())
        session = await store.create()

        await run_producer(store, upstream, session.session_id, "hi")

        assert session.error == "RuntimeError"

    @pytest.mark.asyncio
    async def test_cancellation_marks_error_and_propagates(self, store: SessionStore):
        """Cancelling the producer records a terminal error."""
        upstream = ControlledUpstream()
        session = await store.create()

        task = asyncio.create_task(run_producer(store, upstream, session.session_id, "hi"))
        upstream.push("a")
        await settle()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert session.error == CANCELLED_MESSAGE
        assert [c.content for c in session.chunks] == ["a"]

    @pytest.mark.asyncio
    async def test_runs_without_any_reader(self, store: SessionStore):
        """Production needs no attached publisher to reach a terminal state."""
        upstream = ControlledUpstream()
        session = await store.create()

        task = asyncio.create_task(run_producer(store, upstream, session.session_id, "hi"))
        upstream.push("x", "y")
        upstream.finish()
        await asyncio.wait_for(task, timeout=1)

        assert session.completed
        assert full_text(session) == "xy"
