"""
Tests for SessionStore and Session.
"""

import pytest

from resumable_gateway.core.session import Chunk, SessionStore
from resumable_gateway.protocol.errors import SessionNotFoundError

from .fakes import full_text, has_session


class TestSessionStore:
    """Tests for SessionStore."""

    @pytest.mark.asyncio
    async def test_create_is_visible_immediately(self, store: SessionStore):
        """New sessions are empty and can be looked up right away."""
        session = await store.create()

        found = await store.get(session.session_id)
        assert found is session
        assert found.chunks == []
        assert found.completed is False
        assert found.error is None
        assert has_session(store, session.session_id)

    @pytest.mark.asyncio
    async def test_create_generates_unique_ids(self, store: SessionStore):
        """Every session gets its own id."""
        ids = {(await store.create()).session_id for _ in range(50)}
        assert len(ids) == 50
        assert len(store) == 50

    @pytest.mark.asyncio
    async def test_get_unknown_raises(self, store: SessionStore):
        """Unknown and missing ids raise SessionNotFoundError."""
        with pytest.raises(SessionNotFoundError):
            await store.get("nope")
        with pytest.raises(SessionNotFoundError):
            await store.get(None)

    @pytest.mark.asyncio
    async def test_append_assigns_contiguous_indices(self, store: SessionStore):
        """Chunks get sequential zero-based indices in append order."""
        session = await store.create()
        for text in ["H", "el", "lo"]:
            await store.append(session.session_id, text)

        assert session.chunks == [Chunk(0, "H"), Chunk(1, "el"), Chunk(2, "lo")]
        assert full_text(session) == "Hello"

    @pytest.mark.asyncio
    async def test_append_ignores_empty_content(self, store: SessionStore):
        """Empty content never becomes a chunk."""
        session = await store.create()

        assert await store.append(session.session_id, "") is None
        await store.append(session.session_id, "a")

        assert [c.index for c in session.chunks] == [0]

    @pytest.mark.asyncio
    async def test_append_unknown_session_raises(self, store: SessionStore):
        """Appending to an unknown id is an error."""
        with pytest.raises(SessionNotFoundError):
            await store.append("missing", "text")

    @pytest.mark.asyncio
    async def test_first_terminal_write_wins(self, store: SessionStore):
        """Later terminal writes do not change the outcome."""
        session = await store.create()

        assert await store.mark_completed(session.session_id) is True
        assert await store.mark_error(session.session_id, "late failure") is False
        assert await store.mark_completed(session.session_id) is False

        assert session.completed is True
        assert session.error is None

    @pytest.mark.asyncio
    async def test_error_then_completed_keeps_error(self, store: SessionStore):
        """An error terminal state is not overwritten by completion."""
        session = await store.create()

        await store.mark_error(session.session_id, "boom")
        await store.mark_completed(session.session_id)

        assert session.error == "boom"
        assert session.completed is False
        assert session.is_terminal

    @pytest.mark.asyncio
    async def test_append_after_terminal_is_ignored(self, store: SessionStore):
        """Delivered chunks stay untouched once the session is terminal."""
        session = await store.create()
        await store.append(session.session_id, "a")
        await store.mark_completed(session.session_id)

        assert await store.append(session.session_id, "b") is None
        assert session.chunks == [Chunk(0, "a")]

    @pytest.mark.asyncio
    async def test_changed_signal_fires_on_append_and_finish(self, store: SessionStore):
        """Waiters holding the signal are woken by appends and terminal writes."""
        session = await store.create()

        signal = session.changed_signal()
        assert not signal.is_set()
        await store.append(session.session_id, "a")
        assert signal.is_set()

        signal = session.changed_signal()
        assert not signal.is_set()
        await store.mark_completed(session.session_id)
        assert signal.is_set()

    @pytest.mark.asyncio
    async def test_chunks_from(self, store: SessionStore):
        """chunks_from returns the suffix starting at an index."""
        session = await store.create()
        for text in "abcd":
            await store.append(session.session_id, text)

        assert [c.content for c in session.chunks_from(2)] == ["c", "d"]
        assert session.chunks_from(4) == []
        assert session.chunks_from(10) == []
        assert len(session.chunks_from(-3)) == 4

    @pytest.mark.asyncio
    async def test_remove(self, store: SessionStore):
        """Removed sessions are no longer found."""
        session = await store.create()

        removed = await store.remove(session.session_id)
        assert removed is session
        assert await store.remove(session.session_id) is None
        with pytest.raises(SessionNotFoundError):
            await store.get(session.session_id)

    @pytest.mark.asyncio
    async def test_active_sessions_counts_unfinished(self, store: SessionStore):
        """active_sessions excludes terminal sessions."""
        a = await store.create()
        await store.create()
        await store.mark_completed(a.session_id)

        assert len(store) == 2
        assert store.active_sessions == 1
