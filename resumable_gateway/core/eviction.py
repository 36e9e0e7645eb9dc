"""
Eviction policies for finished sessions.

Sessions are retained forever by default. A policy decides, per session,
whether the lifecycle manager's cleanup pass may drop it.
"""

import time

from .session import Session


class EvictionPolicy:
    """Base policy: never evict."""

    #: The cleanup loop is only started for policies that can evict.
    evicts = False

    def should_evict(self, session: Session, now: float) -> bool:
        return False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class RetainForever(EvictionPolicy):
    """Keep every session for the lifetime of the process."""


class EvictFinishedAfter(EvictionPolicy):
    """Drop sessions `ttl_seconds` after they reach a terminal state."""

    evicts = True

    def __init__(self, ttl_seconds: float):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds

    def should_evict(self, session: Session, now: float | None = None) -> bool:
        if not session.is_terminal or session.finished_at is None:
            return False
        now = time.monotonic() if now is None else now
        return now - session.finished_at >= self.ttl_seconds

    def __repr__(self) -> str:
        return f"EvictFinishedAfter(ttl_seconds={self.ttl_seconds})"


def policy_from_ttl(ttl_seconds: float | None) -> EvictionPolicy:
    """Build the policy matching a configured TTL (None keeps everything)."""
    if ttl_seconds is None:
        return RetainForever()
    return EvictFinishedAfter(ttl_seconds)
