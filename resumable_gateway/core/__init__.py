"""Core module for session state, production and publishing."""

from .eviction import EvictFinishedAfter, EvictionPolicy, RetainForever
from .lifecycle import SessionLifecycleManager
from .producer import run_producer
from .publisher import publish_session
from .session import Chunk, Session, SessionStore

__all__ = [
    "Chunk",
    "Session",
    "SessionStore",
    "run_producer",
    "publish_session",
    "SessionLifecycleManager",
    "EvictionPolicy",
    "RetainForever",
    "EvictFinishedAfter",
]
