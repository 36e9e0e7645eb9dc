"""
Prometheus metrics for the streaming gateway.

Exports:
- Session counters and active sessions gauge
- Producer latency histograms
- Publisher gauge and SSE event counters
- Upstream fragment counters
"""

from prometheus_client import Counter, Gauge, Histogram

# =============================================================================
# Session metrics
# =============================================================================

gateway_sessions_started = Counter(
    "gateway_sessions_started_total",
    "Total sessions started",
)

gateway_sessions_finished = Counter(
    "gateway_sessions_finished_total",
    "Sessions that reached a terminal state",
    ["outcome"],  # completed, error
)

gateway_sessions_evicted = Counter(
    "gateway_sessions_evicted_total",
    "Finished sessions removed by the eviction policy",
)

gateway_active_sessions = Gauge(
    "gateway_active_sessions",
    "Sessions currently held in memory",
)

gateway_sessions_in_flight = Gauge(
    "gateway_sessions_in_flight",
    "Sessions that have not reached a terminal state",
)

# =============================================================================
# Producer metrics
# =============================================================================

gateway_chunks_appended = Counter(
    "gateway_chunks_appended_total",
    "Content chunks appended to session logs",
)

gateway_malformed_fragments = Counter(
    "gateway_malformed_fragments_total",
    "Upstream fragments skipped because they could not be decoded",
)

gateway_first_chunk_latency = Histogram(
    "gateway_first_chunk_latency_seconds",
    "Time from producer start to first appended chunk",
    buckets=(0.1, 0.25, 0.5, 0.75, 1.0, 1.5, 2.0, 3.0, 5.0, 10.0),
)

gateway_producer_duration = Histogram(
    "gateway_producer_duration_seconds",
    "Total producer run time",
    ["outcome"],
    buckets=(0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0),
)

gateway_active_producers = Gauge(
    "gateway_active_producers",
    "Producer tasks currently running",
)

# =============================================================================
# Publisher metrics
# =============================================================================

gateway_active_publishers = Gauge(
    "gateway_active_publishers",
    "SSE connections currently attached to a session",
)

gateway_events_sent = Counter(
    "gateway_events_sent_total",
    "SSE events sent to clients",
    ["type"],  # content, done, error
)


# =============================================================================
# Helper functions
# =============================================================================


def record_session_started() -> None:
    """Record a new session."""
    gateway_sessions_started.inc()


def record_session_finished(outcome: str, duration_seconds: float) -> None:
    """
    Record a producer reaching a terminal state.

    Args:
        outcome: "completed" or "error"
        duration_seconds: Producer run time
    """
    gateway_sessions_finished.labels(outcome=outcome).inc()
    gateway_producer_duration.labels(outcome=outcome).observe(duration_seconds)


def record_first_chunk(latency_seconds: float) -> None:
    """Record time to the first appended chunk."""
    gateway_first_chunk_latency.observe(latency_seconds)


def record_chunk_appended() -> None:
    """Record a chunk appended to a session log."""
    gateway_chunks_appended.inc()


def record_malformed_fragment() -> None:
    """Record a skipped upstream fragment."""
    gateway_malformed_fragments.inc()


def record_event_sent(event_type: str) -> None:
    """Record an SSE event written to a client."""
    gateway_events_sent.labels(type=event_type).inc()


def record_sessions_evicted(count: int) -> None:
    """Record sessions removed by an eviction pass."""
    gateway_sessions_evicted.inc(count)


def update_session_metrics(active_sessions: int, in_flight: int | None = None) -> None:
    """Update session-related gauge metrics."""
    gateway_active_sessions.set(active_sessions)
    if in_flight is not None:
        gateway_sessions_in_flight.set(in_flight)
