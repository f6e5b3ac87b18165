"""Prometheus metrics for the search engine.

1. RED Metrics
   - Search requests by type and status
   - Search duration histograms

2. Provider Metrics
   - Embed/rerank latency by operation and outcome
   - Circuit breaker state

3. Degradation Metrics
   - Hybrid searches served lexical-only, by reason

Usage:
    from search_hub_search.metrics import track_search, observe_provider_call
"""

import time
from contextlib import contextmanager
from typing import Generator

from prometheus_client import Counter, Gauge, Histogram

# ==============================================================================
# RED Metrics
# ==============================================================================

SEARCH_REQUESTS = Counter(
    "search_hub_search_requests_total",
    "Total search requests",
    ["search_type", "status"],
)

SEARCH_DURATION = Histogram(
    "search_hub_search_duration_seconds",
    "Search execution time in seconds",
    ["search_type"],  # lexical, semantic, hybrid
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# ==============================================================================
# Provider Metrics
# ==============================================================================

AI_REQUEST_DURATION = Histogram(
    "search_hub_ai_request_duration_seconds",
    "Embedding/rerank provider call duration in seconds",
    ["operation", "outcome"],  # embed|rerank, success|error
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# 0 = closed, 1 = half-open, 2 = open
CIRCUIT_BREAKER_STATE = Gauge(
    "search_hub_circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=half_open, 2=open)",
    ["breaker"],
)

# ==============================================================================
# Degradation Metrics
# ==============================================================================

SEMANTIC_FALLBACKS = Counter(
    "search_hub_semantic_fallbacks_total",
    "Hybrid searches answered with lexical-only results",
    ["reason"],  # unavailable, provider_error, storage_error, no_results
)


# ==============================================================================
# Helper Functions
# ==============================================================================


@contextmanager
def observe_provider_call(operation: str) -> Generator[None, None, None]:
    """Time a provider call, labelling the outcome.

    Usage:
        with observe_provider_call("embed"):
            vectors = await provider.embed(...)
    """
    start_time = time.perf_counter()
    outcome = "error"
    try:
        yield
        outcome = "success"
    finally:
        AI_REQUEST_DURATION.labels(operation=operation, outcome=outcome).observe(
            time.perf_counter() - start_time
        )


def track_search(search_type: str, status: str, duration: float) -> None:
    """Record one completed search.

    Args:
        search_type: lexical, semantic or hybrid
        status: success, partial or error
        duration: Wall time in seconds
    """
    SEARCH_REQUESTS.labels(search_type=search_type, status=status).inc()
    SEARCH_DURATION.labels(search_type=search_type).observe(duration)


def track_semantic_fallback(reason: str) -> None:
    """Record a hybrid search that fell back to lexical-only results."""
    SEMANTIC_FALLBACKS.labels(reason=reason).inc()


def set_breaker_state(breaker: str, value: int) -> None:
    CIRCUIT_BREAKER_STATE.labels(breaker=breaker).set(value)
