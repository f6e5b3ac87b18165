"""Search Hub Search - hybrid retrieval engine.

Version: 1.0.0

This package provides:
- CircuitBreaker guarding the embedding/rerank provider
- LexicalSearchEngine (PostgreSQL full-text)
- SemanticSearchEngine (embed, rerank, chunk stitching, dedup)
- FusionEngine (Reciprocal Rank Fusion, windowing, noise gates)
- SearchAuditLogger (best-effort analytics rows)
- SearchService facade and create_search_service()
"""

from search_hub_search.audit import SearchAuditLogger
from search_hub_search.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)
from search_hub_search.fusion import (
    FusionEngine,
    meaningful_tokens,
    rrf_contribution,
    truncate_snippet,
)
from search_hub_search.lexical import LexicalSearchEngine
from search_hub_search.semantic import (
    SemanticOutcome,
    SemanticSearchEngine,
    SemanticStatus,
    stitch_chunks,
)
from search_hub_search.service import SearchService, create_search_service

__version__ = "1.0.0"

__all__ = [
    # Breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    # Engines
    "LexicalSearchEngine",
    "SemanticSearchEngine",
    "SemanticOutcome",
    "SemanticStatus",
    "FusionEngine",
    # Helpers
    "stitch_chunks",
    "meaningful_tokens",
    "truncate_snippet",
    "rrf_contribution",
    # Audit / service
    "SearchAuditLogger",
    "SearchService",
    "create_search_service",
]
