"""Shared test fixtures for search package.

Engines are built over AsyncMock stores and providers; the breaker gets a
controllable clock so timeouts can be stepped through without sleeping.
"""

from typing import Optional
from unittest.mock import AsyncMock

import pytest

from search_hub_ai import RerankScore
from search_hub_contracts import Chunk, LexicalHit, LexicalPage
from search_hub_search import (
    CircuitBreaker,
    CircuitBreakerConfig,
    FusionEngine,
    LexicalSearchEngine,
    SemanticSearchEngine,
)

TENANT = "tenant-a"


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def breaker(clock) -> CircuitBreaker:
    return CircuitBreaker(
        CircuitBreakerConfig(
            failure_threshold=3,
            reset_timeout_ms=1_000,
            half_open_timeout_ms=500,
        ),
        name="test",
        clock=clock,
    )


@pytest.fixture
def make_chunk():
    """Factory for nearest-chunk rows."""

    def _make(document_id: str, idx: int = 0, content: str = "", tenant_id: str = TENANT) -> Chunk:
        return Chunk(
            tenant_id=tenant_id,
            document_id=document_id,
            idx=idx,
            content=content or f"{document_id} chunk {idx}",
            distance=0.2,
            similarity=0.8,
        )

    return _make


@pytest.fixture
def make_hit():
    """Factory for lexical hits."""

    def _make(doc_id: str, score: float = 0.5, snippet: str = "", url: Optional[str] = None) -> LexicalHit:
        return LexicalHit(
            id=doc_id,
            title=f"Title {doc_id}",
            snippet=snippet or f"snippet {doc_id}",
            score=score,
            url=url,
        )

    return _make


@pytest.fixture
def scores():
    """Build rerank responses: scores(0.9, 0.4) -> indexes 0 and 1."""

    def _make(*values: float) -> list[RerankScore]:
        return [RerankScore(index=i, score=v) for i, v in enumerate(values)]

    return _make


@pytest.fixture
def store():
    """Search store with empty results for every query."""
    store = AsyncMock()
    store.lexical_search_documents.return_value = LexicalPage(items=[], total=0)
    store.find_nearest_chunks.return_value = []
    store.get_adjacent_chunks.return_value = []
    store.get_document_titles_by_ids.return_value = []
    store.get_document_details_by_ids.return_value = []
    return store


@pytest.fixture
def provider():
    """Provider that embeds to a fixed vector and scores nothing."""
    provider = AsyncMock()
    provider.embed.return_value = [[0.1] * 8]
    provider.rerank.return_value = []
    return provider


@pytest.fixture
def lexical_engine(store) -> LexicalSearchEngine:
    return LexicalSearchEngine(store)


@pytest.fixture
def semantic_engine(store, provider, breaker) -> SemanticSearchEngine:
    return SemanticSearchEngine(store, provider, breaker, provider_timeout_seconds=0.5)


@pytest.fixture
def fusion_engine(lexical_engine, semantic_engine, store) -> FusionEngine:
    return FusionEngine(lexical_engine, semantic_engine, store)
