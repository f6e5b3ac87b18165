"""SearchService - wires the engines together for callers.

Usage:
    service = create_search_service()
    response = await service.search(
        SearchQuery(tenant_id="acme", text="quarterly budget"),
        user_id="u-1",
        search_type=SearchType.HYBRID,
    )

Every collaborator can be injected, which is how tests build isolated
services with fake stores, fake providers and their own breaker.
"""

import time
from typing import Any, Optional

from search_hub_ai import VoyageClient
from search_hub_common import (
    Settings,
    bind_search_context,
    clear_search_context,
    get_logger,
    get_settings,
)
from search_hub_contracts import (
    MAX_SEARCH_WINDOW,
    RerankedChunk,
    SearchQuery,
    SearchResponse,
    SearchResultItem,
    SearchStatus,
    SearchType,
)
from search_hub_storage import SearchLogStore, SearchStore

from search_hub_search.audit import SearchAuditLogger
from search_hub_search.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from search_hub_search.fusion import FusionEngine
from search_hub_search.lexical import LexicalSearchEngine
from search_hub_search.metrics import track_search
from search_hub_search.semantic import SemanticOutcome, SemanticSearchEngine

logger = get_logger(__name__)

# Hybrid fallbacks where semantic search could not run, as opposed to
# running and finding nothing
DEGRADED_FALLBACKS = frozenset({"unavailable", "provider_error", "storage_error"})


class SearchService:
    """Facade over lexical, semantic and hybrid search plus audit logging."""

    def __init__(
        self,
        lexical: LexicalSearchEngine,
        semantic: SemanticSearchEngine,
        fusion: FusionEngine,
        audit: SearchAuditLogger,
        breaker: CircuitBreaker,
        provider: Any = None,
    ) -> None:
        self.lexical = lexical
        self.semantic = semantic
        self.fusion = fusion
        self.audit = audit
        self.breaker = breaker
        self._provider = provider

    async def lexical_search(self, query: SearchQuery) -> SearchResponse:
        return await self.lexical.lexical_search(
            query.tenant_id, query.text, query.limit, query.offset
        )

    async def semantic_search(
        self, tenant_id: str, text: str, k: int, recall_k: Optional[int] = None
    ) -> SemanticOutcome:
        return await self.semantic.semantic_search(tenant_id, text, k, recall_k)

    async def hybrid_search(self, query: SearchQuery) -> SearchResponse:
        return await self.fusion.hybrid_search(query)

    def is_semantic_search_available(self) -> bool:
        return self.semantic.is_available()

    async def log_search(self, **fields: Any) -> None:
        await self.audit.log_search(**fields)

    async def search(
        self,
        query: SearchQuery,
        user_id: str,
        search_type: SearchType = SearchType.HYBRID,
    ) -> SearchResponse:
        """Run one search in the requested mode and audit it.

        Hybrid searches where semantic search could not run (breaker open,
        provider or storage failure) are logged as ``partial``. Semantic mode
        returns the reranked chunks as a page of documents. Errors are logged
        with status ``error`` and re-raised.
        """
        search_type = SearchType(search_type)
        bind_search_context(tenant_id=query.tenant_id, search_type=search_type.value)
        start = time.perf_counter()
        status = SearchStatus.SUCCESS
        response: Optional[SearchResponse] = None

        try:
            if search_type is SearchType.LEXICAL:
                response = await self.lexical_search(query)
            elif search_type is SearchType.SEMANTIC:
                response = await self._semantic_page(query)
            else:
                response, fallback = await self.fusion.hybrid_search_with_fallback(query)
                if fallback in DEGRADED_FALLBACKS:
                    status = SearchStatus.PARTIAL
            return response
        except Exception as e:
            status = SearchStatus.ERROR
            logger.error("search_failed", error=str(e), error_type=type(e).__name__)
            raise
        finally:
            elapsed = time.perf_counter() - start
            track_search(search_type.value, status.value, elapsed)
            self.audit.log_search_background(
                tenant_id=query.tenant_id,
                user_id=user_id,
                query=query.text,
                search_type=search_type,
                result_count=len(response.items) if response else 0,
                duration=int(elapsed * 1000),
                status=status,
            )
            clear_search_context()

    async def _semantic_page(self, query: SearchQuery) -> SearchResponse:
        window = min(max(query.semantic_k or query.offset + query.limit, 1), MAX_SEARCH_WINDOW)
        outcome = await self.semantic_search(
            query.tenant_id, query.text, window, query.semantic_recall
        )
        if not outcome.is_ok:
            logger.warning("semantic_search_unavailable", status=outcome.status.value)
            return SearchResponse(total=0, items=[], page=query.page, page_size=query.limit)

        return SearchResponse(
            total=len(outcome.items),
            items=[
                _chunk_to_item(item)
                for item in outcome.items[query.offset : query.offset + query.limit]
            ],
            page=query.page,
            page_size=query.limit,
        )

    async def aclose(self) -> None:
        """Drain pending audit writes and release the provider client."""
        await self.audit.drain()
        if self._provider is not None and hasattr(self._provider, "aclose"):
            await self._provider.aclose()


def _chunk_to_item(item: RerankedChunk) -> SearchResultItem:
    return SearchResultItem(
        id=item.document_id,
        title=item.document_title or "Untitled",
        snippet=item.content,
        score=round(item.rerank_score, 6),
    )


def create_search_service(
    settings: Optional[Settings] = None,
    *,
    store: Any = None,
    provider: Any = None,
    breaker: Optional[CircuitBreaker] = None,
    log_store: Any = None,
) -> SearchService:
    """Build a SearchService from settings.

    Args:
        settings: Configuration (default: get_settings())
        store: Search store (default: SearchStore)
        provider: Embedding/rerank provider (default: VoyageClient from settings)
        breaker: Circuit breaker (default: new breaker from settings)
        log_store: Audit sink (default: SearchLogStore)
    """
    settings = settings or get_settings()
    if store is None:
        store = SearchStore
    if provider is None:
        provider = VoyageClient.from_settings(settings)
    if breaker is None:
        breaker = CircuitBreaker(
            CircuitBreakerConfig.from_settings(settings), name="voyage_ai"
        )
    if log_store is None:
        log_store = SearchLogStore

    lexical = LexicalSearchEngine(store)
    semantic = SemanticSearchEngine(
        store,
        provider,
        breaker,
        provider_timeout_seconds=settings.provider_timeout_seconds,
    )
    fusion = FusionEngine(
        lexical,
        semantic,
        store,
        rerank_threshold=settings.semantic_rerank_threshold,
        top_score_cutoff=settings.semantic_top_score_cutoff,
    )

    return SearchService(
        lexical=lexical,
        semantic=semantic,
        fusion=fusion,
        audit=SearchAuditLogger(log_store),
        breaker=breaker,
        provider=provider,
    )
