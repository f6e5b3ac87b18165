"""Hybrid search: lexical + semantic results merged with Reciprocal Rank Fusion.

Flow:
1. Drop noise queries (no token longer than 3 characters)
2. Lexical search, widening the window for later pages within the first 50
3. Semantic search when the breaker allows it; any failure falls back to
   the lexical-only page
4. RRF over both ranked lists, weak semantic hits filtered out
5. Page slice, display metadata, snippet truncation

Score semantics:
- RRF score: sum over lists of 1 / (fusion_k + rank), rank 1-based.
  Only meaningful for ordering within one response.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional

from search_hub_common import get_logger, instrument_function
from search_hub_contracts import (
    MAX_SEARCH_WINDOW,
    RerankedChunk,
    SearchQuery,
    SearchResponse,
    SearchResultItem,
)

from search_hub_search.lexical import LexicalSearchEngine
from search_hub_search.metrics import track_semantic_fallback
from search_hub_search.semantic import SemanticSearchEngine

logger = get_logger(__name__)

DEFAULT_RRF_K = 60
DEFAULT_RERANK_THRESHOLD = 0.35
DEFAULT_TOP_SCORE_CUTOFF = 0.55
MIN_TOKEN_LENGTH = 4
SNIPPET_MAX_LENGTH = 220
UNTITLED_DOCUMENT = "Untitled document"

_NON_WORD = re.compile(r"[^\w\s]")


def meaningful_tokens(text: str) -> list[str]:
    """Lowercased tokens longer than 3 characters, punctuation removed.

    Example:
        >>> meaningful_tokens("What's the Q3 budget?")
        ['what', 'budget']
    """
    tokens = _NON_WORD.sub(" ", text.lower()).split()
    return [token for token in tokens if len(token) >= MIN_TOKEN_LENGTH]


def truncate_snippet(text: str, max_length: int = SNIPPET_MAX_LENGTH) -> str:
    """Shorten text to about max_length characters.

    Cuts at the last space before max_length unless that would keep less
    than 60% of it, never leaves a dangling ``<tag`` and appends "...".
    Text within the limit is returned unchanged.
    """
    if len(text) <= max_length:
        return text

    cutoff = text.rfind(" ", 0, max_length + 1)
    if cutoff == -1 or cutoff < max_length * 0.6:
        cutoff = max_length

    candidate = text[:cutoff].rstrip()
    last_open = candidate.rfind("<")
    last_close = candidate.rfind(">")
    if last_open > last_close:
        candidate = candidate[:last_open].rstrip()

    return f"{candidate}..."


def rrf_contribution(rank: int, fusion_k: int = DEFAULT_RRF_K) -> float:
    """Score added by one appearance at 1-based ``rank``."""
    return 1.0 / (fusion_k + rank)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


@dataclass
class _DocMeta:
    lexical: Optional[SearchResultItem] = None
    semantic_snippet: Optional[str] = None
    semantic_score: Optional[float] = None


@dataclass
class _FusionState:
    scores: dict[str, float] = field(default_factory=dict)
    meta: dict[str, _DocMeta] = field(default_factory=dict)

    def add(self, doc_id: str, rank: int, fusion_k: int) -> _DocMeta:
        self.scores[doc_id] = self.scores.get(doc_id, 0.0) + rrf_contribution(rank, fusion_k)
        return self.meta.setdefault(doc_id, _DocMeta())


class FusionEngine:
    """Orchestrates lexical and semantic search into one ranked page.

    Args:
        lexical: Lexical engine
        semantic: Semantic engine
        store: Object with get_document_details_by_ids (e.g. SearchStore)
        rerank_threshold: Minimum rerank score a semantic hit needs to be fused
        top_score_cutoff: Minimum best semantic score when lexical found nothing
    """

    def __init__(
        self,
        lexical: LexicalSearchEngine,
        semantic: SemanticSearchEngine,
        store: Any,
        rerank_threshold: float = DEFAULT_RERANK_THRESHOLD,
        top_score_cutoff: float = DEFAULT_TOP_SCORE_CUTOFF,
    ) -> None:
        self.lexical = lexical
        self.semantic = semantic
        self.store = store
        self.rerank_threshold = rerank_threshold
        self.top_score_cutoff = top_score_cutoff

    async def hybrid_search(self, query: SearchQuery) -> SearchResponse:
        """Fused lexical + semantic page for ``query``.

        Never fails because of the semantic side: provider errors, an open
        breaker or empty semantic results all produce the lexical-only page.
        Lexical (storage) errors propagate.
        """
        response, _ = await self.hybrid_search_with_fallback(query)
        return response

    @instrument_function("hybrid_search")
    async def hybrid_search_with_fallback(
        self, query: SearchQuery
    ) -> tuple[SearchResponse, Optional[str]]:
        """Like hybrid_search, also naming why semantic results were left out.

        Returns:
            (response, fallback) where fallback is None when semantic search
            ran normally, otherwise "unavailable", "provider_error",
            "storage_error" or "no_results"
        """
        tenant_id = query.tenant_id
        page = query.page

        if not meaningful_tokens(query.text):
            logger.debug(
                "search_query_filtered",
                tenant_id=tenant_id,
                reason="short_or_stopword_only",
            )
            return SearchResponse(total=0, items=[], page=page, page_size=query.limit), None

        # Later pages inside the first 50 results are cut out of a widened
        # lexical window so fusion sees every candidate above the page.
        expand_window = query.offset > 0 and query.offset + query.limit <= MAX_SEARCH_WINDOW
        lexical_limit = (
            min(query.offset + query.limit, MAX_SEARCH_WINDOW) if expand_window else query.limit
        )
        lexical_offset = 0 if expand_window else query.offset

        lexical_response = await self.lexical.lexical_search(
            tenant_id, query.text, lexical_limit, lexical_offset
        )
        lexical_items = lexical_response.items

        lexical_only = SearchResponse(
            total=lexical_response.total,
            items=(
                lexical_items[query.offset : query.offset + query.limit]
                if expand_window
                else lexical_items
            ),
            page=page,
            page_size=query.limit,
        )

        if not self.semantic.is_available():
            track_semantic_fallback("unavailable")
            logger.info("hybrid_search_lexical_only", tenant_id=tenant_id, reason="circuit_open")
            return lexical_only, "unavailable"

        desired_window = max(query.limit, query.offset + query.limit)
        semantic_k = _clamp(query.semantic_k or desired_window, 1, MAX_SEARCH_WINDOW)
        semantic_recall = _clamp(
            max(query.semantic_recall or semantic_k * 3, semantic_k),
            semantic_k,
            MAX_SEARCH_WINDOW,
        )

        outcome = await self.semantic.semantic_search(
            tenant_id, query.text, semantic_k, semantic_recall
        )

        if not outcome.is_ok:
            track_semantic_fallback(outcome.status.value)
            logger.warning(
                "semantic_search_failed",
                tenant_id=tenant_id,
                status=outcome.status.value,
                error=str(outcome.error) if outcome.error else None,
            )
            return lexical_only, outcome.status.value

        if not outcome.items:
            track_semantic_fallback("no_results")
            return lexical_only, "no_results"

        fusion_k = query.rrf_k or DEFAULT_RRF_K
        state = _FusionState()

        for rank, item in enumerate(lexical_items, start=1):
            state.add(item.id, rank, fusion_k).lexical = item

        relevant = self._relevant_semantic(outcome.items)

        if not lexical_items and relevant and relevant[0].rerank_score < self.top_score_cutoff:
            logger.debug(
                "semantic_filtered_by_top_score",
                tenant_id=tenant_id,
                top_semantic_score=relevant[0].rerank_score,
                cutoff=self.top_score_cutoff,
            )
            filtered = SearchResponse(
                total=0,
                items=[],
                page=page,
                page_size=query.limit,
                no_strong_matches=True,
            )
            return filtered, None

        for rank, item in enumerate(relevant, start=1):
            meta = state.add(item.document_id, rank, fusion_k)
            if not meta.semantic_snippet:
                meta.semantic_snippet = item.content
            meta.semantic_score = item.rerank_score

        scored = sorted(state.scores.items(), key=lambda entry: entry[1], reverse=True)

        start = query.offset if expand_window else 0
        paged = scored[start : start + query.limit]
        if not paged:
            return lexical_only, None

        details = await self._semantic_only_details(
            tenant_id, [doc_id for doc_id, _ in paged if state.meta[doc_id].lexical is None]
        )

        items = [
            self._build_item(doc_id, score, state.meta[doc_id], details.get(doc_id))
            for doc_id, score in paged
        ]

        logger.info(
            "hybrid_search_completed",
            tenant_id=tenant_id,
            lexical_count=len(lexical_items),
            semantic_count=len(relevant),
            fused_count=len(scored),
            returned=len(items),
        )

        fused = SearchResponse(
            total=max(lexical_response.total, len(state.meta)),
            items=items,
            page=page,
            page_size=query.limit,
        )
        return fused, None

    def _relevant_semantic(self, items: list[RerankedChunk]) -> list[RerankedChunk]:
        """Above-threshold hits, best first, one per document."""
        ranked = sorted(items, key=lambda item: item.rerank_score, reverse=True)
        seen: set[str] = set()
        relevant = []
        for item in ranked:
            if item.rerank_score < self.rerank_threshold or item.document_id in seen:
                continue
            seen.add(item.document_id)
            relevant.append(item)
        return relevant

    async def _semantic_only_details(self, tenant_id: str, doc_ids: list[str]) -> dict:
        if not doc_ids:
            return {}
        try:
            rows = await self.store.get_document_details_by_ids(doc_ids, tenant_id)
        except Exception as e:
            logger.warning("document_details_failed", tenant_id=tenant_id, error=str(e))
            return {}
        return {row.id: row for row in rows}

    @staticmethod
    def _build_item(doc_id: str, score: float, meta: _DocMeta, detail) -> SearchResultItem:
        lexical = meta.lexical

        if lexical is not None and lexical.snippet:
            snippet = truncate_snippet(lexical.snippet)
        elif meta.semantic_snippet:
            snippet = truncate_snippet(meta.semantic_snippet)
        elif detail is not None and detail.content:
            snippet = truncate_snippet(detail.content)
        else:
            snippet = None

        if lexical is not None:
            title = lexical.title
        elif detail is not None:
            title = detail.title
        else:
            title = UNTITLED_DOCUMENT

        return SearchResultItem(
            id=doc_id,
            title=title,
            snippet=snippet,
            score=round(score, 6),
            url=lexical.url if lexical is not None else None,
        )
