"""Semantic search: embed, retrieve nearest chunks, rerank, stitch, dedupe.

Pipeline:
1. Breaker gate (skip entirely when the provider is considered down)
2. Embed the query (input_type="query")
3. Nearest chunks for the tenant by cosine distance
4. Rerank candidates against the query, keep top k
5. Stitch each hit with its neighbouring chunks (idx - 1 .. idx + 1)
6. Keep the best chunk per document, attach titles

Outcomes are returned as a SemanticOutcome instead of raised, so callers
can tell "no matches" from "provider down" without exception handling.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from search_hub_common import (
    ProviderResponseError,
    ProviderTimeoutError,
    get_logger,
    instrument_function,
)
from search_hub_contracts import AdjacentChunk, Chunk, InputType, RerankedChunk

from search_hub_search.circuit_breaker import CircuitBreaker
from search_hub_search.metrics import observe_provider_call

logger = get_logger(__name__)

# Chunks are indexed with overlapping boundaries; overlaps are looked for
# within this many characters on each side.
MAX_STITCH_OVERLAP = 100
# Shorter suffix/prefix matches are treated as coincidence
MIN_STITCH_OVERLAP = 20

CONTEXT_WINDOW = 1
UNTITLED = "Untitled"


class SemanticStatus(str, Enum):
    OK = "ok"
    UNAVAILABLE = "unavailable"
    PROVIDER_ERROR = "provider_error"
    STORAGE_ERROR = "storage_error"


@dataclass(frozen=True)
class SemanticOutcome:
    """Result of one semantic search.

    Attributes:
        status: OK, UNAVAILABLE (breaker open), PROVIDER_ERROR or STORAGE_ERROR
        items: Reranked, deduplicated chunks (OK only; may be empty)
        error: The underlying exception for the error statuses
    """

    status: SemanticStatus
    items: list[RerankedChunk] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def is_ok(self) -> bool:
        return self.status is SemanticStatus.OK

    @classmethod
    def success(cls, items: list[RerankedChunk]) -> "SemanticOutcome":
        return cls(SemanticStatus.OK, items=items)

    @classmethod
    def unavailable(cls) -> "SemanticOutcome":
        return cls(SemanticStatus.UNAVAILABLE)

    @classmethod
    def provider_failure(cls, error: BaseException) -> "SemanticOutcome":
        return cls(SemanticStatus.PROVIDER_ERROR, error=error)

    @classmethod
    def storage_failure(cls, error: BaseException) -> "SemanticOutcome":
        return cls(SemanticStatus.STORAGE_ERROR, error=error)


def stitch_chunks(chunks: list[AdjacentChunk]) -> str:
    """Join consecutive chunks, dropping the text they share.

    For each boundary the longest suffix of the text so far that equals a
    prefix of the next chunk (searching at most 100 characters, accepting
    only matches longer than 20) is removed once. Without such a match
    the chunks are joined with a single space.

    Example:
        >>> stitch_chunks([AdjacentChunk(idx=0, content="hello world"),
        ...                AdjacentChunk(idx=1, content="foo bar")])
        'hello world foo bar'
    """
    if not chunks:
        return ""

    result = chunks[0].content
    for chunk in chunks[1:]:
        current = chunk.content
        overlap = 0
        max_overlap = min(MAX_STITCH_OVERLAP, len(result), len(current))

        for length in range(max_overlap, MIN_STITCH_OVERLAP, -1):
            if result[-length:] == current[:length]:
                overlap = length
                break

        if overlap:
            result += current[overlap:]
        else:
            result += " " + current

    return result


class SemanticSearchEngine:
    """Embedding + rerank search over document chunks.

    Args:
        store: Object with find_nearest_chunks, get_adjacent_chunks and
            get_document_titles_by_ids (e.g. SearchStore)
        provider: Object with embed(texts, input_type=...) and
            rerank(query, documents) (e.g. VoyageClient)
        breaker: Circuit breaker guarding the provider
        provider_timeout_seconds: Time budget for each provider call
    """

    def __init__(
        self,
        store: Any,
        provider: Any,
        breaker: CircuitBreaker,
        provider_timeout_seconds: float = 10.0,
    ) -> None:
        self.store = store
        self.provider = provider
        self.breaker = breaker
        self.provider_timeout_seconds = provider_timeout_seconds

    def is_available(self) -> bool:
        """Whether the breaker would let a semantic search through."""
        return self.breaker.can_execute()

    @instrument_function("semantic_search")
    async def semantic_search(
        self,
        tenant_id: str,
        text: str,
        k: int,
        recall_k: Optional[int] = None,
    ) -> SemanticOutcome:
        """Run the semantic pipeline for one query.

        Args:
            tenant_id: Tenant scope
            text: Query text
            k: Number of reranked chunks kept before deduplication
            recall_k: Nearest chunks fetched before reranking (>= k)

        Returns:
            SemanticOutcome. Provider failures are recorded once on the
            breaker and reported as PROVIDER_ERROR, never raised.
        """
        if not self.breaker.try_acquire():
            logger.info(
                "semantic_search_skipped",
                tenant_id=tenant_id,
                reason="circuit_open",
                breaker_state=self.breaker.state.value,
            )
            return SemanticOutcome.unavailable()

        effective_recall = max(recall_k or k, k)

        try:
            outcome = await self._retrieve(tenant_id, text, effective_recall)
        except asyncio.CancelledError:
            self.breaker.release()
            raise
        if not isinstance(outcome, list):
            return outcome

        top = sorted(outcome, key=lambda c: c.rerank_score, reverse=True)[:k]
        stitched = await asyncio.gather(
            *[self._with_context(tenant_id, item) for item in top]
        )
        items = await self._dedupe_with_titles(tenant_id, stitched)

        logger.info(
            "semantic_search_completed",
            tenant_id=tenant_id,
            candidates=len(outcome),
            returned=len(items),
            top_score=items[0].rerank_score if items else None,
        )
        return SemanticOutcome.success(items)

    async def _retrieve(
        self, tenant_id: str, text: str, recall_k: int
    ) -> Union[list[RerankedChunk], SemanticOutcome]:
        """Embed, fetch candidates and rerank; reports the outcome to the breaker.

        Returns the reranked candidates, or a failed SemanticOutcome. A
        storage error never reached the reranker, so the permission is
        handed back with release() instead of being counted.
        """
        try:
            vector = await self._embed_query(text)
        except Exception as e:
            return self._provider_failed("embed", tenant_id, e)

        try:
            candidates = await self.store.find_nearest_chunks(tenant_id, vector, recall_k)
        except Exception as e:
            self.breaker.release()
            logger.error(
                "semantic_candidates_failed",
                tenant_id=tenant_id,
                error=str(e),
            )
            return SemanticOutcome.storage_failure(e)

        candidates = self._same_tenant(tenant_id, candidates)

        if not candidates:
            self.breaker.record_success()
            logger.info("semantic_search_no_candidates", tenant_id=tenant_id)
            return []

        try:
            reranked = await self._rerank(text, candidates)
        except Exception as e:
            return self._provider_failed("rerank", tenant_id, e)

        self.breaker.record_success()
        return reranked

    # -------------------------------------------------------------------------
    # Provider calls
    # -------------------------------------------------------------------------

    async def _embed_query(self, text: str) -> list[float]:
        with observe_provider_call("embed"):
            vectors = await self._bounded(
                self.provider.embed([text], input_type=InputType.QUERY), "embed"
            )
        if not vectors or not vectors[0]:
            raise ProviderResponseError("Failed to generate embedding for query")
        return vectors[0]

    async def _rerank(self, text: str, candidates: list[Chunk]) -> list[RerankedChunk]:
        with observe_provider_call("rerank"):
            scores = await self._bounded(
                self.provider.rerank(text, [c.content for c in candidates]), "rerank"
            )

        reranked = []
        for score in scores:
            if not 0 <= score.index < len(candidates):
                raise ProviderResponseError(
                    f"Rerank response referenced missing candidate {score.index}"
                )
            candidate = candidates[score.index]
            reranked.append(
                RerankedChunk(**candidate.model_dump(), rerank_score=score.score)
            )
        return reranked

    async def _bounded(self, call, operation: str):
        try:
            return await asyncio.wait_for(call, timeout=self.provider_timeout_seconds)
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(
                f"Provider {operation} exceeded {self.provider_timeout_seconds}s"
            ) from e

    def _provider_failed(
        self, operation: str, tenant_id: str, error: Exception
    ) -> SemanticOutcome:
        self.breaker.record_failure()
        logger.warning(
            "semantic_provider_failed",
            tenant_id=tenant_id,
            operation=operation,
            error=str(error),
            error_type=type(error).__name__,
            breaker_state=self.breaker.state.value,
            failure_count=self.breaker.failure_count,
        )
        return SemanticOutcome.provider_failure(error)

    # -------------------------------------------------------------------------
    # Post-processing
    # -------------------------------------------------------------------------

    @staticmethod
    def _same_tenant(tenant_id: str, candidates: list[Chunk]) -> list[Chunk]:
        kept = [c for c in candidates if c.tenant_id == tenant_id]
        if len(kept) != len(candidates):
            logger.error(
                "cross_tenant_candidates_dropped",
                tenant_id=tenant_id,
                dropped=len(candidates) - len(kept),
            )
        return kept

    async def _with_context(self, tenant_id: str, item: RerankedChunk) -> RerankedChunk:
        try:
            adjacent = await self.store.get_adjacent_chunks(
                item.document_id, tenant_id, item.idx, CONTEXT_WINDOW
            )
        except Exception as e:
            logger.warning(
                "adjacent_chunks_failed",
                document_id=item.document_id,
                idx=item.idx,
                error=str(e),
            )
            return item

        if not adjacent:
            return item

        return item.model_copy(update={"content": stitch_chunks(adjacent)})

    async def _dedupe_with_titles(
        self, tenant_id: str, items: list[RerankedChunk]
    ) -> list[RerankedChunk]:
        best: dict[str, RerankedChunk] = {}
        for item in items:
            existing = best.get(item.document_id)
            if existing is None or item.rerank_score > existing.rerank_score:
                best[item.document_id] = item

        titles: dict[str, str] = {}
        if best:
            try:
                rows = await self.store.get_document_titles_by_ids(list(best), tenant_id)
                titles = {row.id: row.title for row in rows}
            except Exception as e:
                logger.warning("document_titles_failed", tenant_id=tenant_id, error=str(e))

        return [
            item.model_copy(update={"document_title": titles.get(item.document_id) or UNTITLED})
            for item in sorted(best.values(), key=lambda c: c.rerank_score, reverse=True)
        ]
