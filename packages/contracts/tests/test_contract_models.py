"""Tests for Pydantic models in contracts package.

Focus: Validators, defaults, edge cases
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from search_hub_contracts import (
    MAX_SEARCH_WINDOW,
    Chunk,
    LexicalQuery,
    RerankedChunk,
    SearchLog,
    SearchLogEntry,
    SearchQuery,
    SearchResponse,
    SearchResultItem,
    SearchStatus,
    SearchType,
    SemanticQuery,
)


class TestEnums:
    """Test string enums."""

    def test_search_types(self):
        assert SearchType("hybrid") == SearchType.HYBRID
        assert SearchType.LEXICAL == "lexical"
        assert SearchType.SEMANTIC == "semantic"

    def test_search_statuses(self):
        assert SearchStatus("partial") == SearchStatus.PARTIAL
        assert {s.value for s in SearchStatus} == {"success", "error", "partial"}


class TestSearchQuery:
    """Test hybrid query validation."""

    def test_defaults(self):
        query = SearchQuery(tenant_id="tenant-a", text="vector search")

        assert query.limit == 10
        assert query.offset == 0
        assert query.semantic_k is None
        assert query.semantic_recall is None
        assert query.rrf_k is None
        assert query.page == 1

    def test_page_derived_from_offset(self):
        assert SearchQuery(tenant_id="t", text="x", limit=10, offset=25).page == 3
        assert SearchQuery(tenant_id="t", text="x", limit=5, offset=5).page == 2

    def test_blank_tenant_rejected(self):
        with pytest.raises(ValidationError, match="tenant_id"):
            SearchQuery(tenant_id="   ", text="vector search")

    def test_missing_tenant_rejected(self):
        with pytest.raises(ValidationError):
            SearchQuery(text="vector search")

    @pytest.mark.parametrize("limit", [0, MAX_SEARCH_WINDOW + 1])
    def test_limit_bounds(self, limit):
        with pytest.raises(ValidationError):
            SearchQuery(tenant_id="t", text="x", limit=limit)

    def test_negative_offset_rejected(self):
        with pytest.raises(ValidationError):
            SearchQuery(tenant_id="t", text="x", offset=-1)

    def test_rrf_k_bounds(self):
        assert SearchQuery(tenant_id="t", text="x", rrf_k=100).rrf_k == 100
        with pytest.raises(ValidationError):
            SearchQuery(tenant_id="t", text="x", rrf_k=101)

    def test_lexical_query_shares_validation(self):
        with pytest.raises(ValidationError):
            LexicalQuery(tenant_id="", text="x")


class TestSemanticQuery:
    def test_recall_optional(self):
        query = SemanticQuery(tenant_id="t", text="x", k=5)
        assert query.recall_k is None

    def test_recall_upper_bound(self):
        with pytest.raises(ValidationError):
            SemanticQuery(tenant_id="t", text="x", recall_k=51)


class TestChunks:
    """Test chunk models."""

    def test_chunk_is_frozen(self):
        chunk = Chunk(
            tenant_id="t",
            document_id="d1",
            idx=0,
            content="text",
            distance=0.2,
            similarity=0.8,
        )

        with pytest.raises(ValidationError):
            chunk.content = "changed"

    def test_negative_idx_rejected(self):
        with pytest.raises(ValidationError):
            Chunk(
                tenant_id="t",
                document_id="d1",
                idx=-1,
                content="text",
                distance=0.2,
                similarity=0.8,
            )

    def test_reranked_chunk_copy(self):
        chunk = RerankedChunk(
            tenant_id="t",
            document_id="d1",
            idx=2,
            content="middle",
            distance=0.1,
            similarity=0.9,
            rerank_score=0.7,
        )

        stitched = chunk.model_copy(update={"content": "before middle after"})

        assert stitched.content == "before middle after"
        assert stitched.rerank_score == 0.7
        assert chunk.content == "middle"
        assert stitched.document_title is None


class TestResponses:
    def test_empty_response_defaults(self):
        response = SearchResponse(page=1, page_size=10)

        assert response.total == 0
        assert response.items == []
        assert response.no_strong_matches is None

    def test_serialization_omits_nothing(self):
        response = SearchResponse(
            total=1,
            items=[SearchResultItem(id="d1", title="Doc", score=0.016393)],
            page=1,
            page_size=10,
            no_strong_matches=None,
        )

        data = response.model_dump()
        assert data["items"][0]["id"] == "d1"
        assert data["items"][0]["snippet"] is None
        assert data["no_strong_matches"] is None


class TestSearchLog:
    def test_entry_requires_non_negative_counts(self):
        with pytest.raises(ValidationError):
            SearchLogEntry(
                tenant_id="t",
                user_id="u",
                query="q",
                search_type=SearchType.HYBRID,
                result_count=-1,
                duration=5,
                status=SearchStatus.SUCCESS,
            )

    def test_persisted_log(self):
        log = SearchLog(
            id="log-1",
            tenant_id="t",
            user_id="u",
            query="quarterly report",
            search_type="lexical",
            result_count=3,
            duration=12,
            status="success",
            created_at=datetime.now(timezone.utc),
        )

        assert log.search_type == SearchType.LEXICAL
        assert log.status == SearchStatus.SUCCESS
