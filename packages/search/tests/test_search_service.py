"""Tests for the SearchService facade."""

from unittest.mock import AsyncMock

import pytest

from search_hub_ai import VoyageClient
from search_hub_common import ProviderAPIError, Settings, StorageError
from search_hub_contracts import (
    DocumentTitle,
    LexicalPage,
    SearchQuery,
    SearchStatus,
    SearchType,
)
from search_hub_search import CircuitState, SearchService, create_search_service

TENANT = "tenant-a"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        voyage_api_key="test-key",
        breaker_failure_threshold=2,
        semantic_rerank_threshold=0.3,
        semantic_top_score_cutoff=0.6,
        provider_timeout_seconds=3.0,
    )


@pytest.fixture
def log_store():
    return AsyncMock()


@pytest.fixture
def service(settings, store, provider, breaker, log_store) -> SearchService:
    return create_search_service(
        settings, store=store, provider=provider, breaker=breaker, log_store=log_store
    )


def _query(text: str = "quarterly budget", **kwargs) -> SearchQuery:
    return SearchQuery(tenant_id=TENANT, text=text, **kwargs)


async def _logged(service: SearchService, log_store):
    await service.audit.drain()
    return log_store.create.await_args.args[0]


class TestFactory:
    def test_injected_collaborators(self, service, store, provider, breaker, log_store):
        assert service.breaker is breaker
        assert service.semantic.breaker is breaker
        assert service.semantic.provider is provider
        assert service.semantic.provider_timeout_seconds == 3.0
        assert service.lexical.store is store
        assert service.fusion.store is store
        assert service.fusion.rerank_threshold == 0.3
        assert service.fusion.top_score_cutoff == 0.6
        assert service.audit.store is log_store

    def test_defaults_from_settings(self, settings):
        service = create_search_service(settings)

        assert isinstance(service.semantic.provider, VoyageClient)
        assert service.breaker.config.failure_threshold == 2
        assert service.breaker.name == "voyage_ai"

    def test_services_do_not_share_breakers(self, settings):
        first = create_search_service(settings)
        second = create_search_service(settings)

        assert first.breaker is not second.breaker


class TestSearch:
    @pytest.mark.asyncio
    async def test_hybrid_success_logged(self, service, store, log_store, make_hit):
        store.lexical_search_documents.return_value = LexicalPage(
            items=[make_hit("d1"), make_hit("d2")], total=2
        )

        response = await service.search(_query(), user_id="user-1")

        assert [item.id for item in response.items] == ["d1", "d2"]
        entry = await _logged(service, log_store)
        assert entry.search_type is SearchType.HYBRID
        assert entry.status is SearchStatus.SUCCESS
        assert entry.result_count == 2
        assert entry.user_id == "user-1"
        assert entry.query == "quarterly budget"
        assert entry.duration >= 0

    @pytest.mark.asyncio
    async def test_hybrid_partial_on_provider_failure(
        self, service, store, provider, breaker, log_store, make_hit
    ):
        store.lexical_search_documents.return_value = LexicalPage(items=[make_hit("d1")], total=1)
        provider.embed.side_effect = ProviderAPIError(503, "down", "/v1/embeddings")

        response = await service.search(_query(), user_id="user-1")

        assert [item.id for item in response.items] == ["d1"]
        assert breaker.failure_count == 1
        entry = await _logged(service, log_store)
        assert entry.status is SearchStatus.PARTIAL

    @pytest.mark.asyncio
    async def test_hybrid_partial_when_breaker_open(self, service, breaker, log_store, provider):
        for _ in range(3):
            breaker.record_failure()
        assert breaker.state is CircuitState.OPEN

        await service.search(_query(), user_id="user-1")

        provider.embed.assert_not_awaited()
        entry = await _logged(service, log_store)
        assert entry.status is SearchStatus.PARTIAL

    @pytest.mark.asyncio
    async def test_hybrid_partial_when_failure_opens_breaker(
        self, service, provider, breaker, log_store
    ):
        breaker.record_failure()
        breaker.record_failure()
        provider.embed.side_effect = ProviderAPIError(503, "down", "/v1/embeddings")

        await service.search(_query(), user_id="user-1")

        assert breaker.state is CircuitState.OPEN
        assert breaker.failure_count == 0
        entry = await _logged(service, log_store)
        assert entry.status is SearchStatus.PARTIAL

    @pytest.mark.asyncio
    async def test_hybrid_partial_on_candidate_storage_error(self, service, store, log_store):
        store.find_nearest_chunks.side_effect = StorageError("pool exhausted")

        await service.search(_query(), user_id="user-1")

        entry = await _logged(service, log_store)
        assert entry.status is SearchStatus.PARTIAL

    @pytest.mark.asyncio
    async def test_hybrid_without_semantic_matches_is_success(
        self, service, store, log_store, make_hit
    ):
        store.lexical_search_documents.return_value = LexicalPage(items=[make_hit("d1")], total=1)

        await service.search(_query(), user_id="user-1")

        entry = await _logged(service, log_store)
        assert entry.status is SearchStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_error_logged_and_raised(self, service, store, log_store):
        store.lexical_search_documents.side_effect = StorageError("db down")

        with pytest.raises(StorageError):
            await service.search(_query(), user_id="user-1", search_type=SearchType.LEXICAL)

        entry = await _logged(service, log_store)
        assert entry.status is SearchStatus.ERROR
        assert entry.result_count == 0
        assert entry.search_type is SearchType.LEXICAL

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_affect_response(
        self, service, store, log_store, make_hit
    ):
        store.lexical_search_documents.return_value = LexicalPage(items=[make_hit("d1")], total=1)
        log_store.create.side_effect = StorageError("audit table missing")

        response = await service.search(
            _query(), user_id="user-1", search_type=SearchType.LEXICAL
        )
        await service.audit.drain()

        assert [item.id for item in response.items] == ["d1"]

    @pytest.mark.asyncio
    async def test_semantic_mode_maps_chunks(
        self, service, store, provider, log_store, make_chunk, scores
    ):
        store.find_nearest_chunks.return_value = [
            make_chunk("d1", content="budget chunk"),
            make_chunk("d2", content="travel chunk"),
        ]
        provider.rerank.return_value = scores(0.4, 0.912345678)
        store.get_document_titles_by_ids.return_value = [DocumentTitle(id="d2", title="Travel")]

        response = await service.search(
            _query(limit=5), user_id="user-1", search_type="semantic"
        )

        assert [item.id for item in response.items] == ["d2", "d1"]
        assert response.items[0].title == "Travel"
        assert response.items[0].snippet == "travel chunk"
        assert response.items[0].score == 0.912346
        assert response.total == 2
        entry = await _logged(service, log_store)
        assert entry.search_type is SearchType.SEMANTIC

    @pytest.mark.asyncio
    async def test_semantic_mode_pages_by_offset(
        self, service, store, provider, make_chunk, scores
    ):
        store.find_nearest_chunks.return_value = [
            make_chunk(f"doc-{i}", content=f"chunk {i}") for i in range(4)
        ]
        provider.rerank.return_value = scores(0.9, 0.8, 0.7, 0.6)

        first = await service.search(
            _query(limit=2, offset=0), user_id="user-1", search_type=SearchType.SEMANTIC
        )
        second = await service.search(
            _query(limit=2, offset=2), user_id="user-1", search_type=SearchType.SEMANTIC
        )

        assert [item.id for item in first.items] == ["doc-0", "doc-1"]
        assert [item.id for item in second.items] == ["doc-2", "doc-3"]
        assert (first.page, second.page) == (1, 2)
        # The second page needs offset + limit reranked hits
        assert store.find_nearest_chunks.await_args.args[2] == 4

    @pytest.mark.asyncio
    async def test_semantic_mode_window_capped(self, service, store):
        await service.search(
            _query(limit=10, offset=45), user_id="user-1", search_type=SearchType.SEMANTIC
        )

        assert store.find_nearest_chunks.await_args.args[2] == 50

    @pytest.mark.asyncio
    async def test_semantic_mode_provider_down(self, service, provider):
        provider.embed.side_effect = ProviderAPIError(500, "boom", "/v1/embeddings")

        response = await service.search(
            _query(), user_id="user-1", search_type=SearchType.SEMANTIC
        )

        assert response.items == []
        assert response.total == 0


class TestDelegation:
    @pytest.mark.asyncio
    async def test_lexical_search_uses_query_window(self, service, store):
        await service.lexical_search(_query(limit=5, offset=10))

        store.lexical_search_documents.assert_awaited_once_with(
            TENANT, "quarterly budget", 5, 10
        )

    def test_availability_follows_breaker(self, service, breaker):
        assert service.is_semantic_search_available() is True
        for _ in range(3):
            breaker.record_failure()
        assert service.is_semantic_search_available() is False

    @pytest.mark.asyncio
    async def test_aclose_drains_and_closes_provider(self, service, provider):
        await service.aclose()

        provider.aclose.assert_awaited_once()
