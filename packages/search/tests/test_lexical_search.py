"""Tests for LexicalSearchEngine."""

import pytest

from search_hub_common import StorageError
from search_hub_contracts import LexicalHit, LexicalPage
from search_hub_search import LexicalSearchEngine

TENANT = "tenant-a"


class InMemoryLexicalStore:
    """Store double ranking documents by how often the query word occurs."""

    def __init__(self, documents: dict[str, str]):
        self.documents = documents

    async def lexical_search_documents(self, tenant_id, text, limit, offset):
        word = text.lower()
        matches = sorted(
            (
                (body.lower().count(word), doc_id)
                for doc_id, body in self.documents.items()
                if word in body.lower()
            ),
            reverse=True,
        )
        hits = [
            LexicalHit(id=doc_id, title=doc_id.upper(), snippet=None, score=float(count))
            for count, doc_id in matches[offset : offset + limit]
        ]
        return LexicalPage(items=hits, total=len(matches))


@pytest.fixture
def corpus_engine():
    documents = {f"doc{i}": "budget " * (i + 1) for i in range(7)}
    documents["other"] = "unrelated text"
    return LexicalSearchEngine(InMemoryLexicalStore(documents))


class TestLexicalSearch:
    @pytest.mark.asyncio
    async def test_maps_hits(self, lexical_engine, store, make_hit):
        store.lexical_search_documents.return_value = LexicalPage(
            items=[make_hit("d1", score=0.7, url="https://docs/d1")], total=1
        )

        response = await lexical_engine.lexical_search(TENANT, "budget", 10, 0)

        item = response.items[0]
        assert (item.id, item.title, item.snippet, item.score, item.url) == (
            "d1",
            "Title d1",
            "snippet d1",
            0.7,
            "https://docs/d1",
        )
        assert response.no_strong_matches is None
        store.lexical_search_documents.assert_awaited_once_with(TENANT, "budget", 10, 0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "limit, offset, page",
        [(10, 0, 1), (10, 9, 1), (10, 10, 2), (5, 12, 3)],
    )
    async def test_page_number(self, lexical_engine, limit, offset, page):
        response = await lexical_engine.lexical_search(TENANT, "budget", limit, offset)

        assert response.page == page
        assert response.page_size == limit

    @pytest.mark.asyncio
    async def test_total_independent_of_window(self, corpus_engine):
        first = await corpus_engine.lexical_search(TENANT, "budget", 3, 0)
        second = await corpus_engine.lexical_search(TENANT, "budget", 3, 3)
        beyond = await corpus_engine.lexical_search(TENANT, "budget", 3, 30)

        assert first.total == second.total == beyond.total == 7
        assert [item.id for item in first.items] == ["doc6", "doc5", "doc4"]
        assert [item.id for item in second.items] == ["doc3", "doc2", "doc1"]
        assert beyond.items == []

    @pytest.mark.asyncio
    async def test_storage_error_propagates(self, lexical_engine, store):
        store.lexical_search_documents.side_effect = StorageError("db down")

        with pytest.raises(StorageError, match="db down"):
            await lexical_engine.lexical_search(TENANT, "budget", 10, 0)
