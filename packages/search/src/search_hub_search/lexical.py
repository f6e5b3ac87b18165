"""Lexical (full-text) search over a tenant's documents."""

from typing import Any

from search_hub_common import get_logger, instrument_function
from search_hub_contracts import SearchResponse, SearchResultItem

logger = get_logger(__name__)


class LexicalSearchEngine:
    """Thin engine over the store's full-text query.

    Args:
        store: Object with lexical_search_documents (e.g. SearchStore)
    """

    def __init__(self, store: Any) -> None:
        self.store = store

    @instrument_function("lexical_search")
    async def lexical_search(
        self,
        tenant_id: str,
        text: str,
        limit: int,
        offset: int,
    ) -> SearchResponse:
        """Rank a tenant's documents against the query text.

        Returns:
            SearchResponse whose total counts all matches regardless of
            limit/offset; page = offset // limit + 1.

        Raises:
            StorageError: If the store query fails
        """
        result = await self.store.lexical_search_documents(tenant_id, text, limit, offset)

        logger.debug(
            "lexical_search_completed",
            tenant_id=tenant_id,
            returned=len(result.items),
            total=result.total,
        )

        return SearchResponse(
            total=result.total,
            items=[
                SearchResultItem(
                    id=hit.id,
                    title=hit.title,
                    snippet=hit.snippet,
                    score=hit.score,
                    url=hit.url,
                )
                for hit in result.items
            ],
            page=offset // limit + 1,
            page_size=limit,
        )
