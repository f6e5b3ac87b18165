"""SearchStore - read-only retrieval queries over documents and chunks.

Provides:
- Full-text document search (PostgreSQL ts_rank_cd + ts_headline)
- Nearest-chunk vector search (pgvector cosine distance)
- Adjacent chunk lookup for context stitching
- Batched title and detail lookups

Every query is scoped by tenant_id. No query writes.

Score semantics:
- lexical score: Higher = better match (ts_rank_cd, normalization 32)
- distance: pgvector cosine distance, lower = more similar
- similarity: 1 - distance
"""

import re
from typing import Optional
from uuid import UUID

from pgvector.asyncpg import register_vector
from search_hub_common import StorageError, get_logger
from search_hub_contracts import (
    AdjacentChunk,
    Chunk,
    DocumentDetail,
    DocumentTitle,
    LexicalHit,
    LexicalPage,
)

from search_hub_storage.connection import get_connection_pool

logger = get_logger(__name__)

# Characters with meaning inside to_tsquery input
_TSQUERY_METACHARS = re.compile(r"[&|!():*<>'\\]")

# Snippet fallback when ts_headline yields nothing
SNIPPET_FALLBACK_CHARS = 280

_LEXICAL_SQL = """
    WITH doc_text AS (
        SELECT
            d.id,
            d.title,
            d.url,
            COALESCE(
                (
                    SELECT string_agg(dc.content, ' ' ORDER BY dc.idx)
                    FROM document_chunks dc
                    WHERE dc.document_id = d.id AND dc.tenant_id = d.tenant_id
                ),
                d.content,
                ''
            ) AS body
        FROM documents d
        WHERE d.tenant_id = $1
    )
    SELECT dt.id::text AS id,
           dt.title,
           dt.url,
           COALESCE(
               NULLIF(
                   ts_headline(
                       'english',
                       dt.body,
                       to_tsquery('english', $2),
                       'StartSel=<mark>,StopSel=</mark>,MaxFragments=1,MaxWords=30,MinWords=1'
                   ),
                   ''
               ),
               LEFT(dt.body, $5)
           ) AS snippet,
           ts_rank_cd(d.search_vector, to_tsquery('english', $2), 32) AS score,
           COUNT(*) OVER()::int AS total
    FROM doc_text dt
    JOIN documents d ON d.id = dt.id
    WHERE d.search_vector @@ to_tsquery('english', $2)
    ORDER BY score DESC, d.created_at DESC
    LIMIT $3
    OFFSET $4
"""


def build_tsquery(text: str) -> Optional[str]:
    """Turn free text into a to_tsquery expression.

    Terms are ANDed. Terms longer than 3 characters use prefix matching;
    shorter ones must match exactly to keep noise down.

    Returns:
        tsquery string, or None when no usable terms remain

    Example:
        >>> build_tsquery("budget q3 (draft)")
        'budget:* & q3 & draft:*'
    """
    terms = [_TSQUERY_METACHARS.sub("", term) for term in text.strip().split()]
    terms = [term for term in terms if term]
    if not terms:
        return None
    return " & ".join(f"{term}:*" if len(term) > 3 else term for term in terms)


def _parse_document_ids(ids: list[str]) -> list[UUID]:
    """Document ids as UUIDs; ids that are not UUIDs cannot match and are dropped."""
    parsed = []
    for doc_id in ids:
        try:
            parsed.append(UUID(str(doc_id)))
        except ValueError:
            logger.warning("invalid_document_id", document_id=doc_id)
    return parsed


class SearchStore:
    """Retrieval queries used by the search engines.

    All operations use the global connection pool.
    """

    @staticmethod
    async def lexical_search_documents(
        tenant_id: str,
        text: str,
        limit: int,
        offset: int,
    ) -> LexicalPage:
        """Full-text search over a tenant's documents.

        Args:
            tenant_id: Tenant scope
            text: Raw query text
            limit: Page size
            offset: Rows to skip

        Returns:
            LexicalPage with ranked hits and the total match count
            (independent of limit/offset)

        Raises:
            StorageError: If the query fails
        """
        ts_query = build_tsquery(text)
        if ts_query is None:
            return LexicalPage(items=[], total=0)

        pool = await get_connection_pool()

        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    _LEXICAL_SQL,
                    tenant_id,
                    ts_query,
                    limit,
                    offset,
                    SNIPPET_FALLBACK_CHARS,
                )
        except Exception as e:
            logger.error("lexical_query_failed", tenant_id=tenant_id, error=str(e))
            raise StorageError(f"Lexical search failed: {e}") from e

        total = rows[0]["total"] if rows else 0
        items = [
            LexicalHit(
                id=row["id"],
                title=row["title"],
                snippet=row["snippet"] or None,
                score=float(row["score"]),
                url=row["url"],
            )
            for row in rows
        ]

        logger.debug(
            "lexical_query_completed",
            tenant_id=tenant_id,
            ts_query=ts_query,
            returned=len(items),
            total=total,
        )
        return LexicalPage(items=items, total=total)

    @staticmethod
    async def find_nearest_chunks(
        tenant_id: str,
        vector: list[float],
        k: int,
    ) -> list[Chunk]:
        """Nearest chunks by cosine distance, closest first.

        Raises:
            StorageError: If the query fails
        """
        pool = await get_connection_pool()

        try:
            async with pool.acquire() as conn:
                await register_vector(conn)

                rows = await conn.fetch(
                    """
                    SELECT tenant_id,
                           document_id::text AS document_id,
                           idx,
                           content,
                           (embedding <=> $1) AS distance,
                           1 - (embedding <=> $1) AS similarity
                    FROM document_chunks
                    WHERE tenant_id = $2
                    ORDER BY distance ASC
                    LIMIT $3
                    """,
                    vector,
                    tenant_id,
                    k,
                )
        except Exception as e:
            logger.error("nearest_chunks_query_failed", tenant_id=tenant_id, error=str(e))
            raise StorageError(f"Nearest chunk search failed: {e}") from e

        return [
            Chunk(
                tenant_id=row["tenant_id"],
                document_id=row["document_id"],
                idx=row["idx"],
                content=row["content"],
                distance=float(row["distance"]),
                similarity=float(row["similarity"]),
            )
            for row in rows
        ]

    @staticmethod
    async def get_adjacent_chunks(
        document_id: str,
        tenant_id: str,
        idx: int,
        window: int = 1,
    ) -> list[AdjacentChunk]:
        """Chunks idx-window..idx+window of one document, ordered by idx."""
        doc_uuids = _parse_document_ids([document_id])
        if not doc_uuids:
            return []

        min_idx = max(0, idx - window)
        max_idx = idx + window
        pool = await get_connection_pool()

        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    """
                    SELECT idx, content
                    FROM document_chunks
                    WHERE document_id = $1
                      AND tenant_id = $2
                      AND idx BETWEEN $3 AND $4
                    ORDER BY idx ASC
                    """,
                    doc_uuids[0],
                    tenant_id,
                    min_idx,
                    max_idx,
                )
        except Exception as e:
            raise StorageError(f"Adjacent chunk lookup failed: {e}") from e

        return [AdjacentChunk(idx=row["idx"], content=row["content"]) for row in rows]

    @staticmethod
    async def get_document_titles_by_ids(
        ids: list[str],
        tenant_id: str,
    ) -> list[DocumentTitle]:
        """Titles for the given documents. Unknown ids are omitted."""
        doc_uuids = _parse_document_ids(ids)
        if not doc_uuids:
            return []

        pool = await get_connection_pool()

        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    """
                    SELECT id::text AS id, title
                    FROM documents
                    WHERE tenant_id = $1 AND id = ANY($2::uuid[])
                    """,
                    tenant_id,
                    doc_uuids,
                )
        except Exception as e:
            raise StorageError(f"Title lookup failed: {e}") from e

        return [DocumentTitle(id=row["id"], title=row["title"]) for row in rows]

    @staticmethod
    async def get_document_details_by_ids(
        ids: list[str],
        tenant_id: str,
    ) -> list[DocumentDetail]:
        """Title and body for the given documents. Unknown ids are omitted."""
        doc_uuids = _parse_document_ids(ids)
        if not doc_uuids:
            return []

        pool = await get_connection_pool()

        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    """
                    SELECT id::text AS id, title, content
                    FROM documents
                    WHERE tenant_id = $1 AND id = ANY($2::uuid[])
                    """,
                    tenant_id,
                    doc_uuids,
                )
        except Exception as e:
            raise StorageError(f"Document detail lookup failed: {e}") from e

        return [
            DocumentDetail(id=row["id"], title=row["title"], content=row["content"])
            for row in rows
        ]
