"""Search Hub Contracts - Pure Pydantic schemas.

Version: 1.0.0

This package contains ONLY Pydantic schemas with no business logic.
Dependencies: pydantic only (no logging, no DB drivers, no HTTP).
"""

from search_hub_contracts.models import (
    MAX_SEARCH_WINDOW,
    # Queries
    LexicalQuery,
    SearchQuery,
    SemanticQuery,
    # Store rows
    AdjacentChunk,
    Chunk,
    DocumentDetail,
    DocumentTitle,
    LexicalHit,
    LexicalPage,
    RerankedChunk,
    # Responses
    SearchResponse,
    SearchResultItem,
    # Audit
    SearchLog,
    SearchLogEntry,
    SearchStatus,
    SearchType,
    # Provider
    InputType,
)

__version__ = "1.0.0"

__all__ = [
    "MAX_SEARCH_WINDOW",
    "LexicalQuery",
    "SearchQuery",
    "SemanticQuery",
    "AdjacentChunk",
    "Chunk",
    "DocumentDetail",
    "DocumentTitle",
    "LexicalHit",
    "LexicalPage",
    "RerankedChunk",
    "SearchResponse",
    "SearchResultItem",
    "SearchLog",
    "SearchLogEntry",
    "SearchStatus",
    "SearchType",
    "InputType",
]
