"""Pydantic models for the search-hub retrieval engine.

These schemas define the contract between all packages.
They match the PostgreSQL schema defined in packages/storage/schema.sql.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Upper bound shared by page sizes and semantic candidate windows
MAX_SEARCH_WINDOW = 50


class SearchType(str, Enum):
    """Search modes exposed to callers."""

    LEXICAL = "lexical"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


class SearchStatus(str, Enum):
    """Outcome recorded in the search audit log."""

    SUCCESS = "success"
    ERROR = "error"
    PARTIAL = "partial"  # Hybrid search served lexical-only results


class InputType(str, Enum):
    """Embedding input type understood by the provider."""

    QUERY = "query"
    DOCUMENT = "document"


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class LexicalQuery(BaseModel):
    """Full-text search request scoped to one tenant."""

    tenant_id: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)
    limit: int = Field(default=10, ge=1, le=MAX_SEARCH_WINDOW)
    offset: int = Field(default=0, ge=0)

    @field_validator("tenant_id")
    @classmethod
    def validate_tenant_id(cls, v: str) -> str:
        """Ensure tenant_id is non-blank."""
        if not v.strip():
            raise ValueError("tenant_id must be non-empty")
        return v


class SemanticQuery(BaseModel):
    """Embedding search request.

    Attributes:
        k: Number of reranked chunks to keep
        recall_k: Number of nearest chunks to retrieve before reranking
    """

    tenant_id: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)
    k: int = Field(default=10, ge=1, le=MAX_SEARCH_WINDOW)
    recall_k: Optional[int] = Field(default=None, ge=1, le=MAX_SEARCH_WINDOW)


class SearchQuery(LexicalQuery):
    """Hybrid search request.

    Attributes:
        semantic_k: Semantic candidates to fuse (default: derived from page window)
        semantic_recall: Candidates retrieved before rerank (default: 3 * semantic_k)
        rrf_k: Reciprocal Rank Fusion constant; lower favours top ranks
    """

    semantic_k: Optional[int] = Field(default=None, ge=1, le=MAX_SEARCH_WINDOW)
    semantic_recall: Optional[int] = Field(default=None, ge=1, le=MAX_SEARCH_WINDOW)
    rrf_k: Optional[int] = Field(default=None, ge=1, le=100)

    @property
    def page(self) -> int:
        """1-based page number implied by offset/limit."""
        return self.offset // self.limit + 1


# ---------------------------------------------------------------------------
# Store rows
# ---------------------------------------------------------------------------


class Chunk(BaseModel):
    """Nearest-neighbour candidate read from document_chunks.

    Chunks are immutable once indexed; the store owns them.
    Distance is pgvector cosine distance (0 = identical).
    """

    model_config = ConfigDict(frozen=True)

    tenant_id: str
    document_id: str
    idx: int = Field(..., ge=0, description="0-based position within the document")
    content: str
    distance: float
    similarity: float


class RerankedChunk(Chunk):
    """Chunk scored by the rerank provider. Never persisted."""

    rerank_score: float
    document_title: Optional[str] = None


class AdjacentChunk(BaseModel):
    """Neighbouring chunk used to stitch a wider context window."""

    idx: int = Field(..., ge=0)
    content: str


class LexicalHit(BaseModel):
    """Document matched by the full-text index."""

    id: str
    title: str
    snippet: Optional[str] = None
    score: float
    url: Optional[str] = None


class LexicalPage(BaseModel):
    """One page of lexical hits plus the full match count."""

    items: list[LexicalHit] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)


class DocumentTitle(BaseModel):
    """Title lookup row."""

    id: str
    title: str


class DocumentDetail(BaseModel):
    """Title and body lookup row (used for semantic-only snippets)."""

    id: str
    title: str
    content: Optional[str] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class SearchResultItem(BaseModel):
    """One ranked document in a response.

    For fused responses `score` is an RRF score: only meaningful for ordering
    within a single response.
    """

    id: str
    title: str
    snippet: Optional[str] = None
    score: Optional[float] = None
    url: Optional[str] = None


class SearchResponse(BaseModel):
    """Page of search results."""

    total: int = Field(default=0, ge=0)
    items: list[SearchResultItem] = Field(default_factory=list)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1)
    no_strong_matches: Optional[bool] = Field(
        default=None,
        description="True when results were filtered out due to low confidence",
    )


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


class SearchLogEntry(BaseModel):
    """Analytics row describing one search request."""

    tenant_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    query: str
    search_type: SearchType
    result_count: int = Field(..., ge=0)
    duration: int = Field(..., ge=0, description="Milliseconds")
    status: SearchStatus


class SearchLog(SearchLogEntry):
    """Persisted search log row."""

    id: str
    created_at: datetime
