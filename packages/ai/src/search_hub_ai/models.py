"""Pydantic models for Voyage AI API responses.

Docs: https://docs.voyageai.com/reference
"""

from pydantic import BaseModel, ConfigDict, Field


class EmbeddingData(BaseModel):
    """One embedding in a /v1/embeddings response."""

    embedding: list[float]
    index: int = 0

    model_config = ConfigDict(extra="ignore")


class EmbeddingResponse(BaseModel):
    """/v1/embeddings response body."""

    data: list[EmbeddingData] = Field(default_factory=list)
    model: str | None = None

    model_config = ConfigDict(extra="ignore")


class RerankData(BaseModel):
    """One scored document in a /v1/rerank response."""

    index: int
    relevance_score: float = 0.0

    model_config = ConfigDict(extra="ignore")


class RerankResponse(BaseModel):
    """/v1/rerank response body."""

    data: list[RerankData] = Field(default_factory=list)
    model: str | None = None

    model_config = ConfigDict(extra="ignore")


class RerankScore(BaseModel):
    """Relevance of one candidate, addressed by its position in the request.

    Higher score = more relevant.
    """

    index: int
    score: float
