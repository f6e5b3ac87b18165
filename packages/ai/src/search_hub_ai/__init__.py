"""Search Hub AI - embedding and rerank provider client.

Version: 1.0.0

This package provides:
- VoyageClient (httpx) for /v1/embeddings and /v1/rerank
- Response models (pydantic)
"""

from search_hub_ai.client import VoyageClient
from search_hub_ai.models import (
    EmbeddingData,
    EmbeddingResponse,
    RerankData,
    RerankResponse,
    RerankScore,
)

__version__ = "1.0.0"

__all__ = [
    "VoyageClient",
    "EmbeddingData",
    "EmbeddingResponse",
    "RerankData",
    "RerankResponse",
    "RerankScore",
]
