"""Async Voyage AI client for query embeddings and reranking.

Base URL: https://api.voyageai.com
Docs: https://docs.voyageai.com/reference

Calls are not retried here. The circuit breaker in the search engine
decides when the provider may be tried again.
"""

from typing import Any, Optional

import httpx
from pydantic import ValidationError
from search_hub_common import (
    ProviderAPIError,
    ProviderConfigError,
    ProviderResponseError,
    ProviderTimeoutError,
    Settings,
    get_logger,
    get_settings,
)
from search_hub_contracts import InputType

from search_hub_ai.models import EmbeddingResponse, RerankResponse, RerankScore

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.voyageai.com"
DEFAULT_EMBED_MODEL = "voyage-3.5"
DEFAULT_RERANK_MODEL = "rerank-2.5-lite"
DEFAULT_DIMENSION = 1024


class VoyageClient:
    """Async embedding + rerank client.

    Example:
        >>> async with VoyageClient(api_key="pa-...") as client:
        ...     [vector] = await client.embed(["budget review"], input_type="query")
        ...     scores = await client.rerank("budget review", ["Q3 budget", "Team offsite"])

    The client can also be used without ``async with``: the underlying
    httpx client is created on first use and released by ``aclose()``.

    Attributes:
        base_url: API base URL
        api_key: Voyage API key (required before the first call)
        embed_model: Embedding model name
        rerank_model: Rerank model name
        dimension: Expected embedding dimension
        timeout_seconds: Per-request timeout
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        embed_model: str = DEFAULT_EMBED_MODEL,
        rerank_model: str = DEFAULT_RERANK_MODEL,
        dimension: int = DEFAULT_DIMENSION,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.embed_model = embed_model
        self.rerank_model = rerank_model
        self.dimension = dimension
        self.timeout_seconds = timeout_seconds

        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "VoyageClient":
        """Build a client from VOYAGE_* settings."""
        settings = settings or get_settings()
        return cls(
            api_key=settings.voyage_api_key,
            base_url=settings.voyage_base_url,
            embed_model=settings.voyage_embed_model,
            rerank_model=settings.voyage_rerank_model,
            dimension=settings.embedding_dimension,
            timeout_seconds=settings.provider_timeout_seconds,
        )

    async def __aenter__(self) -> "VoyageClient":
        """Async context manager entry."""
        self._ensure_client()
        return self

    async def __aexit__(self, *args) -> None:
        """Async context manager exit."""
        await self.aclose()

    async def aclose(self) -> None:
        """Release the HTTP connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if not self.api_key:
            raise ProviderConfigError("VOYAGE_API_KEY is not configured")

        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                    "User-Agent": "search-hub/1.0.0",
                },
                timeout=httpx.Timeout(self.timeout_seconds),
            )
            logger.info(
                "voyage_client_initialized",
                base_url=self.base_url,
                embed_model=self.embed_model,
                rerank_model=self.rerank_model,
            )

        return self._client

    # -------------------------------------------------------------------------
    # Provider operations
    # -------------------------------------------------------------------------

    async def embed(
        self,
        texts: list[str],
        input_type: InputType | str = InputType.DOCUMENT,
    ) -> list[list[float]]:
        """Embed a batch of texts.

        Args:
            texts: Inputs to embed
            input_type: "query" for search queries, "document" for indexed text

        Returns:
            One vector per input, in input order

        Raises:
            ProviderAPIError: Non-2xx response
            ProviderTimeoutError: Request timed out
            ProviderResponseError: Vector dimension mismatch or malformed body
        """
        if not texts:
            return []

        endpoint = "/v1/embeddings"
        payload = {
            "model": self.embed_model,
            "input": texts,
            "input_type": InputType(input_type).value,
            "output_dimension": self.dimension,
        }

        body = await self._post(endpoint, payload)
        try:
            parsed = EmbeddingResponse(**body)
        except ValidationError as e:
            raise ProviderResponseError(f"Malformed embedding response: {e}") from e

        vectors = [item.embedding for item in sorted(parsed.data, key=lambda d: d.index)]
        for vector in vectors:
            if len(vector) != self.dimension:
                raise ProviderResponseError(
                    f"Embedding dimension mismatch. Expected {self.dimension}, got {len(vector)}"
                )

        return vectors

    async def embed_query(self, text: str) -> list[float]:
        """Embed a single search query."""
        vectors = await self.embed([text], input_type=InputType.QUERY)
        if not vectors:
            raise ProviderResponseError("Embedding response contained no vectors")
        return vectors[0]

    async def rerank(self, query: str, documents: list[str]) -> list[RerankScore]:
        """Score documents against a query.

        Args:
            query: Search query
            documents: Candidate texts

        Returns:
            Scores addressed by index into ``documents`` (higher = better).
            Empty input returns [] without a request.
        """
        if not documents:
            return []

        endpoint = "/v1/rerank"
        payload = {
            "model": self.rerank_model,
            "query": query,
            "documents": documents,
        }

        body = await self._post(endpoint, payload)
        try:
            parsed = RerankResponse(**body)
        except ValidationError as e:
            raise ProviderResponseError(f"Malformed rerank response: {e}") from e

        return [RerankScore(index=d.index, score=d.relevance_score) for d in parsed.data]

    async def _post(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST JSON and return the decoded body.

        Raises:
            ProviderAPIError: On non-2xx responses
            ProviderTimeoutError: On request timeout
        """
        client = self._ensure_client()

        logger.debug("provider_request", endpoint=endpoint)

        try:
            response = await client.post(endpoint, json=payload)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"Provider request to {endpoint} timed out") from e
        except httpx.HTTPError as e:
            raise ProviderAPIError(0, str(e), endpoint) from e

        if response.status_code >= 300:
            raise ProviderAPIError(
                response.status_code,
                response.text[:500],
                endpoint,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderResponseError(f"Provider returned invalid JSON at {endpoint}") from e
