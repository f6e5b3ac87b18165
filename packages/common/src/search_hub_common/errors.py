"""Custom error types for the search-hub retrieval engine.

All errors follow the "fail fast" principle with explicit messages.
Provider errors are the only ones recorded on the circuit breaker.
"""


class SearchHubError(Exception):
    """Base exception for all search-hub errors."""

    pass


class StorageError(SearchHubError):
    """Error during database operations."""

    pass


class SearchError(SearchHubError):
    """Error during search operations (lexical, semantic or hybrid)."""

    pass


class ProviderError(SearchHubError):
    """Error calling the external embedding/rerank provider."""

    pass


class ProviderAPIError(ProviderError):
    """Non-success HTTP response from the provider.

    Attributes:
        status_code: HTTP status code returned by the provider
        message: Response body (truncated) or generated message
        endpoint: The provider endpoint that was called
    """

    def __init__(self, status_code: int, message: str, endpoint: str = ""):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"Provider error {status_code} at {endpoint}: {message}")


class ProviderTimeoutError(ProviderError):
    """Provider call exceeded its time budget."""

    pass


class ProviderResponseError(ProviderError):
    """Provider answered with a payload the engine cannot use.

    Examples: wrong embedding dimension, rerank index out of range.
    """

    pass


class ProviderConfigError(ProviderError):
    """Provider client is misconfigured (e.g. missing API key)."""

    pass
