"""Search Hub Common - Shared utilities.

Version: 1.0.0

This package provides:
- Settings (pydantic-settings)
- Structured logging (structlog)
- Retry/backoff patterns (tenacity)
- OpenTelemetry instrumentation helpers
- Custom error types
"""

from search_hub_common.config import Settings, get_settings
from search_hub_common.errors import (
    ProviderAPIError,
    ProviderConfigError,
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
    SearchError,
    SearchHubError,
    StorageError,
)
from search_hub_common.instrumentation import (
    get_tracer,
    init_telemetry,
    instrument_function,
)
from search_hub_common.logging_config import (
    bind_search_context,
    clear_search_context,
    configure_logging,
    configure_logging_from_settings,
    get_logger,
)
from search_hub_common.retry import retry_on_exception

__version__ = "1.0.0"

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Logging
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    "bind_search_context",
    "clear_search_context",
    # Retry
    "retry_on_exception",
    # Instrumentation
    "init_telemetry",
    "get_tracer",
    "instrument_function",
    # Errors
    "SearchHubError",
    "StorageError",
    "SearchError",
    "ProviderError",
    "ProviderAPIError",
    "ProviderTimeoutError",
    "ProviderResponseError",
    "ProviderConfigError",
]
