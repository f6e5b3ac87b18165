"""Search Hub Storage - PostgreSQL retrieval layer.

Version: 1.0.0

This package provides:
- asyncpg connection pool management
- SearchStore (full-text, vector, adjacent-chunk and metadata queries)
- SearchLogStore (search analytics rows)
"""

from search_hub_storage.connection import (
    DatabaseConfig,
    check_connection_health,
    close_connection_pool,
    get_connection_pool,
)
from search_hub_storage.search_log_store import SearchLogStore
from search_hub_storage.search_store import SearchStore, build_tsquery

__version__ = "1.0.0"

__all__ = [
    # Connection
    "DatabaseConfig",
    "get_connection_pool",
    "close_connection_pool",
    "check_connection_health",
    # Stores
    "SearchStore",
    "SearchLogStore",
    "build_tsquery",
]
