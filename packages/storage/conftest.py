"""Shared test fixtures for storage package.

Stores are exercised against a mocked asyncpg pool so tests need no
running PostgreSQL. Rows are plain dicts, which support the same
``row["column"]`` access as asyncpg.Record.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from search_hub_storage import connection


@pytest.fixture
def mock_conn():
    """Connection whose fetch/fetchrow/fetchval/execute are AsyncMocks."""
    return AsyncMock()


@pytest.fixture
def mock_pool(mock_conn, monkeypatch):
    """Install a fake global pool handing out ``mock_conn``."""
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = mock_conn
    pool.acquire.return_value.__aexit__.return_value = False
    pool.close = AsyncMock()

    monkeypatch.setattr(connection, "_connection_pool", pool)
    yield pool
    monkeypatch.setattr(connection, "_connection_pool", None)
