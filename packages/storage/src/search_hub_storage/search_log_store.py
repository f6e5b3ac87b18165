"""SearchLogStore - append-only audit rows for search analytics."""

from datetime import datetime
from uuid import uuid4

from search_hub_common import StorageError, get_logger
from search_hub_contracts import SearchLog, SearchLogEntry

from search_hub_storage.connection import get_connection_pool

logger = get_logger(__name__)

_COLUMNS = (
    "id::text AS id, tenant_id, user_id, query, search_type, "
    "result_count, duration, status, created_at"
)


def _row_to_log(row) -> SearchLog:
    return SearchLog(
        id=row["id"],
        tenant_id=row["tenant_id"],
        user_id=row["user_id"],
        query=row["query"],
        search_type=row["search_type"],
        result_count=row["result_count"],
        duration=row["duration"],
        status=row["status"],
        created_at=row["created_at"],
    )


class SearchLogStore:
    """Storage operations for search_logs.

    All operations use the global connection pool.
    """

    @staticmethod
    async def create(entry: SearchLogEntry) -> SearchLog:
        """Insert one search log row.

        Raises:
            StorageError: If the insert fails
        """
        pool = await get_connection_pool()

        try:
            async with pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO search_logs (
                        id, tenant_id, user_id, query, search_type,
                        result_count, duration, status
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                    RETURNING {_COLUMNS}
                    """,
                    uuid4(),
                    entry.tenant_id,
                    entry.user_id,
                    entry.query,
                    entry.search_type.value,
                    entry.result_count,
                    entry.duration,
                    entry.status.value,
                )
        except Exception as e:
            raise StorageError(f"Failed to create search log: {e}") from e

        return _row_to_log(row)

    @staticmethod
    async def find_recent_by_user(
        tenant_id: str,
        user_id: str,
        limit: int = 20,
    ) -> list[SearchLog]:
        """Most recent searches of one user, newest first."""
        pool = await get_connection_pool()

        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT {_COLUMNS}
                    FROM search_logs
                    WHERE tenant_id = $1 AND user_id = $2
                    ORDER BY created_at DESC
                    LIMIT $3
                    """,
                    tenant_id,
                    user_id,
                    limit,
                )
        except Exception as e:
            raise StorageError(f"Failed to list search logs: {e}") from e

        return [_row_to_log(row) for row in rows]

    @staticmethod
    async def find_by_date_range(
        tenant_id: str,
        start: datetime,
        end: datetime,
    ) -> list[SearchLog]:
        """Searches of a tenant within [start, end], newest first."""
        pool = await get_connection_pool()

        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT {_COLUMNS}
                    FROM search_logs
                    WHERE tenant_id = $1 AND created_at BETWEEN $2 AND $3
                    ORDER BY created_at DESC
                    """,
                    tenant_id,
                    start,
                    end,
                )
        except Exception as e:
            raise StorageError(f"Failed to list search logs: {e}") from e

        return [_row_to_log(row) for row in rows]

    @staticmethod
    async def count_by_tenant(tenant_id: str) -> int:
        """Total searches recorded for a tenant."""
        pool = await get_connection_pool()

        try:
            async with pool.acquire() as conn:
                count = await conn.fetchval(
                    "SELECT COUNT(*) FROM search_logs WHERE tenant_id = $1",
                    tenant_id,
                )
        except Exception as e:
            raise StorageError(f"Failed to count search logs: {e}") from e

        return int(count or 0)

    @staticmethod
    async def delete_older_than(tenant_id: str, before: datetime) -> int:
        """Retention cleanup.

        Returns:
            Number of deleted rows
        """
        pool = await get_connection_pool()

        try:
            async with pool.acquire() as conn:
                result = await conn.execute(
                    "DELETE FROM search_logs WHERE tenant_id = $1 AND created_at < $2",
                    tenant_id,
                    before,
                )
        except Exception as e:
            raise StorageError(f"Failed to delete search logs: {e}") from e

        # asyncpg returns a status tag such as "DELETE 3"
        deleted = int(result.split()[-1])
        logger.info("search_logs_deleted", tenant_id=tenant_id, deleted=deleted)
        return deleted
