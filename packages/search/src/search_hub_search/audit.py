"""Best-effort search analytics logging.

Audit writes must never affect the search response: every failure is
caught and logged here.
"""

import asyncio
from typing import Any, Optional

from search_hub_common import get_logger
from search_hub_contracts import SearchLogEntry, SearchStatus, SearchType

logger = get_logger(__name__)


class SearchAuditLogger:
    """Records one search_logs row per search.

    Args:
        store: Object with async create(entry) (e.g. SearchLogStore)
    """

    def __init__(self, store: Any) -> None:
        self.store = store
        self._pending: set[asyncio.Task] = set()

    async def log_search(
        self,
        tenant_id: str,
        user_id: str,
        query: str,
        search_type: SearchType | str,
        result_count: int,
        duration: int,
        status: SearchStatus | str,
    ) -> None:
        """Persist one audit row. Never raises."""
        try:
            entry = SearchLogEntry(
                tenant_id=tenant_id,
                user_id=user_id,
                query=query,
                search_type=search_type,
                result_count=result_count,
                duration=duration,
                status=status,
            )
            await self.store.create(entry)
        except Exception as e:
            logger.error(
                "search_log_failed",
                tenant_id=tenant_id,
                user_id=user_id,
                error=str(e),
            )

    def log_search_background(self, **fields: Any) -> Optional[asyncio.Task]:
        """Schedule log_search without waiting for it.

        Must be called from a running event loop. The task is referenced
        until it finishes so it cannot be garbage collected mid-write.
        """
        try:
            task = asyncio.get_running_loop().create_task(self.log_search(**fields))
        except RuntimeError as e:
            logger.error("search_log_not_scheduled", error=str(e))
            return None

        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for background writes still in flight (shutdown, tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending))
