"""Best-effort aggregate counts over the user's whole task set."""

import logging

from taskboard.api.models import StatsSnapshot
from taskboard.remote.task_service import TaskService

logger = logging.getLogger(__name__)


class StatsAggregator:
    """Holds the latest StatsSnapshot.

    Refreshes are numbered when dispatched; a response older than the one
    already applied is dropped, so the snapshot never moves backward.
    """

    def __init__(self, service: TaskService) -> None:
        self._service = service
        self._snapshot = StatsSnapshot()
        self._issued = 0
        self._applied = 0

    @property
    def snapshot(self) -> StatsSnapshot:
        return self._snapshot

    async def refresh(self) -> None:
        """Fetch fresh counts. Failures keep the previous snapshot and are not surfaced."""
        self._issued += 1
        seq = self._issued

        try:
            snapshot = await self._service.get_stats()
        except Exception as e:
            logger.debug(f"[StatsAggregator] Refresh #{seq} failed, keeping snapshot: {e}")
            return

        if seq <= self._applied:
            logger.debug(
                f"[StatsAggregator] Dropping stale refresh #{seq} (applied #{self._applied})"
            )
            return

        self._applied = seq
        self._snapshot = snapshot
        logger.debug(f"[StatsAggregator] Applied refresh #{seq}: total={snapshot.total}")

    def reset(self) -> None:
        """Forget counts (on logout). Refreshes still in flight are dropped."""
        self._snapshot = StatsSnapshot()
        self._applied = self._issued
