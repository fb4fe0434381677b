"""Local mirror of the task list and the confirm-then-apply mutation protocol."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Protocol

from taskboard.api.models import (
    OperationResult,
    SortField,
    SortOrder,
    StatsSnapshot,
    Task,
    TaskDraft,
    TaskPatch,
    TaskPriority,
    TaskStatus,
)
from taskboard.errors import TaskboardError, Unauthenticated
from taskboard.remote.task_service import TaskService
from taskboard.session.session_manager import SessionManager
from taskboard.session.validation import validate_task_title
from taskboard.tasks.debounce import Debouncer
from taskboard.tasks.query_state import QueryState
from taskboard.tasks.stats import StatsAggregator
from taskboard.websocket.connection_manager import Notifier

logger = logging.getLogger(__name__)

DELETE_PROMPT = "Are you sure you want to delete this task?"

# Query fields whose change reloads immediately; search_term is debounced
_IMMEDIATE_FIELDS = ("status_filter", "priority_filter", "sort_by", "sort_order")


class ConfirmationPrompt(Protocol):
    """Yes/no question asked before a destructive action."""

    async def confirm(self, message: str) -> bool:
        """Return True to proceed."""
        ...


class PresetConfirmation:
    """Answer decided up front, e.g. by a `confirm` flag on a dashboard request."""

    def __init__(self, answer: bool) -> None:
        self._answer = answer

    async def confirm(self, message: str) -> bool:
        return self._answer


class TaskCacheController:
    """Owns the cached task list for the current QueryState.

    - Reloads are numbered at dispatch; only a response newer than every
      applied one replaces the cache, whatever the arrival order.
    - Mutations are applied locally only after the service acknowledges them.
    - Mutations on the same task id run one at a time.
    """

    def __init__(
        self,
        service: TaskService,
        session_manager: SessionManager,
        stats: StatsAggregator,
        notifier: Notifier,
        confirmation: ConfirmationPrompt,
        search_debounce: float = 0.3,
    ) -> None:
        """Initialize controller with an empty cache and default query.

        Args:
            service: Remote task endpoints
            session_manager: Gate for every operation
            stats: Refreshed after each successful mutation
            notifier: User-visible message channel
            confirmation: Default prompt used before deletes
            search_debounce: Seconds between the last search keystroke and the reload
        """
        self.query = QueryState()
        self._service = service
        self._session = session_manager
        self._stats = stats
        self._notifier = notifier
        self._confirmation = confirmation
        self._debouncer = Debouncer(search_debounce, name="search-reload")
        self._tasks: list[Task] = []
        self._issued_seq = 0
        self._applied_seq = 0
        self._in_flight = 0
        # Bumped by reset() so results of requests issued before logout are dropped
        self._epoch = 0
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @property
    def tasks(self) -> tuple[Task, ...]:
        """Read-only view of the cache."""
        return tuple(self._tasks)

    @property
    def stats(self) -> StatsSnapshot:
        return self._stats.snapshot

    @property
    def is_authenticated(self) -> bool:
        return self._session.session.is_authenticated

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @property
    def search_pending(self) -> bool:
        """Whether a debounced search reload is scheduled but not yet sent."""
        return self._debouncer.pending

    async def load(self) -> OperationResult:
        """Initial load after sign-in: tasks for the current query plus stats."""
        result = await self.reload()
        await self._stats.refresh()
        return result

    async def reload(self) -> OperationResult:
        """Fetch tasks for the current query and replace the cache if still newest."""
        self._session.require_authenticated()

        self._issued_seq += 1
        seq = self._issued_seq
        epoch = self._epoch
        params = self.query.to_params()
        logger.debug(f"[TaskCache] Reload #{seq} {params}")

        self._in_flight += 1
        try:
            tasks = await self._service.list_tasks(params)
        except TaskboardError as e:
            if epoch != self._epoch:
                return self._dropped("reload")
            if seq <= self._applied_seq:
                logger.debug(f"[TaskCache] Superseded reload #{seq} failed: {e.message}")
                return OperationResult.ok()
            return self._failed("reload", e, "Failed to load tasks")
        finally:
            self._in_flight -= 1

        if seq <= self._applied_seq:
            logger.debug(
                f"[TaskCache] Discarding stale reload #{seq} (applied #{self._applied_seq})"
            )
            return OperationResult.ok()

        self._applied_seq = seq
        self._tasks = list(tasks)
        logger.info(f"[TaskCache] Applied reload #{seq}: {len(tasks)} tasks")
        return OperationResult.ok()

    def set_search_term(self, term: str) -> None:
        """Record the term and (re)schedule a debounced reload."""
        self._session.require_authenticated()
        if term == self.query.search_term:
            return
        self.query.set_search_term(term)
        self._debouncer.schedule(self._debounced_reload)

    async def set_status_filter(self, status: TaskStatus | None) -> OperationResult | None:
        return await self.update_query(status_filter=status)

    async def set_priority_filter(self, priority: TaskPriority | None) -> OperationResult | None:
        return await self.update_query(priority_filter=priority)

    async def set_sort_by(self, field: SortField) -> OperationResult | None:
        return await self.update_query(sort_by=field)

    async def set_sort_order(self, order: SortOrder) -> OperationResult | None:
        return await self.update_query(sort_order=order)

    async def update_query(self, **changes: Any) -> OperationResult | None:
        """Apply several query changes with at most one reload.

        Filter or sort changes reload immediately (the pending search reload,
        if any, is folded into it). A search-only change is debounced.

        Returns:
            The immediate reload's result, or None when no reload was sent now

        Raises:
            ValueError: Unknown query field
        """
        self._session.require_authenticated()
        unknown = set(changes) - {"search_term", *_IMMEDIATE_FIELDS}
        if unknown:
            raise ValueError(f"Unknown query fields: {', '.join(sorted(unknown))}")

        immediate = False
        for name in _IMMEDIATE_FIELDS:
            if name in changes and changes[name] != getattr(self.query, name):
                getattr(self.query, f"set_{name}")(changes[name])
                immediate = True

        if immediate:
            if "search_term" in changes:
                self.query.set_search_term(changes["search_term"])
            self._debouncer.cancel()
            return await self.reload()

        if "search_term" in changes:
            self.set_search_term(changes["search_term"])
        return None

    async def wait_for_search(self) -> None:
        """Wait until a fired debounced reload has finished."""
        await self._debouncer.wait()

    async def create(self, draft: TaskDraft) -> OperationResult:
        """Create a task; the server's copy goes to the head of the cache."""
        self._session.require_authenticated()
        epoch = self._epoch

        try:
            validate_task_title(draft.title)
            task = await self._service.create_task(draft)
        except TaskboardError as e:
            return self._failed("create", e, "Failed to create task")

        if epoch != self._epoch:
            return self._dropped("create")

        self._tasks.insert(0, task)
        logger.info(f"[TaskCache] Created task {task.id}")
        await self._stats.refresh()
        return self._succeeded("Task created successfully", task)

    async def update(self, task_id: str, patch: TaskPatch) -> OperationResult:
        """Send a partial update and replace the cached entry with the server's copy.

        A task no longer in the cache (e.g. filtered out by a reload in the
        meantime) is left out of it; the cache stays as it is.
        """
        return await self._update(
            task_id, patch, "Task updated successfully", "Failed to update task"
        )

    async def change_status(self, task_id: str, status: TaskStatus) -> OperationResult:
        return await self._update(
            task_id,
            TaskPatch(status=status),
            "Task status updated",
            "Failed to update task status",
        )

    async def delete(
        self, task_id: str, prompt: ConfirmationPrompt | None = None
    ) -> OperationResult:
        """Delete after an affirmative confirmation.

        Args:
            task_id: Task to delete
            prompt: Overrides the controller's default confirmation prompt

        Returns:
            Declined confirmations return an unsuccessful result with no error
        """
        self._session.require_authenticated()

        if not await (prompt or self._confirmation).confirm(DELETE_PROMPT):
            logger.debug(f"[TaskCache] Delete of {task_id} declined")
            return OperationResult(success=False, message="Deletion cancelled")

        epoch = self._epoch
        async with self._serialized(task_id):
            try:
                await self._service.delete_task(task_id)
            except TaskboardError as e:
                return self._failed("delete", e, "Failed to delete task")

            if epoch != self._epoch:
                return self._dropped("delete")

            for index, cached in enumerate(self._tasks):
                if cached.id == task_id:
                    del self._tasks[index]
                    break

        logger.info(f"[TaskCache] Deleted task {task_id}")
        await self._stats.refresh()
        return self._succeeded("Task deleted successfully")

    def reset(self) -> None:
        """Clear cache, query and stats (on logout). In-flight results are dropped."""
        self._debouncer.cancel()
        self._epoch += 1
        self._applied_seq = self._issued_seq
        self._tasks = []
        self.query.reset()
        self._stats.reset()
        logger.info("[TaskCache] Cache reset")

    async def _update(
        self, task_id: str, patch: TaskPatch, success_message: str, failure_message: str
    ) -> OperationResult:
        self._session.require_authenticated()
        epoch = self._epoch

        async with self._serialized(task_id):
            try:
                if "title" in patch.model_fields_set:
                    validate_task_title(patch.title)
                task = await self._service.update_task(task_id, patch)
            except TaskboardError as e:
                return self._failed("update", e, failure_message)

            if epoch != self._epoch:
                return self._dropped("update")

            for index, cached in enumerate(self._tasks):
                if cached.id == task_id:
                    self._tasks[index] = task
                    break
            else:
                logger.debug(f"[TaskCache] Updated task {task_id} is not cached, cache unchanged")

        await self._stats.refresh()
        return self._succeeded(success_message, task)

    @asynccontextmanager
    async def _serialized(self, task_id: str) -> AsyncIterator[None]:
        """Hold the per-id lock; the lock is dropped once nobody waits on it."""
        lock = self._locks.setdefault(task_id, asyncio.Lock())
        self._lock_users[task_id] = self._lock_users.get(task_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[task_id] -= 1
            if self._lock_users[task_id] == 0:
                del self._lock_users[task_id]
                del self._locks[task_id]

    async def _debounced_reload(self) -> None:
        if not self._session.session.is_authenticated:
            return
        await self.reload()

    def _succeeded(self, message: str, task: Task | None = None) -> OperationResult:
        self._notifier.notify("success", message)
        return OperationResult.ok(message, task)

    def _failed(self, operation: str, error: TaskboardError, fallback: str) -> OperationResult:
        result = OperationResult.failed(error, fallback)
        logger.warning(f"[TaskCache] {operation} failed: {result.message}")
        self._notifier.notify("error", result.message or fallback)
        return result

    def _dropped(self, operation: str) -> OperationResult:
        logger.info(f"[TaskCache] Session reset during {operation}, result dropped")
        return OperationResult.failed(Unauthenticated("Session ended"))
