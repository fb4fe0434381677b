"""Single-slot debounced scheduling on the running event loop."""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class Debouncer:
    """Runs the most recently scheduled coroutine once input settles.

    Scheduling replaces and cancels a pending call that has not fired yet.
    Once fired, the coroutine runs to completion; it is never cancelled by
    a later schedule().
    """

    def __init__(self, delay: float, name: str = "debounce") -> None:
        """Initialize debouncer.

        Args:
            delay: Seconds to wait after the last schedule() call
            name: Used for task names and log lines
        """
        self.delay = delay
        self._name = name
        self._handle: asyncio.TimerHandle | None = None
        self._running: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> bool:
        """Whether a scheduled call has not fired yet."""
        return self._handle is not None

    def schedule(self, factory: Callable[[], Coroutine[Any, Any, Any]]) -> None:
        """Schedule `factory()` to run after the delay, replacing any pending call."""
        loop = asyncio.get_running_loop()
        self.cancel()
        self._handle = loop.call_later(self.delay, self._fire, loop, factory)

    def cancel(self) -> None:
        """Drop the pending call, if any. Already-fired calls are unaffected."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            logger.debug(f"[Debouncer] {self._name}: pending call cancelled")

    async def wait(self) -> None:
        """Wait for fired calls that are still running."""
        while self._running:
            await asyncio.gather(*self._running, return_exceptions=True)

    def _fire(
        self,
        loop: asyncio.AbstractEventLoop,
        factory: Callable[[], Coroutine[Any, Any, Any]],
    ) -> None:
        self._handle = None
        task = loop.create_task(factory(), name=self._name)
        self._running.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._running.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"[Debouncer] {self._name} failed: {task.exception()}")
