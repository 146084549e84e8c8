"""Cancellable auto-reset timer."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional


class ResetScheduler:
    """Holds at most one pending reset task.

    Each ``schedule`` call cancels the previous task and bumps a generation
    counter; a task that wakes up after being superseded does nothing.
    """

    def __init__(self):
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self._deadline: Optional[float] = None
        self.logger = logging.getLogger(__name__)

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def remaining(self) -> Optional[float]:
        """Seconds until the pending reset fires, if one is scheduled."""
        if not self.pending or self._deadline is None:
            return None
        return max(0.0, self._deadline - asyncio.get_running_loop().time())

    def schedule(self, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        """Run ``callback`` after ``delay`` seconds, replacing any pending reset."""
        self.cancel()
        self._generation += 1
        loop = asyncio.get_running_loop()
        self._deadline = loop.time() + delay
        self._task = loop.create_task(self._fire(self._generation, delay, callback))

    def cancel(self) -> None:
        """Drop the pending reset, if any."""
        if self._task is not None and not self._task.done():
            # Never cancel the task we are running inside of
            if self._task is not asyncio.current_task():
                self._task.cancel()
        self._task = None
        self._deadline = None
        self._generation += 1

    async def _fire(self, generation: int, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        """Sleep, then run ``callback`` unless superseded meanwhile."""
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            return

        if generation != self._generation:
            self.logger.debug("Discarding stale reset timer")
            return

        self._task = None
        self._deadline = None
        await callback()
