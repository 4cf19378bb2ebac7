"""Scheduler for periodic trigger cache reloads.

Rule changes made through the bot reload the cache immediately, so this loop
only exists to pick up edits made directly in the database and to recover
from any missed reload. It runs as a background asyncio task and never blocks
message handling.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from nekovilo.util.logger import get_logger

logger = get_logger("reload_scheduler")


class ReloadScheduler:
    """
    Background task that calls ``reload`` every interval.

    Args:
        name: Human-readable name for logging.
        reload: Async callable performing one reload.
        get_interval: Callable returning the interval in seconds (called at start).
    """

    def __init__(
        self,
        name: str,
        reload: Callable[[], Awaitable[object]],
        get_interval: Callable[[], float],
    ) -> None:
        self._name = name
        self._reload = reload
        self._get_interval = get_interval
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run_loop(self, interval: float) -> None:
        """Infinite loop: sleep, reload, repeat.

        The first reload happens one interval after start since startup
        already performs its own reload before the bot connects.
        """
        logger.info("[%s] Starting periodic reload (interval=%.1fs)", self._name, interval)
        try:
            while True:
                await asyncio.sleep(interval)
                try:
                    await self._reload()
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logger.error("[%s] Unexpected error during reload: %s", self._name, exc)
        except asyncio.CancelledError:
            logger.info("[%s] Periodic reload cancelled", self._name)
            raise

    def start(self) -> None:
        """Start the background reload task if not already running."""
        if self.is_running:
            logger.warning("[%s] Reload task already running", self._name)
            return
        interval = self._get_interval()
        self._task = asyncio.create_task(self._run_loop(interval))

    async def shutdown(self) -> None:
        """Stop the task and wait for it to finish. Safe when not running."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("[%s] Scheduler shutdown complete", self._name)
