"""Interval-driven background task with per-tick exception isolation."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Runs an async callback every ``interval`` seconds until stopped.

    A failing tick is logged and the loop carries on with the next one.
    Stopping cancels the task; a tick in progress is cancelled with it.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Awaitable[Any]],
        run_immediately: bool = True,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self._interval = interval
        self._callback = callback
        self._run_immediately = run_immediately
        self._task: Optional[asyncio.Task[None]] = None
        self._running = False
        self.ticks = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background loop."""
        if self._task is None or self._task.done():
            self._running = True
            self._task = asyncio.create_task(self._loop(), name=self.name)

    async def stop(self) -> None:
        """Stop the background loop."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

    async def run_once(self) -> Any:
        """Run a single tick, logging and absorbing any failure."""
        self.ticks += 1
        try:
            return await self._callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            self.failures += 1
            logger.exception("Periodic task %s failed", self.name)
            return None

    async def _loop(self) -> None:
        logger.info("Periodic task %s started, interval=%ss", self.name, self._interval)
        try:
            if not self._run_immediately:
                await asyncio.sleep(self._interval)
            while self._running:
                await self.run_once()
                await asyncio.sleep(self._interval)
        finally:
            logger.info("Periodic task %s stopped", self.name)
