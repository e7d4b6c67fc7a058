"""Periodic background cleanup tasks bound to the application lifecycle."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable

SweepFn = Callable[[], "int | Awaitable[int]"]

LOGGER = logging.getLogger(__name__)


class PeriodicSweeper:
    """Run ``sweep_fn`` every ``interval_seconds`` until stopped.

    Synchronous sweep functions run in the default executor so a slow
    credential store never blocks request handling on the event loop.
    """

    def __init__(
        self,
        *,
        name: str,
        interval_seconds: float,
        sweep_fn: SweepFn,
        logger: Any = LOGGER,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.name = name
        self._interval_seconds = interval_seconds
        self._sweep_fn = sweep_fn
        self._logger = logger
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the sweep loop if not already running."""
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop(), name=f"sweeper:{self.name}")

    async def stop(self) -> None:
        """Signal the loop to exit and wait for it."""
        self._stop_event.set()
        if self._task:
            await self._task
            self._task = None

    async def run_once(self) -> int:
        """Execute a single sweep and return the number of removed entries."""
        if inspect.iscoroutinefunction(self._sweep_fn):
            removed = await self._sweep_fn()
        else:
            loop = asyncio.get_running_loop()
            removed = await loop.run_in_executor(None, self._sweep_fn)
        removed = int(removed or 0)
        if removed:
            self._logger.info(
                "sweep_completed",
                extra={"sweeper": self.name, "removed": removed},
            )
        return removed

    async def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self._interval_seconds
                )
            except asyncio.TimeoutError:
                pass
            else:
                return
            try:
                await self.run_once()
            except Exception:
                self._logger.exception("sweep_failed", extra={"sweeper": self.name})
