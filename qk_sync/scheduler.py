from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .engine import SyncEngine


log = logging.getLogger(__name__)


class PeriodicSync:
    """Host-owned timer that triggers a sync cycle every ``interval_s`` seconds.

    The first cycle runs immediately. ``max_cycles`` bounds the loop; None runs
    until ``stop()`` cancels the task.
    """

    def __init__(self, engine: SyncEngine, interval_s: float, max_cycles: Optional[int] = None) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.engine = engine
        self.interval_s = float(interval_s)
        self.max_cycles = max_cycles
        self.cycles = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self.running:
            assert self._task is not None
            return self._task
        self._task = asyncio.create_task(self._run(), name="quote-sync-timer")
        return self._task

    async def stop(self) -> None:
        task = self._task
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    async def _run(self) -> None:
        while self.max_cycles is None or self.cycles < self.max_cycles:
            await self.engine.trigger_sync()
            self.cycles += 1
            log.debug("sync timer completed cycle %d", self.cycles)
            if self.max_cycles is not None and self.cycles >= self.max_cycles:
                break
            await asyncio.sleep(self.interval_s)
