"""
Stale sweeper: periodic demotion of quiet sessions.

An asyncio task loop that, every ``interval`` seconds, asks the monitor to
move active sessions with no activity for ``stale_after`` seconds to idle.
The sweep itself runs through the monitor's write lock, never here.
"""

import asyncio
from typing import Callable, Optional

from claude_monitor.logger import get_logger

logger = get_logger(__name__)


class StaleSweeper:
    """Runs a sweep callable on a fixed period until stopped."""

    def __init__(self, sweep: Callable[[], list], interval: float = 60.0):
        self.interval = interval
        self._sweep = sweep
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        """Start the sweep loop."""
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"StaleSweeper started (every {self.interval}s).")

    async def stop(self):
        """Stop the sweep loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("StaleSweeper stopped.")

    async def _run_loop(self):
        """Main loop -- sleep first, the monitor sweeps on demand at startup."""
        while self._running:
            try:
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break

            try:
                self._tick()
            except Exception as e:
                logger.error(f"Error in stale sweep: {e}")

    def _tick(self):
        demoted = self._sweep()
        self.runs += 1
        if demoted:
            logger.info(f"Marked {len(demoted)} stale session(s) idle")
