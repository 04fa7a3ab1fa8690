import asyncio
import contextlib
import logging
from typing import Optional

from .engine import ReconciliationEngine
from .schemas import SyncResult

logger = logging.getLogger(__name__)


class AutoSyncScheduler:
    """Runs the engine's auto-sync on a fixed interval and on foreground events."""

    def __init__(self, engine: ReconciliationEngine, interval_minutes: float):
        self.engine = engine
        self.interval_seconds = interval_minutes * 60
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="auto-sync")
        logger.info("Auto-sync scheduled every %g minute(s)", self.interval_seconds / 60)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Auto-sync stopped")

    async def on_foreground(self) -> Optional[SyncResult]:
        return await self.engine.auto_sync("foreground")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.engine.auto_sync("interval")
            except Exception:
                logger.exception("Interval auto-sync failed")
