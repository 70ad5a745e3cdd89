"""Periodic decay-and-prune job."""
import asyncio
from datetime import timedelta
from typing import Optional
from aide.config import settings
from aide.logging import logger
from aide.memory.store import MemoryStore, SweepResult


class DecaySweeper:
    """Runs `MemoryStore.decay_and_prune` at start and then on every interval.

    Sweeps never overlap: a tick that arrives while one is in progress is
    skipped, since running two would apply the decay factor twice. The lock
    here settles ticks on this event loop before any thread is started; the
    store's own lock covers callers that sweep it from elsewhere.
    """

    def __init__(
        self,
        store: MemoryStore,
        interval: timedelta = timedelta(hours=settings.MEMORY_SWEEP_INTERVAL_HOURS),
    ):
        self.store = store
        self.interval = interval
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> Optional[SweepResult]:
        if self._lock.locked():
            logger.info("Decay sweep already in progress, skipping tick")
            return None
        async with self._lock:
            return await asyncio.to_thread(self.store.decay_and_prune)

    async def _loop(self):
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("Decay sweep failed, will retry on next tick")
            await asyncio.sleep(self.interval.total_seconds())

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        self._task = asyncio.create_task(self._loop(), name="decay-sweeper")
        logger.info(f"Decay sweeper started (every {self.interval})")
        return self._task

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Decay sweeper stopped")
