# tracker/loop.py
"""
Fixed-interval driver: one scheduler draw and one awaited update per tick.

Ticks are skipped while updates are disabled, while a rollback scan or commit is
running, or when nothing is tracked.
"""

from __future__ import annotations

import asyncio
import logging

from constants import REFRESH_INTERVAL_SECONDS
from tracker.orchestrator import UpdateOrchestrator, UpdateOutcome
from tracker.rollback import RollbackCoordinator
from tracker.scheduler import TieredRefreshScheduler
from tracker.state_store import StateStore
from tracker.timer import RefreshTimer

logger = logging.getLogger(__name__)


class RefreshLoop:
    def __init__(
        self,
        *,
        state: StateStore,
        scheduler: TieredRefreshScheduler,
        orchestrator: UpdateOrchestrator,
        rollback: RollbackCoordinator,
        timer: RefreshTimer | None = None,
        interval: float = REFRESH_INTERVAL_SECONDS,
    ) -> None:
        self._state = state
        self._scheduler = scheduler
        self._orchestrator = orchestrator
        self._rollback = rollback
        self.timer = timer or RefreshTimer()
        self.interval = interval
        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> UpdateOutcome | None:
        self.timer.increment_intervals()
        if self._state.disabled:
            return None
        if self._rollback.is_busy:
            logger.debug("[LOOP] Rollback %s; tick skipped", self._rollback.phase.value)
            return None

        entity_id = self._scheduler.next()
        if entity_id is None:
            return None

        outcome = await self._orchestrator.update(entity_id)
        if outcome.active:
            self.timer.increment_updates()
        return outcome

    async def run(self) -> None:
        logger.info("[LOOP] Refresh loop started (interval=%.1fs)", self.interval)
        while not self._stop_event.is_set():
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("[LOOP] Unexpected error during refresh tick")
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except TimeoutError:
                pass
        logger.info("[LOOP] Refresh loop stopped")

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        self._stop_event.clear()
        self.timer.reset_measurements()
        self._task = asyncio.create_task(self.run(), name="tracker_refresh_loop")
        return self._task

    async def stop(self) -> None:
        self._stop_event.set()
        task, self._task = self._task, None
        if task is None:
            return
        try:
            await asyncio.wait_for(task, timeout=max(self.interval, 1.0) + 5.0)
        except TimeoutError:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
