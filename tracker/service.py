# tracker/service.py
"""
TrackerService wires the tracker components around one StateStore and exposes
the maintainer operations (track/untrack, enable, rollback, status).

Usage:
    service = TrackerService(fetcher=HiscoresClient(), storage=SqlPersistence(),
                             notifier=ChannelNotifier(client, channel_id))
    await service.hydrate()
    service.start()
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging
from typing import Any

from constants import AUTO_ROLLBACK_ENABLED, REFRESH_INTERVAL_SECONDS
from tracker.anomaly_tracker import AnomalyTracker
from tracker.categories import Category, CategoryGroup
from tracker.interfaces import Notifier, SnapshotFetcher, TrackerStorage
from tracker.loop import RefreshLoop
from tracker.orchestrator import UpdateOrchestrator, UpdateOutcome
from tracker.rollback import RollbackCoordinator, RollbackScanResult, StagedCorrection
from tracker.scheduler import Tier, TieredRefreshScheduler
from tracker.state_store import StateStore
from tracker.timer import RefreshTimer
from utils import format_duration, normalize_entity_id

logger = logging.getLogger(__name__)


class TrackerService:
    def __init__(
        self,
        *,
        fetcher: SnapshotFetcher,
        storage: TrackerStorage,
        notifier: Notifier,
        notice: Callable[[str], Awaitable[None]] | None = None,
        state: StateStore | None = None,
        scheduler: TieredRefreshScheduler | None = None,
        anomalies: AnomalyTracker | None = None,
        timer: RefreshTimer | None = None,
        interval: float = REFRESH_INTERVAL_SECONDS,
        auto_rollback: bool = AUTO_ROLLBACK_ENABLED,
    ) -> None:
        self.storage = storage
        self._notice = notice
        self.state = state or StateStore()
        self.scheduler = scheduler or TieredRefreshScheduler()
        self.anomalies = anomalies or AnomalyTracker()
        self.rollback = RollbackCoordinator(self.state, fetcher, storage, self.anomalies)
        self.orchestrator = UpdateOrchestrator(
            state=self.state,
            scheduler=self.scheduler,
            anomalies=self.anomalies,
            rollback=self.rollback,
            fetcher=fetcher,
            persistence=storage,
            notifier=notifier,
            auto_rollback=auto_rollback,
            on_disabled=self._on_disabled,
        )
        self.loop = RefreshLoop(
            state=self.state,
            scheduler=self.scheduler,
            orchestrator=self.orchestrator,
            rollback=self.rollback,
            timer=timer,
            interval=interval,
        )

    # ---- lifecycle ----
    async def hydrate(self) -> None:
        """Rebuild in-memory state from persistence. Call once before start()."""
        data = await self.storage.load_all()
        tracked = [normalize_entity_id(e) for e in data.get("tracked", [])]
        for eid in tracked:
            if eid:
                self.state.track(eid)
                self.scheduler.add(eid)

        off_hiscores = set(data.get("off_hiscores", ()))
        per_entity: dict[str, dict[CategoryGroup, dict[Category, int]]] = {}
        for group, by_entity in data.get("values", {}).items():
            for eid, values in by_entity.items():
                if self.state.is_tracked(eid) and values:
                    per_entity.setdefault(eid, {})[group] = dict(values)
        for eid, groups in per_entity.items():
            self.state.load(eid, groups, on_hiscores=eid not in off_hiscores)

        for eid, ts in data.get("activity", {}).items():
            if self.state.is_tracked(eid):
                self.scheduler.mark_active(eid, ts)

        self.state.disabled = bool(data.get("disabled", False))
        logger.info(
            "[TRACKER] Hydrated %d tracked entit(ies): %d active, %d inactive, %d primed%s",
            self.scheduler.size(),
            self.scheduler.active_size(),
            self.scheduler.inactive_size(),
            len(per_entity),
            " (updates DISABLED)" if self.state.disabled else "",
        )

    def start(self) -> asyncio.Task:
        return self.loop.start()

    async def stop(self) -> None:
        await self.loop.stop()

    async def update_once(self) -> UpdateOutcome | None:
        return await self.loop.tick()

    # ---- tracking ----
    async def track(self, raw_id: str) -> bool:
        entity_id = normalize_entity_id(raw_id)
        if not entity_id:
            raise ValueError("Entity id must not be empty")
        if self.state.is_tracked(entity_id):
            return False
        await self.storage.add_tracked(entity_id)
        self.state.track(entity_id)
        self.scheduler.add(entity_id)
        logger.info("[TRACKER] Now tracking %s", entity_id)
        return True

    async def untrack(self, raw_id: str) -> bool:
        entity_id = normalize_entity_id(raw_id)
        if not self.state.is_tracked(entity_id):
            return False
        # Drop in-memory state first so an in-flight cycle cannot write after the purge
        self.state.untrack(entity_id)
        self.scheduler.remove(entity_id)
        self.anomalies.clear(entity_id)
        await self.storage.remove_tracked(entity_id)
        logger.info("[TRACKER] Stopped tracking %s", entity_id)
        return True

    def is_tracked(self, raw_id: str) -> bool:
        return self.state.is_tracked(normalize_entity_id(raw_id))

    # ---- disable / enable ----
    async def _on_disabled(self, reason: str) -> None:
        try:
            await self.storage.set_disabled(True)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[TRACKER] Failed to persist disabled flag")
        await self._send_notice(
            "Hiscores format changed; updates are disabled until re-enabled.\n" f"`{reason}`"
        )

    async def enable(self) -> bool:
        """Re-enable updates after a format-change halt. Returns False if already enabled."""
        if not self.state.disabled:
            return False
        await self.storage.set_disabled(False)
        self.state.disabled = False
        self.loop.timer.reset_measurements()
        logger.info("[TRACKER] Updates re-enabled")
        return True

    # ---- rollback ----
    async def begin_rollback(self, raw_id: str | None = None) -> RollbackScanResult:
        entity_id = normalize_entity_id(raw_id) if raw_id else None
        return await self.rollback.begin_scan(entity_id)

    def staged_rollback(self) -> tuple[StagedCorrection, ...]:
        return self.rollback.staged

    async def commit_rollback(self) -> int:
        count = await self.rollback.commit()
        await self._send_notice(f"Rollback commit complete: {count} correction(s) applied.")
        return count

    def discard_rollback(self) -> int:
        return self.rollback.discard()

    async def _send_notice(self, text: str) -> None:
        if self._notice is None:
            return
        try:
            await self._notice(text)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[TRACKER] Failed to send notice")

    # ---- status ----
    def status(self) -> dict[str, Any]:
        interval = self.loop.interval
        return {
            "disabled": self.state.disabled,
            "running": self.loop.running,
            "tracked": self.scheduler.size(),
            "active": self.scheduler.active_size(),
            "inactive": self.scheduler.inactive_size(),
            "off_hiscores": len(self.state.off_hiscores()),
            "counter": self.scheduler.counter,
            "active_rotation": format_duration(
                self.scheduler.estimated_rotation(Tier.ACTIVE, interval)
            ),
            "inactive_rotation": format_duration(
                self.scheduler.estimated_rotation(Tier.INACTIVE, interval)
            ),
            "rollback_phase": self.rollback.phase.value,
            "staged_corrections": len(self.rollback.staged),
            "timer": self.loop.timer.as_dict(),
        }
