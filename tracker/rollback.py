# tracker/rollback.py
"""
Two-phase rollback of Known State after an upstream data rollback.

begin_scan() takes the rollback lock, compares every known value with a fresh
fetch and stages a correction wherever upstream is now lower. The staged list
can be inspected, then either committed (state + persistence) or discarded.
The lock is held from the start of the scan until commit/discard, and a second
caller gets RollbackInProgress instead of queueing.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
import logging

from tracker.anomaly_tracker import AnomalyTracker
from tracker.categories import Category, CategoryGroup
from tracker.errors import (
    EntityNotTrackedError,
    FetchError,
    NotFoundError,
    RollbackInProgress,
    RollbackStateError,
)
from tracker.interfaces import Persistence, SnapshotFetcher
from tracker.state_store import StateStore

logger = logging.getLogger(__name__)


class RollbackPhase(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    STAGED = "staged"
    COMMITTING = "committing"


@dataclass(frozen=True)
class StagedCorrection:
    entity_id: str
    category: Category
    corrected_value: int
    replaced_value: int

    def describe(self) -> str:
        return (
            f"{self.entity_id}: {self.category.label} dropped from "
            f"{self.replaced_value} to {self.corrected_value}"
        )


@dataclass(frozen=True)
class RollbackScanResult:
    scanned: int
    skipped: tuple[str, ...]
    staged: tuple[StagedCorrection, ...]

    @property
    def nothing_to_roll_back(self) -> bool:
        return not self.staged


class RollbackCoordinator:
    def __init__(
        self,
        state: StateStore,
        fetcher: SnapshotFetcher,
        persistence: Persistence,
        anomalies: AnomalyTracker,
    ) -> None:
        self._state = state
        self._fetcher = fetcher
        self._persistence = persistence
        self._anomalies = anomalies
        self._lock = asyncio.Lock()
        self._phase = RollbackPhase.IDLE
        self._staged: list[StagedCorrection] = []

    @property
    def phase(self) -> RollbackPhase:
        return self._phase

    @property
    def is_busy(self) -> bool:
        """True while a scan or commit is actively running."""
        return self._phase in (RollbackPhase.SCANNING, RollbackPhase.COMMITTING)

    @property
    def staged(self) -> tuple[StagedCorrection, ...]:
        return tuple(self._staged)

    def _acquire(self) -> None:
        # Fail fast rather than queue behind another scan
        if self._lock.locked():
            raise RollbackInProgress("Rollback in progress, try again later")

    async def begin_scan(self, entity_id: str | None = None) -> RollbackScanResult:
        if entity_id is not None and not self._state.is_tracked(entity_id):
            raise EntityNotTrackedError(entity_id)

        self._acquire()
        await self._lock.acquire()
        self._phase = RollbackPhase.SCANNING
        try:
            scope = [entity_id] if entity_id is not None else self._state.tracked_ids()
            logger.info("[ROLLBACK] Scanning %d entit(ies) for rollback-impacted data", len(scope))
            staged: list[StagedCorrection] = []
            skipped: list[str] = []
            for eid in scope:
                corrections = await self._scan_entity(eid)
                if corrections is None:
                    skipped.append(eid)
                    continue
                staged.extend(corrections)
        except BaseException:
            self._reset()
            raise

        self._staged = staged
        result = RollbackScanResult(
            scanned=len(scope), skipped=tuple(skipped), staged=tuple(staged)
        )
        if not staged:
            logger.info("[ROLLBACK] Nothing to roll back")
            self._reset()
        else:
            self._phase = RollbackPhase.STAGED
            logger.info("[ROLLBACK] Staged %d correction(s)", len(staged))
        return result

    async def _scan_entity(self, entity_id: str) -> list[StagedCorrection] | None:
        try:
            snapshot = await self._fetcher.fetch_snapshot(entity_id)
        except NotFoundError:
            logger.info("[ROLLBACK] %s not found upstream; skipped", entity_id)
            return None
        except FetchError as e:
            logger.warning("[ROLLBACK] Fetch failed for %s: %s; skipped", entity_id, e)
            return None

        corrections: list[StagedCorrection] = []
        for group in CategoryGroup:
            known = self._state.known_values(entity_id, group)
            if not known:
                continue
            upstream = snapshot.with_defaults(group, known)
            for category, before in known.items():
                # categories the upstream stopped reporting are left alone
                after = upstream.get(category, before)
                if after < before:
                    corrections.append(StagedCorrection(entity_id, category, after, before))
        for c in corrections:
            logger.info("[ROLLBACK] Detected %s", c.describe())
        return corrections

    async def commit(self) -> int:
        if self._phase is not RollbackPhase.STAGED:
            raise RollbackStateError(f"Nothing staged to commit (phase={self._phase.value})")

        self._phase = RollbackPhase.COMMITTING
        committed = 0
        try:
            touched: set[str] = set()
            for c in self._staged:
                if not self._state.is_tracked(c.entity_id):
                    logger.info("[ROLLBACK] %s is no longer tracked; correction dropped", c.entity_id)
                    continue
                self._state.set_value(c.entity_id, c.category, c.corrected_value)
                touched.add(c.entity_id)
                try:
                    await self._persistence.persist_category_values(
                        c.entity_id, c.category.group, {c.category: c.corrected_value}
                    )
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("[ROLLBACK] Failed to persist correction %s", c.describe())
                committed += 1
            for eid in touched:
                self._anomalies.clear(eid)
            logger.info("[ROLLBACK] Committed %d correction(s)", committed)
        finally:
            self._reset()
        return committed

    def discard(self) -> int:
        if self._phase is not RollbackPhase.STAGED:
            raise RollbackStateError(f"Nothing staged to discard (phase={self._phase.value})")
        count = len(self._staged)
        self._reset()
        logger.info("[ROLLBACK] Discarded %d staged correction(s)", count)
        return count

    def _reset(self) -> None:
        self._staged = []
        self._phase = RollbackPhase.IDLE
        if self._lock.locked():
            self._lock.release()
