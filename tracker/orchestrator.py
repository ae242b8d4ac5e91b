# tracker/orchestrator.py
"""
One polling cycle for one entity: fetch, diff per category group, notify,
activity bookkeeping, anomaly escalation and persistence.

Category groups are processed independently; a failure in one group is logged
and the remaining groups still run.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import logging

from constants import AUTO_ROLLBACK_ENABLED
from tracker.anomaly_tracker import AnomalyTracker
from tracker.categories import Category, CategoryGroup
from tracker.diff_engine import SilentDrop, compute_diff
from tracker.errors import (
    DiffPreconditionError,
    FormatChangedError,
    InvalidStatValueError,
    NegativeDeltaAnomaly,
    NotFoundError,
    RollbackInProgress,
    TransientFetchError,
)
from tracker.interfaces import Notifier, Persistence, SnapshotFetcher
from tracker.rollback import RollbackCoordinator
from tracker.scheduler import TieredRefreshScheduler
from tracker.snapshot import Snapshot
from tracker.state_store import StateStore
from utils import utcnow

logger = logging.getLogger(__name__)


class UpdateStatus(str, Enum):
    DISABLED = "disabled"
    FORMAT_CHANGED = "format_changed"
    NOT_FOUND = "not_found"
    TRANSIENT = "transient"
    UNTRACKED = "untracked"
    PRIMED = "primed"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass
class UpdateOutcome:
    entity_id: str
    status: UpdateStatus
    deltas: dict[CategoryGroup, dict[Category, int]] = field(default_factory=dict)
    anomalies: list[NegativeDeltaAnomaly] = field(default_factory=list)
    silent_drops: list[SilentDrop] = field(default_factory=list)
    failed_groups: list[CategoryGroup] = field(default_factory=list)
    rolled_back: bool = False

    @property
    def active(self) -> bool:
        return bool(self.deltas)


class UpdateOrchestrator:
    def __init__(
        self,
        *,
        state: StateStore,
        scheduler: TieredRefreshScheduler,
        anomalies: AnomalyTracker,
        rollback: RollbackCoordinator,
        fetcher: SnapshotFetcher,
        persistence: Persistence,
        notifier: Notifier,
        auto_rollback: bool = AUTO_ROLLBACK_ENABLED,
        on_disabled: Callable[[str], Awaitable[None]] | None = None,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self._state = state
        self._scheduler = scheduler
        self._anomalies = anomalies
        self._rollback = rollback
        self._fetcher = fetcher
        self._persistence = persistence
        self._notifier = notifier
        self.auto_rollback = auto_rollback
        self._on_disabled = on_disabled
        self._now = now

    async def update(self, entity_id: str) -> UpdateOutcome:
        if self._state.disabled:
            return UpdateOutcome(entity_id, UpdateStatus.DISABLED)

        # 1. fetch
        try:
            snapshot = await self._fetcher.fetch_snapshot(entity_id)
        except FormatChangedError as e:
            await self._disable(entity_id, e)
            return UpdateOutcome(entity_id, UpdateStatus.FORMAT_CHANGED)
        except NotFoundError:
            logger.info("[UPDATE] %s not found on the hiscores", entity_id)
            await self._record_presence(entity_id, False)
            return UpdateOutcome(entity_id, UpdateStatus.NOT_FOUND)
        except TransientFetchError as e:
            logger.warning("[UPDATE] Transient fetch failure for %s: %s", entity_id, e)
            return UpdateOutcome(entity_id, UpdateStatus.TRANSIENT)

        if not self._state.is_tracked(entity_id):
            logger.info("[UPDATE] %s was untracked during the fetch; cycle dropped", entity_id)
            return UpdateOutcome(entity_id, UpdateStatus.UNTRACKED)

        # 2. priming
        if not self._state.is_primed(entity_id):
            await self._prime(snapshot)
            return UpdateOutcome(entity_id, UpdateStatus.PRIMED)

        await self._record_presence(entity_id, snapshot.on_hiscores)

        # 3. diff each group
        outcome = UpdateOutcome(entity_id, UpdateStatus.UNCHANGED)
        changed: dict[CategoryGroup, list[Category]] = {}
        for group in CategoryGroup:
            categories = await self._update_group(snapshot, group, outcome)
            if categories:
                changed[group] = categories

        # 4. activity
        if outcome.active:
            outcome.status = UpdateStatus.UPDATED
            if not self._state.is_tracked(entity_id):
                return outcome
            ts = self._now()
            self._scheduler.mark_active(entity_id, ts)
            await self._persist(
                "activity timestamp",
                entity_id,
                self._persistence.persist_entity_activity_timestamp(entity_id, ts),
            )

        # 5. anomaly escalation
        if self._anomalies.is_eligible_for_rollback(entity_id):
            outcome.rolled_back = await self._auto_rollback(entity_id)

        # 6. persist changed groups with whatever is now committed
        for group, categories in changed.items():
            if not self._state.is_tracked(entity_id):
                break
            known = self._state.known_values(entity_id, group)
            values = {c: known[c] for c in categories if c in known}
            await self._persist(
                f"{group.value} values",
                entity_id,
                self._persistence.persist_category_values(entity_id, group, values),
            )
        return outcome

    async def _update_group(
        self, snapshot: Snapshot, group: CategoryGroup, outcome: UpdateOutcome
    ) -> list[Category]:
        entity_id = snapshot.entity_id
        if not self._state.is_tracked(entity_id):
            return []
        known = self._state.known_values(entity_id, group)
        after = snapshot.with_defaults(group, known)
        try:
            delta = compute_diff(known, after, group.baseline)
        except NegativeDeltaAnomaly as e:
            strikes = self._anomalies.record_anomaly(entity_id)
            outcome.anomalies.append(e)
            logger.warning("[UPDATE] %s: %s (strike %d)", entity_id, e, strikes)
            return []
        except (DiffPreconditionError, InvalidStatValueError):
            outcome.failed_groups.append(group)
            logger.exception("[UPDATE] Diff failed for %s (%s)", entity_id, group.value)
            return []

        for drop in delta.silent_drops:
            logger.debug(
                "[UPDATE] %s: %s dropped from %d to %d; left unchanged",
                entity_id, drop.category, drop.before, drop.after,
            )
        outcome.silent_drops.extend(delta.silent_drops)
        if not delta:
            return []

        self._anomalies.clear(entity_id)
        outcome.deltas[group] = dict(delta)
        current = {c: after[c] for c in delta}
        self._state.commit_group(entity_id, group, current, timestamp=snapshot.fetched_at)

        try:
            await self._notifier.notify(entity_id, group, dict(delta), current=current)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[UPDATE] Notify failed for %s (%s)", entity_id, group.value)
        return list(delta)

    async def _prime(self, snapshot: Snapshot) -> None:
        entity_id = snapshot.entity_id
        primed: dict[CategoryGroup, dict[Category, int]] = {}
        for group in CategoryGroup:
            values = snapshot.present(group)
            if values:
                self._state.commit_group(entity_id, group, values, timestamp=snapshot.fetched_at)
                primed[group] = values
        self._state.set_on_hiscores(entity_id, snapshot.on_hiscores)
        logger.info("[UPDATE] Primed %s with %d group(s)", entity_id, len(primed))
        for group, values in primed.items():
            if not self._state.is_tracked(entity_id):
                break
            await self._persist(
                f"{group.value} values",
                entity_id,
                self._persistence.persist_category_values(entity_id, group, values),
            )

    async def _record_presence(self, entity_id: str, on_hiscores: bool) -> None:
        if not self._state.is_primed(entity_id):
            return
        if self._state.set_on_hiscores(entity_id, on_hiscores):
            logger.info(
                "[UPDATE] %s is now %s the hiscores", entity_id, "on" if on_hiscores else "off"
            )
            await self._persist(
                "hiscores status",
                entity_id,
                self._persistence.persist_hiscores_status(entity_id, on_hiscores),
            )

    async def _disable(self, entity_id: str, error: FormatChangedError) -> None:
        self._state.disabled = True
        logger.error(
            "[UPDATE] Hiscores format changed while fetching %s; updates disabled: %s",
            entity_id,
            error,
        )
        if self._on_disabled is None:
            return
        try:
            await self._on_disabled(str(error))
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[UPDATE] on_disabled hook failed")

    async def _auto_rollback(self, entity_id: str) -> bool:
        if not self.auto_rollback:
            return False
        logger.warning("[UPDATE] %s is eligible for rollback; scanning", entity_id)
        try:
            result = await self._rollback.begin_scan(entity_id)
            if result.nothing_to_roll_back:
                return False
            await self._rollback.commit()
            return True
        except RollbackInProgress:
            logger.warning("[UPDATE] Rollback already in progress; skipped for %s", entity_id)
            return False
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[UPDATE] Automatic rollback failed for %s", entity_id)
            return False
        finally:
            self._anomalies.clear(entity_id)

    async def _persist(self, what: str, entity_id: str, coro: Awaitable[None]) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[UPDATE] Failed to persist %s for %s", what, entity_id)
