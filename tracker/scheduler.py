# tracker/scheduler.py
"""
Two-tier refresh scheduler.

Entities with positive activity inside the inactivity threshold live in the
Active rotation, everyone else in the Inactive rotation. Out of every
N = min(max_active_draws, 1 + |Active|) draws, one comes from Inactive and the
rest from Active, so active entities are polled far more often while inactive
ones are never starved.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from enum import Enum
import logging

from constants import INACTIVITY_THRESHOLD, MAX_ACTIVE_DRAWS
from tracker.rotation import Rotation
from utils import ensure_aware_utc, utcnow

logger = logging.getLogger(__name__)


class Tier(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class TieredRefreshScheduler:
    def __init__(
        self,
        *,
        now: Callable[[], datetime] = utcnow,
        inactivity_threshold: timedelta = INACTIVITY_THRESHOLD,
        max_active_draws: int = MAX_ACTIVE_DRAWS,
    ) -> None:
        if max_active_draws < 1:
            raise ValueError("max_active_draws must be >= 1")
        self._now = now
        self.inactivity_threshold = inactivity_threshold
        self.max_active_draws = max_active_draws
        self._active = Rotation()
        self._inactive = Rotation()
        self._last_active: dict[str, datetime] = {}
        self._counter = 0

    # ---- membership ----
    def add(self, entity_id: str) -> bool:
        if self.contains(entity_id):
            return False
        return self._inactive.add(entity_id)

    def remove(self, entity_id: str) -> bool:
        # last-active timestamps are kept; they are history, not membership
        return self._active.remove(entity_id) or self._inactive.remove(entity_id)

    def contains(self, entity_id: str) -> bool:
        return entity_id in self._active or entity_id in self._inactive

    # ---- drawing ----
    def draw_cycle_length(self) -> int:
        return min(self.max_active_draws, 1 + len(self._active))

    def next(self) -> str | None:
        if not self._active and not self._inactive:
            return None

        self._counter = (self._counter + 1) % self.draw_cycle_length()
        if self._counter == 0:
            primary, fallback = self._inactive, self._active
        else:
            primary, fallback = self._active, self._inactive

        entity_id = primary.next()
        if entity_id is None:
            entity_id = fallback.next()
        if entity_id is not None:
            self._relocate(entity_id)
        return entity_id

    def mark_active(self, entity_id: str, timestamp: datetime | None = None) -> None:
        """
        Record positive activity for `entity_id`.

        An older timestamp than the one already recorded is ignored. An Inactive
        entity that is now fresh moves to Active immediately.
        """
        ts = ensure_aware_utc(timestamp) if timestamp is not None else self._now()
        previous = self._last_active.get(entity_id)
        if previous is not None and ts <= previous:
            return
        self._last_active[entity_id] = ts

        if entity_id in self._inactive and self._is_fresh(entity_id):
            self._inactive.remove(entity_id)
            self._active.add(entity_id)
            logger.info("[SCHEDULER] %s moved to the active tier", entity_id)

    def _is_fresh(self, entity_id: str) -> bool:
        ts = self._last_active.get(entity_id)
        if ts is None:
            return False
        return self._now() - ts < self.inactivity_threshold

    def _relocate(self, entity_id: str) -> None:
        fresh = self._is_fresh(entity_id)
        if entity_id in self._active and not fresh:
            self._active.remove(entity_id)
            self._inactive.add(entity_id)
            logger.info("[SCHEDULER] %s moved to the inactive tier", entity_id)
        elif entity_id in self._inactive and fresh:
            self._inactive.remove(entity_id)
            self._active.add(entity_id)
            logger.info("[SCHEDULER] %s moved to the active tier", entity_id)

    # ---- introspection ----
    def tier_of(self, entity_id: str) -> Tier | None:
        if entity_id in self._active:
            return Tier.ACTIVE
        if entity_id in self._inactive:
            return Tier.INACTIVE
        return None

    def size(self) -> int:
        return len(self._active) + len(self._inactive)

    def active_size(self) -> int:
        return len(self._active)

    def inactive_size(self) -> int:
        return len(self._inactive)

    @property
    def counter(self) -> int:
        return self._counter

    def last_active(self, entity_id: str) -> datetime | None:
        return self._last_active.get(entity_id)

    def time_since_last_active(self, entity_id: str) -> timedelta | None:
        ts = self._last_active.get(entity_id)
        if ts is None:
            return None
        return self._now() - ts

    def sorted_ids(self, tier: Tier | None = None) -> list[str]:
        if tier is Tier.ACTIVE:
            return self._active.sorted()
        if tier is Tier.INACTIVE:
            return self._inactive.sorted()
        return sorted([*self._active, *self._inactive])

    def estimated_rotation(self, tier: Tier, interval: timedelta | float) -> timedelta:
        """Approximate time for every entity in `tier` to be polled once."""
        if not isinstance(interval, timedelta):
            interval = timedelta(seconds=interval)
        if tier is Tier.ACTIVE:
            return interval * len(self._active)
        return interval * (len(self._inactive) * self.draw_cycle_length())
