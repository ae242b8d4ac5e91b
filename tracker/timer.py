# tracker/timer.py
from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

from utils import utcnow


class RefreshTimer:
    """Boot time plus interval/update throughput since the last reset."""

    def __init__(self, now: Callable[[], datetime] = utcnow) -> None:
        self._now = now
        self.boot = now()
        self.reset_measurements()

    def reset_measurements(self) -> None:
        self.measure_start = self._now()
        self.interval_count = 0
        self.update_count = 0

    def increment_intervals(self) -> None:
        self.interval_count += 1

    def increment_updates(self) -> None:
        self.update_count += 1

    def time_since_boot(self) -> timedelta:
        return self._now() - self.boot

    def effective_refresh_interval(self) -> timedelta | None:
        if self.interval_count == 0:
            return None
        return (self._now() - self.measure_start) / self.interval_count

    def updates_per_minute(self) -> float:
        minutes = (self._now() - self.measure_start).total_seconds() / 60
        if minutes <= 0:
            return 0.0
        return self.update_count / minutes

    def intervals_between_updates(self) -> float | None:
        if self.update_count == 0:
            return None
        return self.interval_count / self.update_count

    def as_dict(self) -> dict:
        effective = self.effective_refresh_interval()
        return {
            "boot": self.boot.isoformat(),
            "uptime_seconds": int(self.time_since_boot().total_seconds()),
            "intervals": self.interval_count,
            "updates": self.update_count,
            "effective_interval_seconds": effective.total_seconds() if effective else None,
            "updates_per_minute": round(self.updates_per_minute(), 1),
            "intervals_between_updates": self.intervals_between_updates(),
        }
