# tracker/anomaly_tracker.py
from __future__ import annotations

import logging

from constants import ROLLBACK_STRIKE_THRESHOLD

logger = logging.getLogger(__name__)


class AnomalyTracker:
    """
    Per-entity strike counter for negative-delta anomalies.

    Counts live only in memory; a restart starts everyone back at zero.
    """

    def __init__(self, threshold: int = ROLLBACK_STRIKE_THRESHOLD) -> None:
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        self.threshold = threshold
        self._strikes: dict[str, int] = {}

    def record_anomaly(self, entity_id: str) -> int:
        count = self._strikes.get(entity_id, 0) + 1
        self._strikes[entity_id] = count
        if count == self.threshold:
            logger.warning(
                "[ANOMALY] %s reached %d strikes; eligible for rollback", entity_id, count
            )
        return count

    def clear(self, entity_id: str) -> None:
        if self._strikes.pop(entity_id, 0):
            logger.debug("[ANOMALY] Cleared strikes for %s", entity_id)

    def strikes(self, entity_id: str) -> int:
        return self._strikes.get(entity_id, 0)

    def is_eligible_for_rollback(self, entity_id: str) -> bool:
        return self.strikes(entity_id) >= self.threshold

    def snapshot(self) -> dict[str, int]:
        return dict(self._strikes)
