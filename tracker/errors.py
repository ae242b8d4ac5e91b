# tracker/errors.py
"""
Exception taxonomy for the tracker core.

FetchError subclasses describe why the upstream could not produce a Snapshot.
DiffPreconditionError / InvalidStatValueError are programming errors raised by
the diff engine. NegativeDeltaAnomaly is the data-anomaly signal that feeds the
strike counter. RollbackInProgress is the caller-visible "try again later".
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tracker.categories import Category


class TrackerError(Exception):
    """Base class for every error raised by the tracker package."""


# ---- upstream ----
class FetchError(TrackerError):
    def __init__(self, entity_id: str, message: str = "") -> None:
        self.entity_id = entity_id
        super().__init__(message or f"Failed to fetch stats for {entity_id!r}")


class NotFoundError(FetchError):
    """The upstream has no record for this entity."""


class FormatChangedError(FetchError):
    """The upstream payload no longer matches the expected contract."""


class TransientFetchError(FetchError):
    """Network error, timeout, throttling or any other retry-next-time failure."""


# ---- diff engine ----
class DiffPreconditionError(TrackerError, ValueError):
    """Known state contains categories the new values do not."""


class InvalidStatValueError(TrackerError, ValueError):
    """A stat value is not a non-negative integer."""


class NegativeDeltaAnomaly(TrackerError):
    def __init__(self, category: Category, before: int, after: int) -> None:
        self.category = category
        self.before = before
        self.after = after
        super().__init__(f"Invalid {category} diff, '{after}' minus '{before}' is '{after - before}'")


# ---- rollback ----
class RollbackInProgress(TrackerError):
    """Another rollback scan or commit holds the rollback lock."""


class RollbackStateError(TrackerError):
    """Commit/discard requested while nothing is staged."""


class EntityNotTrackedError(TrackerError, KeyError):
    def __init__(self, entity_id: str) -> None:
        self.entity_id = entity_id
        super().__init__(entity_id)

    def __str__(self) -> str:
        return f"{self.entity_id!r} is not tracked"
