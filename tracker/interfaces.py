# tracker/interfaces.py
"""Collaborator contracts the tracker core is written against."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Protocol

from tracker.categories import Category, CategoryGroup
from tracker.snapshot import Snapshot


class SnapshotFetcher(Protocol):
    async def fetch_snapshot(self, entity_id: str) -> Snapshot:
        """Raises NotFoundError, FormatChangedError or TransientFetchError."""
        ...


class Persistence(Protocol):
    async def persist_category_values(
        self, entity_id: str, group: CategoryGroup, values: Mapping[Category, int]
    ) -> None: ...

    async def persist_entity_activity_timestamp(
        self, entity_id: str, timestamp: datetime
    ) -> None: ...

    async def persist_hiscores_status(self, entity_id: str, on_hiscores: bool) -> None: ...


class TrackerStorage(Persistence, Protocol):
    async def load_all(self) -> dict[str, Any]:
        """Keys: tracked, values, activity, off_hiscores, disabled."""
        ...

    async def add_tracked(self, entity_id: str) -> None: ...

    async def remove_tracked(self, entity_id: str) -> None: ...

    async def set_disabled(self, disabled: bool) -> None: ...


class Notifier(Protocol):
    async def notify(
        self,
        entity_id: str,
        group: CategoryGroup,
        delta: Mapping[Category, int],
        *,
        current: Mapping[Category, int] | None = None,
    ) -> None: ...
