# tracker/state_store.py
"""
In-memory owner of Known State, the tracked-entity registry, listing presence and
the system-wide disabled flag. One instance is created by the service and
injected into every component that needs it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
import logging

from tracker.categories import Category, CategoryGroup
from utils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class KnownState:
    values: dict[CategoryGroup, dict[Category, int]] = field(default_factory=dict)
    last_updated: datetime | None = None
    on_hiscores: bool = True

    def group(self, group: CategoryGroup) -> dict[Category, int]:
        return dict(self.values.get(group, {}))


class StateStore:
    def __init__(self) -> None:
        self._known: dict[str, KnownState] = {}
        self._tracked: set[str] = set()
        self.disabled = False

    # ---- tracked registry ----
    def is_tracked(self, entity_id: str) -> bool:
        return entity_id in self._tracked

    def track(self, entity_id: str) -> bool:
        if entity_id in self._tracked:
            return False
        self._tracked.add(entity_id)
        return True

    def untrack(self, entity_id: str) -> bool:
        if entity_id not in self._tracked:
            return False
        self._tracked.discard(entity_id)
        # Known State only lives as long as the entity is tracked
        self._known.pop(entity_id, None)
        return True

    def tracked_ids(self) -> list[str]:
        return sorted(self._tracked)

    # ---- known state ----
    def is_primed(self, entity_id: str) -> bool:
        state = self._known.get(entity_id)
        return bool(state and state.values)

    def get(self, entity_id: str) -> KnownState | None:
        return self._known.get(entity_id)

    def known_values(self, entity_id: str, group: CategoryGroup) -> dict[Category, int]:
        """Copy of the committed values for one group ({} when never primed)."""
        state = self._known.get(entity_id)
        return state.group(group) if state else {}

    def _ensure(self, entity_id: str) -> KnownState:
        state = self._known.get(entity_id)
        if state is None:
            state = KnownState()
            self._known[entity_id] = state
        return state

    def commit_group(
        self,
        entity_id: str,
        group: CategoryGroup,
        values: Mapping[Category, int],
        *,
        timestamp: datetime | None = None,
    ) -> None:
        """Merge `values` into the entity's Known State for `group`."""
        state = self._ensure(entity_id)
        merged = state.values.setdefault(group, {})
        for category, value in values.items():
            if category.group is not group:
                raise ValueError(f"{category} does not belong to group {group.value}")
            merged[category] = int(value)
        state.last_updated = timestamp or utcnow()

    def set_value(self, entity_id: str, category: Category, value: int) -> None:
        self.commit_group(entity_id, category.group, {category: value})

    def set_on_hiscores(self, entity_id: str, on_hiscores: bool) -> bool:
        """Record listing presence; returns True when the flag changed."""
        state = self._ensure(entity_id)
        changed = state.on_hiscores != on_hiscores
        state.on_hiscores = on_hiscores
        return changed

    def off_hiscores(self) -> list[str]:
        return sorted(eid for eid, s in self._known.items() if not s.on_hiscores)

    def load(
        self,
        entity_id: str,
        values: Mapping[CategoryGroup, Mapping[Category, int]],
        *,
        last_updated: datetime | None = None,
        on_hiscores: bool = True,
    ) -> None:
        """Replace an entity's Known State wholesale (startup hydration)."""
        self._known[entity_id] = KnownState(
            values={g: dict(v) for g, v in values.items()},
            last_updated=last_updated,
            on_hiscores=on_hiscores,
        )
