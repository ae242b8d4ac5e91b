# tracker/snapshot.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType

from tracker.categories import Category, CategoryGroup, group_values
from utils import utcnow


@dataclass(frozen=True)
class Snapshot:
    """
    One fetch's view of an entity's stats.

    `values` maps every category the upstream reported to its value; a value of
    None means the upstream listed the category but withheld the number
    ("missing", which is not the same as zero).
    """

    entity_id: str
    values: Mapping[Category, int | None]
    on_hiscores: bool = True
    display_name: str | None = None
    fetched_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        # Freeze a private copy so callers cannot mutate the snapshot afterwards
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def reported(self, group: CategoryGroup) -> dict[Category, int | None]:
        return group_values(self.values, group)

    def present(self, group: CategoryGroup) -> dict[Category, int]:
        return {c: v for c, v in self.values.items() if c.group is group and v is not None}

    def missing(self, group: CategoryGroup | None = None) -> set[Category]:
        return {
            c
            for c, v in self.values.items()
            if v is None and (group is None or c.group is group)
        }

    def with_defaults(
        self, group: CategoryGroup, known: Mapping[Category, int] | None = None
    ) -> dict[Category, int]:
        """
        Reported values for `group` with missing entries patched from `known`,
        falling back to the group baseline when nothing is known.

        Known categories the upstream did not list at all are carried over from
        `known` unchanged, so the result always covers every known category.
        """
        known = known or {}
        out: dict[Category, int] = {}
        for category, value in self.reported(group).items():
            if value is None:
                out[category] = known.get(category, group.baseline)
            else:
                out[category] = value
        for category, value in group_values(known, group).items():
            out.setdefault(category, value)
        return out
