# tracker/diff_engine.py
"""
Category-keyed delta between Known State and freshly fetched values.

Legitimate deltas are never negative. A drop straight to 1 is the upstream
forgetting a ranked entry (the entity fell off the listing) and is reported as a
silent drop; any other drop raises NegativeDeltaAnomaly for the strike counter.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from tracker.categories import Category
from tracker.errors import DiffPreconditionError, InvalidStatValueError, NegativeDeltaAnomaly

# Value the upstream reports after an entity falls off a ranked listing
SILENT_DROP_FLOOR = 1


@dataclass(frozen=True)
class SilentDrop:
    category: Category
    before: int
    after: int


class DiffResult(Mapping):
    """Read-only category -> positive delta mapping, plus the silent drops observed."""

    __slots__ = ("_deltas", "silent_drops")

    def __init__(
        self, deltas: Mapping[Category, int], silent_drops: tuple[SilentDrop, ...] = ()
    ) -> None:
        self._deltas = MappingProxyType(dict(deltas))
        self.silent_drops = tuple(silent_drops)

    def __getitem__(self, category: Category) -> int:
        return self._deltas[category]

    def __iter__(self) -> Iterator[Category]:
        return iter(self._deltas)

    def __len__(self) -> int:
        return len(self._deltas)

    @property
    def silent_dropped(self) -> frozenset[Category]:
        return frozenset(d.category for d in self.silent_drops)

    def __repr__(self) -> str:
        return f"DiffResult({dict(self._deltas)!r}, silent_drops={self.silent_drops!r})"


def _check_value(category: Category, value, side: str) -> int:
    # bool is an int subclass but never a legitimate stat value
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidStatValueError(f"Invalid {side} value for {category}: {value!r}")
    return value


def compute_diff(
    before: Mapping[Category, int],
    after: Mapping[Category, int],
    baseline: int,
) -> DiffResult:
    """
    Positive per-category deltas from `before` to `after`.

    `before` must not contain categories absent from `after`; categories only
    present in `after` are compared against `baseline`. `before` is never mutated.

    Raises:
        DiffPreconditionError: before's keys are not a subset of after's.
        InvalidStatValueError: a value is not a non-negative integer.
        NegativeDeltaAnomaly: a category decreased to anything other than 1.
    """
    unexpected = set(before) - set(after)
    if unexpected:
        names = ", ".join(sorted(str(c) for c in unexpected))
        raise DiffPreconditionError(f"Known categories missing from new values: {names}")

    deltas: dict[Category, int] = {}
    silent: list[SilentDrop] = []
    for category, after_value in after.items():
        after_value = _check_value(category, after_value, "after")
        if category in before:
            before_value = _check_value(category, before[category], "before")
        else:
            before_value = baseline
        if before_value == after_value:
            continue

        delta = after_value - before_value
        if delta < 0:
            if after_value == SILENT_DROP_FLOOR:
                silent.append(SilentDrop(category, before_value, after_value))
                continue
            raise NegativeDeltaAnomaly(category, before_value, after_value)
        deltas[category] = delta

    return DiffResult(deltas, tuple(silent))
