# tracker/rotation.py
from __future__ import annotations

from collections.abc import Iterable, Iterator


class Rotation:
    """
    Insertion-ordered round-robin over unique ids.

    Removing an id before the cursor shifts the cursor back so the next draw is
    still the id that would have come next.
    """

    def __init__(self, items: Iterable[str] = ()) -> None:
        self._members: set[str] = set()
        self._order: list[str] = []
        self._index = 0
        for item in items:
            self.add(item)

    def add(self, item: str) -> bool:
        if item in self._members:
            return False
        self._members.add(item)
        self._order.append(item)
        return True

    def remove(self, item: str) -> bool:
        if item not in self._members:
            return False
        position = self._order.index(item)
        if self._index > position:
            self._index -= 1
        self._members.discard(item)
        del self._order[position]
        if self._order:
            self._index %= len(self._order)
        else:
            self._index = 0
        return True

    def next(self) -> str | None:
        if not self._order:
            return None
        item = self._order[self._index]
        self._index = (self._index + 1) % len(self._order)
        return item

    def clear(self) -> None:
        self._members.clear()
        self._order.clear()
        self._index = 0

    def sorted(self) -> list[str]:
        return sorted(self._members)

    def __contains__(self, item: object) -> bool:
        return item in self._members

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._order))

    def __repr__(self) -> str:
        return f"Rotation({self._order!r}, index={self._index})"
