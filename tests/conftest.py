# tests/conftest.py
# Ensure the repository root is on sys.path during pytest collection so tests can `import tracker` etc.
import asyncio
from datetime import UTC, datetime, timedelta
import os
import sys

import pytest

_THIS_DIR = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(_THIS_DIR, ".."))

if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from tracker.categories import Category  # noqa: E402
from tracker.snapshot import Snapshot  # noqa: E402


# ----------------------------
# In-memory collaborators
# ----------------------------
class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 7, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeFetcher:
    """
    Returns queued results per entity. A queued Exception instance is raised.
    The last queued result repeats once the queue is down to one item.
    """

    def __init__(self):
        self.results: dict[str, list] = {}
        self.calls: list[str] = []

    def queue(self, entity_id: str, *results) -> None:
        self.results.setdefault(entity_id, []).extend(results)

    async def fetch_snapshot(self, entity_id: str) -> Snapshot:
        self.calls.append(entity_id)
        await asyncio.sleep(0)
        pending = self.results.get(entity_id)
        if not pending:
            raise AssertionError(f"no fetch result queued for {entity_id!r}")
        result = pending.pop(0) if len(pending) > 1 else pending[0]
        if isinstance(result, BaseException):
            raise result
        return result


class FakeStorage:
    def __init__(self, loaded: dict | None = None):
        self.loaded = loaded or {}
        self.values: list[tuple] = []
        self.activity: list[tuple] = []
        self.status: list[tuple] = []
        self.added: list[str] = []
        self.removed: list[str] = []
        self.disabled_writes: list[bool] = []
        self.fail_values = False

    async def persist_category_values(self, entity_id, group, values):
        if self.fail_values:
            raise RuntimeError("db down")
        self.values.append((entity_id, group, dict(values)))

    async def persist_entity_activity_timestamp(self, entity_id, timestamp):
        self.activity.append((entity_id, timestamp))

    async def persist_hiscores_status(self, entity_id, on_hiscores):
        self.status.append((entity_id, on_hiscores))

    async def load_all(self):
        return self.loaded

    async def add_tracked(self, entity_id):
        self.added.append(entity_id)

    async def remove_tracked(self, entity_id):
        self.removed.append(entity_id)

    async def set_disabled(self, disabled):
        self.disabled_writes.append(disabled)


class FakeNotifier:
    def __init__(self, fail: bool = False):
        self.sent: list[tuple] = []
        self.notices: list[str] = []
        self.fail = fail

    async def notify(self, entity_id, group, delta, *, current=None):
        if self.fail:
            raise RuntimeError("discord down")
        self.sent.append((entity_id, group, dict(delta)))

    async def notice(self, text):
        self.notices.append(text)


def make_snapshot(entity_id: str, values: dict | None = None, **kwargs) -> Snapshot:
    """Snapshot with every skill at 1 unless overridden by `values`."""
    full = {c: 1 for c in Category if c.group.value == "skills"}
    full.update(values or {})
    return Snapshot(entity_id=entity_id, values=full, **kwargs)


# ----------------------------
# Fixtures
# ----------------------------
@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def async_return_factory():
    """
    Return a factory that wraps a value into an async function that returns that value.
    Usage:
        async_stub = async_return_factory([{"EntityId": "zezima"}])
        monkeypatch.setattr(..., async_stub)
    """

    def make_async_return(value):
        async def _inner(*args, **kwargs):
            await asyncio.sleep(0)
            return value

        return _inner

    return make_async_return
