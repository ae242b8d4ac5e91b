from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from conftest import FakeStorage, make_snapshot
from tracker.categories import Category, CategoryGroup
from tracker.errors import EntityNotTrackedError, FormatChangedError, RollbackInProgress
from tracker.orchestrator import UpdateStatus
from tracker.rollback import RollbackPhase
from tracker.scheduler import Tier, TieredRefreshScheduler
from tracker.service import TrackerService
from tracker.timer import RefreshTimer

F = Category.FISHING
Z = Category.ZULRAH


@pytest.fixture
def service(clock, fetcher, storage, notifier):
    return TrackerService(
        fetcher=fetcher,
        storage=storage,
        notifier=notifier,
        notice=notifier.notice,
        scheduler=TieredRefreshScheduler(now=clock),
        timer=RefreshTimer(now=clock),
        interval=0.01,
    )


@pytest.mark.asyncio
async def test_track_normalizes_and_persists(service, storage):
    assert await service.track("  Zezima_BTW ") is True
    assert await service.track("zezima btw") is False
    assert storage.added == ["zezima btw"]
    assert service.is_tracked("ZEZIMA-btw")
    assert service.scheduler.tier_of("zezima btw") is Tier.INACTIVE
    with pytest.raises(ValueError):
        await service.track("   ")


@pytest.mark.asyncio
async def test_untrack_purges_everything(service, storage, fetcher):
    await service.track("a")
    fetcher.queue("a", make_snapshot("a", {F: 10}))
    await service.update_once()
    assert service.state.is_primed("a")

    assert await service.untrack("a") is True
    assert storage.removed == ["a"]
    assert service.state.get("a") is None
    assert service.scheduler.contains("a") is False
    assert await service.untrack("a") is False


@pytest.mark.asyncio
async def test_untrack_during_fetch_drops_the_cycle(service, fetcher, storage):
    await service.track("x")
    fetcher.queue("x", make_snapshot("x", {F: 10}))
    await service.update_once()
    storage.values.clear()

    started = asyncio.Event()
    release = asyncio.Event()

    async def slow_fetch(entity_id):
        started.set()
        await release.wait()
        return make_snapshot(entity_id, {F: 12})

    fetcher.fetch_snapshot = slow_fetch
    task = asyncio.create_task(service.update_once())
    await started.wait()
    assert await service.untrack("x") is True
    release.set()
    outcome = await task

    assert outcome.status is UpdateStatus.UNTRACKED
    assert service.is_tracked("x") is False
    assert service.state.get("x") is None
    assert storage.values == []

    await service.track("x")
    del fetcher.fetch_snapshot
    fetcher.results["x"] = [make_snapshot("x", {F: 12})]
    assert (await service.update_once()).status is UpdateStatus.PRIMED


@pytest.mark.asyncio
async def test_end_to_end_gain_and_silent_drop(service, fetcher, notifier):
    await service.track("x")
    fetcher.queue("x", make_snapshot("x", {F: 10}), make_snapshot("x", {F: 12}))
    assert (await service.update_once()).status is UpdateStatus.PRIMED
    outcome = await service.update_once()
    assert outcome.deltas == {CategoryGroup.SKILLS: {F: 2}}
    assert notifier.sent == [("x", CategoryGroup.SKILLS, {F: 2})]
    assert service.state.known_values("x", CategoryGroup.SKILLS)[F] == 12

    await service.untrack("x")
    await service.track("y")
    fetcher.queue("y", make_snapshot("y", {F: 50}), make_snapshot("y", {F: 1}))
    await service.update_once()
    outcome = await service.update_once()
    assert outcome.status is UpdateStatus.UNCHANGED
    assert len(notifier.sent) == 1
    assert service.anomalies.strikes("y") == 0
    assert service.state.known_values("y", CategoryGroup.SKILLS)[F] == 50


@pytest.mark.asyncio
async def test_tick_skips_when_empty_disabled_or_rollback_busy(service, fetcher):
    assert await service.update_once() is None

    await service.track("a")
    service.state.disabled = True
    assert await service.update_once() is None
    assert fetcher.calls == []

    service.state.disabled = False
    service.rollback._phase = RollbackPhase.SCANNING
    assert await service.update_once() is None
    assert fetcher.calls == []
    assert service.loop.timer.interval_count == 3


@pytest.mark.asyncio
async def test_format_change_persists_flag_and_enable_restores(service, fetcher, storage, notifier):
    await service.track("a")
    fetcher.queue("a", FormatChangedError("a", "new layout"))
    await service.update_once()

    assert service.state.disabled is True
    assert storage.disabled_writes == [True]
    assert "new layout" in notifier.notices[0]
    assert service.status()["disabled"] is True

    assert await service.enable() is True
    assert await service.enable() is False
    assert storage.disabled_writes == [True, False]
    assert service.state.disabled is False


@pytest.mark.asyncio
async def test_rollback_through_service(service, fetcher, notifier):
    await service.track("a")
    fetcher.queue("a", make_snapshot("a", {Z: 10}), make_snapshot("a", {Z: 4}))
    await service.update_once()

    with pytest.raises(EntityNotTrackedError):
        await service.begin_rollback("ghost")

    result = await service.begin_rollback("A")
    assert len(result.staged) == 1
    assert service.status()["rollback_phase"] == "staged"
    with pytest.raises(RollbackInProgress):
        await service.begin_rollback()

    assert await service.commit_rollback() == 1
    assert service.state.known_values("a", CategoryGroup.BOSSES) == {Z: 4}
    assert notifier.notices[-1].startswith("Rollback commit complete")

    await service.begin_rollback()
    assert service.rollback.phase is RollbackPhase.IDLE


@pytest.mark.asyncio
async def test_hydrate_restores_state(clock, fetcher, notifier):
    storage = FakeStorage(
        loaded={
            "tracked": ["a", "b", "c"],
            "values": {
                CategoryGroup.SKILLS: {"a": {F: 40}, "stale": {F: 99}},
                CategoryGroup.BOSSES: {"a": {Z: 3}, "b": {Z: 1}},
            },
            "activity": {"a": clock.now - timedelta(days=1), "b": clock.now - timedelta(days=9)},
            "off_hiscores": {"b"},
            "disabled": True,
        }
    )
    service = TrackerService(
        fetcher=fetcher,
        storage=storage,
        notifier=notifier,
        scheduler=TieredRefreshScheduler(now=clock),
    )
    await service.hydrate()

    assert service.state.tracked_ids() == ["a", "b", "c"]
    assert service.state.known_values("a", CategoryGroup.SKILLS) == {F: 40}
    assert service.state.known_values("a", CategoryGroup.BOSSES) == {Z: 3}
    assert service.state.get("stale") is None
    assert service.state.get("b").on_hiscores is False
    assert service.state.is_primed("c") is False
    assert service.scheduler.tier_of("a") is Tier.ACTIVE
    assert service.scheduler.tier_of("b") is Tier.INACTIVE
    assert service.state.disabled is True

    status = service.status()
    assert (status["tracked"], status["active"], status["inactive"]) == (3, 1, 2)
    assert status["off_hiscores"] == 1


@pytest.mark.asyncio
async def test_loop_runs_until_stopped(service, fetcher):
    await service.track("a")
    fetcher.queue("a", make_snapshot("a", {F: 10}))
    task = service.start()
    assert service.start() is task
    await asyncio.sleep(0.05)
    await service.stop()
    assert task.done()
    assert service.loop.running is False
    assert len(fetcher.calls) >= 2


@pytest.mark.asyncio
async def test_loop_survives_unexpected_errors(service, fetcher):
    await service.track("a")
    fetcher.queue("a", RuntimeError("surprise"))
    service.start()
    await asyncio.sleep(0.05)
    await service.stop()
    assert len(fetcher.calls) >= 2


def test_timer_measurements(clock):
    timer = RefreshTimer(now=clock)
    assert timer.effective_refresh_interval() is None
    assert timer.intervals_between_updates() is None
    for _ in range(4):
        timer.increment_intervals()
    timer.increment_updates()
    clock.advance(minutes=2)
    assert timer.effective_refresh_interval() == timedelta(seconds=30)
    assert timer.updates_per_minute() == 0.5
    assert timer.intervals_between_updates() == 4
    assert timer.as_dict()["uptime_seconds"] == 120
