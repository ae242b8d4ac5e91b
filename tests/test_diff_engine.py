from __future__ import annotations

import pytest

from tracker.categories import Category
from tracker.diff_engine import DiffResult, SilentDrop, compute_diff
from tracker.errors import DiffPreconditionError, InvalidStatValueError, NegativeDeltaAnomaly

A = Category.ATTACK
F = Category.FISHING
Z = Category.ZULRAH


def test_positive_deltas_only_for_changed_categories():
    before = {A: 50, F: 10}
    after = {A: 50, F: 12}
    assert compute_diff(before, after, 1) == {F: 2}


def test_new_category_compared_against_baseline():
    assert compute_diff({}, {Z: 3}, 0) == {Z: 3}
    assert compute_diff({}, {A: 1}, 1) == {}
    assert compute_diff({}, {A: 5}, 1) == {A: 4}


def test_identical_values_give_empty_result():
    values = {A: 40, F: 99}
    result = compute_diff(values, dict(values), 1)
    assert result == {}
    assert result.silent_drops == ()


def test_drop_to_one_is_silent():
    result = compute_diff({F: 50}, {F: 1}, 1)
    assert dict(result) == {}
    assert result.silent_drops == (SilentDrop(F, 50, 1),)
    assert result.silent_dropped == frozenset({F})


def test_silent_drop_does_not_hide_other_gains():
    result = compute_diff({F: 50, A: 10}, {F: 1, A: 11}, 1)
    assert result == {A: 1}
    assert F in result.silent_dropped


def test_other_drop_raises_anomaly():
    with pytest.raises(NegativeDeltaAnomaly) as exc:
        compute_diff({Z: 10}, {Z: 7}, 0)
    assert exc.value.category is Z
    assert exc.value.before == 10
    assert exc.value.after == 7


def test_drop_to_zero_is_an_anomaly():
    with pytest.raises(NegativeDeltaAnomaly):
        compute_diff({Z: 10}, {Z: 0}, 0)


def test_precondition_before_subset_of_after():
    with pytest.raises(DiffPreconditionError):
        compute_diff({A: 10, F: 5}, {A: 10}, 1)


@pytest.mark.parametrize("bad", [-1, 2.5, "7", None, True])
def test_invalid_values_rejected(bad):
    with pytest.raises(InvalidStatValueError):
        compute_diff({}, {Z: bad}, 0)
    with pytest.raises(InvalidStatValueError):
        compute_diff({Z: bad}, {Z: 3}, 0)


def test_before_is_not_mutated():
    before = {A: 10}
    compute_diff(before, {A: 12, F: 3}, 1)
    assert before == {A: 10}


def test_result_is_read_only():
    result = compute_diff({}, {Z: 2}, 0)
    assert isinstance(result, DiffResult)
    with pytest.raises(TypeError):
        result[Z] = 5  # type: ignore[index]
