import numpy as np
import pytest

from livedetect.tracking.association import (
    associate,
    greedy_assignment,
    hungarian_assignment,
)


def test_greedy_picks_global_minimum_first():
    cost = np.array([
        [0.2, 0.1],
        [0.05, 0.6],
    ])
    result = greedy_assignment(cost, max_cost=0.7)

    assert result.matches == [(1, 0), (0, 1)]
    assert result.unmatched_rows == []
    assert result.unmatched_cols == []


def test_greedy_respects_threshold():
    cost = np.array([
        [0.9, 0.8],
        [0.69, 0.95],
    ])
    result = greedy_assignment(cost, max_cost=0.7)

    assert result.matches == [(1, 0)]
    assert result.unmatched_rows == [0]
    assert result.unmatched_cols == [1]


def test_greedy_cost_equal_to_threshold_is_not_matched():
    result = greedy_assignment(np.array([[0.7]]), max_cost=0.7)
    assert result.matches == []


def test_greedy_tie_broken_by_scan_order():
    cost = np.array([[0.5, 0.5]])
    result = greedy_assignment(cost, max_cost=0.7)

    assert result.matches == [(0, 0)]
    assert result.unmatched_cols == [1]


def test_hungarian_finds_optimal_where_greedy_does_not():
    # Greedy commits (0, 0) first and is left with the expensive (1, 1)
    cost = np.array([
        [0.1, 0.2],
        [0.2, 0.65],
    ])
    greedy = greedy_assignment(cost, max_cost=0.7)
    optimal = hungarian_assignment(cost, max_cost=0.7)

    assert sorted(greedy.matches) == [(0, 0), (1, 1)]
    assert sorted(optimal.matches) == [(0, 1), (1, 0)]


def test_hungarian_drops_pairs_above_threshold():
    cost = np.array([
        [0.1, 0.9],
        [0.9, 0.95],
    ])
    result = hungarian_assignment(cost, max_cost=0.7)

    assert result.matches == [(0, 0)]
    assert result.unmatched_rows == [1]
    assert result.unmatched_cols == [1]


@pytest.mark.parametrize("method", ["greedy", "hungarian"])
def test_empty_matrices(method):
    result = associate(np.zeros((0, 3)), max_cost=0.7, method=method)
    assert result.matches == []
    assert result.unmatched_cols == [0, 1, 2]

    result = associate(np.zeros((2, 0)), max_cost=0.7, method=method)
    assert result.unmatched_rows == [0, 1]


@pytest.mark.parametrize("method", ["greedy", "hungarian"])
def test_matching_is_one_to_one(method):
    rng = np.random.default_rng(7)
    cost = rng.random((6, 4))
    result = associate(cost, max_cost=0.8, method=method)

    rows = [r for r, _ in result.matches]
    cols = [c for _, c in result.matches]
    assert len(set(rows)) == len(rows)
    assert len(set(cols)) == len(cols)
    assert all(cost[r, c] < 0.8 for r, c in result.matches)
    assert len(rows) + len(result.unmatched_rows) == 6
    assert len(cols) + len(result.unmatched_cols) == 4


def test_unknown_method():
    with pytest.raises(ValueError):
        associate(np.zeros((1, 1)), max_cost=0.7, method="auction")
