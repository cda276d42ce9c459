"""
Track/Detection Association

Solves the (tracks x detections) assignment on a cost matrix where
cost = 1 - IoU. Only pairs with cost strictly below max_cost are eligible.

Two strategies with the same contract (a valid 1:1 matching respecting the
threshold):
- greedy: repeatedly commit the globally lowest eligible cell, ties broken by
  row-major scan order
- hungarian: optimal assignment via scipy.optimize.linear_sum_assignment,
  then pairs above the threshold are discarded
"""

import logging
from dataclasses import dataclass, field

import numpy as np
from scipy.optimize import linear_sum_assignment


logger = logging.getLogger(__name__)


@dataclass
class AssociationResult:
    matches: list[tuple[int, int]] = field(default_factory=list)  # (row, col)
    unmatched_rows: list[int] = field(default_factory=list)
    unmatched_cols: list[int] = field(default_factory=list)


def greedy_assignment(cost_matrix: np.ndarray, max_cost: float) -> AssociationResult:
    """
    Greedy lowest-cost-first matching.

    Args:
        cost_matrix: (N, M) costs
        max_cost: Cells with cost >= max_cost are never matched

    Returns:
        AssociationResult with matches in commit order
    """
    num_rows, num_cols = cost_matrix.shape
    result = AssociationResult()

    if num_rows and num_cols:
        cost = np.where(cost_matrix < max_cost, cost_matrix, np.inf).astype(np.float64)

        while True:
            # argmin returns the first minimum in row-major order
            flat_idx = int(np.argmin(cost))
            row, col = divmod(flat_idx, num_cols)
            if not np.isfinite(cost[row, col]):
                break

            result.matches.append((row, col))
            cost[row, :] = np.inf
            cost[:, col] = np.inf

    _fill_unmatched(result, num_rows, num_cols)
    return result


def hungarian_assignment(cost_matrix: np.ndarray, max_cost: float) -> AssociationResult:
    """Optimal matching, discarding pairs whose cost is not below max_cost."""
    num_rows, num_cols = cost_matrix.shape
    result = AssociationResult()

    if num_rows and num_cols:
        row_ind, col_ind = linear_sum_assignment(cost_matrix)
        for row, col in zip(row_ind, col_ind):
            if cost_matrix[row, col] < max_cost:
                result.matches.append((int(row), int(col)))

    _fill_unmatched(result, num_rows, num_cols)
    return result


ASSIGNMENT_METHODS = {
    "greedy": greedy_assignment,
    "hungarian": hungarian_assignment,
}


def associate(cost_matrix: np.ndarray, max_cost: float, method: str = "greedy") -> AssociationResult:
    try:
        solver = ASSIGNMENT_METHODS[method]
    except KeyError:
        raise ValueError(
            f"Unknown association method {method!r}, expected one of {sorted(ASSIGNMENT_METHODS)}"
        ) from None

    result = solver(cost_matrix, max_cost)
    logger.debug(
        "Association (%s): %d matches, %d unmatched tracks, %d unmatched detections",
        method,
        len(result.matches),
        len(result.unmatched_rows),
        len(result.unmatched_cols),
    )
    return result


def _fill_unmatched(result: AssociationResult, num_rows: int, num_cols: int) -> None:
    matched_rows = {row for row, _ in result.matches}
    matched_cols = {col for _, col in result.matches}
    result.unmatched_rows = [r for r in range(num_rows) if r not in matched_rows]
    result.unmatched_cols = [c for c in range(num_cols) if c not in matched_cols]
