from __future__ import annotations

import logging
import math
from typing import List, Sequence

import numpy as np

logger = logging.getLogger(__name__)


def optimal_order(matrix: Sequence[Sequence[float]] | np.ndarray) -> List[int]:
    """Exact minimum-duration visiting order with fixed endpoints.

    Index ``0`` is always the origin and index ``n - 1`` the final stop; every
    intermediate index is visited exactly once in between. The search is the
    classic Held-Karp dynamic programme over subsets of intermediates, so the
    cost is O(2^m * m^2) for m intermediates.

    Ties are broken by strict improvement, which means the first candidate in
    ascending index order wins. Infinite cells are treated as prohibitively
    expensive but never make the search fail: a permutation is always returned.

    Args:
        matrix: Square ``n x n`` matrix of travel times in seconds.

    Returns:
        A permutation of ``0..n-1`` starting at ``0`` and ending at ``n - 1``.
    """

    dist: List[List[float]] = np.asarray(matrix, dtype=float).tolist()
    n = len(dist)
    if n <= 2:
        return list(range(n))

    m = n - 2
    size = 1 << m
    dp = [[math.inf] * n for _ in range(size)]
    parent = [[-1] * n for _ in range(size)]

    # intermediate j occupies bit j - 1
    for j in range(1, n - 1):
        dp[1 << (j - 1)][j] = dist[0][j]

    for mask in range(1, size):
        for j in range(1, n - 1):
            bit = 1 << (j - 1)
            if not (mask & bit):
                continue
            prev_mask = mask ^ bit
            if prev_mask == 0:
                continue
            best = math.inf
            best_k = -1
            for k in range(1, n - 1):
                if not (prev_mask & (1 << (k - 1))):
                    continue
                candidate = dp[prev_mask][k] + dist[k][j]
                if best_k == -1 or candidate < best:
                    best = candidate
                    best_k = k
            dp[mask][j] = best
            parent[mask][j] = best_k

    full = size - 1
    last = 1
    best_cost = dp[full][1] + dist[1][n - 1]
    for j in range(2, n - 1):
        candidate = dp[full][j] + dist[j][n - 1]
        if candidate < best_cost:
            best_cost = candidate
            last = j

    if math.isinf(best_cost):
        logger.warning("No finite tour exists for %s stops; returning best-effort order", n)

    middle: List[int] = []
    mask = full
    while last != -1:
        middle.append(last)
        prev = parent[mask][last]
        mask ^= 1 << (last - 1)
        last = prev

    middle.reverse()
    return [0, *middle, n - 1]


def tour_cost(matrix: Sequence[Sequence[float]] | np.ndarray, tour: Sequence[int]) -> float:
    """Sum of consecutive matrix entries along ``tour``."""

    dist = np.asarray(matrix, dtype=float)
    return float(sum(dist[a, b] for a, b in zip(tour, tour[1:])))


__all__ = ["optimal_order", "tour_cost"]
