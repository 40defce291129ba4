from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import List, Sequence, Tuple

import numpy as np

from quickroute.domain.exceptions import ExternalServiceError, MatrixIncompleteError
from quickroute.domain.models import Coordinate, TransportMode
from quickroute.services.eta_cache import ETACache

logger = logging.getLogger(__name__)


async def build_time_matrix(
    coordinates: Sequence[Coordinate],
    cache: ETACache,
    mode: TransportMode,
) -> np.ndarray:
    """Pairwise travel durations in seconds for ``coordinates``.

    One lookup per ordered pair ``(i, j)`` with ``i != j`` is launched at once
    through ``cache`` and the call returns only after all of them settle. The
    diagonal holds ``inf``. Any failed lookup fails the whole build.
    """

    n = len(coordinates)
    matrix = np.full((n, n), np.inf, dtype=float)
    if n < 2:
        return matrix

    pairs: List[Tuple[int, int]] = [(i, j) for i in range(n) for j in range(n) if i != j]
    started = time.perf_counter()

    results = await asyncio.gather(
        *(cache.get_eta(coordinates[i], coordinates[j], mode) for i, j in pairs),
        return_exceptions=True,
    )

    missing: List[Tuple[int, int]] = []
    for (i, j), result in zip(pairs, results):
        if isinstance(result, ExternalServiceError):
            logger.error("ETA lookup failed for stop %s -> %s: %s", i, j, result)
            raise ExternalServiceError(
                f"Travel-time lookup failed for stop {i} -> {j}: {result.message}",
                status_code=result.status_code,
            ) from result
        if isinstance(result, BaseException):
            raise result
        if result is None or math.isnan(result):
            missing.append((i, j))
            continue
        matrix[i, j] = float(result)

    if missing:
        raise MatrixIncompleteError(missing)

    logger.info(
        "Built %sx%s %s matrix in %.2fs (%s cached entries)",
        n,
        n,
        mode.value,
        time.perf_counter() - started,
        len(cache),
    )
    return matrix


__all__ = ["build_time_matrix"]
