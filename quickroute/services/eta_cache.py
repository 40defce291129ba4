from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from quickroute.core.config import settings
from quickroute.domain.models import Coordinate, TransportMode
from quickroute.services.base import DirectionsAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EdgeKey:
    """Quantized identity of a directed coordinate pair."""

    sx: int
    sy: int
    ex: int
    ey: int

    @classmethod
    def from_coordinates(
        cls, origin: Coordinate, destination: Coordinate, precision: float
    ) -> "EdgeKey":
        return cls(
            sx=int(round(origin.lat * precision)),
            sy=int(round(origin.lon * precision)),
            ex=int(round(destination.lat * precision)),
            ey=int(round(destination.lon * precision)),
        )


CacheKey = Tuple[TransportMode, EdgeKey]


class ETACache:
    """Memoized travel-time lookups shared by concurrent matrix requests.

    Every read-check-then-write on the backing mapping happens under a single
    ``asyncio.Lock``. Concurrent callers asking for the same key while a lookup
    is outstanding await the same future instead of issuing a second request.
    Failed lookups are never stored.

    ``clear()`` bumps an internal generation so that lookups started before the
    clear cannot write their result into the emptied mapping.
    """

    def __init__(self, directions: DirectionsAdapter, precision: Optional[float] = None) -> None:
        self.directions = directions
        self.precision = precision if precision is not None else settings.ETA_COORD_PRECISION
        self._lock = asyncio.Lock()
        self._entries: Dict[CacheKey, float] = {}
        self._in_flight: Dict[CacheKey, asyncio.Future] = {}
        self._generation = 0
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    async def get_eta(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: TransportMode,
        precision: Optional[float] = None,
    ) -> float:
        edge = EdgeKey.from_coordinates(
            origin, destination, precision if precision is not None else self.precision
        )
        key: CacheKey = (mode, edge)

        async with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self.hits += 1
                return cached

            pending = self._in_flight.get(key)
            if pending is None:
                self.misses += 1
                pending = asyncio.get_running_loop().create_future()
                pending.add_done_callback(_consume_exception)
                self._in_flight[key] = pending
                generation = self._generation
                owner = True
            else:
                self.hits += 1
                owner = False

        if not owner:
            return await asyncio.shield(pending)

        try:
            duration = await self.directions.estimate_travel_time(origin, destination, mode)
        except asyncio.CancelledError:
            await self._settle(key, pending)
            pending.cancel()
            raise
        except BaseException as exc:
            await self._settle(key, pending)
            pending.set_exception(exc)
            raise

        async with self._lock:
            if self._in_flight.get(key) is pending:
                del self._in_flight[key]
            if generation == self._generation and duration is not None:
                self._entries[key] = duration
            else:
                logger.debug("Discarding ETA for %s from a cleared cache generation", edge)
        pending.set_result(duration)
        return duration

    async def _settle(self, key: CacheKey, pending: asyncio.Future) -> None:
        async with self._lock:
            if self._in_flight.get(key) is pending:
                del self._in_flight[key]

    async def clear(self) -> None:
        async with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
            self._in_flight.clear()
            self._generation += 1
            self.hits = 0
            self.misses = 0
        logger.debug("ETA cache cleared (%s entries dropped)", dropped)


def _consume_exception(future: asyncio.Future) -> None:
    if not future.cancelled():
        future.exception()


__all__ = ["CacheKey", "ETACache", "EdgeKey"]
