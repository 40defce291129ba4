from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

import httpx
import redis.asyncio as redis
from redis.exceptions import RedisError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from quickroute.core.config import settings
from quickroute.domain.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


class TwoGISClient:

    GEOCODER_URL = "https://catalog.api.2gis.com/3.0/items/geocode"
    ROUTING_URL = "https://routing.api.2gis.com/routing/7.0.0/global"
    DISTANCE_MATRIX_URL = "https://routing.api.2gis.com/get_dist_matrix"

    def __init__(self) -> None:
        self.api_key = settings.TWOGIS_API_KEY
        self.redis_client: Optional[redis.Redis] = None
        self._limiter: Optional[Tuple[asyncio.AbstractEventLoop, asyncio.Semaphore]] = None

        if not self.api_key:
            logger.warning("2GIS API key is not configured – provider requests will fail")

    async def connect_redis(self) -> None:
        if not self.redis_client and settings.REDIS_URL:
            self.redis_client = await redis.from_url(settings.REDIS_URL)
            logger.info("2GIS client: connected to Redis cache")

    async def close(self) -> None:
        if self.redis_client is not None:
            await self.redis_client.aclose()
            self.redis_client = None

    def _semaphore(self) -> asyncio.Semaphore:
        loop = asyncio.get_running_loop()
        if self._limiter is None or self._limiter[0] is not loop:
            self._limiter = (loop, asyncio.Semaphore(settings.MAX_CONCURRENT_REQUESTS))
        return self._limiter[1]

    def _cache_key(self, prefix: str, params: Dict[str, Any]) -> str:
        payload = json.dumps(params, sort_keys=True, ensure_ascii=False)
        digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
        return f"2gis:{prefix}:{digest}"

    async def _get_cached(self, key: str) -> Optional[Any]:
        client = self.redis_client
        if not client:
            return None

        try:
            cached = await client.get(key)
        except RedisError as exc:
            logger.warning("Redis read failed for %s: %s", key, exc)
            return None
        if cached:
            return json.loads(cached)
        return None

    async def _set_cache(self, key: str, value: Any, ttl: int = 3600) -> None:
        client = self.redis_client
        if not client:
            return

        try:
            await client.set(key, json.dumps(value), ex=ttl)
        except RedisError as exc:
            logger.warning("Redis write failed for %s: %s", key, exc)

    def _authorised(self, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise ExternalServiceError("2GIS API key is not configured")
        params = dict(params)
        params["key"] = self.api_key
        return params

    def _check_response(self, url: str, response: httpx.Response) -> Dict[str, Any]:
        if response.status_code == 429:
            logger.warning("2GIS rate limit reached for %s", url)
        elif response.status_code >= 400:
            logger.error("2GIS error %s: %s", response.status_code, response.text[:200])
        response.raise_for_status()
        try:
            data = response.json()
        except ValueError as exc:
            logger.error("2GIS returned a non-JSON body from %s: %s", url, response.text[:200])
            raise ExternalServiceError(f"2GIS returned a malformed response from {url}") from exc
        if not isinstance(data, dict):
            logger.error("2GIS returned %s instead of an object from %s", type(data).__name__, url)
            raise ExternalServiceError(f"2GIS returned a malformed response from {url}")
        return data

    @retry(
        stop=stop_after_attempt(settings.MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception(_is_retryable),
        reraise=True,
    )
    async def _request_get(
        self,
        url: str,
        params: Dict[str, Any],
        timeout: int = settings.REQUEST_TIMEOUT,
    ) -> Dict[str, Any]:
        params = self._authorised(params)

        async with self._semaphore():
            async with httpx.AsyncClient(timeout=timeout) as client:
                try:
                    response = await client.get(url, params=params)
                except httpx.TimeoutException:
                    logger.error("2GIS request timeout: %s", url)
                    raise

        return self._check_response(url, response)

    @retry(
        stop=stop_after_attempt(settings.MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception(_is_retryable),
        reraise=True,
    )
    async def _request_post(
        self,
        url: str,
        params: Dict[str, Any],
        json_body: Dict[str, Any],
        timeout: int = settings.REQUEST_TIMEOUT,
    ) -> Dict[str, Any]:
        params = self._authorised(params)

        async with self._semaphore():
            async with httpx.AsyncClient(timeout=timeout) as client:
                try:
                    response = await client.post(url, params=params, json=json_body)
                except httpx.TimeoutException:
                    logger.error("2GIS request timeout: %s", url)
                    raise

        return self._check_response(url, response)

    async def geocode(self, query: str) -> Optional[Tuple[float, float]]:
        cache_key = self._cache_key("geocode", {"q": query})
        cached = await self._get_cached(cache_key)
        if cached:
            return (cached[0], cached[1])

        params = {
            "q": query,
            "fields": "items.point",
            "page_size": 1,
        }
        data = await self._request_get(self.GEOCODER_URL, params)

        items = (data.get("result") or {}).get("items") or []
        if not items or "point" not in items[0]:
            logger.info("2GIS geocoder has no match for %r", query)
            return None

        point = items[0]["point"]
        coords = (float(point["lat"]), float(point["lon"]))
        await self._set_cache(cache_key, coords, ttl=settings.GEOCODING_CACHE_TTL_SECONDS)
        logger.info("Geocoded %r → %s", query, coords)
        return coords

    async def get_travel_time(
        self,
        start: Tuple[float, float],
        end: Tuple[float, float],
        transport: str,
    ) -> float:
        """Best-effort duration in seconds, ``inf`` when the provider has no route."""

        request_body = {
            "points": [
                {"lat": start[0], "lon": start[1]},
                {"lat": end[0], "lon": end[1]},
            ],
            "sources": [0],
            "targets": [1],
            "transport": transport,
        }
        data = await self._request_post(
            self.DISTANCE_MATRIX_URL,
            params={"version": "2.0"},
            json_body=request_body,
        )

        for route in data.get("routes", []):
            if route.get("source_id", 0) == 0 and route.get("target_id", 1) == 1:
                if route.get("status", "OK") != "OK" or route.get("duration") is None:
                    return math.inf
                return float(route["duration"])
        return math.inf

    async def get_route(
        self,
        start: Tuple[float, float],
        end: Tuple[float, float],
        transport: str,
    ) -> Optional[Dict[str, Any]]:
        request_body = {
            "points": [
                {"type": "stop", "lat": start[0], "lon": start[1]},
                {"type": "stop", "lat": end[0], "lon": end[1]},
            ],
            "transport": transport,
            "route_mode": "fastest",
            "output": "detailed",
        }

        data = await self._request_post(self.ROUTING_URL, params={}, json_body=request_body)
        if data.get("status", "OK") != "OK" or "result" not in data:
            return None

        result = data["result"]
        if isinstance(result, list):
            result = result[0] if result else None
        return result or None

    def parse_geometry(self, route_data: Dict[str, Any]) -> List[Tuple[float, float]]:
        if not route_data:
            return []

        collected: List[Tuple[float, float]] = []
        seen = set()

        for maneuver in route_data.get("maneuvers", []):
            path = maneuver.get("outcoming_path", {})
            for segment in path.get("geometry", []):
                selection = segment.get("selection", "")
                if selection.startswith("LINESTRING"):
                    for lat, lon in self._parse_wkt(selection):
                        key = (round(lat, 6), round(lon, 6))
                        if key not in seen:
                            seen.add(key)
                            collected.append((lat, lon))

        if collected:
            return collected

        for waypoint in route_data.get("waypoints", []):
            point = waypoint.get("projected_point") or waypoint.get("original_point")
            if point and "lat" in point and "lon" in point:
                key = (round(point["lat"], 6), round(point["lon"], 6))
                if key not in seen:
                    seen.add(key)
                    collected.append((point["lat"], point["lon"]))

        return collected

    def _parse_wkt(self, wkt: str) -> List[Tuple[float, float]]:
        coords = wkt.replace("LINESTRING(", "").replace(")", "")
        result: List[Tuple[float, float]] = []
        for pair in coords.split(","):
            parts = pair.strip().split()
            if len(parts) < 2:
                logger.debug("Skipping malformed WKT pair: %r", pair)
                continue
            try:
                lon, lat = float(parts[0]), float(parts[1])
            except ValueError:
                logger.debug("Skipping malformed WKT pair: %r", pair)
                continue
            result.append((lat, lon))
        return result


twogis_client = TwoGISClient()
