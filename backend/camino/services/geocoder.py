"""Online place-name geocoding with a warm in-memory cache."""
from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Optional

import httpx

from camino.core.config import settings
from camino.services.stages import FRANCES_LAST100, SPELLING_VARIANTS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Point:
    lat: float
    lon: float


def _seed_cache() -> Dict[str, Point]:
    seed: Dict[str, Point] = {}
    by_name = {town.name: town for town in FRANCES_LAST100}
    for town in FRANCES_LAST100:
        seed[town.name.lower()] = Point(town.lat, town.lon)
    for variant, canonical in SPELLING_VARIANTS.items():
        town = by_name[canonical]
        seed[variant] = Point(town.lat, town.lon)
    return seed


class Geocoder:
    """Nominatim lookups; known Camino waypoints never leave the process."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 5.0,
        user_agent: str = "CaminoPlanner/1.0",
        cache_size: int = 256,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.timeout = httpx.Timeout(timeout_s, connect=min(timeout_s, 5.0))
        self.headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._transport = transport
        self._waypoints: Dict[str, Point] = _seed_cache()
        self._cache: "OrderedDict[str, Point]" = OrderedDict()
        self.cache_size = max(cache_size, 0)

    async def geocode(self, query: str) -> Optional[Point]:
        key = query.strip().lower()
        if not key:
            return None
        hit = self._waypoints.get(key)
        if hit:
            return hit
        hit = self._cache.get(key)
        if hit:
            self._cache.move_to_end(key)
            return hit

        params = {"format": "jsonv2", "q": query.strip(), "limit": 1}
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, headers=self.headers, transport=self._transport
            ) as client:
                response = await client.get(self.base_url, params=params)
            response.raise_for_status()
            results = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Geocoding %r failed: %s", query, exc)
            return None

        if not isinstance(results, list) or not results:
            logger.info("Geocoder found no match for %r", query)
            return None
        try:
            point = Point(lat=float(results[0]["lat"]), lon=float(results[0]["lon"]))
        except (KeyError, TypeError, ValueError):
            logger.warning("Geocoder returned an unusable result for %r", query)
            return None

        self._remember(key, point)
        return point

    def _remember(self, key: str, point: Point) -> None:
        """Keep at most ``cache_size`` looked-up places, dropping the least recently used."""
        if self.cache_size == 0:
            return
        self._cache[key] = point
        self._cache.move_to_end(key)
        while len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)


@lru_cache
def get_geocoder() -> Geocoder:
    """Process-wide geocoder so the warm cache is shared between requests."""
    return Geocoder(
        settings.geocoder_url,
        timeout_s=settings.geocoder_timeout_s,
        user_agent=settings.geocoder_user_agent,
        cache_size=settings.geocoder_cache_size,
    )
