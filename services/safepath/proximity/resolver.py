"""
ProximityResolver — nearest emergency services around a point.

Two phases:
  1. Radius escalation: search at each radius in ascending order and stop at
     the first one that returns anything. A transport error aborts the whole
     resolution and propagates; it is not treated as "no results here".
     No results at any radius is an empty list, not an error.
  2. Enrichment: one route-info call per place, all in parallel. A failed or
     unavailable lookup leaves that place un-enriched (route=None). Results
     are written back by position, so output order and length always match
     the search result regardless of completion order.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, Sequence

from services.safepath.geo.types import EnrichedPlace, GeoPoint, Place, PlaceCategory, RouteInfo

logger = logging.getLogger(__name__)

DEFAULT_RADII_M: tuple[int, ...] = (1000, 2000, 5000)


class PlacesProvider(Protocol):
    async def nearby_search(
        self, center: GeoPoint, category: PlaceCategory, radius_m: int
    ) -> list[Place]: ...

    async def route_info(self, origin: GeoPoint, destination: GeoPoint) -> RouteInfo: ...


class ProximityResolver:
    """
    Usage:
        resolver = ProximityResolver(maps_client)
        places = await resolver.resolve(GeoPoint(12.97, 77.59), PlaceCategory.POLICE)
    """

    def __init__(self, provider: PlacesProvider, radii_m: Sequence[int] = DEFAULT_RADII_M) -> None:
        radii = [int(r) for r in radii_m]
        if not radii:
            raise ValueError("radii_m must not be empty")
        if any(r <= 0 for r in radii):
            raise ValueError("radii_m must be positive")
        self._provider = provider
        self._radii_m = tuple(sorted(radii))

    @property
    def radii_m(self) -> tuple[int, ...]:
        return self._radii_m

    async def resolve(self, center: GeoPoint, category: PlaceCategory) -> list[EnrichedPlace]:
        places = await self._search_expanding(center, category)
        if not places:
            return []
        return await self._enrich(center, places)

    async def _search_expanding(self, center: GeoPoint, category: PlaceCategory) -> list[Place]:
        for radius in self._radii_m:
            # Transport errors propagate from here on purpose
            places = await self._provider.nearby_search(center, category, radius)
            if places:
                logger.info(
                    "Found %d %s places within %dm of %s",
                    len(places),
                    PlaceCategory(category).value,
                    radius,
                    center.as_query(),
                )
                return list(places)

        logger.info(
            "No %s places within %dm of %s",
            PlaceCategory(category).value,
            self._radii_m[-1],
            center.as_query(),
        )
        return []

    async def _enrich(self, center: GeoPoint, places: list[Place]) -> list[EnrichedPlace]:
        results = await asyncio.gather(
            *(self._provider.route_info(center, place.location) for place in places),
            return_exceptions=True,
        )

        enriched: list[EnrichedPlace] = []
        for place, result in zip(places, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.warning("Route info failed for place=%s: %r", place.id, result)
                enriched.append(EnrichedPlace(place=place))
            elif isinstance(result, RouteInfo) and result.available:
                enriched.append(EnrichedPlace(place=place, route=result))
            else:
                enriched.append(EnrichedPlace(place=place))

        logger.debug(
            "Enriched %d/%d places with route info",
            sum(1 for e in enriched if e.route is not None),
            len(enriched),
        )
        return enriched
