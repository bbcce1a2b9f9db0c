"""
GoogleMapsClient — async adapter over the Google Maps Platform web services.

Endpoints used:
  Roads       /v1/snapToRoads              road-snap a path (<= 100 points)
  Places      /place/nearbysearch/json     emergency services near a point
  Directions  /directions/json             distance/duration text for one leg
  Geocoding   /geocode/json                forward + reverse geocoding

Error contract:
  snap_to_roads / nearby_search / reverse_geocode raise MapsTransportError on
  network failures, HTTP errors, non-OK statuses and malformed payloads.
  route_info and geocode_address never raise — they degrade to sentinels.

The httpx.AsyncClient is injected so one connection pool is shared per process
(created in the FastAPI lifespan).
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx

from services.safepath.geo.types import GeoPoint, Place, PlaceCategory, RouteInfo
from services.safepath.maps.errors import MapsConfigError, MapsTransportError

logger = logging.getLogger(__name__)

ROADS_BASE_URL = "https://roads.googleapis.com/v1"
MAPS_BASE_URL = "https://maps.googleapis.com/maps/api"

# Roads API rejects requests with more than 100 points
SNAP_MAX_POINTS = 100

ADDRESS_NOT_AVAILABLE = "Address not available."


class GoogleMapsClient:
    """
    Usage:
        async with httpx.AsyncClient(timeout=8.0) as http:
            maps = GoogleMapsClient(api_key="...", http=http)
            snapped = await maps.snap_to_roads([GeoPoint(12.97, 77.59), ...])
    """

    def __init__(
        self,
        api_key: str,
        http: httpx.AsyncClient,
        roads_base_url: str = ROADS_BASE_URL,
        maps_base_url: str = MAPS_BASE_URL,
    ) -> None:
        if not api_key:
            raise MapsConfigError("GOOGLE_MAPS_API_KEY is not configured")
        self._api_key = api_key
        self._http = http
        self._roads_base_url = roads_base_url.rstrip("/")
        self._maps_base_url = maps_base_url.rstrip("/")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _get_json(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        """GET + decode. Every failure mode is normalised to MapsTransportError."""
        try:
            resp = await self._http.get(url, params={**params, "key": self._api_key})
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPStatusError as exc:
            raise MapsTransportError(
                f"{url} returned HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise MapsTransportError(f"{url} request failed: {exc}") from exc
        except ValueError as exc:
            raise MapsTransportError(f"{url} returned a non-JSON body") from exc

        if not isinstance(payload, dict):
            raise MapsTransportError(f"{url} returned an unexpected payload shape")
        return payload

    # ------------------------------------------------------------------
    # Road snapping
    # ------------------------------------------------------------------

    async def snap_to_roads(self, path: Sequence[GeoPoint]) -> list[GeoPoint]:
        """
        Snap an ordered path onto road geometry (interpolated).

        The result may contain more points than the input. An empty payload
        (no snappedPoints) is returned as [] — callers decide whether to retry.
        """
        if not path:
            return []
        if len(path) > SNAP_MAX_POINTS:
            raise ValueError(
                f"snap_to_roads accepts at most {SNAP_MAX_POINTS} points, got {len(path)}"
            )

        payload = await self._get_json(
            f"{self._roads_base_url}/snapToRoads",
            {
                "path": "|".join(p.as_query() for p in path),
                "interpolate": "true",
            },
        )

        snapped = payload.get("snappedPoints")
        if not snapped:
            return []

        try:
            return [
                GeoPoint(
                    latitude=float(point["location"]["latitude"]),
                    longitude=float(point["location"]["longitude"]),
                )
                for point in snapped
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise MapsTransportError("snapToRoads returned malformed snappedPoints") from exc

    # ------------------------------------------------------------------
    # Places
    # ------------------------------------------------------------------

    async def nearby_search(
        self,
        center: GeoPoint,
        category: PlaceCategory,
        radius_m: int,
    ) -> list[Place]:
        """Nearby Search for one category within radius_m. ZERO_RESULTS is an empty list."""
        payload = await self._get_json(
            f"{self._maps_base_url}/place/nearbysearch/json",
            {
                "location": center.as_query(),
                "radius": str(int(radius_m)),
                "type": PlaceCategory(category).value,
            },
        )

        status = payload.get("status", "OK")
        if status == "ZERO_RESULTS":
            return []
        if status != "OK":
            raise MapsTransportError(
                f"Places nearbysearch status={status} "
                f"message={payload.get('error_message')!r}"
            )

        try:
            return [
                Place(
                    id=str(item["place_id"]),
                    name=str(item["name"]),
                    vicinity=item.get("vicinity"),
                    location=GeoPoint(
                        latitude=float(item["geometry"]["location"]["lat"]),
                        longitude=float(item["geometry"]["location"]["lng"]),
                    ),
                )
                for item in payload.get("results") or []
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise MapsTransportError("Places nearbysearch returned malformed results") from exc

    # ------------------------------------------------------------------
    # Directions
    # ------------------------------------------------------------------

    async def route_info(self, origin: GeoPoint, destination: GeoPoint) -> RouteInfo:
        """
        Distance and duration text of the first leg of the primary route.

        Never raises: any failure returns RouteInfo.unavailable() so callers
        need no special-case error handling.
        """
        try:
            payload = await self._get_json(
                f"{self._maps_base_url}/directions/json",
                {
                    "origin": origin.as_query(),
                    "destination": destination.as_query(),
                },
            )
        except MapsTransportError as exc:
            logger.warning(
                "Directions lookup failed origin=%s destination=%s: %s",
                origin.as_query(),
                destination.as_query(),
                exc,
            )
            return RouteInfo.unavailable()

        routes = payload.get("routes") or []
        if payload.get("status") != "OK" or not routes:
            return RouteInfo.unavailable()

        try:
            leg = routes[0]["legs"][0]
        except (KeyError, IndexError, TypeError):
            logger.warning("Directions payload had no legs for destination=%s", destination.as_query())
            return RouteInfo.unavailable()

        return RouteInfo(
            distance_text=(leg.get("distance") or {}).get("text"),
            duration_text=(leg.get("duration") or {}).get("text"),
        )

    # ------------------------------------------------------------------
    # Geocoding
    # ------------------------------------------------------------------

    async def geocode_address(self, address: str) -> GeoPoint | None:
        """Forward geocode. Returns None when nothing matches or the lookup fails."""
        try:
            payload = await self._get_json(
                f"{self._maps_base_url}/geocode/json",
                {"address": address},
            )
        except MapsTransportError as exc:
            logger.warning("Geocoding failed for address=%r: %s", address, exc)
            return None

        results = payload.get("results") or []
        if payload.get("status") != "OK" or not results:
            return None

        try:
            location = results[0]["geometry"]["location"]
            return GeoPoint(latitude=float(location["lat"]), longitude=float(location["lng"]))
        except (KeyError, TypeError, ValueError):
            logger.warning("Geocoding payload malformed for address=%r", address)
            return None

    async def reverse_geocode(self, point: GeoPoint) -> str:
        """Formatted address for a point. Transport failures propagate."""
        payload = await self._get_json(
            f"{self._maps_base_url}/geocode/json",
            {"latlng": point.as_query()},
        )

        results = payload.get("results") or []
        if payload.get("status") == "OK" and results:
            address = results[0].get("formatted_address")
            if address:
                return str(address)

        logger.warning(
            "Reverse geocoding returned status=%s for %s",
            payload.get("status"),
            point.as_query(),
        )
        return ADDRESS_NOT_AVAILABLE
