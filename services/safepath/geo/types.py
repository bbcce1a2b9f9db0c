"""
Shared value types for path stabilization and proximity resolution.

All types are immutable. GeoPoints are never compared by value when merging
paths — the stabilizer splices positionally.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

# Sentinel returned by the directions provider when a leg has no data
ROUTE_INFO_UNAVAILABLE = "N/A"


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float

    def to_dict(self) -> dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}

    def as_query(self) -> str:
        """'lat,lng' — the coordinate format every Google web service accepts."""
        return f"{self.latitude},{self.longitude}"


class PlaceCategory(str, Enum):
    """Emergency-service categories callers may resolve. Values are provider place types."""

    POLICE = "police"
    HOSPITAL = "hospital"


@dataclass(frozen=True)
class Place:
    id: str
    name: str
    location: GeoPoint
    vicinity: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "vicinity": self.vicinity,
            "location": self.location.to_dict(),
        }


@dataclass(frozen=True)
class RouteInfo:
    """Distance/duration text for the primary route between two points."""

    distance_text: str | None = ROUTE_INFO_UNAVAILABLE
    duration_text: str | None = ROUTE_INFO_UNAVAILABLE

    @classmethod
    def unavailable(cls) -> RouteInfo:
        return cls(ROUTE_INFO_UNAVAILABLE, ROUTE_INFO_UNAVAILABLE)

    @property
    def available(self) -> bool:
        return any(
            text and text != ROUTE_INFO_UNAVAILABLE
            for text in (self.distance_text, self.duration_text)
        )


@dataclass(frozen=True)
class EnrichedPlace:
    """A Place plus best-effort route data. route=None means enrichment failed or was skipped."""

    place: Place
    route: RouteInfo | None = None

    @property
    def distance_text(self) -> str | None:
        return self.route.distance_text if self.route else None

    @property
    def duration_text(self) -> str | None:
        return self.route.duration_text if self.route else None

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.place.to_dict(),
            "distanceText": self.distance_text,
            "durationText": self.duration_text,
        }
