"""
Geo value types shared by the tracking and proximity subsystems.
"""

from services.safepath.geo.types import (
    ROUTE_INFO_UNAVAILABLE,
    EnrichedPlace,
    GeoPoint,
    Place,
    PlaceCategory,
    RouteInfo,
)

__all__ = [
    "ROUTE_INFO_UNAVAILABLE",
    "EnrichedPlace",
    "GeoPoint",
    "Place",
    "PlaceCategory",
    "RouteInfo",
]
