"""
Nearby help endpoint — GET /nearby

Closest police stations or hospitals to a point, each with best-effort
driving distance/duration. An empty list is a valid answer.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from services.safepath.geo.types import GeoPoint, PlaceCategory
from services.safepath.maps.errors import MapsTransportError
from services.safepath.proximity.resolver import ProximityResolver
from services.safepath.routers._deps import get_resolver

logger = logging.getLogger(__name__)

router = APIRouter(tags=["nearby"])


@router.get("/nearby")
async def nearby_places(
    request: Request,
    lat: float = Query(..., ge=-90.0, le=90.0),
    lng: float = Query(..., ge=-180.0, le=180.0),
    category: PlaceCategory = Query(PlaceCategory.POLICE),
    resolver: ProximityResolver = Depends(get_resolver),
) -> dict:
    center = GeoPoint(latitude=lat, longitude=lng)

    try:
        places = await resolver.resolve(center, category)
    except MapsTransportError as exc:
        logger.warning("Nearby %s lookup failed at %s: %s", category.value, center.as_query(), exc)
        raise HTTPException(status_code=502, detail="Could not fetch nearby places.")

    return {
        "success": True,
        "data": {
            "category": category.value,
            "center": center.to_dict(),
            "places": [p.to_dict() for p in places],
            "count": len(places),
        },
        "requestId": request.state.request_id,
    }
