"""
Geocoding endpoints.

GET /geocode?address=...          — address -> coordinates (null when unknown)
GET /geocode/reverse?lat=&lng=    — coordinates -> formatted address
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from services.safepath.geo.types import GeoPoint
from services.safepath.maps.client import GoogleMapsClient
from services.safepath.maps.errors import MapsTransportError
from services.safepath.routers._deps import get_maps

router = APIRouter(prefix="/geocode", tags=["geocode"])


@router.get("")
async def geocode(
    request: Request,
    address: str = Query(..., min_length=1, max_length=300),
    maps: GoogleMapsClient = Depends(get_maps),
) -> dict:
    location = await maps.geocode_address(address)

    return {
        "success": True,
        "data": {
            "address": address,
            "location": location.to_dict() if location else None,
        },
        "requestId": request.state.request_id,
    }


@router.get("/reverse")
async def reverse_geocode(
    request: Request,
    lat: float = Query(..., ge=-90.0, le=90.0),
    lng: float = Query(..., ge=-180.0, le=180.0),
    maps: GoogleMapsClient = Depends(get_maps),
) -> dict:
    point = GeoPoint(latitude=lat, longitude=lng)
    try:
        address = await maps.reverse_geocode(point)
    except MapsTransportError:
        raise HTTPException(status_code=502, detail="Could not fetch address.")

    return {
        "success": True,
        "data": {"location": point.to_dict(), "address": address},
        "requestId": request.state.request_id,
    }
