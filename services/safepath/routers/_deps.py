"""Shared dependencies for maps-backed routers."""
from fastapi import HTTPException, Request

from services.safepath.maps.client import GoogleMapsClient
from services.safepath.proximity.resolver import ProximityResolver
from services.safepath.tracking.session import TrackingSessionRegistry


def get_maps(request: Request) -> GoogleMapsClient:
    """Maps client from app state. None means the API key was missing at startup."""
    maps = getattr(request.app.state, "maps", None)
    if maps is None:
        raise HTTPException(status_code=503, detail="Maps provider not configured")
    return maps


def get_resolver(request: Request) -> ProximityResolver:
    resolver = getattr(request.app.state, "proximity_resolver", None)
    if resolver is None:
        raise HTTPException(status_code=503, detail="Maps provider not configured")
    return resolver


def get_registry(request: Request) -> TrackingSessionRegistry:
    registry = getattr(request.app.state, "tracking_registry", None)
    if registry is None:
        raise HTTPException(status_code=503, detail="Maps provider not configured")
    return registry
