"""
Maps provider package.

Google Maps Platform adapter (Roads, Places, Directions, Geocoding) plus the
error taxonomy shared by the tracking and proximity subsystems.
"""

from services.safepath.maps.client import GoogleMapsClient
from services.safepath.maps.errors import MapsConfigError, MapsError, MapsTransportError

__all__ = ["GoogleMapsClient", "MapsConfigError", "MapsError", "MapsTransportError"]
