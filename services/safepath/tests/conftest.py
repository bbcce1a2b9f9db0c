"""
Shared test fixtures for the SafePath API test suite.

Provides:
- GeoPoint factories and a few fixed points
- FakeSnapService: scriptable road-snap double that records every request
- mock_maps: AsyncMock standing in for GoogleMapsClient
- async FastAPI test client with mocked maps + real tracking registry
"""

import os
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure test env vars before any app imports
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("GOOGLE_MAPS_API_KEY", "")
os.environ.setdefault("SENTRY_DSN", "")

from services.safepath.geo.types import GeoPoint, Place, RouteInfo  # noqa: E402


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def make_point(i: int) -> GeoPoint:
    """Distinct, deterministic point per index."""
    return GeoPoint(latitude=12.9 + i * 0.001, longitude=77.5 + i * 0.001)


def make_place(i: int, **overrides: Any) -> Place:
    base = {
        "id": f"place-{i}",
        "name": f"Station {i}",
        "vicinity": f"{i} Main Road",
        "location": GeoPoint(latitude=13.0 + i * 0.01, longitude=77.6 + i * 0.01),
    }
    base.update(overrides)
    return Place(**base)


CENTER = GeoPoint(latitude=12.9716, longitude=77.5946)


# ---------------------------------------------------------------------------
# Road snap double
# ---------------------------------------------------------------------------

class FakeSnapService:
    """
    Scriptable snap_fn. Each call pops the next scripted response:
      - a list      -> returned as the snapped path
      - an Exception -> raised
      - "echo"      -> input returned unchanged
    Falls back to echo when the script is exhausted. Every request is recorded.
    """

    def __init__(self, *script: Any) -> None:
        self.script = list(script)
        self.requests: list[list[GeoPoint]] = []

    async def __call__(self, path: list[GeoPoint]) -> list[GeoPoint]:
        self.requests.append(list(path))
        response = self.script.pop(0) if self.script else "echo"
        if isinstance(response, Exception):
            raise response
        if response == "echo":
            return list(path)
        return list(response)


@pytest.fixture
def echo_snap() -> FakeSnapService:
    return FakeSnapService()


# ---------------------------------------------------------------------------
# Maps client double
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_maps():
    """AsyncMock with the GoogleMapsClient surface. Echo snap, no places by default."""
    maps = MagicMock()
    maps.snap_to_roads = AsyncMock(side_effect=lambda path: list(path))
    maps.nearby_search = AsyncMock(return_value=[])
    maps.route_info = AsyncMock(return_value=RouteInfo("1.2 km", "4 mins"))
    maps.geocode_address = AsyncMock(return_value=None)
    maps.reverse_geocode = AsyncMock(return_value="Address not available.")
    return maps


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------

@pytest.fixture
async def app(mock_maps):
    """Test app with mocked maps client. Lifespan is not run; state is injected."""
    from services.safepath.config import settings
    from services.safepath.main import app as _app
    from services.safepath.proximity.resolver import ProximityResolver
    from services.safepath.tracking.session import TrackingSessionRegistry
    from services.safepath.tracking.stabilizer import PathStabilizer

    registry = TrackingSessionRegistry(
        lambda: PathStabilizer(snap_fn=mock_maps.snap_to_roads),
        interval_s=3600.0,  # tests drive ticks through /flush
        max_sessions=3,
    )

    _app.state.settings = settings
    _app.state.maps = mock_maps
    _app.state.proximity_resolver = ProximityResolver(mock_maps)
    _app.state.tracking_registry = registry

    yield _app

    await registry.stop_all()


@pytest.fixture
async def client(app):
    """Async HTTP client bound to the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
