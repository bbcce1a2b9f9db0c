"""
API envelope and endpoint tests.

Tests:
- Envelope shape (success/error) and requestId on every response
- Health check
- Tracking session lifecycle over HTTP
- /nearby success, empty and upstream failure
- Geocoding endpoints
- 503 when the maps provider is not configured
"""

import pytest
from unittest.mock import AsyncMock

from services.safepath.geo.types import GeoPoint, RouteInfo
from services.safepath.maps.errors import MapsTransportError
from services.safepath.tests.conftest import make_place


# ---------------------------------------------------------------------------
# Health / envelope
# ---------------------------------------------------------------------------

class TestHealthEndpoint:
    @pytest.mark.asyncio
    async def test_health_envelope_shape(self, client):
        response = await client.get("/health")
        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["data"]["status"] == "healthy"
        assert body["data"]["mapsConfigured"] is True
        assert "version" in body["data"]

    @pytest.mark.asyncio
    async def test_custom_request_id_header(self, client):
        response = await client.get("/health", headers={"x-request-id": "test-req-12345"})
        assert response.headers["x-request-id"] == "test-req-12345"
        assert response.json()["requestId"] == "test-req-12345"

    @pytest.mark.asyncio
    async def test_404_error_envelope(self, client):
        response = await client.get("/nonexistent-route")
        body = response.json()
        assert response.status_code == 404
        assert body["success"] is False
        assert body["error"]["code"] == "NOT_FOUND"
        assert "requestId" in body


# ---------------------------------------------------------------------------
# Tracking
# ---------------------------------------------------------------------------

async def _create_session(client) -> str:
    response = await client.post("/tracking/sessions")
    assert response.status_code == 201
    return response.json()["data"]["sessionId"]


class TestTrackingEndpoints:
    @pytest.mark.asyncio
    async def test_push_flush_and_read_path(self, client, mock_maps):
        session_id = await _create_session(client)

        pushed = await client.post(
            f"/tracking/sessions/{session_id}/fixes",
            json={"fixes": [{"latitude": 12.1, "longitude": 77.1}, {"latitude": 12.2, "longitude": 77.2}]},
        )
        assert pushed.status_code == 202
        assert pushed.json()["data"] == {"accepted": 2, "pending": 2}

        flushed = await client.post(f"/tracking/sessions/{session_id}/flush")
        assert flushed.json()["data"]["outcome"] == "snapped"

        path = await client.get(f"/tracking/sessions/{session_id}/path")
        data = path.json()["data"]
        assert data["path"] == [
            {"latitude": 12.1, "longitude": 77.1},
            {"latitude": 12.2, "longitude": 77.2},
        ]
        assert data["status"]["pathLength"] == 2
        mock_maps.snap_to_roads.assert_awaited_once_with([GeoPoint(12.1, 77.1), GeoPoint(12.2, 77.2)])

    @pytest.mark.asyncio
    async def test_failed_snap_keeps_fixes_pending(self, client, mock_maps):
        mock_maps.snap_to_roads.side_effect = MapsTransportError("HTTP 500", status_code=500)
        session_id = await _create_session(client)
        await client.post(
            f"/tracking/sessions/{session_id}/fixes",
            json={"fixes": [{"latitude": 12.1, "longitude": 77.1}]},
        )

        flushed = await client.post(f"/tracking/sessions/{session_id}/flush")
        data = flushed.json()["data"]

        assert flushed.status_code == 200
        assert data["outcome"] == "requeued"
        assert data["path"] == []
        assert data["status"]["pending"] == 1

    @pytest.mark.asyncio
    async def test_fix_source_error_is_recorded(self, client):
        session_id = await _create_session(client)

        response = await client.post(
            f"/tracking/sessions/{session_id}/fixes",
            json={"error": "User denied geolocation"},
        )
        assert response.status_code == 202
        assert response.json()["data"]["accepted"] == 0

        path = await client.get(f"/tracking/sessions/{session_id}/path")
        status = path.json()["data"]["status"]
        assert status["fixErrors"] == 1
        assert status["lastFixError"] == "User denied geolocation"

    @pytest.mark.asyncio
    async def test_empty_fix_batch_rejected(self, client):
        session_id = await _create_session(client)
        response = await client.post(f"/tracking/sessions/{session_id}/fixes", json={"fixes": []})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_out_of_range_fix_rejected(self, client):
        session_id = await _create_session(client)
        response = await client.post(
            f"/tracking/sessions/{session_id}/fixes",
            json={"fixes": [{"latitude": 91.0, "longitude": 0.0}]},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_recenter_clears_path(self, client):
        session_id = await _create_session(client)
        await client.post(
            f"/tracking/sessions/{session_id}/fixes",
            json={"fixes": [{"latitude": 12.1, "longitude": 77.1}]},
        )
        await client.post(f"/tracking/sessions/{session_id}/flush")

        response = await client.post(f"/tracking/sessions/{session_id}/recenter")

        assert response.json()["data"]["pathLength"] == 0

    @pytest.mark.asyncio
    async def test_stop_then_unknown(self, client):
        session_id = await _create_session(client)

        stopped = await client.delete(f"/tracking/sessions/{session_id}")
        assert stopped.json()["data"]["stopped"] is True

        again = await client.get(f"/tracking/sessions/{session_id}/path")
        assert again.status_code == 404
        assert again.json()["error"]["message"] == "Tracking session not found"

    @pytest.mark.asyncio
    async def test_session_capacity(self, client):
        for _ in range(3):
            await _create_session(client)

        response = await client.post("/tracking/sessions")
        assert response.status_code == 429
        assert response.json()["error"]["code"] == "TOO_MANY_SESSIONS"


# ---------------------------------------------------------------------------
# Nearby
# ---------------------------------------------------------------------------

class TestNearbyEndpoint:
    @pytest.mark.asyncio
    async def test_enriched_places(self, client, mock_maps):
        station = make_place(1)
        mock_maps.nearby_search = AsyncMock(side_effect=[[], [station]])
        mock_maps.route_info = AsyncMock(return_value=RouteInfo("2 km", "7 mins"))

        response = await client.get("/nearby", params={"lat": 12.97, "lng": 77.59, "category": "police"})
        data = response.json()["data"]

        assert response.status_code == 200
        assert data["count"] == 1
        assert data["places"][0]["id"] == station.id
        assert data["places"][0]["distanceText"] == "2 km"
        assert data["places"][0]["durationText"] == "7 mins"

    @pytest.mark.asyncio
    async def test_unenriched_place_has_null_route_fields(self, client, mock_maps):
        mock_maps.nearby_search = AsyncMock(return_value=[make_place(1)])
        mock_maps.route_info = AsyncMock(side_effect=RuntimeError("boom"))

        response = await client.get("/nearby", params={"lat": 12.97, "lng": 77.59, "category": "hospital"})
        place = response.json()["data"]["places"][0]

        assert place["distanceText"] is None
        assert place["durationText"] is None

    @pytest.mark.asyncio
    async def test_nothing_found(self, client):
        response = await client.get("/nearby", params={"lat": 12.97, "lng": 77.59})
        body = response.json()
        assert body["success"] is True
        assert body["data"]["places"] == []
        assert body["data"]["category"] == "police"

    @pytest.mark.asyncio
    async def test_search_transport_error_is_502(self, client, mock_maps):
        mock_maps.nearby_search = AsyncMock(side_effect=MapsTransportError("HTTP 500"))

        response = await client.get("/nearby", params={"lat": 12.97, "lng": 77.59})

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "UPSTREAM_UNAVAILABLE"

    @pytest.mark.asyncio
    async def test_unknown_category_rejected(self, client):
        response = await client.get("/nearby", params={"lat": 12.97, "lng": 77.59, "category": "pharmacy"})
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Geocoding
# ---------------------------------------------------------------------------

class TestGeocodeEndpoints:
    @pytest.mark.asyncio
    async def test_geocode(self, client, mock_maps):
        mock_maps.geocode_address = AsyncMock(return_value=GeoPoint(28.61, 77.2))
        response = await client.get("/geocode", params={"address": "India Gate"})
        assert response.json()["data"]["location"] == {"latitude": 28.61, "longitude": 77.2}

    @pytest.mark.asyncio
    async def test_geocode_unknown_address(self, client):
        response = await client.get("/geocode", params={"address": "nowhere"})
        assert response.json()["data"]["location"] is None

    @pytest.mark.asyncio
    async def test_reverse_geocode_failure_is_502(self, client, mock_maps):
        mock_maps.reverse_geocode = AsyncMock(side_effect=MapsTransportError("down"))
        response = await client.get("/geocode/reverse", params={"lat": 28.61, "lng": 77.2})
        assert response.status_code == 502


# ---------------------------------------------------------------------------
# Maps not configured
# ---------------------------------------------------------------------------

class TestMapsNotConfigured:
    @pytest.mark.asyncio
    async def test_maps_routes_return_503(self, app, client):
        app.state.maps = None
        app.state.proximity_resolver = None
        app.state.tracking_registry = None

        for method, url in [
            ("GET", "/nearby?lat=1&lng=1"),
            ("POST", "/tracking/sessions"),
            ("GET", "/geocode?address=x"),
        ]:
            response = await client.request(method, url)
            assert response.status_code == 503
            assert response.json()["error"]["code"] == "MAPS_NOT_CONFIGURED"

        health = await client.get("/health")
        assert health.json()["data"]["mapsConfigured"] is False
