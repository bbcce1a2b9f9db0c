"""
Live tracking endpoints.

POST   /tracking/sessions                 — start a tracking session
POST   /tracking/sessions/{id}/fixes      — push raw fixes (or a fix source error)
POST   /tracking/sessions/{id}/flush      — run one stabilization tick now
POST   /tracking/sessions/{id}/recenter   — discard path state, keep tracking
GET    /tracking/sessions/{id}/path       — stabilized path snapshot + status
DELETE /tracking/sessions/{id}            — stop tracking

Fix pushes return immediately; road-snapping happens on the session timer.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field, model_validator

from services.safepath.geo.types import GeoPoint
from services.safepath.routers._deps import get_registry
from services.safepath.tracking.session import (
    TrackingCapacityError,
    TrackingSession,
    TrackingSessionRegistry,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tracking", tags=["tracking"])

MAX_FIXES_PER_REQUEST = 500


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class FixIn(BaseModel):
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


class FixBatchRequest(BaseModel):
    fixes: list[FixIn] = Field(default_factory=list, max_length=MAX_FIXES_PER_REQUEST)
    error: str | None = Field(
        default=None,
        max_length=500,
        description="Fix source error reported instead of (or alongside) positions.",
    )

    @model_validator(mode="after")
    def fixes_or_error(self) -> "FixBatchRequest":
        if not self.fixes and not self.error:
            raise ValueError("Provide at least one fix or an error")
        return self


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_session(registry: TrackingSessionRegistry, session_id: str) -> TrackingSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Tracking session not found")
    return session


def _path_payload(session: TrackingSession) -> dict:
    return {
        "path": [p.to_dict() for p in session.snapshot()],
        "status": session.status(),
    }


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/sessions", status_code=201)
async def create_session(
    request: Request,
    registry: TrackingSessionRegistry = Depends(get_registry),
) -> dict:
    try:
        session = registry.create()
    except TrackingCapacityError as exc:
        logger.warning("Refusing new tracking session: %s", exc)
        raise HTTPException(status_code=429, detail="Too many active tracking sessions")

    return {
        "success": True,
        "data": session.status(),
        "requestId": request.state.request_id,
    }


@router.post("/sessions/{session_id}/fixes", status_code=202)
async def push_fixes(
    session_id: str,
    body: FixBatchRequest,
    request: Request,
    registry: TrackingSessionRegistry = Depends(get_registry),
) -> dict:
    session = _get_session(registry, session_id)

    if body.error:
        session.on_fix_error(body.error)

    accepted = 0
    for fix in body.fixes:
        if session.on_fix(GeoPoint(latitude=fix.latitude, longitude=fix.longitude)):
            accepted += 1

    return {
        "success": True,
        "data": {"accepted": accepted, "pending": session.status()["pending"]},
        "requestId": request.state.request_id,
    }


@router.post("/sessions/{session_id}/flush")
async def flush_session(
    session_id: str,
    request: Request,
    registry: TrackingSessionRegistry = Depends(get_registry),
) -> dict:
    session = _get_session(registry, session_id)
    outcome = await session.flush()

    return {
        "success": True,
        "data": {"outcome": outcome.value, **_path_payload(session)},
        "requestId": request.state.request_id,
    }


@router.post("/sessions/{session_id}/recenter")
async def recenter_session(
    session_id: str,
    request: Request,
    registry: TrackingSessionRegistry = Depends(get_registry),
) -> dict:
    session = _get_session(registry, session_id)
    session.recenter()

    return {
        "success": True,
        "data": session.status(),
        "requestId": request.state.request_id,
    }


@router.get("/sessions/{session_id}/path")
async def get_path(
    session_id: str,
    request: Request,
    registry: TrackingSessionRegistry = Depends(get_registry),
) -> dict:
    session = _get_session(registry, session_id)

    return {
        "success": True,
        "data": _path_payload(session),
        "requestId": request.state.request_id,
    }


@router.delete("/sessions/{session_id}")
async def stop_session(
    session_id: str,
    request: Request,
    registry: TrackingSessionRegistry = Depends(get_registry),
) -> dict:
    if not registry.stop(session_id):
        raise HTTPException(status_code=404, detail="Tracking session not found")

    return {
        "success": True,
        "data": {"sessionId": session_id, "stopped": True},
        "requestId": request.state.request_id,
    }
