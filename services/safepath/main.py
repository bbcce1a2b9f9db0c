"""
SafePath FastAPI service — live path stabilization and nearby emergency services.

Entrypoint: uvicorn services.safepath.main:app --host 0.0.0.0 --port 8000
"""

import logging
import uuid
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from services.safepath.config import settings
from services.safepath.maps.client import GoogleMapsClient
from services.safepath.maps.errors import MapsConfigError
from services.safepath.middleware.cors import setup_cors
from services.safepath.middleware.sentry import setup_sentry
from services.safepath.proximity.resolver import ProximityResolver
from services.safepath.routers import geocode, health, nearby, tracking
from services.safepath.tracking.buffer import RawSampleBuffer
from services.safepath.tracking.session import TrackingSessionRegistry
from services.safepath.tracking.stabilizer import PathStabilizer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    setup_sentry()

    # One connection pool for every maps call in the process
    http_client = httpx.AsyncClient(timeout=settings.maps_timeout_s)

    maps = None
    try:
        maps = GoogleMapsClient(api_key=settings.google_maps_api_key, http=http_client)
    except MapsConfigError as e:
        # Configuration failure: reported once, maps-backed routes answer 503
        logger.error("Maps features disabled: %s", e)

    app.state.settings = settings
    app.state.maps = maps
    app.state.proximity_resolver = None
    app.state.tracking_registry = None

    if maps is not None:
        app.state.proximity_resolver = ProximityResolver(maps, radii_m=settings.proximity_radii_m)

        def _new_stabilizer() -> PathStabilizer:
            return PathStabilizer(
                snap_fn=maps.snap_to_roads,
                buffer=RawSampleBuffer(max_size=settings.max_buffered_samples),
                max_points=settings.snap_max_points,
            )

        app.state.tracking_registry = TrackingSessionRegistry(
            _new_stabilizer,
            interval_s=settings.snap_interval_s,
            max_sessions=settings.max_tracking_sessions,
            idle_ttl_s=settings.tracking_idle_ttl_s,
        )

    yield

    if app.state.tracking_registry is not None:
        await app.state.tracking_registry.stop_all()
    await http_client.aclose()


app = FastAPI(
    title="SafePath API",
    version=settings.app_version,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# -- Middleware (order matters: last added = outermost in Starlette) --

app.include_router(health.router)
app.include_router(tracking.router)
app.include_router(nearby.router)
app.include_router(geocode.router)

# CORS (needs to be outermost to handle preflight)
setup_cors(app)


# Request ID injection
@app.middleware("http")
async def request_envelope_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# -- Exception Handlers --

_ERROR_CODES = {
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    422: "VALIDATION_ERROR",
    429: "TOO_MANY_SESSIONS",
    502: "UPSTREAM_UNAVAILABLE",
    503: "MAPS_NOT_CONFIGURED",
}


def _error_response(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {"code": code, "message": message},
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = "Resource not found."
    else:
        message = str(exc.detail)
    return _error_response(request, exc.status_code, code, message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Validation error.") if errors else "Validation error."
    return _error_response(request, 422, "VALIDATION_ERROR", message)


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc) -> JSONResponse:
    return _error_response(request, 500, "INTERNAL_ERROR", "An unexpected error occurred.")
