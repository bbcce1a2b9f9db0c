"""
Application configuration via pydantic-settings.
All config read from environment variables with sensible defaults for local dev.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # App
    app_name: str = "safepath-api"
    app_version: str = "0.1.0"
    environment: str = Field(default="development", pattern=r"^(development|staging|production)$")
    debug: bool = False

    # CORS
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"]
    )

    # Sentry
    sentry_dsn: str = ""
    sentry_traces_sample_rate: float = Field(default=0.1, ge=0.0, le=1.0)

    # Google Maps Platform (Roads, Places, Directions, Geocoding)
    # Empty key disables every maps-backed feature; nothing is retried.
    google_maps_api_key: str = ""
    maps_timeout_s: float = Field(default=8.0, gt=0.0)

    # Path stabilization
    snap_interval_s: float = Field(default=5.0, gt=0.0)
    snap_max_points: int = Field(default=100, ge=2, le=100)  # Roads API hard cap
    max_buffered_samples: int = Field(default=2000, ge=1)  # drop-oldest beyond this
    max_tracking_sessions: int = Field(default=500, ge=1)
    tracking_idle_ttl_s: float = Field(default=300.0, gt=0.0)

    # Proximity
    proximity_radii_m: list[int] = Field(default=[1000, 2000, 5000])

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}


settings = Settings()
