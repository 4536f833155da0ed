"""
Application configuration via pydantic-settings.
All config read from environment variables with sensible defaults for local dev.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # App
    app_name: str = "routeplanner-api"
    app_version: str = "0.1.0"
    environment: str = Field(default="development", pattern=r"^(development|staging|production)$")
    debug: bool = False

    # Redis (rate limiting only)
    redis_url: str = Field(default="redis://localhost:16379/0")

    # CORS
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"]
    )

    # Sentry
    sentry_dsn: str = ""
    sentry_traces_sample_rate: float = Field(default=0.1, ge=0.0, le=1.0)

    # Rate Limiting
    rate_limit_anon_per_min: int = 60
    rate_limit_planning_per_min: int = 20

    # OSRM (driving + walking segments)
    osrm_base_url: str = Field(default="https://router.project-osrm.org")
    # The public demo server names its walking profile "foot"
    osrm_walking_profile: str = "foot"
    routing_timeout_s: float = Field(default=8.0, ge=1.0, le=10.0)

    # Google Directions (optional transit enhancement, disabled when empty)
    google_maps_api_key: str = ""
    directions_timeout_s: float = Field(default=8.0, ge=1.0, le=10.0)

    # Stop dataset (GeoJSON FeatureCollection of bus stops)
    stops_dataset_path: str = "data/bus_stops.geojson"

    # Straight-line fallback calibration, minutes per km
    driving_fallback_min_per_km: float = Field(default=1.5, gt=0.0)
    walking_fallback_min_per_km: float = Field(default=12.0, gt=0.0)  # 5 km/h
    transit_fallback_min_per_km: float = Field(default=2.0, gt=0.0)

    # Planning
    segment_concurrency: int = Field(default=4, ge=1, le=16)
    max_destinations: int = Field(default=25, ge=1)

    # Timetable deep links (IDOS)
    idos_base_url: str = "https://idos.idnes.cz/vlakyautobusymhdvse/spojeni/"
    idos_region_code: str = "501400"

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}


settings = Settings()
