"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="CRO_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Collection Route Optimization API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for documents and exports.")
    depot_locations_file: Path = Field(
        default=Path("data/depots.xlsx"),
        description="Service-area depot workbook with ServiceArea/Latitude/Longitude columns.",
    )
    default_depot_lat: float = Field(default=6.927, ge=-90.0, le=90.0)
    default_depot_lon: float = Field(default=79.861, ge=-180.0, le=180.0)
    service_area_depots: dict[str, tuple[float, float]] = Field(
        default_factory=dict,
        description="Per service-area depot overrides as {area: [lat, lon]}.",
    )
    truck_capacity_kg: float = Field(default=1000.0, gt=0.0)
    truck_count: int = Field(default=1, ge=1)
    truck_id_prefix: str = "TRUCK"
    route_threshold: float = Field(default=0.2, ge=0.0, le=1.0)
    high_priority_ratio: float = Field(default=0.8, ge=0.0, le=1.0)
    average_speed_kmh: float = Field(default=25.0, gt=0.0)
    max_route_hours: Optional[float] = Field(default=None, ge=0.0)
    timezone: str = Field(default="Asia/Colombo", description="Timezone defining the calendar day of a plan.")
    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., https://router.project-osrm.org).",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(default="driving")
    osrm_timeout_seconds: float = Field(default=3.5, gt=0.0)
    osrm_max_retries: int = Field(default=1, ge=0)
    osrm_backoff_seconds: float = Field(default=0.5, ge=0.0)
    store_max_retries: int = Field(default=3, ge=0)
    store_backoff_seconds: float = Field(default=0.5, ge=0.0)
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("data_root", "depot_locations_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("service_area_depots", mode="before")
    @classmethod
    def _parse_depots_from_env(cls, value: Any) -> dict[str, tuple[float, float]]:
        """Accept a JSON object of {area: [lat, lon]} or {area: {"lat": .., "lon": ..}}."""
        if value is None or value == "":
            return {}
        if isinstance(value, str):
            value = json.loads(value)
        if not isinstance(value, dict):
            raise ValueError("service_area_depots must be a mapping of area to coordinates.")
        depots: dict[str, tuple[float, float]] = {}
        for area, coords in value.items():
            if isinstance(coords, dict):
                depots[str(area)] = (float(coords["lat"]), float(coords["lon"]))
            else:
                lat, lon = coords
                depots[str(area)] = (float(lat), float(lon))
        return depots


settings = Settings()
