"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ROSTER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Fleet Roster Optimizer API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root log level for the service.")
    snapshot_file: Path = Field(
        default=Path("data/roster_snapshot.json"),
        description="JSON snapshot used when no database is configured.",
    )
    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(
        default="driving",
        description="OSRM profile to use when computing travel times.",
    )
    osrm_max_retries: int = Field(default=3, ge=0)
    osrm_backoff_seconds: float = Field(default=1.0, ge=0.0)
    osrm_timeout_seconds: float = Field(default=30.0, gt=0.0)

    route_optimization_enabled: bool = Field(
        default=True,
        description="Use 2-opt local search; when False only the greedy builder runs.",
    )
    route_cost_metric: Literal["distance", "duration"] = Field(default="distance")
    route_time_limit_seconds: float = Field(default=5.0, gt=0.0)
    route_pickup_window_minutes: Optional[int] = Field(
        default=None,
        ge=0,
        description="When set, trips only share a route if pickups are within this window of the first trip.",
    )
    route_min_postcode_proximity: Optional[int] = Field(
        default=None,
        ge=0,
        le=100,
        description="When set, trips only share a route if their pickup postcode scores above this closeness to the first trip.",
    )
    average_speed_kmh: float = Field(default=40.0, gt=0.0)

    default_trip_duration_minutes: int = Field(default=60, ge=1)
    max_daily_hours: float = Field(default=9.0, gt=0.0)
    daily_hours_warning_ratio: float = Field(default=0.85, gt=0.0, le=1.0)
    default_max_hours_per_week: float = Field(default=40.0, gt=0.0)
    min_turnaround_minutes: int = Field(default=0, ge=0)
    scoring_time_limit_seconds: float = Field(default=10.0, gt=0.0)
    max_recommendations: int = Field(default=5, ge=1)
    completion_rate_window_days: int = Field(default=30, ge=1)
    max_parallel_workers: int = Field(default=8, ge=1)
    underutilized_threshold: float = Field(default=50.0, ge=0.0)
    overutilized_threshold: float = Field(default=90.0, ge=0.0)

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

    @field_validator("snapshot_file", mode="before")
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


settings = Settings()
