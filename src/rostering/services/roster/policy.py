"""Roster policy shared by availability, conflict, scoring and workload components."""

from __future__ import annotations

from dataclasses import dataclass

from ...config import Settings, settings


@dataclass(slots=True, frozen=True)
class RosterPolicy:
    default_trip_duration_minutes: int = settings.default_trip_duration_minutes
    max_daily_hours: float = settings.max_daily_hours
    daily_hours_warning_ratio: float = settings.daily_hours_warning_ratio
    default_max_hours_per_week: float = settings.default_max_hours_per_week
    min_turnaround_minutes: int = settings.min_turnaround_minutes
    scoring_time_limit_seconds: float = settings.scoring_time_limit_seconds
    max_recommendations: int = settings.max_recommendations
    completion_rate_window_days: int = settings.completion_rate_window_days
    max_workers: int = settings.max_parallel_workers
    underutilized_threshold: float = settings.underutilized_threshold
    overutilized_threshold: float = settings.overutilized_threshold

    @classmethod
    def from_settings(cls, config: Settings) -> "RosterPolicy":
        return cls(
            default_trip_duration_minutes=config.default_trip_duration_minutes,
            max_daily_hours=config.max_daily_hours,
            daily_hours_warning_ratio=config.daily_hours_warning_ratio,
            default_max_hours_per_week=config.default_max_hours_per_week,
            min_turnaround_minutes=config.min_turnaround_minutes,
            scoring_time_limit_seconds=config.scoring_time_limit_seconds,
            max_recommendations=config.max_recommendations,
            completion_rate_window_days=config.completion_rate_window_days,
            max_workers=config.max_parallel_workers,
            underutilized_threshold=config.underutilized_threshold,
            overutilized_threshold=config.overutilized_threshold,
        )
