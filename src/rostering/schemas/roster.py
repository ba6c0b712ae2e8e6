"""Roster request/response schemas.

List items (conflicts, workload metrics, assignments) keep the snake_case keys
the dispatch frontend already reads; envelopes and summaries are camelCase.
"""

from __future__ import annotations

import datetime as dt
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field

from .common import CamelModel, LocationModel


class DateRangeModel(CamelModel):
    start_date: dt.date
    end_date: dt.date


class TimeWindowModel(BaseModel):
    start: dt.datetime
    end: dt.datetime


class ConflictModel(BaseModel):
    conflict_type: str
    severity: Literal["critical", "warning", "info"]
    driver_id: int
    driver_name: str
    date: dt.date
    trip_id: Optional[int] = None
    trip_ids: List[int] = Field(default_factory=list)
    times: List[TimeWindowModel] = Field(default_factory=list)
    details: str


class ConflictSummaryModel(BaseModel):
    total: int = 0
    critical: int = 0
    warnings: int = 0
    info: int = 0


class AvailabilityResponse(CamelModel):
    driver_id: int
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    available: bool
    conflicts: List[ConflictModel]
    warnings: List[str] = Field(default_factory=list)
    booked_hours: float = 0.0


class ConflictsResponse(CamelModel):
    date_range: DateRangeModel
    conflicts: List[ConflictModel]
    summary: ConflictSummaryModel


class SuggestDriverRequest(CamelModel):
    customer_id: int
    trip_date: dt.date
    pickup_time: dt.time
    requires_wheelchair: bool = False
    passenger_count: Optional[int] = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("passengerCount", "passengersCount", "passenger_count"),
    )
    duration_minutes: Optional[int] = Field(default=None, ge=1)
    pickup_location: Optional[LocationModel] = None
    consider_proximity: bool = False


class VehicleSummaryModel(CamelModel):
    id: int
    registration: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    seats: int
    wheelchair_accessible: bool


class RecommendationModel(CamelModel):
    driver_id: int
    driver_name: str
    phone: Optional[str] = None
    vehicle: Optional[VehicleSummaryModel] = None
    score: int
    reasons: List[str]
    recommendation: Literal["highly_recommended", "recommended", "acceptable", "not_recommended", "unavailable"]
    is_regular_driver: bool
    daily_workload: int
    completion_rate: float


class SuggestDriverResponse(CamelModel):
    recommendations: List[RecommendationModel]
    total_drivers_analyzed: int
    available_drivers: int
    timed_out: bool = False


class AutoAssignRequest(CamelModel):
    assignment_date: dt.date = Field(alias="date")
    balance_workload: bool = True
    consider_proximity: bool = False
    max_assignments: int = Field(default=100, ge=0)
    apply_changes: bool = False


class AssignmentModel(BaseModel):
    trip_id: int
    driver_id: int
    driver_name: str
    confidence_score: int
    reasoning: List[str]


class AutoAssignResponse(CamelModel):
    assignment_date: dt.date = Field(alias="date")
    assigned: int
    unassigned: int
    assignments: List[AssignmentModel]
    unassigned_trip_ids: List[int]
    applied: bool
    timed_out: bool = False


class WorkloadMetricModel(BaseModel):
    driver_id: int
    driver_name: str
    total_hours: float
    total_trips: int
    days_worked: int
    average_hours_per_day: float
    utilization_percentage: float


class WorkloadSummaryModel(CamelModel):
    total_drivers: int
    total_hours: float
    average_utilization: float
    underutilized: int
    overutilized: int
    balanced: int


class WorkloadResponse(CamelModel):
    date_range: DateRangeModel
    metrics: List[WorkloadMetricModel]
    summary: WorkloadSummaryModel


class DashboardWorkloadModel(BaseModel):
    metrics: List[WorkloadMetricModel]
    summary: WorkloadSummaryModel


class DashboardConflictsModel(BaseModel):
    items: List[ConflictModel]
    summary: ConflictSummaryModel


class DashboardResponse(CamelModel):
    date_range: DateRangeModel
    workload: DashboardWorkloadModel
    conflicts: DashboardConflictsModel
    unassigned_trips: int
