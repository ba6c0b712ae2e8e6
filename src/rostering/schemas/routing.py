"""Routing request/response schemas."""

from __future__ import annotations

from datetime import date, time
from typing import Dict, List, Literal

from pydantic import Field

from ..config import settings
from .common import CamelModel, LocationModel


class TripModel(CamelModel):
    trip_id: int
    passengers: int = Field(..., ge=1)
    pickup_location: LocationModel
    destination: LocationModel
    pickup_time: time
    trip_date: date = Field(default_factory=date.today)
    duration_minutes: int = Field(default=settings.default_trip_duration_minutes, ge=1)
    requires_wheelchair: bool = False


class RouteOptimizationRequest(CamelModel):
    trips: List[TripModel]
    vehicle_capacity: int = Field(..., ge=1)
    optimization_level: Literal["quick", "standard", "thorough"] = "standard"


class RouteModel(CamelModel):
    route_id: int
    trips: List[int]
    total_passengers: int
    capacity_used: float
    total_seats: int
    occupied_seats: int
    empty_seats: int
    overflow_passengers: int
    capacity_exceeded: bool
    estimated_cost: float


class RouteOptimizationResponse(CamelModel):
    routes: List[RouteModel]
    method: Literal["optimized", "fallback"]
    optimization_level: str
    improvement: float
    iterations: int
    baseline_cost: float
    total_cost: float
    timed_out: bool
    processing_time_ms: float
    metadata: Dict[str, object] = Field(default_factory=dict)


class CapacityOptimizationRequest(CamelModel):
    trip_date: date = Field(alias="date")
    vehicle_capacity: int = Field(default=8, ge=1)
    optimization_level: Literal["quick", "standard", "thorough"] = "standard"


class CapacityOptimizationResponse(RouteOptimizationResponse):
    trip_date: date = Field(alias="date")
    total_trips: int
    total_passengers: int
    average_capacity_used: float
