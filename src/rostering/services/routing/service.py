"""Routing orchestration service."""

from __future__ import annotations

import logging
from typing import Sequence

from ...data.repository import RosterRepository
from ...models.domain import Trip
from ...schemas.routing import (
    CapacityOptimizationRequest,
    CapacityOptimizationResponse,
    RouteModel,
    RouteOptimizationRequest,
    RouteOptimizationResponse,
    TripModel,
)
from .models import Route, RoutingResult
from .optimizer import RouteOptimizer, build_route_optimizer


def _to_trip(model: TripModel) -> Trip:
    return Trip(
        trip_id=model.trip_id,
        trip_date=model.trip_date,
        pickup_time=model.pickup_time,
        passenger_count=model.passengers,
        pickup=model.pickup_location.to_domain(),
        destination=model.destination.to_domain(),
        duration_minutes=model.duration_minutes,
        requires_wheelchair=model.requires_wheelchair,
    )


def _route_to_model(route: Route) -> RouteModel:
    return RouteModel(
        route_id=route.route_id,
        trips=list(route.trip_ids),
        total_passengers=route.total_passengers,
        capacity_used=round(route.capacity_used, 2),
        total_seats=route.capacity,
        occupied_seats=route.occupied_seats,
        empty_seats=route.empty_seats,
        overflow_passengers=route.overflow_passengers,
        capacity_exceeded=route.capacity_exceeded,
        estimated_cost=round(route.total_cost, 3),
    )


def _result_to_response(result: RoutingResult) -> RouteOptimizationResponse:
    metadata = dict(result.metadata)
    violations = [route.route_id for route in result.routes if route.capacity_exceeded]
    if violations:
        metadata["capacity_violations"] = violations
    return RouteOptimizationResponse(
        routes=[_route_to_model(route) for route in result.routes],
        method=result.method,
        optimization_level=result.optimization_level,
        improvement=round(result.improvement, 2),
        iterations=result.iterations,
        baseline_cost=round(result.baseline_cost, 3),
        total_cost=round(result.total_cost, 3),
        timed_out=result.timed_out,
        processing_time_ms=round(result.processing_time_ms, 1),
        metadata=metadata,
    )


def optimize_trips(
    trips: Sequence[Trip],
    vehicle_capacity: int,
    optimization_level: str = "standard",
    *,
    optimizer: RouteOptimizer | None = None,
) -> RoutingResult:
    optimizer = optimizer or build_route_optimizer()
    return optimizer.optimize(trips, vehicle_capacity, optimization_level)


def optimize_routes(
    payload: RouteOptimizationRequest,
    *,
    optimizer: RouteOptimizer | None = None,
) -> RouteOptimizationResponse:
    trips = [_to_trip(model) for model in payload.trips]
    result = optimize_trips(
        trips,
        payload.vehicle_capacity,
        payload.optimization_level,
        optimizer=optimizer,
    )
    return _result_to_response(result)


def optimize_tenant_trips(
    repository: RosterRepository,
    tenant_id: int,
    payload: CapacityOptimizationRequest,
    *,
    optimizer: RouteOptimizer | None = None,
) -> CapacityOptimizationResponse:
    """Group one day of a tenant's trips into vehicle routes."""
    day = payload.trip_date
    trips = repository.fetch_trips(tenant_id, day, day)
    result = optimize_trips(
        trips,
        payload.vehicle_capacity,
        payload.optimization_level,
        optimizer=optimizer,
    )
    response = _result_to_response(result)
    average_used = (
        sum(route.capacity_used for route in result.routes) / len(result.routes) if result.routes else 0.0
    )
    logging.info(
        f"Capacity optimization for tenant {tenant_id} on {day}: "
        f"{len(trips)} trips into {len(result.routes)} routes"
    )
    return CapacityOptimizationResponse(
        **response.model_dump(),
        trip_date=day,
        total_trips=len(trips),
        total_passengers=sum(trip.passenger_count for trip in trips),
        average_capacity_used=round(average_used, 2),
    )
