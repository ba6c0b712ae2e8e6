import math
from datetime import date, time

import pytest

from rostering.config import Settings
from rostering.models.domain import Location, Trip
from rostering.schemas.routing import RouteOptimizationRequest
from rostering.services.routing.cost import (
    CostUnavailableError,
    HaversineCostProvider,
    OSRMCostProvider,
    TravelCost,
)
from rostering.services.routing.optimizer import (
    GreedyRouteOptimizer,
    LocalSearchRouteOptimizer,
    RoutingPolicy,
    build_route_optimizer,
)
from rostering.services.routing.service import optimize_routes


def _trip(tid: int, passengers: int, hour: int, minute: int, lat: float, lon: float) -> Trip:
    return Trip(
        trip_id=tid,
        trip_date=date(2025, 1, 15),
        pickup_time=time(hour, minute),
        passenger_count=passengers,
        pickup=Location(address=f"Pickup {tid}", latitude=lat, longitude=lon),
        destination=Location(address="Day Centre", latitude=51.40, longitude=-0.10),
    )


def _zigzag_trips() -> list[Trip]:
    # pickup order zig-zags north and south along one meridian
    return [
        _trip(1, 2, 9, 0, 51.50, -0.10),
        _trip(2, 3, 9, 5, 51.53, -0.10),
        _trip(3, 2, 9, 10, 51.51, -0.10),
        _trip(4, 4, 9, 15, 51.52, -0.10),
        _trip(5, 3, 9, 20, 51.54, -0.10),
    ]


class BrokenCostProvider:
    def cost_between(self, origin, destination):
        raise CostUnavailableError("routing engine offline")

    def matrix(self, locations):
        raise CostUnavailableError("routing engine offline")


class DummyOSRM:
    def __init__(self, fail: bool = False):
        self.fail = fail

    def table(self, coordinates):
        if self.fail:
            raise ConnectionError("Cannot connect to OSRM server")
        count = len(coordinates)
        durations = [[0 if i == j else 600 for j in range(count)] for i in range(count)]
        distances = [[0 if i == j else 1000 for j in range(count)] for i in range(count)]
        return {"durations": durations, "distances": distances}


def test_local_search_improves_on_greedy_order():
    optimizer = LocalSearchRouteOptimizer(HaversineCostProvider(), RoutingPolicy(max_workers=2))
    result = optimizer.optimize(_zigzag_trips(), vehicle_capacity=20, optimization_level="thorough")

    assert result.method == "optimized"
    assert len(result.routes) == 1
    assert sorted(result.routes[0].trip_ids) == [1, 2, 3, 4, 5]
    assert result.total_cost <= result.baseline_cost
    assert result.improvement > 0
    assert result.iterations > 0


def test_five_trip_example_at_thorough_level():
    trips = [
        _trip(1, 2, 9, 0, 51.50, -0.10),
        _trip(2, 4, 9, 10, 51.52, -0.12),
        _trip(3, 3, 9, 20, 51.49, -0.08),
        _trip(4, 2, 9, 30, 51.53, -0.11),
        _trip(5, 4, 9, 40, 51.51, -0.09),
    ]
    optimizer = LocalSearchRouteOptimizer(HaversineCostProvider(), RoutingPolicy(max_workers=2))
    result = optimizer.optimize(trips, vehicle_capacity=8, optimization_level="thorough")

    covered = [trip_id for route in result.routes for trip_id in route.trip_ids]
    assert len(result.routes) >= 1
    assert sorted(covered) == [1, 2, 3, 4, 5]
    assert math.isfinite(result.improvement)
    assert result.improvement >= 0
    assert all(route.total_passengers <= 8 for route in result.routes)


def test_iterations_grow_with_optimization_level():
    optimizer = LocalSearchRouteOptimizer(HaversineCostProvider(), RoutingPolicy(max_workers=1))
    iterations = [
        optimizer.optimize(_zigzag_trips(), 20, level).iterations for level in ("quick", "standard", "thorough")
    ]
    assert iterations == sorted(iterations)


def test_cost_failure_falls_back_to_greedy_routes():
    optimizer = LocalSearchRouteOptimizer(BrokenCostProvider(), RoutingPolicy(max_workers=1))
    result = optimizer.optimize(_zigzag_trips(), vehicle_capacity=20)

    assert result.method == "fallback"
    assert result.routes[0].trip_ids == [1, 2, 3, 4, 5]
    assert result.improvement == 0
    assert "routing engine offline" in result.metadata["fallback_reason"]


def test_missing_coordinates_fall_back():
    trips = [
        Trip(
            trip_id=tid,
            trip_date=date(2025, 1, 15),
            pickup_time=time(9, tid),
            passenger_count=1,
            pickup=Location(address=f"{tid} High Street", postcode="LS1 4AP"),
            destination=Location(address="Day Centre"),
        )
        for tid in (1, 2, 3)
    ]
    result = LocalSearchRouteOptimizer(HaversineCostProvider()).optimize(trips, vehicle_capacity=4)
    assert result.method == "fallback"


def test_osrm_cost_provider_converts_units_and_wraps_errors():
    provider = OSRMCostProvider(DummyOSRM())
    a = Location(address="A", latitude=51.5, longitude=-0.1)
    b = Location(address="B", latitude=51.6, longitude=-0.2)
    assert provider.cost_between(a, b) == TravelCost(distance_km=1.0, duration_min=10.0)

    with pytest.raises(CostUnavailableError):
        OSRMCostProvider(DummyOSRM(fail=True)).cost_between(a, b)


def test_build_route_optimizer_respects_feature_flag():
    disabled = build_route_optimizer(Settings(route_optimization_enabled=False))
    enabled = build_route_optimizer(Settings(osrm_base_url=None))

    assert isinstance(disabled, GreedyRouteOptimizer)
    assert isinstance(enabled, LocalSearchRouteOptimizer)
    assert isinstance(enabled.cost_provider, HaversineCostProvider)


def test_greedy_optimizer_reports_fallback():
    result = GreedyRouteOptimizer().optimize(_zigzag_trips(), vehicle_capacity=5)
    covered = sorted(trip_id for route in result.routes for trip_id in route.trip_ids)
    assert result.method == "fallback"
    assert covered == [1, 2, 3, 4, 5]


def test_optimize_routes_response_contract():
    payload = RouteOptimizationRequest.model_validate(
        {
            "trips": [
                {
                    "tripId": trip.trip_id,
                    "passengers": trip.passenger_count,
                    "pickupLocation": {"address": trip.pickup.address, "latitude": trip.pickup.latitude, "longitude": trip.pickup.longitude},
                    "destination": {"address": "Day Centre", "latitude": 51.40, "longitude": -0.10},
                    "pickupTime": trip.pickup_time.isoformat(),
                    "tripDate": "2025-01-15",
                }
                for trip in _zigzag_trips()
            ]
            + [
                {
                    "tripId": 99,
                    "passengers": 12,
                    "pickupLocation": {"address": "Coach stop", "latitude": 51.5, "longitude": -0.1},
                    "destination": {"address": "Day Centre"},
                    "pickupTime": "10:00",
                }
            ],
            "vehicleCapacity": 8,
            "optimizationLevel": "standard",
        }
    )
    optimizer = LocalSearchRouteOptimizer(HaversineCostProvider(), RoutingPolicy(max_workers=2))
    response = optimize_routes(payload, optimizer=optimizer)

    assert response.method == "optimized"
    assert sorted(trip for route in response.routes for trip in route.trips) == [1, 2, 3, 4, 5, 99]
    assert response.metadata["capacity_violations"] == [
        route.route_id for route in response.routes if route.capacity_exceeded
    ]
    for route in response.routes:
        assert route.occupied_seats + route.empty_seats == route.total_seats
    body = response.model_dump(by_alias=True)
    assert {"routes", "improvement", "iterations", "method", "optimizationLevel"} <= body.keys()


def test_build_route_optimizer_uses_passed_settings():
    config = Settings(
        osrm_base_url=None,
        route_cost_metric="duration",
        route_time_limit_seconds=0.25,
        route_pickup_window_minutes=30,
        route_min_postcode_proximity=40,
        max_parallel_workers=3,
    )
    optimizer = build_route_optimizer(config)

    assert optimizer.policy == RoutingPolicy(
        cost_metric="duration",
        time_limit_seconds=0.25,
        pickup_window_minutes=30,
        min_postcode_proximity=40,
        max_workers=3,
    )
    assert build_route_optimizer(Settings(route_optimization_enabled=False, max_parallel_workers=2)).policy.max_workers == 2
    explicit = RoutingPolicy(max_workers=1)
    assert build_route_optimizer(config, policy=explicit).policy is explicit


def test_parallel_improvement_matches_sequential():
    trips = [
        _trip(tid, 2, 8 + tid // 6, (tid % 6) * 10, 51.50 + ((tid * 7) % 11) * 0.01, -0.10 - ((tid * 3) % 5) * 0.01)
        for tid in range(1, 25)
    ]
    results = [
        LocalSearchRouteOptimizer(
            HaversineCostProvider(), RoutingPolicy(max_workers=workers, time_limit_seconds=30.0)
        ).optimize(trips, vehicle_capacity=8, optimization_level="thorough")
        for workers in (1, 8)
    ]

    sequential, parallel = results
    assert len(sequential.routes) > 1
    assert [route.trip_ids for route in parallel.routes] == [route.trip_ids for route in sequential.routes]
    assert parallel.total_cost == pytest.approx(sequential.total_cost)
    assert parallel.iterations == sequential.iterations
