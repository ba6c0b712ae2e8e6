from datetime import date, time

import pytest

from rostering.models.domain import Location, Trip
from rostering.services.routing.builder import build_routes, sort_by_pickup


def _trip(tid: int, passengers: int, hour: int, minute: int = 0) -> Trip:
    return Trip(
        trip_id=tid,
        trip_date=date(2025, 1, 15),
        pickup_time=time(hour, minute),
        passenger_count=passengers,
        pickup=Location(address=f"Pickup {tid}", latitude=51.5 + tid * 0.01, longitude=-0.1),
        destination=Location(address="Day Centre", latitude=51.45, longitude=-0.12),
    )


def test_build_routes_covers_every_trip_once():
    trips = [_trip(1, 3, 9), _trip(2, 4, 9, 15), _trip(3, 2, 9, 30), _trip(4, 4, 10), _trip(5, 3, 10, 30)]
    routes = build_routes(trips, vehicle_capacity=8)

    covered = [trip_id for route in routes for trip_id in route.trip_ids]
    assert sorted(covered) == [1, 2, 3, 4, 5]
    assert len(covered) == len(set(covered))
    for route in routes:
        assert route.total_passengers <= 8
        assert route.occupied_seats + route.empty_seats == route.capacity


def test_build_routes_first_fit_in_pickup_order():
    trips = [_trip(3, 5, 11), _trip(1, 5, 9), _trip(2, 3, 10)]
    routes = build_routes(trips, vehicle_capacity=8)

    assert [route.trip_ids for route in routes] == [[1, 2], [3]]
    assert routes[0].total_passengers == 8
    assert routes[0].empty_seats == 0


def test_build_routes_flags_oversized_trip_as_singleton():
    trips = [_trip(1, 10, 9), _trip(2, 2, 9, 10)]
    routes = build_routes(trips, vehicle_capacity=8)

    oversized = next(route for route in routes if 1 in route.trip_ids)
    assert oversized.trip_ids == [1]
    assert oversized.capacity_exceeded
    assert oversized.occupied_seats == 8
    assert oversized.empty_seats == 0
    assert oversized.overflow_passengers == 2
    assert all(not route.capacity_exceeded for route in routes if route is not oversized)


def test_build_routes_respects_pickup_window():
    trips = [_trip(1, 1, 9), _trip(2, 1, 9, 20), _trip(3, 1, 11)]
    routes = build_routes(trips, vehicle_capacity=8, pickup_window_minutes=30)

    assert [route.trip_ids for route in routes] == [[1, 2], [3]]


def test_build_routes_empty_input():
    assert build_routes([], vehicle_capacity=4) == []


def test_build_routes_rejects_invalid_input():
    with pytest.raises(ValueError):
        build_routes([_trip(1, 1, 9)], vehicle_capacity=0)
    with pytest.raises(ValueError):
        build_routes([_trip(1, 1, 9), _trip(1, 2, 10)], vehicle_capacity=4)


def test_sort_by_pickup_breaks_ties_by_id():
    trips = [_trip(2, 1, 9), _trip(1, 1, 9), _trip(3, 1, 8)]
    assert [trip.trip_id for trip in sort_by_pickup(trips)] == [3, 1, 2]


def test_build_routes_groups_by_pickup_postcode():
    postcodes = {1: "LS1 4AP", 2: "LS1 6BB", 3: "M1 2AB", 4: "LS2 7HH"}
    trips = []
    for tid, postcode in postcodes.items():
        trip = _trip(tid, 1, 9, tid * 10)
        trips.append(
            Trip(
                trip_id=trip.trip_id,
                trip_date=trip.trip_date,
                pickup_time=trip.pickup_time,
                passenger_count=trip.passenger_count,
                pickup=Location(address=trip.pickup.address, postcode=postcode),
                destination=trip.destination,
            )
        )

    assert [route.trip_ids for route in build_routes(trips, vehicle_capacity=8)] == [[1, 2, 3, 4]]
    grouped = build_routes(trips, vehicle_capacity=8, min_postcode_proximity=40)
    assert [route.trip_ids for route in grouped] == [[1, 2], [3], [4]]
