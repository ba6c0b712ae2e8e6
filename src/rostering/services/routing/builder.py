"""Greedy first-fit construction of capacity-respecting routes."""

from __future__ import annotations

import logging
from typing import Sequence

from ...models.domain import Trip
from ..geospatial import postcode_proximity
from .models import Route

logger = logging.getLogger(__name__)


def sort_by_pickup(trips: Sequence[Trip]) -> list[Trip]:
    return sorted(trips, key=lambda trip: (trip.trip_date, trip.pickup_time, trip.trip_id))


def _within_window(anchor: Trip, trip: Trip, window_minutes: int | None) -> bool:
    if window_minutes is None:
        return True
    return abs((trip.start - anchor.start).total_seconds()) <= window_minutes * 60


def _near_enough(anchor: Trip, trip: Trip, min_proximity: int | None) -> bool:
    if min_proximity is None:
        return True
    return postcode_proximity(anchor.pickup.postcode, trip.pickup.postcode) > min_proximity


def build_routes(
    trips: Sequence[Trip],
    vehicle_capacity: int,
    *,
    pickup_window_minutes: int | None = None,
    min_postcode_proximity: int | None = None,
) -> list[Route]:
    """Group trips into routes in pickup-time order.

    Each trip joins the first open route with enough remaining seats that also
    passes the optional compatibility checks against the route's first trip:
    pickup within ``pickup_window_minutes`` and pickup postcode closeness above
    ``min_postcode_proximity``. Otherwise it opens a new route. A trip larger than the vehicle gets a
    singleton route flagged ``capacity_exceeded`` which accepts no other trips.
    """
    if vehicle_capacity < 1:
        raise ValueError("vehicle_capacity must be >= 1")

    seen: set[int] = set()
    routes: list[Route] = []
    anchors: dict[int, Trip] = {}

    for trip in sort_by_pickup(trips):
        if trip.trip_id in seen:
            raise ValueError(f"Duplicate trip id {trip.trip_id} in routing request.")
        seen.add(trip.trip_id)

        if trip.passenger_count > vehicle_capacity:
            logger.warning(
                f"Trip {trip.trip_id} carries {trip.passenger_count} passengers, "
                f"more than the vehicle capacity of {vehicle_capacity}"
            )
            routes.append(
                Route(
                    route_id=len(routes) + 1,
                    capacity=vehicle_capacity,
                    trip_ids=[trip.trip_id],
                    total_passengers=trip.passenger_count,
                    capacity_exceeded=True,
                )
            )
            continue

        target = next(
            (
                route
                for route in routes
                if route.can_fit(trip.passenger_count)
                and _within_window(anchors[route.route_id], trip, pickup_window_minutes)
                and _near_enough(anchors[route.route_id], trip, min_postcode_proximity)
            ),
            None,
        )
        if target is None:
            target = Route(route_id=len(routes) + 1, capacity=vehicle_capacity)
            routes.append(target)
            anchors[target.route_id] = trip
        target.trip_ids.append(trip.trip_id)
        target.total_passengers += trip.passenger_count

    return routes
