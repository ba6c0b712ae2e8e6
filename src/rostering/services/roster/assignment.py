"""Automatic assignment of unassigned trips to drivers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Sequence

from ...models.domain import Assignment, Driver, HolidayEntry, Trip, TripOutcome, Vehicle
from ..routing.builder import sort_by_pickup
from .policy import RosterPolicy
from .scoring import Recommendation, TripRequest, build_profiles, score_drivers

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class AssignmentDecision:
    trip_id: int
    driver_id: int
    driver_name: str
    score: int
    reasons: tuple[str, ...]

    @property
    def confidence_score(self) -> int:
        return min(100, self.score)


@dataclass(slots=True)
class AssignmentPlan:
    assignment_date: date
    assignments: List[AssignmentDecision] = field(default_factory=list)
    unassigned_trip_ids: List[int] = field(default_factory=list)
    applied: bool = False
    timed_out: bool = False

    @property
    def assigned(self) -> int:
        return len(self.assignments)

    @property
    def unassigned(self) -> int:
        return len(self.unassigned_trip_ids)


def _pick(candidates: Sequence[Recommendation], balance_workload: bool) -> Recommendation | None:
    eligible = [item for item in candidates if item.eligible]
    if not eligible:
        return None
    # lighter booked hours break score ties when balancing
    return min(
        eligible,
        key=lambda item: (
            -item.score,
            item.booked_hours if balance_workload else 0.0,
            item.driver.driver_id,
        ),
    )


def plan_assignments(
    assignment_date: date,
    trips: Iterable[Trip],
    drivers: Sequence[Driver],
    vehicles: Sequence[Vehicle],
    assignments: Iterable[Assignment],
    holidays: Sequence[HolidayEntry],
    history: Sequence[TripOutcome],
    *,
    balance_workload: bool = True,
    consider_proximity: bool = False,
    max_assignments: int = 100,
    policy: RosterPolicy | None = None,
) -> AssignmentPlan:
    """Match the day's unassigned trips to the best available drivers.

    Trips are handled in pickup order. Every tentative assignment is added to
    the run's own booking list, so later trips see the driver as busy and, with
    ``balance_workload``, as more loaded. Nothing is persisted here.
    """
    if max_assignments < 0:
        raise ValueError("max_assignments must be >= 0")
    policy = policy or RosterPolicy()

    pending = [
        trip
        for trip in sort_by_pickup(trips)
        if trip.trip_date == assignment_date and trip.driver_id is None and trip.status != "cancelled"
    ]
    bookings: list[Assignment] = list(assignments)
    active_ids = [driver.driver_id for driver in drivers if driver.is_active]
    hours: dict[int, float] = {driver_id: 0.0 for driver_id in active_ids}
    for booking in bookings:
        if booking.driver_id in hours and booking.assignment_date == assignment_date:
            hours[booking.driver_id] += booking.hours

    plan = AssignmentPlan(assignment_date=assignment_date)
    for trip in pending:
        if plan.assigned >= max_assignments:
            plan.unassigned_trip_ids.append(trip.trip_id)
            continue

        request = TripRequest.from_trip(trip)
        profiles = build_profiles(drivers, vehicles, bookings, holidays, history, request, policy=policy)
        average = sum(hours.values()) / len(hours) if balance_workload and hours else None
        scored, timed_out = score_drivers(
            profiles,
            request,
            consider_proximity=consider_proximity,
            average_hours=average,
            policy=policy,
        )
        plan.timed_out = plan.timed_out or timed_out

        best = _pick(scored, balance_workload)
        if best is None:
            plan.unassigned_trip_ids.append(trip.trip_id)
            continue

        driver_id = best.driver.driver_id
        plan.assignments.append(
            AssignmentDecision(
                trip_id=trip.trip_id,
                driver_id=driver_id,
                driver_name=best.driver.name,
                score=best.score,
                reasons=tuple(best.reasons),
            )
        )
        bookings.append(Assignment.from_trip(trip, driver_id))
        hours[driver_id] = hours.get(driver_id, 0.0) + trip.duration_minutes / 60.0

    logger.info(
        f"Auto-assignment for {assignment_date}: {plan.assigned} assigned, {plan.unassigned} unassigned"
    )
    return plan
