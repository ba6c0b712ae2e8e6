"""Multi-factor driver suitability scoring."""

from __future__ import annotations

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from typing import Iterable, List, Literal, Optional, Sequence

from ...models.domain import Assignment, Driver, HolidayEntry, Location, Trip, TripOutcome, Vehicle
from ..geospatial import location_distance_km, postcode_proximity
from .availability import AvailabilityResult, check_availability
from .policy import RosterPolicy

logger = logging.getLogger(__name__)

Tier = Literal["highly_recommended", "recommended", "acceptable", "not_recommended", "unavailable"]

BASE_SCORE = 100


@dataclass(slots=True, frozen=True)
class TripRequest:
    trip_date: date
    pickup_time: time
    duration_minutes: int
    passenger_count: Optional[int] = None
    requires_wheelchair: bool = False
    customer_id: Optional[int] = None
    pickup: Optional[Location] = None
    trip_id: Optional[int] = None

    @classmethod
    def from_trip(cls, trip: Trip) -> "TripRequest":
        return cls(
            trip_date=trip.trip_date,
            pickup_time=trip.pickup_time,
            duration_minutes=trip.duration_minutes,
            passenger_count=trip.passenger_count,
            requires_wheelchair=trip.requires_wheelchair,
            customer_id=trip.customer_id,
            pickup=trip.pickup,
            trip_id=trip.trip_id,
        )


@dataclass(slots=True)
class DriverProfile:
    driver: Driver
    vehicle: Optional[Vehicle]
    availability: AvailabilityResult
    regular_trips: int = 0
    daily_workload: int = 0
    completion_rate: float = 100.0

    @property
    def booked_hours(self) -> float:
        return self.availability.booked_hours


@dataclass(slots=True, frozen=True)
class Factor:
    points: int = 0
    reason: Optional[str] = None


@dataclass(slots=True)
class Recommendation:
    driver: Driver
    vehicle: Optional[Vehicle]
    score: int
    tier: Tier
    reasons: List[str] = field(default_factory=list)
    daily_workload: int = 0
    completion_rate: float = 100.0
    is_regular_driver: bool = False
    booked_hours: float = 0.0
    eligible: bool = True


def vehicle_gate(vehicle: Optional[Vehicle], request: TripRequest) -> tuple[bool, list[Factor]]:
    """Hard wheelchair and seat checks; returns (passed, contributing factors)."""
    factors: list[Factor] = []
    if vehicle is None:
        if request.requires_wheelchair:
            return False, [Factor(0, "No vehicle assigned, wheelchair access required")]
        return True, [Factor(-20, "No vehicle assigned")]

    if request.requires_wheelchair:
        if not vehicle.wheelchair_accessible:
            return False, [Factor(0, "No wheelchair access")]
        factors.append(Factor(15, "Wheelchair accessible"))

    if request.passenger_count:
        if request.passenger_count > vehicle.seats:
            return False, factors + [
                Factor(0, f"Insufficient capacity ({vehicle.seats} seats, need {request.passenger_count})")
            ]
        factors.append(Factor(10, f"Suitable capacity ({vehicle.seats} seats)"))
    return True, factors


def regular_customer_factor(regular_trips: int) -> Factor:
    if regular_trips <= 0:
        return Factor()
    return Factor(min(regular_trips * 10, 40), f"Regular driver ({regular_trips} previous trips)")


def workload_factor(daily_workload: int) -> Factor:
    if daily_workload == 0:
        return Factor(5, "No trips scheduled yet today")
    if daily_workload < 3:
        return Factor(3, f"Light workload ({daily_workload} trips today)")
    if daily_workload > 6:
        return Factor(-10, f"Heavy workload ({daily_workload} trips today)")
    return Factor()


def completion_factor(completion_rate: float) -> Factor:
    if completion_rate >= 95:
        return Factor(10, f"Excellent performance ({completion_rate:g}% completion)")
    if completion_rate < 80:
        return Factor(-15, f"Lower completion rate ({completion_rate:g}% completion)")
    return Factor()


def proximity_factor(home: Optional[Location], pickup: Optional[Location]) -> Factor:
    if home is None or pickup is None:
        return Factor()
    distance = location_distance_km(home, pickup)
    if distance is not None:
        if distance <= 5:
            return Factor(15, f"Lives near pickup location ({distance:.1f} km)")
        if distance <= 15:
            return Factor(8, f"Within {distance:.0f} km of pickup")
        return Factor()
    closeness = postcode_proximity(home.postcode, pickup.postcode)
    if closeness >= 75:
        return Factor(15, "Lives near pickup location")
    if closeness >= 40:
        return Factor(8, "Same postal area as pickup")
    return Factor()


def balance_factor(booked_hours: float, average_hours: float) -> Factor:
    if booked_hours < average_hours:
        return Factor(20, "Below average workload")
    if average_hours > 0 and booked_hours > average_hours * 1.5:
        return Factor(-20, "Above average workload")
    return Factor()


def tier_for(score: int) -> Tier:
    if score >= 80:
        return "highly_recommended"
    if score >= 60:
        return "recommended"
    if score >= 40:
        return "acceptable"
    return "not_recommended"


def score_driver(
    profile: DriverProfile,
    request: TripRequest,
    *,
    consider_proximity: bool = False,
    average_hours: Optional[float] = None,
) -> Recommendation:
    """Score one driver for one trip.

    ``average_hours`` enables the workload balancing factor used by
    auto-assignment; suggestions leave it unset.
    """
    common = dict(
        driver=profile.driver,
        vehicle=profile.vehicle,
        daily_workload=profile.daily_workload,
        completion_rate=profile.completion_rate,
        is_regular_driver=profile.regular_trips > 0,
        booked_hours=profile.booked_hours,
    )
    if not profile.availability.available:
        return Recommendation(
            score=0, tier="unavailable", reasons=["Not available at this time"], eligible=False, **common
        )

    passed, factors = vehicle_gate(profile.vehicle, request)
    if not passed:
        reasons = [factor.reason for factor in factors if factor.reason]
        return Recommendation(score=0, tier="not_recommended", reasons=reasons, eligible=False, **common)

    factors.append(regular_customer_factor(profile.regular_trips))
    factors.append(workload_factor(profile.daily_workload))
    factors.append(completion_factor(profile.completion_rate))
    if consider_proximity:
        factors.append(proximity_factor(profile.driver.home, request.pickup))
    if average_hours is not None:
        factors.append(balance_factor(profile.booked_hours, average_hours))
    factors.extend(Factor(0, warning) for warning in profile.availability.warnings)

    score = max(BASE_SCORE + sum(factor.points for factor in factors), 0)
    return Recommendation(
        score=score,
        tier=tier_for(score),
        reasons=[factor.reason for factor in factors if factor.reason],
        eligible=score > 0,
        **common,
    )


def rank(recommendations: Iterable[Recommendation], limit: Optional[int] = None) -> list[Recommendation]:
    """Eligible recommendations by descending score, ties by driver id."""
    ranked = sorted(
        (item for item in recommendations if item.eligible),
        key=lambda item: (-item.score, item.driver.driver_id),
    )
    return ranked if limit is None else ranked[:limit]


def _group(items: Iterable, key: str) -> dict[int, list]:
    grouped: dict[int, list] = defaultdict(list)
    for item in items:
        grouped[getattr(item, key)].append(item)
    return grouped


def build_profiles(
    drivers: Sequence[Driver],
    vehicles: Sequence[Vehicle],
    assignments: Iterable[Assignment],
    holidays: Iterable[HolidayEntry],
    history: Iterable[TripOutcome],
    request: TripRequest,
    *,
    policy: RosterPolicy | None = None,
) -> list[DriverProfile]:
    """Collect the per-driver signals the scorer needs for ``request``."""
    policy = policy or RosterPolicy()
    vehicles_by_id = {vehicle.vehicle_id: vehicle for vehicle in vehicles if vehicle.is_active}
    bookings = _group(assignments, "driver_id")
    leave = _group(holidays, "driver_id")
    outcomes = _group(history, "driver_id")
    window_start = request.trip_date - timedelta(days=policy.completion_rate_window_days)

    profiles: list[DriverProfile] = []
    for driver in drivers:
        if not driver.is_active:
            continue
        driver_bookings = bookings.get(driver.driver_id, [])
        availability = check_availability(
            driver.driver_id,
            request.trip_date,
            request.pickup_time,
            request.duration_minutes,
            driver_bookings,
            leave.get(driver.driver_id, []),
            policy=policy,
        )
        driver_history = outcomes.get(driver.driver_id, [])
        regular = sum(
            1
            for outcome in driver_history
            if request.customer_id is not None
            and outcome.customer_id == request.customer_id
            and outcome.status == "completed"
        )
        recent = [outcome for outcome in driver_history if window_start <= outcome.trip_date <= request.trip_date]
        completed = sum(1 for outcome in recent if outcome.status == "completed")
        completion_rate = round(completed / len(recent) * 100, 2) if recent else 100.0
        profiles.append(
            DriverProfile(
                driver=driver,
                vehicle=vehicles_by_id.get(driver.vehicle_id) if driver.vehicle_id is not None else None,
                availability=availability,
                regular_trips=regular,
                daily_workload=sum(1 for booking in driver_bookings if booking.assignment_date == request.trip_date),
                completion_rate=completion_rate,
            )
        )
    return profiles


def score_drivers(
    profiles: Sequence[DriverProfile],
    request: TripRequest,
    *,
    consider_proximity: bool = False,
    average_hours: Optional[float] = None,
    policy: RosterPolicy | None = None,
) -> tuple[list[Recommendation], bool]:
    """Score every profile concurrently within the policy's time limit.

    Returns the recommendations in driver id order and whether the deadline cut
    scoring short; drivers not scored in time are left out.
    """
    policy = policy or RosterPolicy()
    if not profiles:
        return [], False

    workers = min(policy.max_workers, len(profiles))
    executor = ThreadPoolExecutor(max_workers=workers)
    try:
        futures = [
            executor.submit(
                score_driver,
                profile,
                request,
                consider_proximity=consider_proximity,
                average_hours=average_hours,
            )
            for profile in profiles
        ]
        done, pending = wait(futures, timeout=policy.scoring_time_limit_seconds)
        for future in pending:
            future.cancel()
        results = [future.result() for future in futures if future in done]
    finally:
        # Queued scorers are cancelled. A scorer already running finishes on
        # its worker thread and its result is dropped; waiting for it here
        # would hold the request past the deadline.
        executor.shutdown(wait=False, cancel_futures=True)

    timed_out = bool(pending)
    if timed_out:
        logger.warning(
            f"Driver scoring hit the {policy.scoring_time_limit_seconds}s limit; "
            f"{len(pending)} of {len(profiles)} drivers not scored"
        )
    results.sort(key=lambda item: item.driver.driver_id)
    return results, timed_out

