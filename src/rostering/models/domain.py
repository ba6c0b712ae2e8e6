"""Domain models for trips, drivers, vehicles and their scheduling commitments."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Optional


@dataclass(slots=True, frozen=True)
class Location:
    """An address that may already carry geocoded coordinates."""

    address: str
    postcode: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(slots=True, frozen=True)
class Trip:
    """A passenger journey booked by the CRM; read-only for the optimizer."""

    trip_id: int
    trip_date: date
    pickup_time: time
    passenger_count: int
    pickup: Location
    destination: Location
    duration_minutes: int = 60
    requires_wheelchair: bool = False
    customer_id: Optional[int] = None
    driver_id: Optional[int] = None
    status: str = "scheduled"

    @property
    def start(self) -> datetime:
        return datetime.combine(self.trip_date, self.pickup_time)

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)


@dataclass(slots=True, frozen=True)
class Vehicle:
    vehicle_id: int
    seats: int
    wheelchair_spaces: int = 0
    registration: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    is_active: bool = True

    @property
    def wheelchair_accessible(self) -> bool:
        return self.wheelchair_spaces > 0


@dataclass(slots=True, frozen=True)
class Driver:
    driver_id: int
    name: str
    phone: Optional[str] = None
    employment_type: Optional[str] = None
    max_hours_per_week: Optional[float] = None
    vehicle_id: Optional[int] = None
    home: Optional[Location] = None
    is_active: bool = True


@dataclass(slots=True, frozen=True)
class Assignment:
    """A driver commitment: a trip, a timetable service or a roster block."""

    driver_id: int
    start: datetime
    end: datetime
    trip_id: Optional[int] = None
    service_id: Optional[int] = None
    pickup: Optional[Location] = None
    destination: Optional[Location] = None

    @property
    def assignment_date(self) -> date:
        return self.start.date()

    @property
    def hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600.0

    def overlaps(self, start: datetime, end: datetime) -> bool:
        # half-open intervals: touching windows do not overlap
        return self.start < end and start < self.end

    @classmethod
    def from_trip(cls, trip: Trip, driver_id: Optional[int] = None) -> "Assignment":
        owner = driver_id if driver_id is not None else trip.driver_id
        if owner is None:
            raise ValueError(f"Trip {trip.trip_id} has no driver to build an assignment for.")
        return cls(
            driver_id=owner,
            start=trip.start,
            end=trip.end,
            trip_id=trip.trip_id,
            pickup=trip.pickup,
            destination=trip.destination,
        )


@dataclass(slots=True, frozen=True)
class HolidayEntry:
    driver_id: int
    start_date: date
    end_date: date
    holiday_type: str = "annual"
    status: str = "approved"

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def window(self, day: date) -> tuple[datetime, datetime]:
        start = datetime.combine(day, time.min)
        return start, start + timedelta(days=1)


@dataclass(slots=True, frozen=True)
class TripOutcome:
    """Historical trip record used for regular-driver and completion-rate signals."""

    trip_id: int
    driver_id: int
    trip_date: date
    status: str
    customer_id: Optional[int] = None


@dataclass(slots=True)
class RosterSnapshot:
    """Read-only view of one tenant's roster data for the duration of a request."""

    trips: list[Trip] = field(default_factory=list)
    drivers: list[Driver] = field(default_factory=list)
    vehicles: list[Vehicle] = field(default_factory=list)
    assignments: list[Assignment] = field(default_factory=list)
    holidays: list[HolidayEntry] = field(default_factory=list)
    history: list[TripOutcome] = field(default_factory=list)
