"""Driver availability checks against bookings and approved holidays."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Union

from ...models.domain import Assignment, HolidayEntry
from .policy import RosterPolicy

Blocker = Union[Assignment, HolidayEntry]


@dataclass(slots=True)
class AvailabilityResult:
    driver_id: int
    start: datetime
    end: datetime
    available: bool
    conflicts: List[Blocker] = field(default_factory=list)
    booked_hours: float = 0.0
    warnings: List[str] = field(default_factory=list)


def check_availability(
    driver_id: int,
    day: date,
    start_time: time,
    duration_minutes: int,
    assignments: Iterable[Assignment],
    holidays: Iterable[HolidayEntry],
    *,
    policy: RosterPolicy | None = None,
) -> AvailabilityResult:
    """Test ``[start, start + duration)`` against the driver's commitments on ``day``.

    Any overlapping assignment or approved holiday makes the driver
    unavailable. A driver with no entries for the day is available. Going over
    the daily hour limit is reported as a warning and does not block.
    """
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")
    policy = policy or RosterPolicy()

    start = datetime.combine(day, start_time)
    end = start + timedelta(minutes=duration_minutes)
    conflicts: list[Blocker] = []
    booked_hours = 0.0

    for holiday in holidays:
        if holiday.driver_id != driver_id or not holiday.is_approved or not holiday.covers(day):
            continue
        holiday_start, holiday_end = holiday.window(day)
        if holiday_start < end and start < holiday_end:
            conflicts.append(holiday)

    for assignment in sorted(assignments, key=lambda item: (item.start, item.end)):
        if assignment.driver_id != driver_id:
            continue
        if assignment.assignment_date == day:
            booked_hours += assignment.hours
        if assignment.overlaps(start, end):
            conflicts.append(assignment)

    warnings: list[str] = []
    projected = booked_hours + duration_minutes / 60.0
    if projected > policy.max_daily_hours:
        warnings.append(
            f"Would exceed {policy.max_daily_hours:g}-hour daily limit (currently at {booked_hours:.1f}h)"
        )

    return AvailabilityResult(
        driver_id=driver_id,
        start=start,
        end=end,
        available=not conflicts,
        conflicts=conflicts,
        booked_hours=booked_hours,
        warnings=warnings,
    )
