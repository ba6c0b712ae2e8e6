"""Roster conflict detection.

Severity policy lives in three ordered rule tables. Within a table rules are
evaluated top-down and the first matching rule produces the conflict:

* ``ASSIGNMENT_RULES`` look at a single booking (e.g. booked during leave),
* ``PAIR_RULES`` look at two consecutive bookings of the same driver,
* ``DAY_RULES`` look at a driver's total booked hours for one day.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Generic, Iterable, List, Literal, Optional, Sequence, TypeVar

from ...models.domain import Assignment, Driver, HolidayEntry
from ..routing.cost import CostProvider, CostUnavailableError
from .policy import RosterPolicy

logger = logging.getLogger(__name__)

Severity = Literal["critical", "warning", "info"]
SEVERITIES: tuple[Severity, ...] = ("critical", "warning", "info")


@dataclass(slots=True, frozen=True)
class Conflict:
    driver_id: int
    driver_name: str
    conflict_type: str
    severity: Severity
    conflict_date: date
    windows: tuple[tuple[datetime, datetime], ...]
    trip_ids: tuple[Optional[int], ...]
    details: str


@dataclass(slots=True)
class ConflictSummary:
    total: int = 0
    critical: int = 0
    warnings: int = 0
    info: int = 0


@dataclass(slots=True)
class ConflictReport:
    conflicts: List[Conflict] = field(default_factory=list)

    @property
    def summary(self) -> ConflictSummary:
        return summarize_conflicts(self.conflicts)


@dataclass(slots=True, frozen=True)
class AssignmentContext:
    driver: Driver
    assignment: Assignment
    holiday: Optional[HolidayEntry]


@dataclass(slots=True, frozen=True)
class PairContext:
    driver: Driver
    previous: Assignment
    current: Assignment
    travel_minutes: Optional[float]
    policy: RosterPolicy

    @property
    def gap_minutes(self) -> float:
        return (self.current.start - self.previous.end).total_seconds() / 60.0


@dataclass(slots=True, frozen=True)
class DayContext:
    driver: Driver
    day: date
    assignments: tuple[Assignment, ...]
    policy: RosterPolicy

    @property
    def booked_hours(self) -> float:
        return sum(assignment.hours for assignment in self.assignments)


ContextT = TypeVar("ContextT")


@dataclass(slots=True, frozen=True)
class ConflictRule(Generic[ContextT]):
    conflict_type: str
    severity: Severity
    applies: Callable[[ContextT], bool]
    describe: Callable[[ContextT], str]


def _clock(moment: datetime) -> str:
    return moment.strftime("%H:%M")


ASSIGNMENT_RULES: tuple[ConflictRule[AssignmentContext], ...] = (
    ConflictRule(
        "unavailable",
        "critical",
        lambda ctx: ctx.holiday is not None,
        lambda ctx: f"Booked at {_clock(ctx.assignment.start)} while on {ctx.holiday.holiday_type} leave",
    ),
)

PAIR_RULES: tuple[ConflictRule[PairContext], ...] = (
    ConflictRule(
        "time_overlap",
        "critical",
        lambda ctx: ctx.current.start < ctx.previous.end,
        lambda ctx: (
            f"{_clock(ctx.current.start)}-{_clock(ctx.current.end)} overlaps "
            f"{_clock(ctx.previous.start)}-{_clock(ctx.previous.end)}"
        ),
    ),
    ConflictRule(
        "insufficient_travel_time",
        "warning",
        lambda ctx: ctx.travel_minutes is not None
        and ctx.gap_minutes < ctx.travel_minutes + ctx.policy.min_turnaround_minutes,
        lambda ctx: (
            f"Only {ctx.gap_minutes:.0f} min between {_clock(ctx.previous.end)} and "
            f"{_clock(ctx.current.start)}, travel needs {ctx.travel_minutes:.0f} min"
        ),
    ),
)

DAY_RULES: tuple[ConflictRule[DayContext], ...] = (
    ConflictRule(
        "max_hours",
        "warning",
        lambda ctx: ctx.booked_hours > ctx.policy.max_daily_hours,
        lambda ctx: f"{ctx.booked_hours:.1f}h booked, over the {ctx.policy.max_daily_hours:g}-hour daily limit",
    ),
    ConflictRule(
        "approaching_max_hours",
        "info",
        lambda ctx: ctx.booked_hours >= ctx.policy.max_daily_hours * ctx.policy.daily_hours_warning_ratio,
        lambda ctx: f"{ctx.booked_hours:.1f}h booked, close to the {ctx.policy.max_daily_hours:g}-hour daily limit",
    ),
)


def first_match(rules: Sequence[ConflictRule[ContextT]], context: ContextT) -> Optional[ConflictRule[ContextT]]:
    for rule in rules:
        if rule.applies(context):
            return rule
    return None


def summarize_conflicts(conflicts: Sequence[Conflict]) -> ConflictSummary:
    counts = Counter(conflict.severity for conflict in conflicts)
    return ConflictSummary(
        total=len(conflicts),
        critical=counts["critical"],
        warnings=counts["warning"],
        info=counts["info"],
    )


def _travel_minutes(
    cost_provider: Optional[CostProvider], previous: Assignment, current: Assignment
) -> Optional[float]:
    origin = previous.destination or previous.pickup
    if cost_provider is None or origin is None or current.pickup is None:
        return None
    try:
        return cost_provider.cost_between(origin, current.pickup).duration_min
    except CostUnavailableError as exc:
        logger.debug(f"Skipping travel check for driver {current.driver_id}: {exc}")
        return None


def _conflict(
    rule: ConflictRule, context, driver: Driver, day: date, bookings: Sequence[Assignment]
) -> Conflict:
    return Conflict(
        driver_id=driver.driver_id,
        driver_name=driver.name,
        conflict_type=rule.conflict_type,
        severity=rule.severity,
        conflict_date=day,
        windows=tuple((booking.start, booking.end) for booking in bookings),
        trip_ids=tuple(booking.trip_id for booking in bookings),
        details=rule.describe(context),
    )


def detect_conflicts(
    drivers: Iterable[Driver],
    assignments: Iterable[Assignment],
    holidays: Iterable[HolidayEntry],
    start_date: date,
    end_date: date,
    *,
    cost_provider: Optional[CostProvider] = None,
    policy: RosterPolicy | None = None,
) -> ConflictReport:
    """Scan every driver's bookings between ``start_date`` and ``end_date`` inclusive."""
    if end_date < start_date:
        raise ValueError("end_date must not be before start_date")
    policy = policy or RosterPolicy()

    drivers_by_id = {driver.driver_id: driver for driver in drivers}
    by_driver: dict[int, list[Assignment]] = defaultdict(list)
    for assignment in assignments:
        if start_date <= assignment.assignment_date <= end_date:
            by_driver[assignment.driver_id].append(assignment)
    leave: dict[int, list[HolidayEntry]] = defaultdict(list)
    for holiday in holidays:
        if holiday.is_approved:
            leave[holiday.driver_id].append(holiday)

    conflicts: list[Conflict] = []
    for driver_id in sorted(by_driver):
        driver = drivers_by_id.get(driver_id) or Driver(driver_id=driver_id, name=f"Driver {driver_id}")
        bookings = sorted(by_driver[driver_id], key=lambda item: (item.start, item.end, item.trip_id or 0))

        for booking in bookings:
            holiday = next((entry for entry in leave[driver_id] if entry.covers(booking.assignment_date)), None)
            context = AssignmentContext(driver=driver, assignment=booking, holiday=holiday)
            rule = first_match(ASSIGNMENT_RULES, context)
            if rule:
                conflicts.append(_conflict(rule, context, driver, booking.assignment_date, [booking]))

        # compare each booking with the latest-ending one before it so nested overlaps are caught
        latest: Optional[Assignment] = None
        for booking in bookings:
            if latest is not None:
                pair = PairContext(
                    driver=driver,
                    previous=latest,
                    current=booking,
                    travel_minutes=_travel_minutes(cost_provider, latest, booking)
                    if booking.start >= latest.end
                    else None,
                    policy=policy,
                )
                rule = first_match(PAIR_RULES, pair)
                if rule:
                    conflicts.append(_conflict(rule, pair, driver, booking.assignment_date, [latest, booking]))
            if latest is None or booking.end > latest.end:
                latest = booking

        per_day: dict[date, list[Assignment]] = defaultdict(list)
        for booking in bookings:
            per_day[booking.assignment_date].append(booking)
        for day in sorted(per_day):
            context = DayContext(driver=driver, day=day, assignments=tuple(per_day[day]), policy=policy)
            rule = first_match(DAY_RULES, context)
            if rule:
                conflicts.append(_conflict(rule, context, driver, day, per_day[day]))

    conflicts.sort(key=lambda item: (item.conflict_date, SEVERITIES.index(item.severity), item.driver_id))
    logger.info(
        f"Conflict scan {start_date}..{end_date}: {len(conflicts)} conflicts across {len(by_driver)} drivers"
    )
    return ConflictReport(conflicts=conflicts)
