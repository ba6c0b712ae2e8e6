from datetime import date, datetime, time

import pytest

from rostering.models.domain import Assignment, Driver, HolidayEntry, Location
from rostering.services.routing.cost import TravelCost
from rostering.services.roster.conflicts import (
    DAY_RULES,
    PAIR_RULES,
    detect_conflicts,
)
from rostering.services.roster.policy import RosterPolicy

DAY = date(2025, 1, 15)
DRIVERS = [Driver(driver_id=1, name="Ann"), Driver(driver_id=2, name="Bo")]


def _booking(driver_id: int, start: time, end: time, trip_id: int, day: date = DAY, **locations) -> Assignment:
    return Assignment(
        driver_id=driver_id,
        start=datetime.combine(day, start),
        end=datetime.combine(day, end),
        trip_id=trip_id,
        **locations,
    )


class FixedTravelCost:
    def __init__(self, minutes: float):
        self.minutes = minutes

    def cost_between(self, origin, destination):
        return TravelCost(distance_km=self.minutes / 2, duration_min=self.minutes)

    def matrix(self, locations):
        return [[self.cost_between(a, b) for b in locations] for a in locations]


def _assert_summary_consistent(report):
    summary = report.summary
    assert summary.total == summary.critical + summary.warnings + summary.info == len(report.conflicts)


def test_empty_range_has_no_conflicts():
    report = detect_conflicts(DRIVERS, [], [], DAY, DAY)

    assert report.conflicts == []
    summary = report.summary
    assert (summary.total, summary.critical, summary.warnings, summary.info) == (0, 0, 0, 0)


def test_overlapping_bookings_are_critical():
    bookings = [
        _booking(1, time(9, 0), time(10, 0), 11),
        _booking(1, time(9, 30), time(10, 30), 12),
    ]
    report = detect_conflicts(DRIVERS, bookings, [], DAY, DAY)

    overlaps = [conflict for conflict in report.conflicts if conflict.conflict_type == "time_overlap"]
    assert len(overlaps) == 1
    assert overlaps[0].severity == "critical"
    assert overlaps[0].trip_ids == (11, 12)
    assert overlaps[0].driver_name == "Ann"
    _assert_summary_consistent(report)


def test_nested_overlap_is_detected():
    bookings = [
        _booking(1, time(8, 0), time(12, 0), 21),
        _booking(1, time(9, 0), time(9, 30), 22),
        _booking(1, time(10, 0), time(10, 30), 23),
    ]
    report = detect_conflicts(DRIVERS, bookings, [], DAY, DAY)

    overlaps = [conflict for conflict in report.conflicts if conflict.conflict_type == "time_overlap"]
    assert {conflict.trip_ids for conflict in overlaps} == {(21, 22), (21, 23)}


def test_booking_during_leave_is_critical():
    holiday = HolidayEntry(driver_id=2, start_date=DAY, end_date=DAY, holiday_type="annual")
    report = detect_conflicts(DRIVERS, [_booking(2, time(9, 0), time(10, 0), 31)], [holiday], DAY, DAY)

    assert [(c.conflict_type, c.severity) for c in report.conflicts] == [("unavailable", "critical")]


def test_daily_hours_rules_are_first_match():
    policy = RosterPolicy(max_daily_hours=9, daily_hours_warning_ratio=0.85)
    long_day = [_booking(1, time(6, 0), time(12, 0), 41), _booking(1, time(12, 0), time(16, 0), 42)]
    near_limit = [_booking(2, time(6, 0), time(14, 0), 43)]
    report = detect_conflicts(DRIVERS, long_day + near_limit, [], DAY, DAY, policy=policy)

    by_driver = {(c.driver_id, c.conflict_type): c.severity for c in report.conflicts}
    assert by_driver[(1, "max_hours")] == "warning"
    assert (1, "approaching_max_hours") not in by_driver
    assert by_driver[(2, "approaching_max_hours")] == "info"
    _assert_summary_consistent(report)


def test_insufficient_travel_time_warning():
    depot = Location(address="Depot", latitude=51.5, longitude=-0.1)
    far = Location(address="Far", latitude=51.7, longitude=-0.3)
    bookings = [
        _booking(1, time(9, 0), time(10, 0), 51, pickup=depot, destination=depot),
        _booking(1, time(10, 10), time(11, 0), 52, pickup=far, destination=far),
    ]
    report = detect_conflicts(DRIVERS, bookings, [], DAY, DAY, cost_provider=FixedTravelCost(25))

    assert [(c.conflict_type, c.severity) for c in report.conflicts] == [("insufficient_travel_time", "warning")]

    relaxed = detect_conflicts(DRIVERS, bookings, [], DAY, DAY, cost_provider=FixedTravelCost(5))
    assert relaxed.conflicts == []


def test_conflicts_sorted_by_date_then_severity():
    next_day = date(2025, 1, 16)
    bookings = [
        _booking(2, time(6, 0), time(14, 0), 61, day=next_day),
        _booking(1, time(9, 0), time(10, 0), 62, day=next_day),
        _booking(1, time(9, 30), time(10, 30), 63, day=next_day),
        _booking(1, time(6, 0), time(13, 45), 64),
    ]
    report = detect_conflicts(DRIVERS, bookings, [], DAY, next_day, policy=RosterPolicy(max_daily_hours=9))

    keys = [(c.conflict_date, c.severity) for c in report.conflicts]
    assert keys == [(DAY, "info"), (next_day, "critical"), (next_day, "info")]


def test_rule_tables_are_ordered_by_severity():
    assert [rule.severity for rule in PAIR_RULES] == ["critical", "warning"]
    assert [rule.severity for rule in DAY_RULES] == ["warning", "info"]


def test_end_before_start_is_rejected():
    with pytest.raises(ValueError):
        detect_conflicts(DRIVERS, [], [], DAY, date(2025, 1, 14))
