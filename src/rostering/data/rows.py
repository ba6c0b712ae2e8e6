"""Conversion of tenant table rows into domain records."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any, Mapping, Optional

from ..config import settings
from ..models.domain import Assignment, Driver, HolidayEntry, Location, Trip, TripOutcome, Vehicle


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(str(value).replace(",", ""))
    except ValueError as exc:
        raise ValueError(f"Unable to parse float from value '{value}'") from exc


def _coerce_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def _coerce_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _coerce_time(value: Any) -> time:
    if isinstance(value, time):
        return value
    text = str(value).strip()
    if "T" in text:
        text = text.split("T", 1)[1]
    return time.fromisoformat(text[:8] if text.count(":") >= 2 else text[:5])


def _location(row: Mapping[str, Any], prefix: str, fallback_key: Optional[str] = None) -> Optional[Location]:
    address = row.get(f"{prefix}_location") or row.get(prefix) or (row.get(fallback_key) if fallback_key else None)
    postcode = row.get(f"{prefix}_postcode")
    if not address and not postcode:
        return None
    return Location(
        address=str(address or postcode),
        postcode=postcode or None,
        latitude=_coerce_float(row.get(f"{prefix}_latitude") or row.get(f"{prefix}_lat")),
        longitude=_coerce_float(row.get(f"{prefix}_longitude") or row.get(f"{prefix}_lng")),
    )


def trip_from_row(row: Mapping[str, Any]) -> Trip:
    pickup = _location(row, "pickup")
    destination = _location(row, "destination")
    if pickup is None or destination is None:
        raise ValueError(f"Trip {row.get('trip_id')} is missing pickup or destination")
    return Trip(
        trip_id=int(row["trip_id"]),
        trip_date=_coerce_date(row["trip_date"]),
        pickup_time=_coerce_time(row["pickup_time"]),
        passenger_count=_coerce_int(row.get("passenger_count")) or 1,
        pickup=pickup,
        destination=destination,
        duration_minutes=_coerce_int(row.get("duration_minutes")) or settings.default_trip_duration_minutes,
        requires_wheelchair=bool(row.get("requires_wheelchair", False)),
        customer_id=_coerce_int(row.get("customer_id")),
        driver_id=_coerce_int(row.get("driver_id")),
        status=str(row.get("status") or "scheduled"),
    )


def driver_from_row(row: Mapping[str, Any]) -> Driver:
    return Driver(
        driver_id=int(row["driver_id"]),
        name=str(row.get("name") or row.get("driver_name") or f"Driver {row['driver_id']}"),
        phone=row.get("phone"),
        employment_type=row.get("employment_type"),
        max_hours_per_week=_coerce_float(row.get("max_hours_per_week")),
        vehicle_id=_coerce_int(row.get("current_vehicle_id") or row.get("vehicle_id")),
        home=_location(row, "home", fallback_key="home_postcode"),
        is_active=bool(row.get("is_active", True)),
    )


def vehicle_from_row(row: Mapping[str, Any]) -> Vehicle:
    spaces = _coerce_int(row.get("wheelchair_spaces"))
    if spaces is None:
        spaces = 1 if row.get("wheelchair_accessible") else 0
    return Vehicle(
        vehicle_id=int(row["vehicle_id"]),
        seats=_coerce_int(row.get("seats")) or 0,
        wheelchair_spaces=spaces,
        registration=row.get("registration"),
        make=row.get("make"),
        model=row.get("model"),
        is_active=bool(row.get("is_active", True)),
    )


def holiday_from_row(row: Mapping[str, Any]) -> HolidayEntry:
    return HolidayEntry(
        driver_id=int(row["driver_id"]),
        start_date=_coerce_date(row["start_date"]),
        end_date=_coerce_date(row["end_date"]),
        holiday_type=str(row.get("holiday_type") or "annual"),
        status=str(row.get("status") or "approved"),
    )


def outcome_from_row(row: Mapping[str, Any]) -> TripOutcome:
    return TripOutcome(
        trip_id=int(row["trip_id"]),
        driver_id=int(row["driver_id"]),
        trip_date=_coerce_date(row["trip_date"]),
        status=str(row.get("status") or "scheduled"),
        customer_id=_coerce_int(row.get("customer_id")),
    )


def assignment_from_row(row: Mapping[str, Any]) -> Assignment:
    """Timetable services and roster blocks: a driver, a date and a time window.

    The window end comes from ``end_time`` or, failing that, ``duration_minutes``.
    """
    day = _coerce_date(row.get("date") or row["assignment_date"])
    start = datetime.combine(day, _coerce_time(row["start_time"]))
    if row.get("end_time"):
        end = datetime.combine(day, _coerce_time(row["end_time"]))
    else:
        minutes = _coerce_int(row.get("duration_minutes")) or settings.default_trip_duration_minutes
        end = start + timedelta(minutes=minutes)
    if end <= start:
        raise ValueError(f"Assignment for driver {row.get('driver_id')} ends before it starts")
    return Assignment(
        driver_id=int(row["driver_id"]),
        start=start,
        end=end,
        trip_id=_coerce_int(row.get("trip_id")),
        service_id=_coerce_int(row.get("service_id") or row.get("timetable_id")),
    )
