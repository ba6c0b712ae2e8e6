"""Read-only roster snapshots from the platform's collaborators."""

from __future__ import annotations

import dataclasses
import json
import logging
import threading
from datetime import date
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol, TypeVar

from ..config import settings
from ..models.domain import (
    Assignment,
    Driver,
    HolidayEntry,
    RosterSnapshot,
    Trip,
    TripOutcome,
    Vehicle,
)
from .rows import (
    assignment_from_row,
    driver_from_row,
    holiday_from_row,
    outcome_from_row,
    trip_from_row,
    vehicle_from_row,
)

logger = logging.getLogger(__name__)

FINISHED_STATUSES = frozenset({"completed", "cancelled", "no_show"})

RecordT = TypeVar("RecordT")


class RosterRepository(Protocol):
    def fetch_trips(
        self, tenant_id: int, start_date: date, end_date: date, *, unassigned_only: bool = False
    ) -> list[Trip]:
        ...

    def fetch_drivers(self, tenant_id: int) -> list[Driver]:
        ...

    def fetch_vehicles(self, tenant_id: int) -> list[Vehicle]:
        ...

    def fetch_assignments(
        self, tenant_id: int, start_date: date, end_date: date, driver_id: Optional[int] = None
    ) -> list[Assignment]:
        ...

    def fetch_approved_holidays(
        self, tenant_id: int, start_date: date, end_date: date, driver_id: Optional[int] = None
    ) -> list[HolidayEntry]:
        ...

    def fetch_trip_history(self, tenant_id: int, start_date: date, end_date: date) -> list[TripOutcome]:
        ...

    def count_unassigned_trips(self, tenant_id: int, start_date: date, end_date: date) -> int:
        ...

    def persist_assignment(self, tenant_id: int, driver_id: int, trip_id: int) -> None:
        ...


def parse_rows(rows: Iterable[Mapping[str, Any]], parser: Callable[[Mapping[str, Any]], RecordT], kind: str) -> list[RecordT]:
    """Parse table rows, skipping (and logging) malformed ones."""
    records: list[RecordT] = []
    for row in rows:
        try:
            records.append(parser(row))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning(f"Skipping malformed {kind} row: {exc}")
    return records


class InMemoryRepository:
    """Snapshot-backed repository, one ``RosterSnapshot`` per tenant."""

    def __init__(self, snapshots: Mapping[int, RosterSnapshot] | None = None) -> None:
        self._snapshots: dict[int, RosterSnapshot] = dict(snapshots or {})
        self._lock = threading.Lock()

    def _snapshot(self, tenant_id: int) -> RosterSnapshot:
        return self._snapshots.get(tenant_id) or RosterSnapshot()

    def fetch_trips(
        self, tenant_id: int, start_date: date, end_date: date, *, unassigned_only: bool = False
    ) -> list[Trip]:
        return [
            trip
            for trip in self._snapshot(tenant_id).trips
            if start_date <= trip.trip_date <= end_date
            and trip.status != "cancelled"
            and (not unassigned_only or trip.driver_id is None)
        ]

    def fetch_drivers(self, tenant_id: int) -> list[Driver]:
        return [driver for driver in self._snapshot(tenant_id).drivers if driver.is_active]

    def fetch_vehicles(self, tenant_id: int) -> list[Vehicle]:
        return [vehicle for vehicle in self._snapshot(tenant_id).vehicles if vehicle.is_active]

    def fetch_assignments(
        self, tenant_id: int, start_date: date, end_date: date, driver_id: Optional[int] = None
    ) -> list[Assignment]:
        snapshot = self._snapshot(tenant_id)
        derived = [
            Assignment.from_trip(trip)
            for trip in snapshot.trips
            if trip.driver_id is not None and trip.status != "cancelled"
        ]
        return [
            assignment
            for assignment in [*snapshot.assignments, *derived]
            if start_date <= assignment.assignment_date <= end_date
            and (driver_id is None or assignment.driver_id == driver_id)
        ]

    def fetch_approved_holidays(
        self, tenant_id: int, start_date: date, end_date: date, driver_id: Optional[int] = None
    ) -> list[HolidayEntry]:
        return [
            holiday
            for holiday in self._snapshot(tenant_id).holidays
            if holiday.is_approved
            and holiday.start_date <= end_date
            and holiday.end_date >= start_date
            and (driver_id is None or holiday.driver_id == driver_id)
        ]

    def fetch_trip_history(self, tenant_id: int, start_date: date, end_date: date) -> list[TripOutcome]:
        snapshot = self._snapshot(tenant_id)
        derived = [
            TripOutcome(
                trip_id=trip.trip_id,
                driver_id=trip.driver_id,
                trip_date=trip.trip_date,
                status=trip.status,
                customer_id=trip.customer_id,
            )
            for trip in snapshot.trips
            if trip.driver_id is not None and trip.status in FINISHED_STATUSES
        ]
        return [
            outcome
            for outcome in [*snapshot.history, *derived]
            if start_date <= outcome.trip_date <= end_date
        ]

    def count_unassigned_trips(self, tenant_id: int, start_date: date, end_date: date) -> int:
        return len(self.fetch_trips(tenant_id, start_date, end_date, unassigned_only=True))

    def persist_assignment(self, tenant_id: int, driver_id: int, trip_id: int) -> None:
        with self._lock:
            snapshot = self._snapshots.setdefault(tenant_id, RosterSnapshot())
            for index, trip in enumerate(snapshot.trips):
                if trip.trip_id == trip_id:
                    snapshot.trips[index] = dataclasses.replace(trip, driver_id=driver_id)
                    return
        raise KeyError(f"Trip {trip_id} not found for tenant {tenant_id}")


def snapshot_from_dict(data: Mapping[str, Any]) -> RosterSnapshot:
    return RosterSnapshot(
        trips=parse_rows(data.get("trips", []), trip_from_row, "trip"),
        drivers=parse_rows(data.get("drivers", []), driver_from_row, "driver"),
        vehicles=parse_rows(data.get("vehicles", []), vehicle_from_row, "vehicle"),
        assignments=parse_rows(data.get("assignments", []), assignment_from_row, "assignment"),
        holidays=parse_rows(data.get("holidays", []), holiday_from_row, "holiday"),
        history=parse_rows(data.get("history", []), outcome_from_row, "history"),
    )


def load_snapshot(source: Optional[Path] = None) -> InMemoryRepository:
    """Load ``{"tenants": {"<id>": {"trips": [...], ...}}}`` from a JSON file.

    A missing file yields an empty repository.
    """
    path = source or settings.snapshot_file
    if not path.exists():
        logger.info(f"Roster snapshot not found at {path}; starting with empty data")
        return InMemoryRepository()
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    tenants = payload.get("tenants", {})
    return InMemoryRepository({int(tenant_id): snapshot_from_dict(data) for tenant_id, data in tenants.items()})
