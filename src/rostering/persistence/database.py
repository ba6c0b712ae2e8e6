"""Supabase persistence for tenant trips, drivers, vehicles and holidays."""

from __future__ import annotations

import logging
from datetime import date
from functools import lru_cache
from typing import Any, Optional

from supabase import Client

from ..data.repository import (
    FINISHED_STATUSES,
    InMemoryRepository,
    RosterRepository,
    load_snapshot,
    parse_rows,
)
from ..data.rows import driver_from_row, holiday_from_row, outcome_from_row, trip_from_row, vehicle_from_row
from ..db.supabase import get_supabase_client
from ..models.domain import Assignment, Driver, HolidayEntry, Trip, TripOutcome, Vehicle

TRIPS_TABLE = "tenant_trips"
DRIVERS_TABLE = "tenant_drivers"
VEHICLES_TABLE = "tenant_vehicles"
HOLIDAYS_TABLE = "tenant_driver_holidays"


class SupabaseRepository:
    """Reads roster data from the tenant tables.

    The only write is setting ``driver_id`` on a trip when an auto-assignment
    plan is applied.
    """

    def __init__(self, client: Client) -> None:
        self._client = client

    def _rows(self, query: Any) -> list[dict[str, Any]]:
        response = query.execute()
        return list(response.data or [])

    def _trip_rows(self, tenant_id: int, start_date: date, end_date: date) -> Any:
        return (
            self._client.table(TRIPS_TABLE)
            .select("*")
            .eq("tenant_id", tenant_id)
            .gte("trip_date", start_date.isoformat())
            .lte("trip_date", end_date.isoformat())
        )

    def fetch_trips(
        self, tenant_id: int, start_date: date, end_date: date, *, unassigned_only: bool = False
    ) -> list[Trip]:
        query = self._trip_rows(tenant_id, start_date, end_date).neq("status", "cancelled")
        if unassigned_only:
            query = query.is_("driver_id", "null")
        return parse_rows(self._rows(query.order("trip_date").order("pickup_time")), trip_from_row, "trip")

    def fetch_drivers(self, tenant_id: int) -> list[Driver]:
        query = self._client.table(DRIVERS_TABLE).select("*").eq("tenant_id", tenant_id).eq("is_active", True)
        return parse_rows(self._rows(query), driver_from_row, "driver")

    def fetch_vehicles(self, tenant_id: int) -> list[Vehicle]:
        query = self._client.table(VEHICLES_TABLE).select("*").eq("tenant_id", tenant_id).eq("is_active", True)
        return parse_rows(self._rows(query), vehicle_from_row, "vehicle")

    def fetch_assignments(
        self, tenant_id: int, start_date: date, end_date: date, driver_id: Optional[int] = None
    ) -> list[Assignment]:
        query = self._trip_rows(tenant_id, start_date, end_date).neq("status", "cancelled")
        if driver_id is not None:
            query = query.eq("driver_id", driver_id)
        else:
            query = query.not_.is_("driver_id", "null")
        trips = parse_rows(self._rows(query), trip_from_row, "trip")
        return [Assignment.from_trip(trip) for trip in trips if trip.driver_id is not None]

    def fetch_approved_holidays(
        self, tenant_id: int, start_date: date, end_date: date, driver_id: Optional[int] = None
    ) -> list[HolidayEntry]:
        query = (
            self._client.table(HOLIDAYS_TABLE)
            .select("*")
            .eq("tenant_id", tenant_id)
            .eq("status", "approved")
            .lte("start_date", end_date.isoformat())
            .gte("end_date", start_date.isoformat())
        )
        if driver_id is not None:
            query = query.eq("driver_id", driver_id)
        return parse_rows(self._rows(query), holiday_from_row, "holiday")

    def fetch_trip_history(self, tenant_id: int, start_date: date, end_date: date) -> list[TripOutcome]:
        query = (
            self._trip_rows(tenant_id, start_date, end_date)
            .in_("status", sorted(FINISHED_STATUSES))
            .not_.is_("driver_id", "null")
        )
        return parse_rows(self._rows(query), outcome_from_row, "history")

    def count_unassigned_trips(self, tenant_id: int, start_date: date, end_date: date) -> int:
        query = (
            self._client.table(TRIPS_TABLE)
            .select("trip_id", count="exact")
            .eq("tenant_id", tenant_id)
            .gte("trip_date", start_date.isoformat())
            .lte("trip_date", end_date.isoformat())
            .neq("status", "cancelled")
            .is_("driver_id", "null")
        )
        response = query.execute()
        if response.count is not None:
            return int(response.count)
        return len(response.data or [])

    def persist_assignment(self, tenant_id: int, driver_id: int, trip_id: int) -> None:
        (
            self._client.table(TRIPS_TABLE)
            .update({"driver_id": driver_id})
            .eq("tenant_id", tenant_id)
            .eq("trip_id", trip_id)
            .execute()
        )
        logging.info(f"Assigned driver {driver_id} to trip {trip_id} (tenant {tenant_id})")


@lru_cache()
def get_repository() -> RosterRepository:
    """Supabase when configured, otherwise the JSON snapshot (possibly empty)."""
    client = get_supabase_client()
    if client is not None:
        logging.info("Using Supabase roster repository")
        return SupabaseRepository(client)
    repository: InMemoryRepository = load_snapshot()
    logging.info("Using in-memory roster repository")
    return repository
