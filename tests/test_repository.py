import json
from datetime import date, time
from pathlib import Path

import pytest

from rostering.config import settings
from rostering.data.repository import InMemoryRepository, load_snapshot, snapshot_from_dict
from rostering.data.rows import assignment_from_row, driver_from_row, trip_from_row, vehicle_from_row
from rostering.services.roster.service import RosterService

DAY = date(2025, 1, 15)

SNAPSHOT = {
    "tenants": {
        "1": {
            "drivers": [
                {"driver_id": 1, "name": "Ann", "phone": "07700 900001", "current_vehicle_id": 10, "home_postcode": "LS1 4AP"},
                {"driver_id": 2, "name": "Bo", "is_active": False},
            ],
            "vehicles": [
                {"vehicle_id": 10, "seats": 8, "wheelchair_accessible": True, "registration": "AB12 CDE"},
            ],
            "trips": [
                {
                    "trip_id": 100,
                    "trip_date": "2025-01-15",
                    "pickup_time": "09:00:00",
                    "pickup_location": "1 High Street",
                    "pickup_postcode": "LS1 4AP",
                    "destination": "Day Centre",
                    "passenger_count": 2,
                    "customer_id": 500,
                    "driver_id": 1,
                },
                {
                    "trip_id": 101,
                    "trip_date": "2025-01-15",
                    "pickup_time": "11:00",
                    "pickup_location": "2 Low Road",
                    "destination": "Day Centre",
                    "duration_minutes": 45,
                },
                {
                    "trip_id": 102,
                    "trip_date": "2025-01-10",
                    "pickup_time": "10:00",
                    "pickup_location": "3 Mill Lane",
                    "destination": "Surgery",
                    "customer_id": 500,
                    "driver_id": 1,
                    "status": "completed",
                },
                {"trip_id": 103, "trip_date": "2025-01-15", "pickup_time": "12:00"},
            ],
            "holidays": [
                {"driver_id": 1, "start_date": "2025-01-20", "end_date": "2025-01-24", "holiday_type": "annual"},
                {"driver_id": 1, "start_date": "2025-01-15", "end_date": "2025-01-15", "status": "pending"},
            ],
        }
    }
}


@pytest.fixture
def repository(tmp_path: Path) -> InMemoryRepository:
    path = tmp_path / "roster_snapshot.json"
    path.write_text(json.dumps(SNAPSHOT), encoding="utf-8")
    return load_snapshot(path)


def test_load_snapshot_skips_malformed_rows(repository: InMemoryRepository):
    trips = repository.fetch_trips(1, DAY, DAY)
    assert [trip.trip_id for trip in trips] == [100, 101]
    assert trips[1].duration_minutes == 45
    assert trips[0].pickup.postcode == "LS1 4AP"


def test_missing_snapshot_gives_empty_repository(tmp_path: Path):
    repository = load_snapshot(tmp_path / "absent.json")
    assert repository.fetch_drivers(1) == []
    assert repository.count_unassigned_trips(1, DAY, DAY) == 0


def test_active_drivers_and_vehicles(repository: InMemoryRepository):
    drivers = repository.fetch_drivers(1)
    assert [driver.driver_id for driver in drivers] == [1]
    assert drivers[0].vehicle_id == 10
    assert drivers[0].home.postcode == "LS1 4AP"
    vehicle = repository.fetch_vehicles(1)[0]
    assert vehicle.wheelchair_accessible


def test_assignments_derive_from_assigned_trips(repository: InMemoryRepository):
    assignments = repository.fetch_assignments(1, DAY, DAY)
    assert [(a.driver_id, a.trip_id, a.start.time()) for a in assignments] == [(1, 100, time(9, 0))]
    assert repository.fetch_assignments(1, DAY, DAY, driver_id=2) == []


def test_holidays_and_history(repository: InMemoryRepository):
    assert repository.fetch_approved_holidays(1, DAY, DAY) == []
    assert len(repository.fetch_approved_holidays(1, date(2025, 1, 22), date(2025, 1, 30))) == 1

    history = repository.fetch_trip_history(1, date(2025, 1, 1), DAY)
    assert [(outcome.trip_id, outcome.status, outcome.customer_id) for outcome in history] == [(102, "completed", 500)]


def test_persist_assignment_updates_trip(repository: InMemoryRepository):
    assert repository.count_unassigned_trips(1, DAY, DAY) == 1
    repository.persist_assignment(1, driver_id=1, trip_id=101)

    assert repository.count_unassigned_trips(1, DAY, DAY) == 0
    assert {a.trip_id for a in repository.fetch_assignments(1, DAY, DAY, driver_id=1)} == {100, 101}
    with pytest.raises(KeyError):
        repository.persist_assignment(1, driver_id=1, trip_id=999)


def test_unknown_tenant_is_empty(repository: InMemoryRepository):
    assert repository.fetch_trips(42, DAY, DAY) == []


def test_row_converters():
    trip = trip_from_row(
        {
            "trip_id": "7",
            "trip_date": "2025-01-15T00:00:00",
            "pickup_time": "1970-01-01T08:30:00",
            "pickup_location": "Stop",
            "pickup_latitude": "53.8",
            "pickup_longitude": "-1.55",
            "destination": "Centre",
        }
    )
    assert trip.trip_id == 7
    assert trip.pickup_time == time(8, 30)
    assert trip.pickup.has_coordinates
    assert trip.passenger_count == 1

    assert vehicle_from_row({"vehicle_id": 3, "seats": 4}).wheelchair_spaces == 0
    assert driver_from_row({"driver_id": 9}).name == "Driver 9"
    with pytest.raises(ValueError):
        trip_from_row({"trip_id": 1, "trip_date": "2025-01-15", "pickup_time": "09:00"})


def test_snapshot_from_dict_defaults():
    snapshot = snapshot_from_dict({})
    assert snapshot.trips == [] and snapshot.drivers == []


def test_timetable_assignments_block_availability(tmp_path: Path):
    path = tmp_path / "roster_snapshot.json"
    path.write_text(
        json.dumps(
            {
                "tenants": {
                    "1": {
                        "drivers": [{"driver_id": 7, "name": "Cy"}],
                        "assignments": [
                            {"driver_id": 7, "date": "2025-01-15", "start_time": "09:00", "end_time": "09:30", "service_id": 3},
                            {"driver_id": 7, "date": "2025-01-16", "start_time": "14:00", "duration_minutes": 90},
                            {"driver_id": 7, "date": "2025-01-17", "start_time": "10:00", "end_time": "09:00"},
                        ],
                    }
                }
            }
        ),
        encoding="utf-8",
    )
    repository = load_snapshot(path)

    blocks = repository.fetch_assignments(1, DAY, date(2025, 1, 17), driver_id=7)
    assert [(a.service_id, a.start.time(), a.end.time()) for a in blocks] == [
        (3, time(9, 0), time(9, 30)),
        (None, time(14, 0), time(15, 30)),
    ]

    result = RosterService(repository).check_availability(1, 7, DAY, time(9, 10), 30)
    assert result.available is False
    assert len(result.conflicts) == 1
    assert result.conflicts[0].conflict_type == "time_overlap"


def test_assignment_row_converter():
    block = assignment_from_row({"driver_id": "4", "assignment_date": "2025-01-15", "start_time": "08:00:00", "timetable_id": 12})
    assert block.service_id == 12
    assert block.hours == pytest.approx(settings.default_trip_duration_minutes / 60)
    with pytest.raises(KeyError):
        assignment_from_row({"driver_id": 4, "start_time": "08:00"})
