import pytest

from rostering.models.domain import Location
from rostering.services.geospatial import haversine_km, location_distance_km, postcode_proximity


def test_haversine_known_distance():
    # London to Paris is roughly 344 km
    assert haversine_km(51.5074, -0.1278, 48.8566, 2.3522) == pytest.approx(343.5, abs=1.5)


def test_location_distance_requires_coordinates():
    geocoded = Location(address="A", latitude=51.5, longitude=-0.1)
    assert location_distance_km(geocoded, geocoded) == 0
    assert location_distance_km(geocoded, Location(address="B", postcode="SW1A 1AA")) is None


@pytest.mark.parametrize(
    "first, second, expected",
    [
        ("LS1 4AP", "ls14ap", 100),
        ("LS1 4AP", "LS1 5QQ", 75),
        ("LS1 4AP", "LS6 2BT", 40),
        ("LS1 4AP", "M1 1AE", 10),
        (None, "M1 1AE", 0),
    ],
)
def test_postcode_proximity(first, second, expected):
    assert postcode_proximity(first, second) == expected
