"""Travel cost providers used to price consecutive stops on a route."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

import httpx

from ...config import Settings, settings
from ...models.domain import Location
from ..geospatial import location_distance_km
from .osrm_client import OSRMClient

logger = logging.getLogger(__name__)


class CostUnavailableError(RuntimeError):
    """Raised when travel cost between two locations cannot be obtained."""


@dataclass(slots=True, frozen=True)
class TravelCost:
    distance_km: float
    duration_min: float


class CostProvider(Protocol):
    def cost_between(self, origin: Location, destination: Location) -> TravelCost:
        ...

    def matrix(self, locations: Sequence[Location]) -> list[list[TravelCost]]:
        ...


class HaversineCostProvider:
    """Straight-line distances with a flat average speed for durations."""

    def __init__(self, average_speed_kmh: float | None = None) -> None:
        self.average_speed_kmh = average_speed_kmh or settings.average_speed_kmh

    def cost_between(self, origin: Location, destination: Location) -> TravelCost:
        distance = location_distance_km(origin, destination)
        if distance is None:
            raise CostUnavailableError(
                f"Cannot price '{origin.address}' -> '{destination.address}' without coordinates."
            )
        return TravelCost(distance_km=distance, duration_min=distance / self.average_speed_kmh * 60.0)

    def matrix(self, locations: Sequence[Location]) -> list[list[TravelCost]]:
        return [[self.cost_between(a, b) for b in locations] for a in locations]


class OSRMCostProvider:
    """Road network costs from an OSRM table request."""

    def __init__(self, client: OSRMClient | None = None) -> None:
        self.client = client or OSRMClient()

    def cost_between(self, origin: Location, destination: Location) -> TravelCost:
        return self.matrix([origin, destination])[0][1]

    def matrix(self, locations: Sequence[Location]) -> list[list[TravelCost]]:
        missing = [location.address for location in locations if not location.has_coordinates]
        if missing:
            raise CostUnavailableError(f"Locations are not geocoded: {', '.join(missing)}")
        if not locations:
            return []
        coordinates = [(location.latitude, location.longitude) for location in locations]
        try:
            table = self.client.table(coordinates)
        except (httpx.HTTPError, ConnectionError, ValueError) as exc:
            raise CostUnavailableError(f"OSRM table request failed: {exc}") from exc

        rows: list[list[TravelCost]] = []
        for duration_row, distance_row in zip(table["durations"], table["distances"]):
            row = []
            for duration, distance in zip(duration_row, distance_row):
                if duration is None or distance is None:
                    raise CostUnavailableError("OSRM reported an unreachable location pair.")
                row.append(TravelCost(distance_km=distance / 1000.0, duration_min=duration / 60.0))
            rows.append(row)
        return rows


def build_cost_provider(config: Settings | None = None) -> CostProvider:
    config = config or settings
    if config.osrm_base_url:
        logger.info(f"Using OSRM cost provider at {config.osrm_base_url}")
        return OSRMCostProvider(OSRMClient(base_url=config.osrm_base_url, profile=config.osrm_profile))
    return HaversineCostProvider(average_speed_kmh=config.average_speed_kmh)
