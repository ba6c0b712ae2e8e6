"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal

OptimizationLevel = Literal["quick", "standard", "thorough"]
OptimizationMethod = Literal["optimized", "fallback"]


@dataclass(slots=True)
class Route:
    route_id: int
    capacity: int
    trip_ids: List[int] = field(default_factory=list)
    total_passengers: int = 0
    capacity_exceeded: bool = False
    total_cost: float = 0.0

    @property
    def capacity_used(self) -> float:
        return self.total_passengers / self.capacity * 100.0

    @property
    def occupied_seats(self) -> int:
        return min(self.total_passengers, self.capacity)

    @property
    def empty_seats(self) -> int:
        return self.capacity - self.occupied_seats

    @property
    def overflow_passengers(self) -> int:
        return max(0, self.total_passengers - self.capacity)

    def can_fit(self, passengers: int) -> bool:
        return not self.capacity_exceeded and self.total_passengers + passengers <= self.capacity


@dataclass(slots=True)
class RoutingResult:
    routes: List[Route]
    method: OptimizationMethod
    optimization_level: OptimizationLevel
    baseline_cost: float = 0.0
    total_cost: float = 0.0
    improvement: float = 0.0
    iterations: int = 0
    timed_out: bool = False
    processing_time_ms: float = 0.0
    metadata: dict = field(default_factory=dict)
