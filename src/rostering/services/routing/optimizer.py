"""Route optimization strategies.

``LocalSearchRouteOptimizer`` runs the greedy builder and then 2-opt on every
route; ``GreedyRouteOptimizer`` stops after construction. The strategy is
chosen once, at construction time, by ``build_route_optimizer``.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Literal, Mapping, Sequence

from ...config import Settings, settings
from ...models.domain import Trip
from .builder import build_routes
from .cost import CostProvider, CostUnavailableError, build_cost_provider
from .improver import TwoOptOutcome, iteration_budget, two_opt
from .models import OptimizationLevel, Route, RoutingResult

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RoutingPolicy:
    cost_metric: Literal["distance", "duration"] = settings.route_cost_metric
    time_limit_seconds: float = settings.route_time_limit_seconds
    pickup_window_minutes: int | None = settings.route_pickup_window_minutes
    min_postcode_proximity: int | None = settings.route_min_postcode_proximity
    max_workers: int = settings.max_parallel_workers

    @classmethod
    def from_settings(cls, config: Settings) -> "RoutingPolicy":
        return cls(
            cost_metric=config.route_cost_metric,
            time_limit_seconds=config.route_time_limit_seconds,
            pickup_window_minutes=config.route_pickup_window_minutes,
            min_postcode_proximity=config.route_min_postcode_proximity,
            max_workers=config.max_parallel_workers,
        )


class RouteOptimizer(ABC):
    """Contract every route optimization strategy satisfies."""

    method: str = "base"

    def __init__(self, policy: RoutingPolicy | None = None) -> None:
        self.policy = policy or RoutingPolicy()

    @abstractmethod
    def optimize(
        self,
        trips: Sequence[Trip],
        vehicle_capacity: int,
        optimization_level: OptimizationLevel = "standard",
    ) -> RoutingResult:
        """Partition ``trips`` into routes covering each trip exactly once."""
        ...

    def _baseline(self, trips: Sequence[Trip], vehicle_capacity: int) -> list[Route]:
        return build_routes(
            trips,
            vehicle_capacity,
            pickup_window_minutes=self.policy.pickup_window_minutes,
            min_postcode_proximity=self.policy.min_postcode_proximity,
        )


class GreedyRouteOptimizer(RouteOptimizer):
    method = "fallback"

    def optimize(
        self,
        trips: Sequence[Trip],
        vehicle_capacity: int,
        optimization_level: OptimizationLevel = "standard",
    ) -> RoutingResult:
        started = time.perf_counter()
        routes = self._baseline(trips, vehicle_capacity)
        return RoutingResult(
            routes=routes,
            method="fallback",
            optimization_level=optimization_level,
            processing_time_ms=(time.perf_counter() - started) * 1000.0,
        )


class LocalSearchRouteOptimizer(RouteOptimizer):
    method = "optimized"

    def __init__(self, cost_provider: CostProvider, policy: RoutingPolicy | None = None) -> None:
        super().__init__(policy)
        self.cost_provider = cost_provider

    def optimize(
        self,
        trips: Sequence[Trip],
        vehicle_capacity: int,
        optimization_level: OptimizationLevel = "standard",
    ) -> RoutingResult:
        started = time.perf_counter()
        routes = self._baseline(trips, vehicle_capacity)
        trip_map = {trip.trip_id: trip for trip in trips}
        deadline = time.monotonic() + self.policy.time_limit_seconds

        try:
            outcomes = self._improve_all(routes, trip_map, optimization_level, deadline)
        except CostUnavailableError as exc:
            logger.warning(f"Travel costs unavailable, returning greedy routes: {exc}")
            return RoutingResult(
                routes=routes,
                method="fallback",
                optimization_level=optimization_level,
                processing_time_ms=(time.perf_counter() - started) * 1000.0,
                metadata={"fallback_reason": str(exc)},
            )

        for route, outcome in zip(routes, outcomes):
            route.trip_ids = [route.trip_ids[index] for index in outcome.order]
            route.total_cost = outcome.cost

        baseline_cost = sum(outcome.baseline_cost for outcome in outcomes)
        total_cost = sum(outcome.cost for outcome in outcomes)
        improvement = (baseline_cost - total_cost) / baseline_cost * 100.0 if baseline_cost > 0 else 0.0
        timed_out = any(outcome.timed_out for outcome in outcomes)
        if timed_out:
            logger.warning(
                f"Route optimization hit the {self.policy.time_limit_seconds}s limit; returning best routes found"
            )

        result = RoutingResult(
            routes=routes,
            method="optimized",
            optimization_level=optimization_level,
            baseline_cost=baseline_cost,
            total_cost=total_cost,
            improvement=max(improvement, 0.0),
            iterations=sum(outcome.passes for outcome in outcomes),
            timed_out=timed_out,
            processing_time_ms=(time.perf_counter() - started) * 1000.0,
            metadata={"cost_metric": self.policy.cost_metric},
        )
        logger.info(
            f"2-opt optimization completed: {len(routes)} routes, improvement {result.improvement:.1f}%, "
            f"{result.iterations} passes, level={optimization_level}"
        )
        return result

    def _improve_all(
        self,
        routes: Sequence[Route],
        trip_map: Mapping[int, Trip],
        level: OptimizationLevel,
        deadline: float,
    ) -> list[TwoOptOutcome]:
        if not routes:
            return []
        workers = min(self.policy.max_workers, len(routes))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self._improve_route, route, trip_map, level, deadline)
                for route in routes
            ]
            # results are collected in route order so threading never changes the output
            return [future.result() for future in futures]

    def _improve_route(
        self,
        route: Route,
        trip_map: Mapping[int, Trip],
        level: OptimizationLevel,
        deadline: float,
    ) -> TwoOptOutcome:
        stops = [trip_map[trip_id] for trip_id in route.trip_ids]
        if len(stops) < 2:
            return TwoOptOutcome(order=list(range(len(stops))), baseline_cost=0.0, cost=0.0, passes=0)
        matrix = self.cost_provider.matrix([trip.pickup for trip in stops])
        if self.policy.cost_metric == "duration":
            costs = [[cell.duration_min for cell in row] for row in matrix]
        else:
            costs = [[cell.distance_km for cell in row] for row in matrix]
        return two_opt(costs, max_passes=iteration_budget(level, len(stops)), deadline=deadline)


def build_route_optimizer(
    config: Settings | None = None,
    *,
    cost_provider: CostProvider | None = None,
    policy: RoutingPolicy | None = None,
) -> RouteOptimizer:
    config = config or settings
    policy = policy or RoutingPolicy.from_settings(config)
    if not config.route_optimization_enabled:
        logger.info("Route optimization disabled; using greedy routes only")
        return GreedyRouteOptimizer(policy)
    return LocalSearchRouteOptimizer(cost_provider or build_cost_provider(config), policy)

