"""2-opt local search over the stop sequence of a single route."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import List, Sequence

from .models import OptimizationLevel

logger = logging.getLogger(__name__)

# Improvements smaller than this are treated as ties so the current order wins.
COST_EPSILON = 1e-9


@dataclass(slots=True)
class TwoOptOutcome:
    order: List[int]
    baseline_cost: float
    cost: float
    passes: int
    timed_out: bool = False


def iteration_budget(level: OptimizationLevel, route_length: int) -> int:
    """Maximum number of full 2-opt passes for a route of ``route_length`` stops."""
    n = max(route_length, 0)
    quick = n
    standard = max(quick, math.ceil(n * math.log2(n))) if n > 1 else quick
    thorough = max(standard, n * n)
    budgets = {"quick": quick, "standard": standard, "thorough": thorough}
    if level not in budgets:
        raise ValueError(f"Unknown optimization level '{level}'")
    return budgets[level]


def path_cost(order: Sequence[int], costs: Sequence[Sequence[float]]) -> float:
    return sum(costs[a][b] for a, b in zip(order, order[1:]))


def two_opt(
    costs: Sequence[Sequence[float]],
    *,
    max_passes: int,
    deadline: float | None = None,
) -> TwoOptOutcome:
    """Improve the identity order ``0..n-1`` of an open path by segment reversal.

    Each pass evaluates every reversal of ``order[start..end]`` and applies the
    single best strictly improving one. Search stops when a pass finds nothing,
    ``max_passes`` passes have run or ``deadline`` (a ``time.monotonic`` value)
    is reached; the best order seen so far is always returned.
    """
    n = len(costs)
    order = list(range(n))
    baseline = path_cost(order, costs)
    current = baseline
    passes = 0
    timed_out = False

    if n < 2:
        return TwoOptOutcome(order=order, baseline_cost=baseline, cost=current, passes=0)

    while passes < max_passes:
        if deadline is not None and time.monotonic() >= deadline:
            timed_out = True
            break
        passes += 1
        best_order: list[int] | None = None
        best_cost = current
        for start in range(n - 1):
            if deadline is not None and time.monotonic() >= deadline:
                timed_out = True
                break
            for end in range(start + 1, n):
                candidate = order[:start] + order[start : end + 1][::-1] + order[end + 1 :]
                candidate_cost = path_cost(candidate, costs)
                if candidate_cost < best_cost - COST_EPSILON:
                    best_order = candidate
                    best_cost = candidate_cost
        if best_order is None:
            break
        logger.debug(f"2-opt pass {passes}: cost {current:.3f} -> {best_cost:.3f}")
        order = best_order
        current = best_cost
        if timed_out:
            break

    return TwoOptOutcome(order=order, baseline_cost=baseline, cost=current, passes=passes, timed_out=timed_out)
