"""Roster dashboard composed from workload, conflicts and open trips."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

from ...models.domain import Assignment, Driver, HolidayEntry
from ..routing.cost import CostProvider
from .conflicts import ConflictReport, detect_conflicts
from .policy import RosterPolicy
from .workload import WorkloadMetric, WorkloadSummary, calculate_workload, summarize_workload


@dataclass(slots=True, frozen=True)
class DashboardReport:
    workload_metrics: List[WorkloadMetric]
    workload_summary: WorkloadSummary
    conflicts: ConflictReport
    unassigned_trips: int


def build_dashboard(
    drivers: Sequence[Driver],
    assignments: Sequence[Assignment],
    holidays: Sequence[HolidayEntry],
    unassigned_trips: int,
    start_date: date,
    end_date: date,
    *,
    cost_provider: Optional[CostProvider] = None,
    policy: RosterPolicy | None = None,
) -> DashboardReport:
    metrics = calculate_workload(drivers, assignments, start_date, end_date, policy=policy)
    return DashboardReport(
        workload_metrics=metrics,
        workload_summary=summarize_workload(metrics, policy=policy),
        conflicts=detect_conflicts(
            drivers,
            assignments,
            holidays,
            start_date,
            end_date,
            cost_provider=cost_provider,
            policy=policy,
        ),
        unassigned_trips=unassigned_trips,
    )
