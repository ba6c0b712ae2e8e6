"""Driver workload and utilization metrics."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Sequence

from ...models.domain import Assignment, Driver
from .policy import RosterPolicy


@dataclass(slots=True, frozen=True)
class WorkloadMetric:
    driver_id: int
    driver_name: str
    total_hours: float
    total_trips: int
    days_worked: int
    average_hours_per_day: float
    utilization_percentage: float


@dataclass(slots=True, frozen=True)
class WorkloadSummary:
    total_drivers: int
    total_hours: float
    average_utilization: float
    underutilized: int
    overutilized: int
    balanced: int


def weeks_in_range(start_date: date, end_date: date) -> float:
    return max(1.0, ((end_date - start_date).days + 1) / 7.0)


def calculate_workload(
    drivers: Iterable[Driver],
    assignments: Iterable[Assignment],
    start_date: date,
    end_date: date,
    *,
    policy: RosterPolicy | None = None,
) -> List[WorkloadMetric]:
    """Hours, trips and utilization per active driver, busiest first."""
    if end_date < start_date:
        raise ValueError("end_date must not be before start_date")
    policy = policy or RosterPolicy()
    weeks = weeks_in_range(start_date, end_date)

    in_range: dict[int, list[Assignment]] = defaultdict(list)
    for assignment in assignments:
        if start_date <= assignment.assignment_date <= end_date:
            in_range[assignment.driver_id].append(assignment)

    metrics: list[WorkloadMetric] = []
    for driver in drivers:
        if not driver.is_active:
            continue
        bookings = in_range.get(driver.driver_id, [])
        total_hours = sum(booking.hours for booking in bookings)
        days_worked = len({booking.assignment_date for booking in bookings})
        weekly_limit = driver.max_hours_per_week or policy.default_max_hours_per_week
        metrics.append(
            WorkloadMetric(
                driver_id=driver.driver_id,
                driver_name=driver.name,
                total_hours=round(total_hours, 2),
                total_trips=sum(1 for booking in bookings if booking.trip_id is not None),
                days_worked=days_worked,
                average_hours_per_day=round(total_hours / days_worked, 2) if days_worked else 0.0,
                utilization_percentage=round(total_hours / (weekly_limit * weeks) * 100.0, 2),
            )
        )
    metrics.sort(key=lambda metric: (-metric.total_hours, metric.driver_id))
    return metrics


def summarize_workload(metrics: Sequence[WorkloadMetric], *, policy: RosterPolicy | None = None) -> WorkloadSummary:
    policy = policy or RosterPolicy()
    total = len(metrics)
    under = sum(1 for metric in metrics if metric.utilization_percentage < policy.underutilized_threshold)
    over = sum(1 for metric in metrics if metric.utilization_percentage > policy.overutilized_threshold)
    average = sum(metric.utilization_percentage for metric in metrics) / total if total else 0.0
    return WorkloadSummary(
        total_drivers=total,
        total_hours=round(sum(metric.total_hours for metric in metrics), 2),
        average_utilization=average,
        underutilized=under,
        overutilized=over,
        balanced=total - under - over,
    )
