"""Roster orchestration: fetch tenant data, run the components, shape responses."""

from __future__ import annotations

import logging
from datetime import date, time, timedelta
from typing import Optional

from ...data.repository import RosterRepository
from ...models.domain import HolidayEntry, Vehicle
from ...schemas.roster import (
    AssignmentModel,
    AutoAssignRequest,
    AutoAssignResponse,
    AvailabilityResponse,
    ConflictModel,
    ConflictsResponse,
    ConflictSummaryModel,
    DashboardConflictsModel,
    DashboardResponse,
    DashboardWorkloadModel,
    DateRangeModel,
    RecommendationModel,
    SuggestDriverRequest,
    SuggestDriverResponse,
    TimeWindowModel,
    VehicleSummaryModel,
    WorkloadMetricModel,
    WorkloadResponse,
    WorkloadSummaryModel,
)
from ..routing.cost import CostProvider
from .assignment import AssignmentPlan, plan_assignments
from .availability import Blocker, check_availability
from .conflicts import Conflict, ConflictSummary, detect_conflicts
from .dashboard import build_dashboard
from .policy import RosterPolicy
from .scoring import TripRequest, build_profiles, rank, score_drivers
from .workload import WorkloadMetric, WorkloadSummary, calculate_workload, summarize_workload

logger = logging.getLogger(__name__)

# Completed trips for a customer count towards "regular driver" over this span.
HISTORY_LOOKBACK_DAYS = 365


def _check_range(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise ValueError("endDate must not be before startDate")


def _conflict_model(conflict: Conflict) -> ConflictModel:
    trip_ids = [trip_id for trip_id in conflict.trip_ids if trip_id is not None]
    return ConflictModel(
        conflict_type=conflict.conflict_type,
        severity=conflict.severity,
        driver_id=conflict.driver_id,
        driver_name=conflict.driver_name,
        date=conflict.conflict_date,
        trip_id=trip_ids[-1] if trip_ids else None,
        trip_ids=trip_ids,
        times=[TimeWindowModel(start=start, end=end) for start, end in conflict.windows],
        details=conflict.details,
    )


def _blocker_model(blocker: Blocker, driver_id: int, day: date) -> ConflictModel:
    if isinstance(blocker, HolidayEntry):
        start, end = blocker.window(day)
        return ConflictModel(
            conflict_type="unavailable",
            severity="critical",
            driver_id=driver_id,
            driver_name="",
            date=day,
            times=[TimeWindowModel(start=start, end=end)],
            details=f"Driver is on {blocker.holiday_type} leave",
        )
    return ConflictModel(
        conflict_type="time_overlap",
        severity="critical",
        driver_id=driver_id,
        driver_name="",
        date=day,
        trip_id=blocker.trip_id,
        trip_ids=[blocker.trip_id] if blocker.trip_id is not None else [],
        times=[TimeWindowModel(start=blocker.start, end=blocker.end)],
        details=f"Overlaps with existing trip at {blocker.start.strftime('%H:%M')}",
    )


def _summary_model(summary: ConflictSummary) -> ConflictSummaryModel:
    return ConflictSummaryModel(
        total=summary.total,
        critical=summary.critical,
        warnings=summary.warnings,
        info=summary.info,
    )


def _metric_model(metric: WorkloadMetric) -> WorkloadMetricModel:
    return WorkloadMetricModel(
        driver_id=metric.driver_id,
        driver_name=metric.driver_name,
        total_hours=metric.total_hours,
        total_trips=metric.total_trips,
        days_worked=metric.days_worked,
        average_hours_per_day=metric.average_hours_per_day,
        utilization_percentage=metric.utilization_percentage,
    )


def _workload_summary_model(summary: WorkloadSummary) -> WorkloadSummaryModel:
    return WorkloadSummaryModel(
        total_drivers=summary.total_drivers,
        total_hours=summary.total_hours,
        average_utilization=summary.average_utilization,
        underutilized=summary.underutilized,
        overutilized=summary.overutilized,
        balanced=summary.balanced,
    )


def _vehicle_model(vehicle: Optional[Vehicle]) -> Optional[VehicleSummaryModel]:
    if vehicle is None:
        return None
    return VehicleSummaryModel(
        id=vehicle.vehicle_id,
        registration=vehicle.registration,
        make=vehicle.make,
        model=vehicle.model,
        seats=vehicle.seats,
        wheelchair_accessible=vehicle.wheelchair_accessible,
    )


def _plan_response(plan: AssignmentPlan) -> AutoAssignResponse:
    return AutoAssignResponse(
        assignment_date=plan.assignment_date,
        assigned=plan.assigned,
        unassigned=plan.unassigned,
        assignments=[
            AssignmentModel(
                trip_id=decision.trip_id,
                driver_id=decision.driver_id,
                driver_name=decision.driver_name,
                confidence_score=decision.confidence_score,
                reasoning=list(decision.reasons),
            )
            for decision in plan.assignments
        ],
        unassigned_trip_ids=list(plan.unassigned_trip_ids),
        applied=plan.applied,
        timed_out=plan.timed_out,
    )


class RosterService:
    """Runs roster operations for one repository.

    Every call reads a fresh view of the tenant's data. Nothing is written
    except by ``auto_assign`` with ``apply_changes`` set.
    """

    def __init__(
        self,
        repository: RosterRepository,
        *,
        policy: RosterPolicy | None = None,
        cost_provider: CostProvider | None = None,
    ) -> None:
        self.repository = repository
        self.policy = policy or RosterPolicy()
        self.cost_provider = cost_provider

    def check_availability(
        self,
        tenant_id: int,
        driver_id: int,
        day: date,
        start_time: time,
        duration_minutes: Optional[int] = None,
    ) -> AvailabilityResponse:
        duration = duration_minutes if duration_minutes is not None else self.policy.default_trip_duration_minutes
        result = check_availability(
            driver_id,
            day,
            start_time,
            duration,
            self.repository.fetch_assignments(tenant_id, day, day, driver_id),
            self.repository.fetch_approved_holidays(tenant_id, day, day, driver_id),
            policy=self.policy,
        )
        return AvailabilityResponse(
            driver_id=driver_id,
            date=day,
            start_time=result.start.time(),
            end_time=result.end.time(),
            available=result.available,
            conflicts=[_blocker_model(blocker, driver_id, day) for blocker in result.conflicts],
            warnings=result.warnings,
            booked_hours=round(result.booked_hours, 2),
        )

    def detect_conflicts(self, tenant_id: int, start_date: date, end_date: date) -> ConflictsResponse:
        _check_range(start_date, end_date)
        report = detect_conflicts(
            self.repository.fetch_drivers(tenant_id),
            self.repository.fetch_assignments(tenant_id, start_date, end_date),
            self.repository.fetch_approved_holidays(tenant_id, start_date, end_date),
            start_date,
            end_date,
            cost_provider=self.cost_provider,
            policy=self.policy,
        )
        return ConflictsResponse(
            date_range=DateRangeModel(start_date=start_date, end_date=end_date),
            conflicts=[_conflict_model(conflict) for conflict in report.conflicts],
            summary=_summary_model(report.summary),
        )

    def suggest_drivers(self, tenant_id: int, payload: SuggestDriverRequest) -> SuggestDriverResponse:
        request = TripRequest(
            trip_date=payload.trip_date,
            pickup_time=payload.pickup_time,
            duration_minutes=payload.duration_minutes or self.policy.default_trip_duration_minutes,
            passenger_count=payload.passenger_count,
            requires_wheelchair=payload.requires_wheelchair,
            customer_id=payload.customer_id,
            pickup=payload.pickup_location.to_domain() if payload.pickup_location else None,
        )
        day = payload.trip_date
        profiles = build_profiles(
            self.repository.fetch_drivers(tenant_id),
            self.repository.fetch_vehicles(tenant_id),
            self.repository.fetch_assignments(tenant_id, day, day),
            self.repository.fetch_approved_holidays(tenant_id, day, day),
            self.repository.fetch_trip_history(tenant_id, day - timedelta(days=HISTORY_LOOKBACK_DAYS), day),
            request,
            policy=self.policy,
        )
        scored, timed_out = score_drivers(
            profiles,
            request,
            consider_proximity=payload.consider_proximity,
            policy=self.policy,
        )
        eligible = rank(scored)
        logger.info(
            f"Driver suggestions for customer {payload.customer_id} on {day}: "
            f"{len(eligible)} of {len(scored)} drivers eligible"
        )
        return SuggestDriverResponse(
            recommendations=[
                RecommendationModel(
                    driver_id=item.driver.driver_id,
                    driver_name=item.driver.name,
                    phone=item.driver.phone,
                    vehicle=_vehicle_model(item.vehicle),
                    score=item.score,
                    reasons=item.reasons,
                    recommendation=item.tier,
                    is_regular_driver=item.is_regular_driver,
                    daily_workload=item.daily_workload,
                    completion_rate=item.completion_rate,
                )
                for item in eligible[: self.policy.max_recommendations]
            ],
            total_drivers_analyzed=len(scored),
            available_drivers=len(eligible),
            timed_out=timed_out,
        )

    def auto_assign(self, tenant_id: int, payload: AutoAssignRequest) -> AutoAssignResponse:
        day = payload.assignment_date
        plan = plan_assignments(
            day,
            self.repository.fetch_trips(tenant_id, day, day, unassigned_only=True),
            self.repository.fetch_drivers(tenant_id),
            self.repository.fetch_vehicles(tenant_id),
            self.repository.fetch_assignments(tenant_id, day, day),
            self.repository.fetch_approved_holidays(tenant_id, day, day),
            self.repository.fetch_trip_history(tenant_id, day - timedelta(days=HISTORY_LOOKBACK_DAYS), day),
            balance_workload=payload.balance_workload,
            consider_proximity=payload.consider_proximity,
            max_assignments=payload.max_assignments,
            policy=self.policy,
        )
        if payload.apply_changes:
            self._apply(tenant_id, plan)
        return _plan_response(plan)

    def _apply(self, tenant_id: int, plan: AssignmentPlan) -> None:
        """Write each decision; trips whose write fails are reported as unassigned."""
        persisted = []
        for decision in plan.assignments:
            try:
                self.repository.persist_assignment(tenant_id, decision.driver_id, decision.trip_id)
            except Exception as exc:
                logger.warning(
                    f"Could not assign driver {decision.driver_id} to trip {decision.trip_id} "
                    f"(tenant {tenant_id}): {exc}"
                )
                plan.unassigned_trip_ids.append(decision.trip_id)
                continue
            persisted.append(decision)
        plan.assignments = persisted
        plan.applied = True
        logger.info(f"Applied {plan.assigned} assignments for tenant {tenant_id} on {plan.assignment_date}")

    def workload(self, tenant_id: int, start_date: date, end_date: date) -> WorkloadResponse:
        _check_range(start_date, end_date)
        metrics = calculate_workload(
            self.repository.fetch_drivers(tenant_id),
            self.repository.fetch_assignments(tenant_id, start_date, end_date),
            start_date,
            end_date,
            policy=self.policy,
        )
        return WorkloadResponse(
            date_range=DateRangeModel(start_date=start_date, end_date=end_date),
            metrics=[_metric_model(metric) for metric in metrics],
            summary=_workload_summary_model(summarize_workload(metrics, policy=self.policy)),
        )

    def dashboard(self, tenant_id: int, start_date: date, end_date: date) -> DashboardResponse:
        _check_range(start_date, end_date)
        report = build_dashboard(
            self.repository.fetch_drivers(tenant_id),
            self.repository.fetch_assignments(tenant_id, start_date, end_date),
            self.repository.fetch_approved_holidays(tenant_id, start_date, end_date),
            self.repository.count_unassigned_trips(tenant_id, start_date, end_date),
            start_date,
            end_date,
            cost_provider=self.cost_provider,
            policy=self.policy,
        )
        return DashboardResponse(
            date_range=DateRangeModel(start_date=start_date, end_date=end_date),
            workload=DashboardWorkloadModel(
                metrics=[_metric_model(metric) for metric in report.workload_metrics],
                summary=_workload_summary_model(report.workload_summary),
            ),
            conflicts=DashboardConflictsModel(
                items=[_conflict_model(conflict) for conflict in report.conflicts.conflicts],
                summary=_summary_model(report.conflicts.summary),
            ),
            unassigned_trips=report.unassigned_trips,
        )
