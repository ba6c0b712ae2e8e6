"""Driver rostering endpoints."""

from __future__ import annotations

import logging
from datetime import date, time
from typing import Callable, Optional, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...schemas.roster import (
    AutoAssignRequest,
    AutoAssignResponse,
    AvailabilityResponse,
    ConflictsResponse,
    DashboardResponse,
    WorkloadResponse,
)
from ...services.roster.service import RosterService
from ..dependencies import get_roster_service

router = APIRouter(prefix="/tenants/{tenant_id}/roster", tags=["roster"])

ResponseT = TypeVar("ResponseT")


def run_roster_call(action: str, call: Callable[[], ResponseT]) -> ResponseT:
    """Translate service errors into HTTP errors the way every roster route does."""
    try:
        return call()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error while trying to {action}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}: {str(exc)}"
        ) from exc


@router.get("/availability/{driver_id}", response_model=AvailabilityResponse)
def availability(
    tenant_id: int,
    driver_id: int,
    day: date = Query(..., alias="date"),
    start_time: time = Query(..., alias="startTime"),
    duration_minutes: Optional[int] = Query(None, alias="durationMinutes"),
    service: RosterService = Depends(get_roster_service),
) -> AvailabilityResponse:
    return run_roster_call(
        "check driver availability",
        lambda: service.check_availability(tenant_id, driver_id, day, start_time, duration_minutes),
    )


@router.get("/conflicts", response_model=ConflictsResponse)
def conflicts(
    tenant_id: int,
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    service: RosterService = Depends(get_roster_service),
) -> ConflictsResponse:
    return run_roster_call("detect roster conflicts", lambda: service.detect_conflicts(tenant_id, start_date, end_date))


@router.post("/auto-assign", response_model=AutoAssignResponse)
def auto_assign(
    tenant_id: int,
    payload: AutoAssignRequest,
    service: RosterService = Depends(get_roster_service),
) -> AutoAssignResponse:
    return run_roster_call("auto-assign drivers", lambda: service.auto_assign(tenant_id, payload))


@router.get("/workload", response_model=WorkloadResponse)
def workload(
    tenant_id: int,
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    service: RosterService = Depends(get_roster_service),
) -> WorkloadResponse:
    return run_roster_call("calculate workload", lambda: service.workload(tenant_id, start_date, end_date))


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    tenant_id: int,
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    service: RosterService = Depends(get_roster_service),
) -> DashboardResponse:
    return run_roster_call("build roster dashboard", lambda: service.dashboard(tenant_id, start_date, end_date))
