"""Routing endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...data.repository import RosterRepository
from ...persistence.database import get_repository
from ...schemas.routing import (
    CapacityOptimizationRequest,
    CapacityOptimizationResponse,
    RouteOptimizationRequest,
    RouteOptimizationResponse,
)
from ...services.routing.optimizer import RouteOptimizer
from ...services.routing.service import optimize_routes, optimize_tenant_trips
from ..dependencies import get_route_optimizer

router = APIRouter(prefix="/routes", tags=["routes"])
tenant_router = APIRouter(prefix="/tenants/{tenant_id}/routes", tags=["routes"])


@router.post("/optimize", response_model=RouteOptimizationResponse, status_code=status.HTTP_200_OK)
def optimize(
    payload: RouteOptimizationRequest,
    optimizer: RouteOptimizer = Depends(get_route_optimizer),
) -> RouteOptimizationResponse:
    try:
        return optimize_routes(payload, optimizer=optimizer)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error optimizing routes: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize routes: {str(exc)}"
        ) from exc


@tenant_router.post("/capacity-optimize", response_model=CapacityOptimizationResponse)
def capacity_optimize(
    tenant_id: int,
    payload: CapacityOptimizationRequest,
    repository: RosterRepository = Depends(get_repository),
    optimizer: RouteOptimizer = Depends(get_route_optimizer),
) -> CapacityOptimizationResponse:
    try:
        return optimize_tenant_trips(repository, tenant_id, payload, optimizer=optimizer)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error optimizing trips for tenant {tenant_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize trips: {str(exc)}"
        ) from exc
