"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_osrm_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.routing.osrm_client import check_health as osrm_health_check
    return osrm_health_check


@router.get("/health/osrm", status_code=status.HTTP_200_OK)
def health_osrm() -> dict:
    """Check OSRM service health; straight-line costs are used when it is not configured."""
    if not settings.osrm_base_url:
        return {"service": "osrm", "configured": False, "healthy": False}
    try:
        osrm_health_check = _get_osrm_health_check()
        status_flag = osrm_health_check()
        return {"service": "osrm", "configured": True, "healthy": status_flag}
    except Exception as e:
        return {"service": "osrm", "configured": True, "healthy": False, "error": str(e)}
