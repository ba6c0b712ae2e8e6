"""Driver suggestion endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ...schemas.roster import SuggestDriverRequest, SuggestDriverResponse
from ...services.roster.service import RosterService
from ..dependencies import get_roster_service
from .roster import run_roster_call

router = APIRouter(prefix="/tenants/{tenant_id}", tags=["drivers"])


@router.post("/suggest-driver", response_model=SuggestDriverResponse)
def suggest_driver(
    tenant_id: int,
    payload: SuggestDriverRequest,
    service: RosterService = Depends(get_roster_service),
) -> SuggestDriverResponse:
    """Rank active drivers for a single trip; at most the configured top few are returned."""
    return run_roster_call("suggest drivers", lambda: service.suggest_drivers(tenant_id, payload))
