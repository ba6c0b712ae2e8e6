"""Request-scoped dependencies shared by the roster and routing routers."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from ..config import settings
from ..data.repository import RosterRepository
from ..persistence.database import get_repository
from ..services.roster.policy import RosterPolicy
from ..services.roster.service import RosterService
from ..services.routing.cost import CostProvider, build_cost_provider
from ..services.routing.optimizer import RouteOptimizer, build_route_optimizer


@lru_cache()
def get_cost_provider() -> CostProvider:
    return build_cost_provider(settings)


@lru_cache()
def get_route_optimizer() -> RouteOptimizer:
    return build_route_optimizer(settings, cost_provider=get_cost_provider())


def get_roster_service(
    repository: RosterRepository = Depends(get_repository),
    cost_provider: CostProvider = Depends(get_cost_provider),
) -> RosterService:
    return RosterService(repository, policy=RosterPolicy.from_settings(settings), cost_provider=cost_provider)
