from __future__ import annotations

from fastapi import APIRouter, Depends

from api.schemas.dashboard import DashboardStatsResponse
from app.dashboard.stats import DashboardStatsService
from app.deps import get_dashboard_service

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/stats/{chain}", response_model=DashboardStatsResponse, response_model_exclude_none=True)
async def dashboard_stats(
    chain: str,
    service: DashboardStatsService = Depends(get_dashboard_service),
) -> DashboardStatsResponse:
    return DashboardStatsResponse(**await service.get_stats(chain))
