from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class DashboardMetrics(BaseModel):
    avgBlockTime: float
    tps: float
    totalTxs: int
    blocksAnalyzed: int


class DashboardStatsResponse(BaseModel):
    success: bool
    chain: str | None = None
    timestamp: str | None = None
    blocks: list[dict[str, Any]] = Field(default_factory=list)
    gasStats: dict[str, Any] | None = None
    archiveHeight: int | None = None
    metrics: DashboardMetrics | None = None
    error: str | None = None
