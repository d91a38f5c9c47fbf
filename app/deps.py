from __future__ import annotations

from fastapi import Request

from app.chat.orchestrator import ChatOrchestrator
from app.dashboard.stats import DashboardStatsService


def get_orchestrator(request: Request) -> ChatOrchestrator:
    return request.app.state.orchestrator


def get_dashboard_service(request: Request) -> DashboardStatsService:
    return request.app.state.dashboard
