"""
API dependencies for FastAPI endpoints.
Resolve the gateway, orchestrator and services attached to the application.
"""

from fastapi import Request

from stakeflow.gateway import PersistenceGateway
from stakeflow.scheduler.cron_scheduler import CronOrchestrator
from stakeflow.services import (
    PortfolioDashboardService, PortfolioSnapshotEngine, RewardClaimService, StatisticsEngine
)


def get_gateway(request: Request) -> PersistenceGateway:
    return request.app.state.gateway


def get_orchestrator(request: Request) -> CronOrchestrator:
    return request.app.state.orchestrator


def get_statistics_engine(request: Request) -> StatisticsEngine:
    return request.app.state.orchestrator.statistics_engine


def get_snapshot_engine(request: Request) -> PortfolioSnapshotEngine:
    return request.app.state.orchestrator.snapshot_engine


def get_claim_service(request: Request) -> RewardClaimService:
    return RewardClaimService(get_gateway(request), now=request.app.state.clock)


def get_dashboard_service(request: Request) -> PortfolioDashboardService:
    return PortfolioDashboardService(get_gateway(request), now=request.app.state.clock)
