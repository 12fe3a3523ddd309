"""
Statistics, portfolio snapshot and dashboard routes.
"""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from stakeflow.api.dependencies import get_dashboard_service, get_snapshot_engine, get_statistics_engine
from stakeflow.api.schemas.common import SuccessResponse, create_success_response
from stakeflow.api.schemas.statistics import (
    CreateSnapshotRequest, PortfolioDashboardOut, PortfolioSnapshotOut, ProtocolPerformanceOut,
    UserStatisticsOut,
)
from stakeflow.models import PeriodType
from stakeflow.services import PortfolioDashboardService, PortfolioSnapshotEngine, StatisticsEngine


router = APIRouter()


@router.get(
    "/user",
    response_model=SuccessResponse,
    summary="User Statistics",
    description="Stored statistics rows for a user, newest period first"
)
async def get_user_statistics(
    user_id: str = Query(..., min_length=1),
    period_type: Optional[PeriodType] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    engine: StatisticsEngine = Depends(get_statistics_engine),
):
    rows = await engine.get_user_statistics(
        user_id,
        period_type.value if period_type else None,
        start_date,
        end_date,
    )
    return create_success_response(data=[UserStatisticsOut.model_validate(row) for row in rows])


@router.get("/protocol-performance", response_model=SuccessResponse, summary="Protocol Performance")
async def get_protocol_performance(
    user_id: str = Query(..., min_length=1),
    period_type: Optional[PeriodType] = Query(default=None),
    protocol_id: Optional[str] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    engine: StatisticsEngine = Depends(get_statistics_engine),
):
    rows = await engine.get_protocol_performance(
        user_id,
        period_type.value if period_type else None,
        protocol_id,
        start_date,
        end_date,
    )
    return create_success_response(data=[ProtocolPerformanceOut.model_validate(row) for row in rows])


@router.get("/snapshots", response_model=SuccessResponse, summary="Portfolio Snapshot History")
async def get_snapshots(
    user_id: str = Query(..., min_length=1),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    limit: int = Query(default=30, ge=1, le=366),
    engine: PortfolioSnapshotEngine = Depends(get_snapshot_engine),
):
    rows = await engine.get_snapshots_for_user(user_id, start_date, end_date, limit)
    return create_success_response(data=[PortfolioSnapshotOut.model_validate(row) for row in rows])


@router.get("/snapshots/latest", response_model=SuccessResponse, summary="Latest Portfolio Snapshot")
async def get_latest_snapshot(
    user_id: str = Query(..., min_length=1),
    engine: PortfolioSnapshotEngine = Depends(get_snapshot_engine),
):
    row = await engine.get_latest_snapshot(user_id)
    return create_success_response(data=PortfolioSnapshotOut.model_validate(row) if row else None)


@router.get(
    "/dashboard",
    response_model=SuccessResponse,
    summary="Portfolio Dashboard",
    description="Current value, unclaimed rewards, 30-day growth, risk level and protocol split"
)
async def get_portfolio_dashboard(
    user_id: str = Query(..., min_length=1),
    service: PortfolioDashboardService = Depends(get_dashboard_service),
):
    dashboard = await service.get_portfolio_dashboard(user_id)
    return create_success_response(data=PortfolioDashboardOut.model_validate(dashboard))


@router.post(
    "/snapshot",
    response_model=SuccessResponse,
    summary="Create Portfolio Snapshot",
    description="Take today's snapshot now (409 if it already exists, 404 if the user has no stakes)"
)
async def create_portfolio_snapshot(
    body: CreateSnapshotRequest,
    engine: PortfolioSnapshotEngine = Depends(get_snapshot_engine),
):
    row = await engine.create_snapshot_for_user(body.user_id)
    return create_success_response(data=PortfolioSnapshotOut.model_validate(row), message="Portfolio snapshot created")
