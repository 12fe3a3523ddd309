"""
Cron control routes.
Manual triggers run synchronously and return the full job result.
"""

from fastapi import APIRouter, Depends

import structlog

from stakeflow.api.dependencies import get_orchestrator
from stakeflow.api.schemas.common import SuccessResponse, create_success_response
from stakeflow.api.schemas.cron import CronHealthData, CronStatusData, JobResultData, RewardCronData
from stakeflow.scheduler.cron_scheduler import CronOrchestrator


logger = structlog.get_logger(__name__)

router = APIRouter()


def _job_response(result, label: str) -> SuccessResponse:
    data = JobResultData(**result.to_dict())
    message = f"{label} completed" if result.success else f"{label} completed with errors"
    return create_success_response(data=data, message=message)


@router.post(
    "/trigger",
    response_model=SuccessResponse,
    summary="Trigger Reward Calculation",
    description="Run daily rewards, compounding and the stake status sweep now (409 if a run is in progress)"
)
async def trigger_reward_calculation(orchestrator: CronOrchestrator = Depends(get_orchestrator)):
    result = await orchestrator.trigger_reward_calculation()
    message = (
        "Reward calculation completed"
        if result.success else "Reward calculation completed with errors"
    )
    return create_success_response(data=RewardCronData(**result.to_dict()), message=message)


@router.post("/trigger-daily-stats", response_model=SuccessResponse, summary="Trigger Daily Statistics")
async def trigger_daily_stats(orchestrator: CronOrchestrator = Depends(get_orchestrator)):
    return _job_response(await orchestrator.trigger_daily_statistics(), "Daily statistics")


@router.post("/trigger-weekly-stats", response_model=SuccessResponse, summary="Trigger Weekly Statistics")
async def trigger_weekly_stats(orchestrator: CronOrchestrator = Depends(get_orchestrator)):
    return _job_response(await orchestrator.trigger_weekly_statistics(), "Weekly statistics")


@router.post("/trigger-monthly-stats", response_model=SuccessResponse, summary="Trigger Monthly Statistics")
async def trigger_monthly_stats(orchestrator: CronOrchestrator = Depends(get_orchestrator)):
    return _job_response(await orchestrator.trigger_monthly_statistics(), "Monthly statistics")


@router.post("/trigger-snapshots", response_model=SuccessResponse, summary="Trigger Portfolio Snapshots")
async def trigger_snapshots(orchestrator: CronOrchestrator = Depends(get_orchestrator)):
    return _job_response(await orchestrator.trigger_snapshots(), "Portfolio snapshots")


@router.get("/status", response_model=SuccessResponse, summary="Cron Status")
async def cron_status(orchestrator: CronOrchestrator = Depends(get_orchestrator)):
    return create_success_response(data=CronStatusData(**orchestrator.get_status()))


@router.get("/health", response_model=SuccessResponse, summary="Cron Health")
async def cron_health(orchestrator: CronOrchestrator = Depends(get_orchestrator)):
    health = orchestrator.health_check()
    return create_success_response(
        data=CronHealthData(**health),
        message="Cron system healthy" if health["healthy"] else "Cron system unhealthy"
    )
