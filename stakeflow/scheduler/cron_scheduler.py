"""
Cron orchestrator.

Owns the reward-run status record and drives the engines on fixed UTC
schedules via APScheduler. Only the reward calculation is guarded by the
run lock; statistics jobs rely on their own per-period idempotency.
"""

import asyncio
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
import structlog

from stakeflow.core.config import settings
from stakeflow.core.exceptions import JobAlreadyRunningError, SchedulerError
from stakeflow.services import (
    CleanupResult, JobResult, PortfolioSnapshotEngine, RewardCronResult,
    RewardEngine, StatisticsEngine,
)
from stakeflow.utils.time import start_of_day, utc_now


logger = structlog.get_logger(__name__)

REWARD_JOB = "reward_calculation"
DAILY_STATS_JOB = "daily_statistics"
WEEKLY_STATS_JOB = "weekly_statistics"
MONTHLY_STATS_JOB = "monthly_statistics"


class JobStatus(str, Enum):
    """State of the reward calculation run."""
    IDLE = "idle"
    RUNNING = "running"
    ERROR = "error"


@dataclass
class JobStatusRecord:
    is_running: bool = False
    status: JobStatus = JobStatus.IDLE
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    last_error: Optional[str] = None


@dataclass(frozen=True)
class ScheduleSpec:
    """A cron expression for display plus the equivalent CronTrigger fields."""
    cron: str
    description: str
    trigger: Dict[str, Any]


# CronTrigger fields are spelled out because from_crontab treats day_of_week 0 as Monday
SCHEDULES: Dict[str, ScheduleSpec] = {
    REWARD_JOB: ScheduleSpec(
        "0 0 * * *",
        "Daily reward calculation and compounding",
        {"hour": 0, "minute": 0},
    ),
    DAILY_STATS_JOB: ScheduleSpec(
        "0 1 * * *",
        "Daily statistics and portfolio snapshots",
        {"hour": 1, "minute": 0},
    ),
    WEEKLY_STATS_JOB: ScheduleSpec(
        "0 2 * * 0",
        "Weekly statistics (Sunday)",
        {"day_of_week": "sun", "hour": 2, "minute": 0},
    ),
    MONTHLY_STATS_JOB: ScheduleSpec(
        "0 3 1 * *",
        "Monthly statistics and snapshot cleanup",
        {"day": 1, "hour": 3, "minute": 0},
    ),
}


def next_utc_midnight(now: datetime) -> datetime:
    return start_of_day(now.date() + timedelta(days=1))


class CronOrchestrator:
    """
    Sequences the reward, statistics and snapshot engines.

    The status record is mutated only under the run lock. Manual reward
    triggers raise JobAlreadyRunningError while a run is in progress;
    scheduled ticks skip silently instead.
    """

    def __init__(
        self,
        reward_engine: RewardEngine,
        statistics_engine: StatisticsEngine,
        snapshot_engine: PortfolioSnapshotEngine,
        now: Callable[[], datetime] = utc_now,
        timeout_seconds: Optional[float] = None,
        enabled: Optional[bool] = None,
    ):
        self.reward_engine = reward_engine
        self.statistics_engine = statistics_engine
        self.snapshot_engine = snapshot_engine
        self._now = now
        self.timeout_seconds = timeout_seconds or settings.cron_run_timeout_minutes * 60
        self.enabled = settings.scheduler_enabled if enabled is None else enabled

        self._lock = asyncio.Lock()
        self._scheduler: Optional[AsyncIOScheduler] = None
        self.record = JobStatusRecord(next_run=next_utc_midnight(now()))

        self.logger = logger.bind(service="cron_orchestrator")

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    @property
    def is_started(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    # Reward calculation

    async def trigger_reward_calculation(self) -> RewardCronResult:
        """Run the reward cron now. Raises JobAlreadyRunningError on overlap."""
        if self._lock.locked():
            raise JobAlreadyRunningError(REWARD_JOB)
        self.logger.info("Manual reward calculation triggered")
        return await self._run_reward_calculation()

    async def scheduled_reward_calculation(self) -> Optional[RewardCronResult]:
        if self._lock.locked():
            self.logger.info("Reward calculation already running, skipping scheduled tick")
            return None
        try:
            return await self._run_reward_calculation()
        except Exception as e:
            self.logger.error("Scheduled reward calculation failed", error=str(e))
            return None

    async def _run_reward_calculation(self) -> RewardCronResult:
        async with self._lock:
            self.record.is_running = True
            self.record.status = JobStatus.RUNNING

            try:
                result = await asyncio.wait_for(
                    self.reward_engine.run_reward_calculation_cron(),
                    timeout=self.timeout_seconds
                )
            except asyncio.TimeoutError:
                message = f"Reward calculation timed out after {self.timeout_seconds:g} seconds"
                self.record.status = JobStatus.ERROR
                self.record.last_error = message
                self.logger.error("Reward calculation timed out", timeout_seconds=self.timeout_seconds)
                raise SchedulerError(message, {"job": REWARD_JOB})
            except Exception as e:
                self.record.status = JobStatus.ERROR
                self.record.last_error = str(e)
                self.logger.error("Reward calculation crashed", error=str(e))
                raise
            finally:
                self.record.is_running = False
                self.record.last_run = self._now()
                self.record.next_run = self._next_reward_run()

            if result.success:
                self.record.status = JobStatus.IDLE
                self.record.last_error = None
            else:
                self.record.status = JobStatus.ERROR
                self.record.last_error = f"{result.error_count} errors occurred during reward calculation"

            self.logger.info(
                "Reward calculation finished",
                status=self.record.status.value,
                errors=result.error_count,
                duration_ms=result.duration_ms
            )
            return result

    def _next_reward_run(self) -> datetime:
        if self._scheduler is not None:
            job = self._scheduler.get_job(REWARD_JOB)
            if job is not None and job.next_run_time is not None:
                return job.next_run_time
        return next_utc_midnight(self._now())

    # Statistics and snapshots

    async def trigger_daily_statistics(self) -> JobResult:
        return await self.statistics_engine.calculate_daily_statistics()

    async def trigger_weekly_statistics(self) -> JobResult:
        return await self.statistics_engine.calculate_weekly_statistics()

    async def trigger_monthly_statistics(self) -> JobResult:
        return await self.statistics_engine.calculate_monthly_statistics()

    async def trigger_snapshots(self) -> JobResult:
        return await self.snapshot_engine.create_daily_portfolio_snapshots()

    async def trigger_snapshot_cleanup(self) -> CleanupResult:
        return await self.snapshot_engine.cleanup_old_portfolio_snapshots()

    async def scheduled_daily_statistics(self) -> None:
        stats = await self.trigger_daily_statistics()
        snapshots = await self.trigger_snapshots()
        self.logger.info(
            "Scheduled daily statistics finished",
            statistics=stats.to_dict(),
            snapshots=snapshots.to_dict()
        )

    async def scheduled_weekly_statistics(self) -> None:
        stats = await self.trigger_weekly_statistics()
        self.logger.info("Scheduled weekly statistics finished", statistics=stats.to_dict())

    async def scheduled_monthly_statistics(self) -> None:
        stats = await self.trigger_monthly_statistics()
        cleanup = await self.trigger_snapshot_cleanup()
        self.logger.info(
            "Scheduled monthly statistics finished",
            statistics=stats.to_dict(),
            cleanup=cleanup.to_dict()
        )

    # Lifecycle

    async def start(self) -> None:
        """Register the cron jobs and start the scheduler."""
        if not self.enabled:
            self.logger.info("Cron scheduler is disabled")
            return

        if self.is_started:
            self.logger.warning("Cron scheduler already running")
            return

        handlers = {
            REWARD_JOB: self.scheduled_reward_calculation,
            DAILY_STATS_JOB: self.scheduled_daily_statistics,
            WEEKLY_STATS_JOB: self.scheduled_weekly_statistics,
            MONTHLY_STATS_JOB: self.scheduled_monthly_statistics,
        }

        self._scheduler = AsyncIOScheduler(timezone=settings.cron_timezone)
        for job_id, schedule in SCHEDULES.items():
            self._scheduler.add_job(
                handlers[job_id],
                trigger=CronTrigger(timezone=settings.cron_timezone, **schedule.trigger),
                id=job_id,
                name=schedule.description,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
        self._scheduler.start()
        self.record.next_run = self._next_reward_run()

        self.logger.info(
            "Cron scheduler started",
            jobs=list(SCHEDULES),
            next_run=self.record.next_run.isoformat()
        )

    async def stop(self) -> None:
        if self._scheduler is None:
            return
        self.logger.info("Stopping cron scheduler")
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        self.logger.info("Cron scheduler stopped")

    # Introspection

    def get_status(self) -> Dict[str, Any]:
        """Current status record plus per-schedule info."""
        record = asdict(self.record)
        record["status"] = self.record.status.value
        record["is_running"] = self.is_running
        record["scheduled_tasks"] = {
            job_id: {
                "schedule": schedule.cron,
                "description": schedule.description,
                "is_active": self._job_active(job_id),
            }
            for job_id, schedule in SCHEDULES.items()
        }
        return record

    def _job_active(self, job_id: str) -> bool:
        if not self.is_started:
            return False
        return self._scheduler.get_job(job_id) is not None

    def health_check(self) -> Dict[str, Any]:
        """Healthy when idle and the last run (if any) is recent enough."""
        now = self._now()
        hours_ago = None
        recent = True
        if self.record.last_run is not None:
            elapsed = now - self.record.last_run
            recent = elapsed < timedelta(hours=settings.health_max_hours_since_run)
            hours_ago = round(elapsed.total_seconds() / 3600, 2)

        healthy = not self.is_running and recent
        return {
            "healthy": healthy,
            "status": self.record.status.value,
            "is_running": self.is_running,
            "last_run": self.record.last_run,
            "last_run_hours_ago": hours_ago,
            "next_scheduled_run": self.record.next_run,
            "last_error": self.record.last_error,
        }


# Global orchestrator instance
_cron_orchestrator: Optional[CronOrchestrator] = None


def get_cron_orchestrator() -> CronOrchestrator:
    """Get or create the global CronOrchestrator backed by the database gateway."""
    global _cron_orchestrator
    if _cron_orchestrator is None:
        from stakeflow.gateway.sqlalchemy_gateway import get_gateway

        gateway = get_gateway()
        _cron_orchestrator = CronOrchestrator(
            RewardEngine(gateway),
            StatisticsEngine(gateway),
            PortfolioSnapshotEngine(gateway),
        )
    return _cron_orchestrator
