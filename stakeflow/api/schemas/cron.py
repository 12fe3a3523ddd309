"""
Schemas for the cron control endpoints.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel


class JobResultData(BaseModel):
    success: bool
    processed: int = 0
    skipped: int = 0
    errors: List[str] = []


class StatusUpdateData(BaseModel):
    success: bool
    updated: int = 0
    errors: List[str] = []


class RewardCronSummary(BaseModel):
    daily_rewards: JobResultData
    compound_rewards: JobResultData
    status_updates: StatusUpdateData


class RewardCronData(BaseModel):
    """Result of one reward calculation run."""
    success: bool
    summary: RewardCronSummary
    duration_ms: int


class ScheduledTaskInfo(BaseModel):
    schedule: str
    description: str
    is_active: bool


class CronStatusData(BaseModel):
    is_running: bool
    status: str
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    last_error: Optional[str] = None
    scheduled_tasks: Dict[str, ScheduledTaskInfo]


class CronHealthData(BaseModel):
    healthy: bool
    status: str
    is_running: bool
    last_run: Optional[datetime] = None
    last_run_hours_ago: Optional[float] = None
    next_scheduled_run: Optional[datetime] = None
    last_error: Optional[str] = None
