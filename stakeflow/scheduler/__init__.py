"""
Scheduling for the reward, statistics and snapshot jobs.
"""

from .cron_scheduler import CronOrchestrator, JobStatus, SCHEDULES, get_cron_orchestrator

__all__ = ["CronOrchestrator", "JobStatus", "SCHEDULES", "get_cron_orchestrator"]
