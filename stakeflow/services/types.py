"""
Result types returned by the cron engines.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class JobResult:
    """Outcome of one batch operation (rewards, statistics or snapshots)."""
    processed: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def fatal(self, operation: str, error: Exception) -> "JobResult":
        """Record a setup failure that aborted the whole operation."""
        self.errors.insert(0, f"Fatal error in {operation}: {error}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "processed": self.processed,
            "skipped": self.skipped,
            "errors": list(self.errors),
        }


@dataclass
class StatusUpdateResult:
    """Outcome of the stake status sweep."""
    updated: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "updated": self.updated, "errors": list(self.errors)}


@dataclass
class CleanupResult:
    """Outcome of the snapshot retention sweep."""
    deleted: int = 0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success, "deleted": self.deleted}
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class RewardCronResult:
    """Aggregate of the three reward sub-operations."""
    daily_rewards: JobResult
    compound_rewards: JobResult
    status_updates: StatusUpdateResult
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return (
            self.daily_rewards.success
            and self.compound_rewards.success
            and self.status_updates.success
        )

    @property
    def error_count(self) -> int:
        return (
            len(self.daily_rewards.errors)
            + len(self.compound_rewards.errors)
            + len(self.status_updates.errors)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "summary": {
                "daily_rewards": self.daily_rewards.to_dict(),
                "compound_rewards": self.compound_rewards.to_dict(),
                "status_updates": self.status_updates.to_dict(),
            },
            "duration_ms": self.duration_ms,
        }
