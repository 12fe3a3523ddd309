"""
Custom exception classes for the application.
Provides structured error handling across all modules.
"""

from typing import Any, Optional, Dict


class StakeflowException(Exception):
    """Base exception class for the stakeflow backend."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(StakeflowException):
    """Raised when there's a configuration error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIGURATION_ERROR", details)


class DatabaseError(StakeflowException):
    """Raised when there's a database error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "DATABASE_ERROR", details)


class DuplicateRecordError(DatabaseError):
    """Raised when an insert collides with a unique constraint."""

    def __init__(self, collection: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Duplicate record in {collection}",
            {"collection": collection, **(details or {})}
        )
        self.code = "DUPLICATE_RECORD"
        self.collection = collection


class SchedulerError(StakeflowException):
    """Raised when there's a scheduler error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "SCHEDULER_ERROR", details)


class JobAlreadyRunningError(SchedulerError):
    """Raised when a guarded job is triggered while a run is in progress."""

    def __init__(self, job_name: str):
        super().__init__(
            f"{job_name} is already running",
            {"job": job_name}
        )
        self.code = "JOB_ALREADY_RUNNING"


class ValidationError(StakeflowException):
    """Raised when data validation fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", details)


class NotFoundError(StakeflowException):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "NOT_FOUND", details)


class RewardNotFoundError(NotFoundError):
    """Raised when a reward is not found or belongs to another user."""

    def __init__(self, reward_id: str):
        super().__init__(
            f"Reward not found: {reward_id}",
            {"reward_id": reward_id}
        )


class RewardAlreadyClaimedError(ValidationError):
    """Raised when claiming a reward that has already been claimed."""

    def __init__(self, reward_id: str):
        super().__init__(
            f"Reward already claimed: {reward_id}",
            {"reward_id": reward_id}
        )


class ConflictError(StakeflowException):
    """Raised when a write would duplicate a resource the caller asked to create."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFLICT", details)


class SnapshotAlreadyExistsError(ConflictError):
    """Raised when today's portfolio snapshot already exists for a user."""

    def __init__(self, user_id: str, snapshot_date: str):
        super().__init__(
            f"Portfolio snapshot already exists for {snapshot_date}",
            {"user_id": user_id, "snapshot_date": snapshot_date}
        )
