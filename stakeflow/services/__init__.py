"""
Cron engines and domain services.
"""

from .types import JobResult, StatusUpdateResult, CleanupResult, RewardCronResult
from .reward_engine import RewardEngine
from .statistics_engine import StatisticsEngine
from .portfolio_snapshots import PortfolioSnapshotEngine
from .reward_claims import RewardClaimService
from .dashboard import PortfolioDashboardService

__all__ = [
    "JobResult",
    "StatusUpdateResult",
    "CleanupResult",
    "RewardCronResult",
    "RewardEngine",
    "StatisticsEngine",
    "PortfolioSnapshotEngine",
    "RewardClaimService",
    "PortfolioDashboardService",
]
