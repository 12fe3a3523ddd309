"""
Database models for the stakeflow backend.

Contains SQLAlchemy models for protocols, stakes, rewards and the
derived statistics and snapshot tables written by the cron jobs.
"""

from .base import BaseModel, IdMixin, TimestampMixin
from .protocol import Protocol, RiskLevel
from .stake import Stake, StakeStatus, CompoundFrequency
from .reward import Reward, RewardType, CalculationMethod
from .statistics import UserStatistics, ProtocolPerformance, PeriodType
from .portfolio import PortfolioSnapshot

__all__ = [
    "BaseModel",
    "IdMixin",
    "TimestampMixin",
    "Protocol",
    "RiskLevel",
    "Stake",
    "StakeStatus",
    "CompoundFrequency",
    "Reward",
    "RewardType",
    "CalculationMethod",
    "UserStatistics",
    "ProtocolPerformance",
    "PeriodType",
    "PortfolioSnapshot",
]
