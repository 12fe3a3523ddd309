"""
Schemas for stored statistics and portfolio snapshots.
"""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserStatisticsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    period_type: str
    period_start: datetime
    period_end: datetime
    total_staked_amount: float
    total_rewards_earned: float
    total_rewards_claimed: float
    total_rewards_unclaimed: float
    portfolio_value: float
    portfolio_growth_percentage: float
    average_apy: float
    active_stakes_count: int
    completed_stakes_count: int
    new_stakes_count: int
    total_protocols_used: int
    risk_score: float
    diversification_score: float
    best_performing_protocol_id: Optional[str] = None
    worst_performing_protocol_id: Optional[str] = None


class ProtocolPerformanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    protocol_id: str
    period_type: str
    period_start: datetime
    period_end: datetime
    total_staked: float
    total_rewards: float
    actual_apy: float
    expected_apy: float
    performance_ratio: float
    stakes_count: int
    average_stake_duration: int


class PortfolioSnapshotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    snapshot_date: date
    total_portfolio_value: float
    total_staked_amount: float
    total_rewards_earned: float
    total_rewards_claimed: float
    total_rewards_unclaimed: float
    active_stakes_count: int
    protocol_distribution: Dict[str, float]
    risk_distribution: Dict[str, float]
    average_apy: float
    portfolio_growth_24h: float
    portfolio_growth_7d: float
    portfolio_growth_30d: float


class PortfolioDashboardOut(BaseModel):
    current_portfolio_value: float
    total_staked_amount: float
    total_unclaimed_rewards: float
    active_stakes_count: int
    average_apy: float
    thirty_day_growth: float
    thirty_day_growth_percentage: float
    portfolio_risk_level: str
    protocol_distribution: Dict[str, float]
    recent_performance: List[UserStatisticsOut]
    latest_snapshot: Optional[PortfolioSnapshotOut] = None


class CreateSnapshotRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=64)
