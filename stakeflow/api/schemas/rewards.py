"""
Schemas for reward listing and claiming.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class RewardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    stake_id: str
    user_id: str
    protocol_id: str
    amount: float
    reward_type: str
    calculation_method: str
    apy_at_calculation: float
    compound_frequency: Optional[str] = None
    claimed: bool
    claim_date: Optional[datetime] = None
    transaction_hash: Optional[str] = None
    reward_date: datetime
    period_key: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ClaimRewardRequest(BaseModel):
    """Body of a claim request. Identity is passed explicitly."""
    user_id: str = Field(min_length=1, max_length=64)
    transaction_hash: Optional[str] = Field(default=None, max_length=128)


class RewardStakeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    amount: float
    lock_period_days: int
    start_date: datetime
    end_date: datetime
    status: str


class RewardProtocolOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    apy: float
    risk_level: Optional[str] = None


class RewardDetailOut(RewardOut):
    """A single reward with its stake and protocol summaries."""
    stake: Optional[RewardStakeOut] = None
    protocol: Optional[RewardProtocolOut] = None
