"""
Rewards issued against stakes.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON, Boolean, CheckConstraint, DateTime, ForeignKey, Index, Numeric, String,
    UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, IdMixin, TimestampMixin


class RewardType(str, Enum):
    """Origin of a reward."""
    STAKING = "staking"
    COMPOUND = "compound"


class CalculationMethod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Reward(BaseModel, IdMixin, TimestampMixin):
    """
    A single reward row.

    The (stake_id, reward_type, period_key) unique index allows one staking
    reward per stake per UTC day and one compound reward per stake per ISO week.
    """

    __tablename__ = "rewards"

    stake_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("stakes.id", ondelete="CASCADE")
    )
    user_id: Mapped[str] = mapped_column(String(64))
    protocol_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("protocols.id", ondelete="RESTRICT")
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(20, 8))
    reward_type: Mapped[str] = mapped_column(String(10), comment="staking or compound")
    calculation_method: Mapped[str] = mapped_column(String(10), default=CalculationMethod.DAILY.value)
    apy_at_calculation: Mapped[Decimal] = mapped_column(Numeric(8, 4))
    compound_frequency: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)

    # One-way flag, false -> true only
    claimed: Mapped[bool] = mapped_column(Boolean, default=False)
    claim_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    transaction_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    reward_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    period_key: Mapped[str] = mapped_column(
        String(10),
        comment="YYYY-MM-DD for staking rewards, YYYY-Www for compound rewards"
    )

    reward_metadata: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict)

    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
        UniqueConstraint("stake_id", "reward_type", "period_key", name="uq_rewards_stake_type_period"),
        Index("ix_rewards_user_id", "user_id"),
        Index("ix_rewards_stake_type_date", "stake_id", "reward_type", "reward_date"),
    )

    def __repr__(self) -> str:
        return f"<Reward(id={self.id}, stake_id={self.stake_id}, type={self.reward_type}, amount={self.amount})>"
