"""
Per-period statistics rollups.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, IdMixin, TimestampMixin


class PeriodType(str, Enum):
    """Rollup granularity."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class UserStatistics(BaseModel, IdMixin, TimestampMixin):
    """One row per user per period. Written once, never updated."""

    __tablename__ = "user_statistics"

    user_id: Mapped[str] = mapped_column(String(64))
    period_type: Mapped[str] = mapped_column(String(10))
    period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    period_end: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    total_staked_amount: Mapped[Decimal] = mapped_column(Numeric(20, 8), default=0)
    total_rewards_earned: Mapped[Decimal] = mapped_column(Numeric(20, 8), default=0)
    total_rewards_claimed: Mapped[Decimal] = mapped_column(Numeric(20, 8), default=0)
    total_rewards_unclaimed: Mapped[Decimal] = mapped_column(Numeric(20, 8), default=0)
    portfolio_value: Mapped[Decimal] = mapped_column(Numeric(20, 8), default=0)
    portfolio_growth_percentage: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    average_apy: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=0)

    active_stakes_count: Mapped[int] = mapped_column(Integer, default=0)
    completed_stakes_count: Mapped[int] = mapped_column(Integer, default=0)
    new_stakes_count: Mapped[int] = mapped_column(Integer, default=0)
    total_protocols_used: Mapped[int] = mapped_column(Integer, default=0)

    risk_score: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=50)
    diversification_score: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=0)

    best_performing_protocol_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    worst_performing_protocol_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "period_type", "period_start", name="uq_user_statistics_period"),
        Index("ix_user_statistics_user_period", "user_id", "period_type"),
    )


class ProtocolPerformance(BaseModel, IdMixin, TimestampMixin):
    """Per user, per protocol performance for one period."""

    __tablename__ = "protocol_performance"

    user_id: Mapped[str] = mapped_column(String(64))
    protocol_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("protocols.id", ondelete="CASCADE")
    )
    period_type: Mapped[str] = mapped_column(String(10))
    period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    period_end: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    total_staked: Mapped[Decimal] = mapped_column(Numeric(20, 8), default=0)
    total_rewards: Mapped[Decimal] = mapped_column(Numeric(20, 8), default=0)
    actual_apy: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    expected_apy: Mapped[Decimal] = mapped_column(Numeric(8, 4), default=0)
    performance_ratio: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    stakes_count: Mapped[int] = mapped_column(Integer, default=0)
    average_stake_duration: Mapped[int] = mapped_column(Integer, default=0, comment="Days")

    __table_args__ = (
        UniqueConstraint(
            "user_id", "protocol_id", "period_type", "period_start",
            name="uq_protocol_performance_period"
        ),
    )
