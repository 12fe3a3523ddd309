"""
Daily portfolio snapshots.
"""

from datetime import date
from decimal import Decimal
from typing import Dict

from sqlalchemy import JSON, Date, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, IdMixin, TimestampMixin


class PortfolioSnapshot(BaseModel, IdMixin, TimestampMixin):
    """Consolidated net worth of one user on one day."""

    __tablename__ = "portfolio_snapshots"

    user_id: Mapped[str] = mapped_column(String(64))
    snapshot_date: Mapped[date] = mapped_column(Date)

    total_portfolio_value: Mapped[Decimal] = mapped_column(Numeric(20, 2), default=0)
    total_staked_amount: Mapped[Decimal] = mapped_column(Numeric(20, 2), default=0)
    total_rewards_earned: Mapped[Decimal] = mapped_column(Numeric(20, 2), default=0)
    total_rewards_claimed: Mapped[Decimal] = mapped_column(Numeric(20, 2), default=0)
    total_rewards_unclaimed: Mapped[Decimal] = mapped_column(Numeric(20, 2), default=0)
    active_stakes_count: Mapped[int] = mapped_column(Integer, default=0)

    # {protocol name: percent} and {low|medium|high: percent}
    protocol_distribution: Mapped[Dict[str, float]] = mapped_column(JSON, default=dict)
    risk_distribution: Mapped[Dict[str, float]] = mapped_column(JSON, default=dict)

    average_apy: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=0)
    portfolio_growth_24h: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    portfolio_growth_7d: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    portfolio_growth_30d: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)

    __table_args__ = (
        UniqueConstraint("user_id", "snapshot_date", name="uq_portfolio_snapshots_user_date"),
        Index("ix_portfolio_snapshots_date", "snapshot_date"),
    )
