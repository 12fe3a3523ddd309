"""
User stakes and their lifecycle.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, IdMixin, TimestampMixin


class StakeStatus(str, Enum):
    """Stake lifecycle. Moves only active -> completed or active -> cancelled."""
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CompoundFrequency(str, Enum):
    """How often a stake asks to be compounded."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Stake(BaseModel, IdMixin, TimestampMixin):
    """An amount a user has locked into a protocol."""

    __tablename__ = "stakes"

    user_id: Mapped[str] = mapped_column(String(64), comment="Owning user")

    protocol_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("protocols.id", ondelete="RESTRICT"),
        comment="Protocol the stake is locked in"
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(20, 8), comment="Staked principal")

    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    lock_period_days: Mapped[int] = mapped_column(Integer, default=0)

    compound_frequency: Mapped[str] = mapped_column(
        String(10),
        default=CompoundFrequency.WEEKLY.value
    )

    last_compound_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Last time a compound reward was issued"
    )

    status: Mapped[str] = mapped_column(
        String(10),
        default=StakeStatus.ACTIVE.value,
        comment="active, completed or cancelled"
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
        Index("ix_stakes_user_id", "user_id"),
        Index("ix_stakes_status_end_date", "status", "end_date"),
    )

    def __repr__(self) -> str:
        return f"<Stake(id={self.id}, user_id={self.user_id}, amount={self.amount}, status={self.status})>"
