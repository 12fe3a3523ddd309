"""
Staking protocol catalogue.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, IdMixin, TimestampMixin


class RiskLevel(str, Enum):
    """Protocol risk bucket."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Protocol(BaseModel, IdMixin, TimestampMixin):
    """A staking protocol users can stake into. Read-only for the cron jobs."""

    __tablename__ = "protocols"

    name: Mapped[str] = mapped_column(String(100), comment="Display name")

    apy: Mapped[Decimal] = mapped_column(
        Numeric(8, 4),
        comment="Advertised annual percentage yield, in percent"
    )

    risk_level: Mapped[Optional[str]] = mapped_column(
        String(10),
        default=RiskLevel.MEDIUM.value,
        comment="Risk bucket (low, medium, high)"
    )

    tvl: Mapped[Decimal] = mapped_column(Numeric(24, 8), default=0, comment="Total value locked")
    min_stake: Mapped[Decimal] = mapped_column(Numeric(20, 8), default=0)
    max_stake: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)

    def __repr__(self) -> str:
        return f"<Protocol(id={self.id}, name={self.name}, apy={self.apy})>"
