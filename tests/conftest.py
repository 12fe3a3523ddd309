"""
Shared fixtures and row builders.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict

import pytest

from tests.fakes import InMemoryGateway


# Wednesday
NOW = datetime(2024, 6, 12, 10, 0, tzinfo=timezone.utc)


def clock() -> datetime:
    return NOW


@pytest.fixture
def gateway() -> InMemoryGateway:
    return InMemoryGateway(clock=clock)


def make_protocol(protocol_id: str, apy: str = "12.5", risk_level: str = "medium", name: str = None) -> Dict[str, Any]:
    return {
        "id": protocol_id,
        "name": name if name is not None else f"{protocol_id.title()} Protocol",
        "apy": Decimal(apy),
        "risk_level": risk_level,
        "tvl": Decimal("1000000"),
        "min_stake": Decimal("10"),
        "max_stake": None,
    }


def make_stake(
    stake_id: str,
    protocol_id: str,
    amount: str = "1000",
    user_id: str = "user-1",
    started_days_ago: int = 10,
    ends_in_days: int = 20,
    status: str = "active",
    **extra: Any,
) -> Dict[str, Any]:
    start = NOW - timedelta(days=started_days_ago)
    row = {
        "id": stake_id,
        "user_id": user_id,
        "protocol_id": protocol_id,
        "amount": Decimal(amount),
        "start_date": start,
        "end_date": NOW + timedelta(days=ends_in_days),
        "lock_period_days": started_days_ago + ends_in_days,
        "compound_frequency": "weekly",
        "last_compound_date": None,
        "status": status,
        "created_at": start,
    }
    row.update(extra)
    return row


def make_reward(
    stake: Dict[str, Any],
    amount: str,
    reward_date: datetime,
    reward_type: str = "staking",
    claimed: bool = False,
    period_key: str = None,
    **extra: Any,
) -> Dict[str, Any]:
    if period_key is None:
        if reward_type == "staking":
            period_key = reward_date.date().isoformat()
        else:
            year, week, _ = reward_date.isocalendar()
            period_key = f"{year}-W{week:02d}"
    row = {
        "stake_id": stake["id"],
        "user_id": stake["user_id"],
        "protocol_id": stake["protocol_id"],
        "amount": Decimal(amount),
        "reward_type": reward_type,
        "calculation_method": "daily" if reward_type == "staking" else "weekly",
        "apy_at_calculation": Decimal("12.5"),
        "compound_frequency": "weekly",
        "claimed": claimed,
        "claim_date": None,
        "transaction_hash": None,
        "reward_date": reward_date,
        "period_key": period_key,
        "metadata": {},
    }
    row.update(extra)
    return row
