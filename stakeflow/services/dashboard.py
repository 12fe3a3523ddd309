"""
Portfolio dashboard: a read-only summary of a user's current position.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict

import structlog

from stakeflow.gateway import (
    PersistenceGateway, STAKES, REWARDS, USER_STATISTICS, PORTFOLIO_SNAPSHOTS,
    eq, gte, desc,
)
from stakeflow.models import PeriodType, StakeStatus
from stakeflow.utils.time import utc_now

from .calculations import (
    HUNDRED, distribution, mean, portfolio_risk_level, round2, to_decimal, total
)
from .queries import protocols_by_id


logger = structlog.get_logger(__name__)

GROWTH_WINDOW = timedelta(days=30)
RECENT_PERFORMANCE_DAYS = 7


class PortfolioDashboardService:

    def __init__(self, gateway: PersistenceGateway, now: Callable[[], datetime] = utc_now):
        self.gateway = gateway
        self._now = now
        self.logger = logger.bind(service="portfolio_dashboard")

    async def get_portfolio_dashboard(self, user_id: str) -> Dict[str, Any]:
        """
        Current value, unclaimed rewards, 30-day growth and risk for one user.

        Growth is the change in daily portfolio_value between the newest and
        oldest daily statistics rows of the last 30 days; it needs two rows.
        """
        latest_rows = await self.gateway.find(
            PORTFOLIO_SNAPSHOTS, [eq("user_id", user_id)], order_by=[desc("snapshot_date")], limit=1
        )
        latest_snapshot = latest_rows[0] if latest_rows else None

        recent = await self.gateway.find(
            USER_STATISTICS,
            [
                eq("user_id", user_id),
                eq("period_type", PeriodType.DAILY.value),
                gte("period_start", self._now() - GROWTH_WINDOW),
            ],
            order_by=[desc("period_start")],
        )

        stakes = await self.gateway.find(STAKES, [
            eq("user_id", user_id),
            eq("status", StakeStatus.ACTIVE.value),
        ])
        protocols = await protocols_by_id(self.gateway, (s["protocol_id"] for s in stakes))
        unclaimed = await self.gateway.find(REWARDS, [eq("user_id", user_id), eq("claimed", False)])

        total_staked = total(s["amount"] for s in stakes)
        growth = Decimal(0)
        if len(recent) > 1:
            growth = to_decimal(recent[0]["portfolio_value"]) - to_decimal(recent[-1]["portfolio_value"])

        by_protocol: Dict[str, Decimal] = defaultdict(Decimal)
        for stake in stakes:
            protocol = protocols.get(stake["protocol_id"]) or {}
            name = protocol.get("name") or f"Protocol {stake['protocol_id']}"
            by_protocol[name] += to_decimal(stake["amount"])

        if latest_snapshot is not None:
            current_value = to_decimal(latest_snapshot["total_portfolio_value"])
        else:
            current_value = total_staked

        return {
            "current_portfolio_value": round2(current_value),
            "total_staked_amount": round2(total_staked),
            "total_unclaimed_rewards": round2(total(r["amount"] for r in unclaimed)),
            "active_stakes_count": len(stakes),
            "average_apy": round2(mean(
                protocols[s["protocol_id"]]["apy"] if s["protocol_id"] in protocols else 0 for s in stakes
            )),
            "thirty_day_growth": round2(growth),
            "thirty_day_growth_percentage": (
                round2(growth / total_staked * HUNDRED) if total_staked > 0 else Decimal("0.00")
            ),
            "portfolio_risk_level": portfolio_risk_level(
                (protocols.get(s["protocol_id"]) or {}).get("risk_level") for s in stakes
            ),
            "protocol_distribution": distribution(by_protocol),
            "recent_performance": recent[:RECENT_PERFORMANCE_DAYS],
            "latest_snapshot": latest_snapshot,
        }
