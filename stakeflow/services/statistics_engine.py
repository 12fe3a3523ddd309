"""
Statistics Engine: daily, weekly and monthly per-user rollups.

Each period writes at most one UserStatistics row per user and one
ProtocolPerformance row per (user, protocol). Existing rows are skipped.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, List, Optional

import structlog

from stakeflow.core.exceptions import DuplicateRecordError
from stakeflow.gateway import (
    PersistenceGateway, Row, STAKES, REWARDS, USER_STATISTICS, PROTOCOL_PERFORMANCE,
    eq, gte, lte, desc,
)
from stakeflow.models import PeriodType, StakeStatus
from stakeflow.utils.time import ensure_utc, utc_now

from .calculations import (
    annualised_apy, diversification_score, mean, performance_ratio, risk_score,
    round2, to_decimal, total,
)
from .periods import period_days, previous_period_start, window_for
from .queries import distinct_user_ids, protocols_by_id
from .types import JobResult


logger = structlog.get_logger(__name__)


def _in_window(value: Optional[datetime], start: datetime, end: datetime) -> bool:
    if value is None:
        return False
    return start <= ensure_utc(value) <= end


class StatisticsEngine:
    """Aggregates stakes and rewards into stored statistics rows."""

    def __init__(self, gateway: PersistenceGateway, now: Callable[[], datetime] = utc_now):
        self.gateway = gateway
        self._now = now
        self.logger = logger.bind(service="statistics_engine")

    def _protocol_metrics(
        self,
        stakes: List[Row],
        rewards: List[Row],
        protocol: Optional[Row],
        days: int,
    ) -> Dict[str, Decimal]:
        staked = total(s["amount"] for s in stakes)
        earned = total(r["amount"] for r in rewards)
        expected = to_decimal(protocol["apy"]) if protocol else Decimal(0)
        actual = annualised_apy(earned, staked, days)
        return {
            "total_staked": staked,
            "total_rewards": earned,
            "actual_apy": actual,
            "expected_apy": expected,
            "performance_ratio": performance_ratio(actual, expected),
        }

    async def calculate_user_statistics(
        self,
        user_id: str,
        period_type: str,
        period_start: datetime,
        period_end: datetime,
    ) -> Optional[Row]:
        """Build the statistics row for one user and period, or None without stakes."""
        stakes = await self.gateway.find(STAKES, [eq("user_id", user_id)])
        if not stakes:
            return None

        protocols = await protocols_by_id(self.gateway, (s["protocol_id"] for s in stakes))
        period_rewards = await self.gateway.find(REWARDS, [
            eq("user_id", user_id),
            gte("reward_date", period_start),
            lte("reward_date", period_end),
        ])
        all_rewards = await self.gateway.find(REWARDS, [eq("user_id", user_id)])

        active = [s for s in stakes if s["status"] == StakeStatus.ACTIVE.value]
        completed = [s for s in stakes if s["status"] == StakeStatus.COMPLETED.value]
        new = [s for s in stakes if _in_window(s.get("created_at"), period_start, period_end)]

        total_staked = total(s["amount"] for s in active)
        earned = total(r["amount"] for r in period_rewards)
        claimed = total(r["amount"] for r in all_rewards if r["claimed"])
        unclaimed = total(r["amount"] for r in all_rewards if not r["claimed"])
        portfolio_value = total_staked + unclaimed

        average_apy = mean(
            protocols[s["protocol_id"]]["apy"] for s in active if s["protocol_id"] in protocols
        )

        previous = await self.gateway.find_one(USER_STATISTICS, [
            eq("user_id", user_id),
            eq("period_type", period_type),
            eq("period_start", previous_period_start(period_type, period_start)),
        ])
        previous_value = to_decimal(previous["portfolio_value"]) if previous else Decimal(0)
        growth = (
            round2((portfolio_value - previous_value) / previous_value * 100)
            if previous_value > 0 else Decimal("0.00")
        )

        amount_by_protocol: Dict[str, Decimal] = defaultdict(Decimal)
        for stake in active:
            amount_by_protocol[stake["protocol_id"]] += to_decimal(stake["amount"])

        risk = risk_score(
            (s["amount"], (protocols.get(s["protocol_id"]) or {}).get("risk_level"))
            for s in active
        )

        best_id, worst_id = self._rank_protocols(active, period_rewards, protocols, period_start, period_end)

        return {
            "user_id": user_id,
            "period_type": period_type,
            "period_start": period_start,
            "period_end": period_end,
            "total_staked_amount": total_staked,
            "total_rewards_earned": earned,
            "total_rewards_claimed": claimed,
            "total_rewards_unclaimed": unclaimed,
            "portfolio_value": portfolio_value,
            "portfolio_growth_percentage": growth,
            "average_apy": round2(average_apy),
            "active_stakes_count": len(active),
            "completed_stakes_count": len(completed),
            "new_stakes_count": len(new),
            "total_protocols_used": len(amount_by_protocol),
            "risk_score": risk,
            "diversification_score": diversification_score(amount_by_protocol),
            "best_performing_protocol_id": best_id,
            "worst_performing_protocol_id": worst_id,
        }

    def _rank_protocols(self, active, period_rewards, protocols, period_start, period_end):
        """Best and worst protocol by performance ratio over active stakes."""
        days = period_days(period_start, period_end)
        groups: Dict[str, List[Row]] = defaultdict(list)
        for stake in active:
            groups[stake["protocol_id"]].append(stake)

        ranked = []
        for protocol_id in sorted(groups):
            rewards = [r for r in period_rewards if r["protocol_id"] == protocol_id]
            metrics = self._protocol_metrics(groups[protocol_id], rewards, protocols.get(protocol_id), days)
            ranked.append((protocol_id, metrics["performance_ratio"]))

        if not ranked:
            return None, None

        best = ranked[0]
        worst = ranked[0]
        for candidate in ranked[1:]:
            if candidate[1] > best[1]:
                best = candidate
            if candidate[1] < worst[1]:
                worst = candidate
        return best[0], worst[0]

    async def calculate_user_protocol_performance(
        self,
        user_id: str,
        period_type: str,
        period_start: datetime,
        period_end: datetime,
    ) -> int:
        """Insert one performance row per protocol the user staked in. Returns rows inserted."""
        stakes = await self.gateway.find(STAKES, [eq("user_id", user_id)])
        protocols = await protocols_by_id(self.gateway, (s["protocol_id"] for s in stakes))
        days = period_days(period_start, period_end)

        groups: Dict[str, List[Row]] = defaultdict(list)
        for stake in stakes:
            groups[stake["protocol_id"]].append(stake)

        inserted = 0
        for protocol_id in sorted(groups):
            key = [
                eq("user_id", user_id),
                eq("protocol_id", protocol_id),
                eq("period_type", period_type),
                eq("period_start", period_start),
            ]
            if await self.gateway.exists(PROTOCOL_PERFORMANCE, key):
                continue

            rewards = await self.gateway.find(REWARDS, [
                eq("user_id", user_id),
                eq("protocol_id", protocol_id),
                gte("reward_date", period_start),
                lte("reward_date", period_end),
            ])
            group = groups[protocol_id]
            metrics = self._protocol_metrics(group, rewards, protocols.get(protocol_id), days)

            durations = [
                (ensure_utc(s["end_date"]) - ensure_utc(s["start_date"])) // timedelta(days=1)
                for s in group if s["status"] == StakeStatus.ACTIVE.value
            ]
            average_duration = round(sum(durations) / len(durations)) if durations else 0

            try:
                await self.gateway.insert(PROTOCOL_PERFORMANCE, {
                    "user_id": user_id,
                    "protocol_id": protocol_id,
                    "period_type": period_type,
                    "period_start": period_start,
                    "period_end": period_end,
                    "total_staked": metrics["total_staked"],
                    "total_rewards": metrics["total_rewards"],
                    "actual_apy": round2(metrics["actual_apy"]),
                    "expected_apy": metrics["expected_apy"],
                    "performance_ratio": round2(metrics["performance_ratio"]),
                    "stakes_count": len(group),
                    "average_stake_duration": average_duration,
                })
                inserted += 1
            except DuplicateRecordError:
                self.logger.debug("Protocol performance already recorded", user_id=user_id, protocol_id=protocol_id)

        return inserted

    async def calculate_statistics_for_period(
        self,
        period_type: str,
        period_start: datetime,
        period_end: datetime,
    ) -> JobResult:
        result = JobResult()
        log = self.logger.bind(period_type=period_type, period_start=period_start.isoformat())
        log.info("Starting statistics calculation")

        try:
            user_ids = await distinct_user_ids(self.gateway)
        except Exception as e:
            log.error("Failed to list users", error=str(e))
            return result.fatal(f"calculate_{period_type}_statistics", e)

        for user_id in user_ids:
            try:
                already_recorded = await self.gateway.exists(USER_STATISTICS, [
                    eq("user_id", user_id),
                    eq("period_type", period_type),
                    eq("period_start", period_start),
                ])
                if already_recorded:
                    result.skipped += 1
                    continue

                stats = await self.calculate_user_statistics(user_id, period_type, period_start, period_end)
                if stats is None:
                    result.skipped += 1
                    continue

                await self.gateway.insert(USER_STATISTICS, stats)
                await self.calculate_user_protocol_performance(user_id, period_type, period_start, period_end)
                result.processed += 1

            except DuplicateRecordError:
                result.skipped += 1
            except Exception as e:
                log.warning("User statistics failed", user_id=user_id, error=str(e))
                result.errors.append(f"Error processing user {user_id}: {e}")

        log.info(
            "Statistics calculation completed",
            processed=result.processed,
            skipped=result.skipped,
            errors=len(result.errors)
        )
        return result

    async def _run_period(self, period_type: PeriodType) -> JobResult:
        start, end = window_for(period_type.value, self._now())
        return await self.calculate_statistics_for_period(period_type.value, start, end)

    async def calculate_daily_statistics(self) -> JobResult:
        """Roll up yesterday."""
        return await self._run_period(PeriodType.DAILY)

    async def calculate_weekly_statistics(self) -> JobResult:
        """Roll up the last complete Sunday to Saturday week."""
        return await self._run_period(PeriodType.WEEKLY)

    async def calculate_monthly_statistics(self) -> JobResult:
        """Roll up the last full calendar month."""
        return await self._run_period(PeriodType.MONTHLY)

    async def get_user_statistics(
        self,
        user_id: str,
        period_type: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        filters = [eq("user_id", user_id)]
        if period_type:
            filters.append(eq("period_type", period_type))
        if start_date:
            filters.append(gte("period_start", start_date))
        if end_date:
            filters.append(lte("period_end", end_date))
        return await self.gateway.find(USER_STATISTICS, filters, order_by=[desc("period_start")], limit=limit)

    async def get_protocol_performance(
        self,
        user_id: str,
        period_type: Optional[str] = None,
        protocol_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        filters = [eq("user_id", user_id)]
        if period_type:
            filters.append(eq("period_type", period_type))
        if protocol_id:
            filters.append(eq("protocol_id", protocol_id))
        if start_date:
            filters.append(gte("period_start", start_date))
        if end_date:
            filters.append(lte("period_end", end_date))
        return await self.gateway.find(PROTOCOL_PERFORMANCE, filters, order_by=[desc("period_start")], limit=limit)
