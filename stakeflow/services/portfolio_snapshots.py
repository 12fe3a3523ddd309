"""
Portfolio Snapshot Engine: one consolidated net-worth row per user per day.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, List, Optional

import structlog

from stakeflow.core.config import settings
from stakeflow.core.exceptions import DuplicateRecordError, NotFoundError, SnapshotAlreadyExistsError
from stakeflow.gateway import (
    PersistenceGateway, Row, STAKES, REWARDS, PORTFOLIO_SNAPSHOTS,
    eq, lt, lte, gte, desc,
)
from stakeflow.models import RiskLevel, StakeStatus
from stakeflow.utils.time import utc_now

from .calculations import distribution, growth_percentage, mean, round2, to_decimal, total
from .queries import distinct_user_ids, protocols_by_id
from .types import CleanupResult, JobResult


logger = structlog.get_logger(__name__)

GROWTH_HORIZONS = {
    "portfolio_growth_24h": 1,
    "portfolio_growth_7d": 7,
    "portfolio_growth_30d": 30,
}


class PortfolioSnapshotEngine:
    """Creates, reads and retires daily portfolio snapshots."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        now: Callable[[], datetime] = utc_now,
        retention_days: Optional[int] = None,
    ):
        self.gateway = gateway
        self._now = now
        self.retention_days = settings.snapshot_retention_days if retention_days is None else retention_days
        self.logger = logger.bind(service="portfolio_snapshots")

    async def calculate_portfolio_snapshot(self, user_id: str, snapshot_date: date) -> Optional[Row]:
        """Build the snapshot row for one user, or None when the user has no stakes."""
        stakes = await self.gateway.find(STAKES, [eq("user_id", user_id)])
        if not stakes:
            return None

        active = [s for s in stakes if s["status"] == StakeStatus.ACTIVE.value]
        protocols = await protocols_by_id(self.gateway, (s["protocol_id"] for s in active))
        rewards = await self.gateway.find(REWARDS, [eq("user_id", user_id)])

        total_staked = total(s["amount"] for s in active)
        earned = total(r["amount"] for r in rewards)
        claimed = total(r["amount"] for r in rewards if r["claimed"])
        unclaimed = total(r["amount"] for r in rewards if not r["claimed"])
        portfolio_value = total_staked + unclaimed

        by_protocol: Dict[str, Decimal] = defaultdict(Decimal)
        by_risk: Dict[str, Decimal] = defaultdict(Decimal)
        for stake in active:
            protocol = protocols.get(stake["protocol_id"]) or {}
            name = protocol.get("name") or f"Protocol {stake['protocol_id']}"
            level = protocol.get("risk_level") or RiskLevel.MEDIUM.value
            by_protocol[name] += to_decimal(stake["amount"])
            by_risk[level] += to_decimal(stake["amount"])

        risk_distribution = {level.value: 0.0 for level in RiskLevel}
        risk_distribution.update(distribution(by_risk))

        snapshot = {
            "user_id": user_id,
            "snapshot_date": snapshot_date,
            "total_portfolio_value": round2(portfolio_value),
            "total_staked_amount": round2(total_staked),
            "total_rewards_earned": round2(earned),
            "total_rewards_claimed": round2(claimed),
            "total_rewards_unclaimed": round2(unclaimed),
            "active_stakes_count": len(active),
            "protocol_distribution": distribution(by_protocol),
            "risk_distribution": risk_distribution,
            "average_apy": round2(mean(
                protocols[s["protocol_id"]]["apy"] for s in active if s["protocol_id"] in protocols
            )),
        }

        for column, days in GROWTH_HORIZONS.items():
            snapshot[column] = await self._growth_since(user_id, snapshot_date - timedelta(days=days), portfolio_value)

        return snapshot

    async def _growth_since(self, user_id: str, target: date, current_value: Decimal) -> Decimal:
        """Growth against the most recent snapshot on or before `target`."""
        past = await self.gateway.find(
            PORTFOLIO_SNAPSHOTS,
            [eq("user_id", user_id), lte("snapshot_date", target)],
            order_by=[desc("snapshot_date")],
            limit=1,
        )
        if not past:
            return Decimal("0.00")
        return growth_percentage(current_value, past[0]["total_portfolio_value"])

    async def create_daily_portfolio_snapshots(self) -> JobResult:
        result = JobResult()
        today = self._now().date()
        self.logger.info("Starting daily portfolio snapshots", snapshot_date=today.isoformat())

        try:
            user_ids = await distinct_user_ids(self.gateway)
        except Exception as e:
            self.logger.error("Failed to list users", error=str(e))
            return result.fatal("create_daily_portfolio_snapshots", e)

        for user_id in user_ids:
            try:
                if await self.gateway.exists(PORTFOLIO_SNAPSHOTS, [
                    eq("user_id", user_id),
                    eq("snapshot_date", today),
                ]):
                    result.skipped += 1
                    continue

                snapshot = await self.calculate_portfolio_snapshot(user_id, today)
                if snapshot is None:
                    result.skipped += 1
                    continue

                await self.gateway.insert(PORTFOLIO_SNAPSHOTS, snapshot)
                result.processed += 1

            except DuplicateRecordError:
                result.skipped += 1
            except Exception as e:
                self.logger.warning("Snapshot failed", user_id=user_id, error=str(e))
                result.errors.append(f"Error creating snapshot for user {user_id}: {e}")

        self.logger.info(
            "Daily portfolio snapshots completed",
            processed=result.processed,
            skipped=result.skipped,
            errors=len(result.errors)
        )
        return result

    async def create_snapshot_for_user(self, user_id: str) -> Row:
        """Take today's snapshot for one user on demand."""
        today = self._now().date()
        if await self.gateway.exists(PORTFOLIO_SNAPSHOTS, [
            eq("user_id", user_id),
            eq("snapshot_date", today),
        ]):
            raise SnapshotAlreadyExistsError(user_id, today.isoformat())

        snapshot = await self.calculate_portfolio_snapshot(user_id, today)
        if snapshot is None:
            raise NotFoundError(f"No stakes found for user {user_id}", {"user_id": user_id})

        try:
            [row] = await self.gateway.insert(PORTFOLIO_SNAPSHOTS, snapshot)
        except DuplicateRecordError:
            raise SnapshotAlreadyExistsError(user_id, today.isoformat())

        self.logger.info("Portfolio snapshot created on demand", user_id=user_id, snapshot_date=today.isoformat())
        return row

    async def cleanup_old_portfolio_snapshots(self) -> CleanupResult:
        """Delete snapshots older than the retention window."""
        result = CleanupResult()
        cutoff = self._now().date() - timedelta(days=self.retention_days)

        try:
            result.deleted = await self.gateway.delete(PORTFOLIO_SNAPSHOTS, [lt("snapshot_date", cutoff)])
        except Exception as e:
            self.logger.error("Snapshot cleanup failed", error=str(e))
            result.error = str(e)
            return result

        self.logger.info("Old portfolio snapshots removed", deleted=result.deleted, cutoff=cutoff.isoformat())
        return result

    async def get_snapshots_for_user(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 30,
    ) -> List[Row]:
        filters = [eq("user_id", user_id)]
        if start_date:
            filters.append(gte("snapshot_date", start_date))
        if end_date:
            filters.append(lte("snapshot_date", end_date))
        return await self.gateway.find(
            PORTFOLIO_SNAPSHOTS, filters, order_by=[desc("snapshot_date")], limit=limit
        )

    async def get_latest_snapshot(self, user_id: str) -> Optional[Row]:
        rows = await self.get_snapshots_for_user(user_id, limit=1)
        return rows[0] if rows else None
