"""
Reward Engine: daily accrual, weekly compounding and the stake status sweep.

Every entry point returns a structured result; no exception escapes.
Per-stake failures are collected and the batch continues. A failure of the
initial fetch aborts that operation with a single fatal error.
"""

import asyncio
import time
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog

from stakeflow.core.config import settings
from stakeflow.core.exceptions import DuplicateRecordError
from stakeflow.gateway import (
    PersistenceGateway, Row, STAKES, REWARDS,
    eq, lt, gt, gte,
)
from stakeflow.models import CalculationMethod, RewardType, StakeStatus
from stakeflow.utils.time import ensure_utc, utc_now

from .calculations import (
    compound_reward, daily_rate, daily_reward, round2, to_decimal, total, weekly_rate
)
from .periods import daily_period_key, utc_day_window, weekly_period_key
from .queries import protocols_by_id
from .types import JobResult, RewardCronResult, StatusUpdateResult


logger = structlog.get_logger(__name__)

COMPOUND_INTERVAL = timedelta(days=7)


class RewardEngine:
    """Computes and persists staking and compound rewards."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        now: Callable[[], datetime] = utc_now,
        decimal_places: Optional[int] = None,
    ):
        self.gateway = gateway
        self._now = now
        self.decimal_places = settings.reward_decimal_places if decimal_places is None else decimal_places
        self.logger = logger.bind(service="reward_engine")

    async def calculate_daily_rewards(self) -> JobResult:
        """Issue one staking reward per active stake for the current UTC day."""
        result = JobResult()
        now = self._now()
        self.logger.info("Starting daily reward calculation", now=now.isoformat())

        try:
            stakes = await self.gateway.find(STAKES, [
                eq("status", StakeStatus.ACTIVE.value),
                lt("start_date", now),
                gt("end_date", now),
            ])
            protocols = await protocols_by_id(self.gateway, (s["protocol_id"] for s in stakes))
        except Exception as e:
            self.logger.error("Failed to fetch active stakes", error=str(e))
            return result.fatal("calculate_daily_rewards", e)

        day_start, day_end = utc_day_window(now)

        for stake in stakes:
            try:
                already_rewarded = await self.gateway.exists(REWARDS, [
                    eq("stake_id", stake["id"]),
                    eq("reward_type", RewardType.STAKING.value),
                    gte("reward_date", day_start),
                    lt("reward_date", day_end),
                ])
                if already_rewarded:
                    result.skipped += 1
                    continue

                protocol = protocols.get(stake["protocol_id"])
                if protocol is None:
                    result.errors.append(f"Protocol {stake['protocol_id']} not found for stake {stake['id']}")
                    continue

                amount = daily_reward(stake["amount"], protocol["apy"], self.decimal_places)
                if amount <= 0:
                    result.skipped += 1
                    continue

                await self.gateway.insert(REWARDS, self._build_daily_reward(stake, protocol, amount, now))
                result.processed += 1

            except DuplicateRecordError:
                self.logger.debug("Daily reward already recorded", stake_id=stake["id"])
                result.skipped += 1
            except Exception as e:
                self.logger.warning("Daily reward failed", stake_id=stake["id"], error=str(e))
                result.errors.append(f"Error processing stake {stake['id']}: {e}")

        self.logger.info(
            "Daily reward calculation completed",
            processed=result.processed,
            skipped=result.skipped,
            errors=len(result.errors)
        )
        return result

    def _build_daily_reward(self, stake: Row, protocol: Row, amount, now: datetime) -> Row:
        start = ensure_utc(stake["start_date"])
        end = ensure_utc(stake["end_date"])
        days_elapsed = (now - start) // timedelta(days=1)
        total_days = (end - start) // timedelta(days=1)
        progress = (
            round2(to_decimal(days_elapsed) / to_decimal(total_days) * 100)
            if total_days > 0 else to_decimal(0)
        )

        return {
            "stake_id": stake["id"],
            "user_id": stake["user_id"],
            "protocol_id": stake["protocol_id"],
            "amount": amount,
            "reward_type": RewardType.STAKING.value,
            "calculation_method": CalculationMethod.DAILY.value,
            "apy_at_calculation": to_decimal(protocol["apy"]),
            "compound_frequency": stake.get("compound_frequency"),
            "claimed": False,
            "reward_date": now,
            "period_key": daily_period_key(now),
            "metadata": {
                "protocol_name": protocol.get("name"),
                "stake_amount": float(to_decimal(stake["amount"])),
                "daily_rate": float(daily_rate(protocol["apy"])),
                "days_elapsed": days_elapsed,
                "total_days": total_days,
                "progress_percentage": float(progress),
                "calculation_timestamp": now.isoformat(),
            },
        }

    async def calculate_compound_rewards(self) -> JobResult:
        """Compound unclaimed staking rewards once per week per stake."""
        result = JobResult()
        now = self._now()
        window_start = now - COMPOUND_INTERVAL
        self.logger.info("Starting compound reward calculation", now=now.isoformat())

        try:
            stakes = await self.gateway.find(STAKES, [
                eq("status", StakeStatus.ACTIVE.value),
                lt("start_date", window_start),
            ])
            protocols = await protocols_by_id(self.gateway, (s["protocol_id"] for s in stakes))
        except Exception as e:
            self.logger.error("Failed to fetch stakes eligible for compounding", error=str(e))
            return result.fatal("calculate_compound_rewards", e)

        for stake in stakes:
            try:
                recently_compounded = await self.gateway.exists(REWARDS, [
                    eq("stake_id", stake["id"]),
                    eq("reward_type", RewardType.COMPOUND.value),
                    gte("reward_date", window_start),
                ])
                if recently_compounded:
                    result.skipped += 1
                    continue

                protocol = protocols.get(stake["protocol_id"])
                if protocol is None:
                    result.errors.append(f"Protocol {stake['protocol_id']} not found for stake {stake['id']}")
                    continue

                unclaimed = await self.gateway.find(REWARDS, [
                    eq("stake_id", stake["id"]),
                    eq("reward_type", RewardType.STAKING.value),
                    eq("claimed", False),
                ])
                total_unclaimed = total(r["amount"] for r in unclaimed)
                if total_unclaimed <= 0:
                    result.skipped += 1
                    continue

                amount = compound_reward(total_unclaimed, protocol["apy"], self.decimal_places)
                if amount <= 0:
                    result.skipped += 1
                    continue

                await self.gateway.insert(REWARDS, {
                    "stake_id": stake["id"],
                    "user_id": stake["user_id"],
                    "protocol_id": stake["protocol_id"],
                    "amount": amount,
                    "reward_type": RewardType.COMPOUND.value,
                    "calculation_method": CalculationMethod.WEEKLY.value,
                    "apy_at_calculation": to_decimal(protocol["apy"]),
                    "compound_frequency": stake.get("compound_frequency"),
                    "claimed": False,
                    "reward_date": now,
                    "period_key": weekly_period_key(now),
                    "metadata": {
                        "protocol_name": protocol.get("name"),
                        "base_unclaimed_amount": float(total_unclaimed),
                        "compound_rate": float(weekly_rate(protocol["apy"])),
                        "calculation_timestamp": now.isoformat(),
                    },
                })
                result.processed += 1

            except DuplicateRecordError:
                self.logger.debug("Compound reward already recorded", stake_id=stake["id"])
                result.skipped += 1
                continue
            except Exception as e:
                self.logger.warning("Compound reward failed", stake_id=stake["id"], error=str(e))
                result.errors.append(f"Error compounding stake {stake['id']}: {e}")
                continue

            # The reward row is stored; a failed marker update is reported but not undone
            try:
                await self.gateway.update(STAKES, [eq("id", stake["id"])], {"last_compound_date": now})
            except Exception as e:
                self.logger.warning("Failed to mark stake compounded", stake_id=stake["id"], error=str(e))
                result.errors.append(f"Error updating last_compound_date for stake {stake['id']}: {e}")

        self.logger.info(
            "Compound reward calculation completed",
            processed=result.processed,
            skipped=result.skipped,
            errors=len(result.errors)
        )
        return result

    async def update_stake_statuses(self) -> StatusUpdateResult:
        """Move active stakes past their end date to completed."""
        result = StatusUpdateResult()
        now = self._now()

        try:
            updated = await self.gateway.update(
                STAKES,
                [eq("status", StakeStatus.ACTIVE.value), lt("end_date", now)],
                {"status": StakeStatus.COMPLETED.value},
            )
            result.updated = len(updated)
        except Exception as e:
            self.logger.error("Failed to update stake statuses", error=str(e))
            result.errors.append(f"Fatal error in update_stake_statuses: {e}")
            return result

        self.logger.info("Stake statuses updated", updated=result.updated)
        return result

    async def run_reward_calculation_cron(self) -> RewardCronResult:
        """Run the three reward operations concurrently and merge their results."""
        started = time.monotonic()
        self.logger.info("Starting reward calculation cron")

        async with asyncio.TaskGroup() as tg:
            daily_task = tg.create_task(self.calculate_daily_rewards())
            compound_task = tg.create_task(self.calculate_compound_rewards())
            status_task = tg.create_task(self.update_stake_statuses())

        result = RewardCronResult(
            daily_rewards=daily_task.result(),
            compound_rewards=compound_task.result(),
            status_updates=status_task.result(),
            duration_ms=int((time.monotonic() - started) * 1000),
        )

        self.logger.info(
            "Reward calculation cron completed",
            success=result.success,
            errors=result.error_count,
            duration_ms=result.duration_ms
        )
        return result
