"""
Test daily accrual, compounding and the stake status sweep.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from stakeflow.core.exceptions import DatabaseError
from stakeflow.services.reward_engine import RewardEngine
from tests.conftest import NOW, clock, make_protocol, make_reward, make_stake


@pytest.fixture
def engine(gateway):
    return RewardEngine(gateway, now=clock, decimal_places=6)


def staking_rewards(gateway):
    return [r for r in gateway.all("rewards") if r["reward_type"] == "staking"]


@pytest.mark.asyncio
async def test_daily_reward_amount_and_metadata(gateway, engine):
    gateway.seed("protocols", make_protocol("alpha", apy="12.5"))
    gateway.seed("stakes", make_stake("s1", "alpha", amount="1000", started_days_ago=10, ends_in_days=20))

    result = await engine.calculate_daily_rewards()

    assert result.success
    assert result.processed == 1
    [reward] = staking_rewards(gateway)
    assert reward["amount"] == Decimal("0.342466")
    assert reward["period_key"] == "2024-06-12"
    assert reward["claimed"] is False
    assert reward["reward_date"] == NOW
    assert reward["metadata"]["days_elapsed"] == 10
    assert reward["metadata"]["total_days"] == 30
    assert reward["metadata"]["progress_percentage"] == 33.33
    assert reward["metadata"]["protocol_name"] == "Alpha Protocol"


@pytest.mark.asyncio
async def test_daily_rewards_are_idempotent_within_a_day(gateway, engine):
    gateway.seed("protocols", make_protocol("alpha"))
    gateway.seed("stakes", make_stake("s1", "alpha"))

    first = await engine.calculate_daily_rewards()
    second = await engine.calculate_daily_rewards()

    assert first.processed == 1
    assert second.processed == 0
    assert second.skipped == 1
    assert second.success
    assert len(staking_rewards(gateway)) == 1


@pytest.mark.asyncio
async def test_unique_key_collision_is_benign(gateway, engine):
    gateway.seed("protocols", make_protocol("alpha"))
    stake = gateway.seed("stakes", make_stake("s1", "alpha"))[0]
    # Same period key but outside today's window, so only the unique index catches it
    gateway.seed("rewards", make_reward(
        stake, "0.1", NOW - timedelta(days=1), period_key="2024-06-12"
    ))

    result = await engine.calculate_daily_rewards()

    assert result.success
    assert result.processed == 0
    assert result.skipped == 1
    assert len(staking_rewards(gateway)) == 1


@pytest.mark.asyncio
async def test_only_running_active_stakes_accrue(gateway, engine):
    gateway.seed("protocols", make_protocol("alpha"))
    gateway.seed(
        "stakes",
        make_stake("running", "alpha"),
        make_stake("future", "alpha", started_days_ago=-1),
        make_stake("ended", "alpha", ends_in_days=-1),
        make_stake("cancelled", "alpha", status="cancelled"),
        make_stake("completed", "alpha", status="completed"),
    )

    result = await engine.calculate_daily_rewards()

    assert result.processed == 1
    assert [r["stake_id"] for r in staking_rewards(gateway)] == ["running"]


@pytest.mark.asyncio
async def test_row_failures_do_not_abort_the_batch(gateway, engine):
    gateway.seed("protocols", make_protocol("alpha"), make_protocol("beta"))
    gateway.seed("stakes", make_stake("s1", "alpha"), make_stake("s2", "beta"), make_stake("s3", "alpha"))

    def fail_for_s2(collection, row):
        if row.get("stake_id") == "s2":
            raise ValueError("foreign key violation")

    gateway.insert_hook = fail_for_s2

    result = await engine.calculate_daily_rewards()

    assert not result.success
    assert result.processed == 2
    assert len(result.errors) == 1
    assert "s2" in result.errors[0]


@pytest.mark.asyncio
async def test_missing_protocol_is_a_row_error(gateway, engine):
    gateway.seed("protocols", make_protocol("alpha"))
    gateway.seed("stakes", make_stake("s1", "alpha"), make_stake("s2", "ghost"))

    result = await engine.calculate_daily_rewards()

    assert result.processed == 1
    assert len(result.errors) == 1
    assert "ghost" in result.errors[0]


@pytest.mark.asyncio
async def test_fetch_failure_is_fatal(gateway, engine):
    gateway.failures[("find", "stakes")] = DatabaseError("connection refused")

    result = await engine.calculate_daily_rewards()

    assert not result.success
    assert result.processed == 0
    assert result.errors == ["Fatal error in calculate_daily_rewards: connection refused"]


@pytest.mark.asyncio
async def test_compound_reward_is_additive(gateway, engine):
    gateway.seed("protocols", make_protocol("alpha", apy="12.5"))
    stake = gateway.seed("stakes", make_stake("s1", "alpha", started_days_ago=10))[0]
    gateway.seed(
        "rewards",
        make_reward(stake, "1.0", NOW - timedelta(days=3)),
        make_reward(stake, "2.5", NOW - timedelta(days=2)),
        make_reward(stake, "5.0", NOW - timedelta(days=1), claimed=True),
        make_reward(stake, "9.0", NOW - timedelta(days=8), reward_type="compound"),
    )
    before = {r["id"]: (r["amount"], r["claimed"]) for r in staking_rewards(gateway)}

    result = await engine.calculate_compound_rewards()

    assert result.success
    assert result.processed == 1
    compounds = [
        r for r in gateway.all("rewards")
        if r["reward_type"] == "compound" and r["reward_date"] == NOW
    ]
    assert len(compounds) == 1
    assert compounds[0]["amount"] == Decimal("0.008413")
    assert compounds[0]["period_key"] == "2024-W24"
    assert compounds[0]["metadata"]["base_unclaimed_amount"] == 3.5

    after = {r["id"]: (r["amount"], r["claimed"]) for r in staking_rewards(gateway)}
    assert after == before

    [stored_stake] = gateway.all("stakes")
    assert stored_stake["last_compound_date"] == NOW


@pytest.mark.asyncio
async def test_compound_once_per_week(gateway, engine):
    gateway.seed("protocols", make_protocol("alpha"))
    stake = gateway.seed("stakes", make_stake("s1", "alpha", started_days_ago=10))[0]
    gateway.seed("rewards", make_reward(stake, "1.0", NOW - timedelta(days=1)))

    first = await engine.calculate_compound_rewards()
    second = await engine.calculate_compound_rewards()

    assert first.processed == 1
    assert second.processed == 0
    assert second.skipped == 1


@pytest.mark.asyncio
async def test_compound_skips_young_and_empty_stakes(gateway, engine):
    gateway.seed("protocols", make_protocol("alpha"))
    young = gateway.seed("stakes", make_stake("young", "alpha", started_days_ago=3))[0]
    gateway.seed("stakes", make_stake("empty", "alpha", started_days_ago=30))
    gateway.seed("rewards", make_reward(young, "1.0", NOW - timedelta(days=1)))

    result = await engine.calculate_compound_rewards()

    assert result.success
    assert result.processed == 0
    assert result.skipped == 1
    assert all(r["reward_type"] == "staking" for r in gateway.all("rewards"))


@pytest.mark.asyncio
async def test_compound_requires_more_than_seven_days(gateway, engine):
    gateway.seed("protocols", make_protocol("alpha"))
    boundary = gateway.seed("stakes", make_stake("boundary", "alpha", started_days_ago=7))[0]
    gateway.seed("rewards", make_reward(boundary, "1.0", NOW - timedelta(days=1)))

    result = await engine.calculate_compound_rewards()

    assert result.success
    assert result.processed == 0
    assert result.skipped == 0
    assert all(r["reward_type"] == "staking" for r in gateway.all("rewards"))


@pytest.mark.asyncio
async def test_compound_counts_stored_reward_when_marker_update_fails(gateway, engine):
    gateway.seed("protocols", make_protocol("alpha"))
    stake = gateway.seed("stakes", make_stake("s1", "alpha", started_days_ago=10))[0]
    gateway.seed("rewards", make_reward(stake, "1.0", NOW - timedelta(days=1)))
    gateway.failures[("update", "stakes")] = DatabaseError("boom")

    result = await engine.calculate_compound_rewards()

    assert result.processed == 1
    assert len([r for r in gateway.all("rewards") if r["reward_type"] == "compound"]) == 1
    assert len(result.errors) == 1
    assert "last_compound_date" in result.errors[0]
    [stored_stake] = gateway.all("stakes")
    assert stored_stake["last_compound_date"] is None


def test_explicit_zero_decimal_places_is_kept(gateway):
    assert RewardEngine(gateway, now=clock, decimal_places=0).decimal_places == 0


@pytest.mark.asyncio
async def test_status_sweep_only_completes_ended_active_stakes(gateway, engine):
    gateway.seed(
        "stakes",
        make_stake("ended", "alpha", ends_in_days=-1),
        make_stake("running", "alpha"),
        make_stake("done", "alpha", ends_in_days=-5, status="completed"),
        make_stake("cancelled", "alpha", ends_in_days=-5, status="cancelled"),
    )

    result = await engine.update_stake_statuses()
    again = await engine.update_stake_statuses()

    statuses = {s["id"]: s["status"] for s in gateway.all("stakes")}
    assert result.updated == 1
    assert again.updated == 0
    assert statuses == {
        "ended": "completed",
        "running": "active",
        "done": "completed",
        "cancelled": "cancelled",
    }


@pytest.mark.asyncio
async def test_status_sweep_failure(gateway, engine):
    gateway.failures[("update", "stakes")] = DatabaseError("timeout")

    result = await engine.update_stake_statuses()

    assert not result.success
    assert result.errors == ["Fatal error in update_stake_statuses: timeout"]


@pytest.mark.asyncio
async def test_reward_cron_merges_sub_results(gateway, engine):
    gateway.seed("protocols", make_protocol("alpha"))
    gateway.seed(
        "stakes",
        make_stake("s1", "alpha", started_days_ago=3),
        make_stake("old", "alpha", ends_in_days=-1),
    )

    result = await engine.run_reward_calculation_cron()
    payload = result.to_dict()

    assert payload["success"] is True
    assert payload["summary"]["daily_rewards"]["processed"] == 1
    assert payload["summary"]["compound_rewards"]["processed"] == 0
    assert payload["summary"]["status_updates"]["updated"] == 1
    assert payload["duration_ms"] >= 0


@pytest.mark.asyncio
async def test_reward_cron_reports_sub_failures(gateway, engine):
    gateway.failures[("update", "stakes")] = DatabaseError("down")

    result = await engine.run_reward_calculation_cron()

    assert not result.success
    assert result.error_count == 1
    assert result.daily_rewards.success
