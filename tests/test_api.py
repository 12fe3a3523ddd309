"""
Test the HTTP surface with the in-memory gateway.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from stakeflow.api.main import create_app
from stakeflow.core.config import settings
from stakeflow.core.exceptions import JobAlreadyRunningError
from stakeflow.scheduler.cron_scheduler import CronOrchestrator, REWARD_JOB
from stakeflow.services import PortfolioSnapshotEngine, RewardEngine, StatisticsEngine
from tests.conftest import NOW, clock, make_protocol, make_reward, make_stake


API = settings.api_prefix


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def orchestrator(gateway):
    return CronOrchestrator(
        RewardEngine(gateway, now=clock),
        StatisticsEngine(gateway, now=clock),
        PortfolioSnapshotEngine(gateway, now=clock),
        now=clock,
        enabled=False,
    )


@pytest.fixture
def client(gateway, orchestrator):
    return TestClient(create_app(gateway=gateway, orchestrator=orchestrator, clock=clock))


@pytest.fixture
def seeded(gateway):
    gateway.seed("protocols", make_protocol("alpha", apy="10", risk_level="low", name="Alpha"))
    [stake] = gateway.seed("stakes", make_stake("s1", "alpha"))
    gateway.seed(
        "rewards",
        make_reward(stake, "0.25", utc(2024, 6, 11, 12, 0), id="r-new"),
        make_reward(stake, "0.20", utc(2024, 6, 10, 12, 0), id="r-old", claimed=True),
    )
    return gateway


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["services"] == {"api": "healthy"}


def test_trigger_reward_calculation(client, gateway):
    gateway.seed("protocols", make_protocol("alpha"))
    gateway.seed("stakes", make_stake("s1", "alpha"))

    response = client.post(f"{API}/cron/trigger")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Reward calculation completed"
    assert body["data"]["success"] is True
    assert body["data"]["summary"]["daily_rewards"]["processed"] == 1
    assert set(body["data"]["summary"]) == {"daily_rewards", "compound_rewards", "status_updates"}


def test_trigger_conflict_returns_409(client, orchestrator, monkeypatch):
    async def already_running():
        raise JobAlreadyRunningError(REWARD_JOB)

    monkeypatch.setattr(orchestrator, "trigger_reward_calculation", already_running)

    response = client.post(f"{API}/cron/trigger")

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "JOB_ALREADY_RUNNING"


def test_trigger_statistics_and_snapshots(client, seeded):
    daily = client.post(f"{API}/cron/trigger-daily-stats")
    snapshots = client.post(f"{API}/cron/trigger-snapshots")

    assert daily.status_code == 200
    assert daily.json()["message"] == "Daily statistics completed"
    assert daily.json()["data"]["processed"] == 1
    assert snapshots.json()["data"]["processed"] == 1

    for path in ("trigger-weekly-stats", "trigger-monthly-stats"):
        response = client.post(f"{API}/cron/{path}")
        assert response.status_code == 200
        assert response.json()["data"]["success"] is True


def test_status_and_cron_health(client):
    status = client.get(f"{API}/cron/status").json()["data"]
    health = client.get(f"{API}/cron/health").json()

    assert status["status"] == "idle"
    assert status["is_running"] is False
    assert len(status["scheduled_tasks"]) == 4
    assert health["data"]["healthy"] is True
    assert health["message"] == "Cron system healthy"


def test_statistics_reads(client, seeded):
    client.post(f"{API}/cron/trigger-daily-stats")

    stats = client.get(f"{API}/statistics/user", params={"user_id": "user-1", "period_type": "daily"})
    performance = client.get(f"{API}/statistics/protocol-performance", params={"user_id": "user-1"})

    assert stats.status_code == 200
    [row] = stats.json()["data"]
    assert row["total_rewards_earned"] == 0.25
    assert row["best_performing_protocol_id"] == "alpha"
    [perf] = performance.json()["data"]
    assert perf["protocol_id"] == "alpha"


def test_snapshot_reads(client, seeded):
    assert client.get(f"{API}/statistics/snapshots/latest", params={"user_id": "user-1"}).json()["data"] is None

    client.post(f"{API}/cron/trigger-snapshots")

    latest = client.get(f"{API}/statistics/snapshots/latest", params={"user_id": "user-1"}).json()["data"]
    history = client.get(f"{API}/statistics/snapshots", params={"user_id": "user-1"}).json()["data"]
    assert latest["snapshot_date"] == NOW.date().isoformat()
    assert latest["protocol_distribution"] == {"Alpha": 100.0}
    assert len(history) == 1


def test_missing_user_id_is_a_validation_error(client):
    response = client.get(f"{API}/statistics/user")

    assert response.status_code == 422
    assert response.json()["error"] == "VALIDATION_ERROR"


def test_list_rewards_with_filters(client, seeded):
    all_rows = client.get(f"{API}/rewards/user/user-1").json()["data"]
    unclaimed = client.get(f"{API}/rewards/user/user-1", params={"claimed": "false"}).json()["data"]
    paged = client.get(f"{API}/rewards/user/user-1", params={"limit": 1, "offset": 1}).json()["data"]

    assert [r["id"] for r in all_rows] == ["r-new", "r-old"]
    assert [r["id"] for r in unclaimed] == ["r-new"]
    assert [r["id"] for r in paged] == ["r-old"]


def test_claim_reward(client, seeded):
    response = client.post(
        f"{API}/rewards/r-new/claim",
        json={"user_id": "user-1", "transaction_hash": "0xabc"},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["claimed"] is True
    assert data["transaction_hash"] == "0xabc"
    assert data["claim_date"] is not None
    [stored] = [r for r in seeded.all("rewards") if r["id"] == "r-new"]
    assert stored["claimed"] is True


def test_claim_already_claimed_returns_400(client, seeded):
    response = client.post(f"{API}/rewards/r-old/claim", json={"user_id": "user-1"})

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


@pytest.mark.parametrize("reward_id, user_id", [("missing", "user-1"), ("r-new", "someone-else")])
def test_claim_unknown_or_foreign_reward_returns_404(client, seeded, reward_id, user_id):
    response = client.post(f"{API}/rewards/{reward_id}/claim", json={"user_id": user_id})

    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"
    assert seeded.all("rewards")[0]["claimed"] is False


def daily_stats(period_start: datetime, portfolio_value: str, user_id: str = "user-1"):
    return {
        "user_id": user_id,
        "period_type": "daily",
        "period_start": period_start,
        "period_end": period_start + timedelta(days=1) - timedelta(microseconds=1),
        "total_staked_amount": Decimal("1000"),
        "total_rewards_earned": Decimal("0"),
        "total_rewards_claimed": Decimal("0"),
        "total_rewards_unclaimed": Decimal("0"),
        "portfolio_value": Decimal(portfolio_value),
        "portfolio_growth_percentage": Decimal("0"),
        "average_apy": Decimal("10"),
        "active_stakes_count": 1,
        "completed_stakes_count": 0,
        "new_stakes_count": 0,
        "total_protocols_used": 1,
        "risk_score": Decimal("25"),
        "diversification_score": Decimal("0"),
        "best_performing_protocol_id": None,
        "worst_performing_protocol_id": None,
    }


def test_dashboard_summarises_portfolio(client, seeded):
    seeded.seed(
        "user_statistics",
        daily_stats(utc(2024, 5, 1), "900.00"),
        daily_stats(utc(2024, 6, 10), "1000.00"),
        daily_stats(utc(2024, 6, 11), "1000.45"),
    )

    response = client.get(f"{API}/statistics/dashboard", params={"user_id": "user-1"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["current_portfolio_value"] == 1000.0
    assert data["total_staked_amount"] == 1000.0
    assert data["total_unclaimed_rewards"] == 0.25
    assert data["active_stakes_count"] == 1
    assert data["average_apy"] == 10.0
    assert data["thirty_day_growth"] == 0.45
    assert data["thirty_day_growth_percentage"] == 0.05
    assert data["portfolio_risk_level"] == "low"
    assert data["protocol_distribution"] == {"Alpha": 100.0}
    assert [row["period_start"][:10] for row in data["recent_performance"]] == ["2024-06-11", "2024-06-10"]
    assert data["latest_snapshot"] is None


def test_dashboard_uses_latest_snapshot_value(client, seeded):
    client.post(f"{API}/statistics/snapshot", json={"user_id": "user-1"})

    data = client.get(f"{API}/statistics/dashboard", params={"user_id": "user-1"}).json()["data"]

    assert data["current_portfolio_value"] == 1000.25
    assert data["latest_snapshot"]["snapshot_date"] == NOW.date().isoformat()
    assert data["thirty_day_growth"] == 0.0


def test_dashboard_for_user_without_stakes(client):
    data = client.get(f"{API}/statistics/dashboard", params={"user_id": "nobody"}).json()["data"]

    assert data["current_portfolio_value"] == 0.0
    assert data["active_stakes_count"] == 0
    assert data["thirty_day_growth_percentage"] == 0.0
    assert data["portfolio_risk_level"] == "medium"
    assert data["protocol_distribution"] == {}
    assert data["recent_performance"] == []


def test_create_snapshot_once_per_day(client, seeded):
    first = client.post(f"{API}/statistics/snapshot", json={"user_id": "user-1"})
    second = client.post(f"{API}/statistics/snapshot", json={"user_id": "user-1"})

    assert first.status_code == 200
    snapshot = first.json()["data"]
    assert snapshot["snapshot_date"] == NOW.date().isoformat()
    assert snapshot["total_portfolio_value"] == 1000.25
    assert second.status_code == 409
    assert second.json()["error"] == "CONFLICT"
    assert len(seeded.all("portfolio_snapshots")) == 1


def test_create_snapshot_without_stakes_returns_404(client):
    response = client.post(f"{API}/statistics/snapshot", json={"user_id": "nobody"})

    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"


def test_get_reward_with_stake_and_protocol(client, seeded):
    response = client.get(f"{API}/rewards/r-new", params={"user_id": "user-1"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == "r-new"
    assert data["amount"] == 0.25
    assert data["stake"]["id"] == "s1"
    assert data["stake"]["status"] == "active"
    assert data["protocol"]["name"] == "Alpha"
    assert data["protocol"]["risk_level"] == "low"


@pytest.mark.parametrize("reward_id, user_id", [("missing", "user-1"), ("r-new", "someone-else")])
def test_get_unknown_or_foreign_reward_returns_404(client, seeded, reward_id, user_id):
    response = client.get(f"{API}/rewards/{reward_id}", params={"user_id": user_id})

    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"
