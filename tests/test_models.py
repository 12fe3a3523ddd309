"""
Test the declared schema: tables, idempotency keys and column names.
"""

from sqlalchemy import CheckConstraint, UniqueConstraint

from stakeflow.gateway import COLLECTIONS
from stakeflow.models import BaseModel, Reward, Stake


def unique_constraints(table_name):
    table = BaseModel.metadata.tables[table_name]
    return {
        constraint.name: tuple(column.name for column in constraint.columns)
        for constraint in table.constraints
        if isinstance(constraint, UniqueConstraint)
    }


def test_every_collection_has_a_table():
    assert set(COLLECTIONS) <= set(BaseModel.metadata.tables)


def test_idempotency_keys():
    assert unique_constraints("rewards") == {
        "uq_rewards_stake_type_period": ("stake_id", "reward_type", "period_key"),
    }
    assert unique_constraints("user_statistics") == {
        "uq_user_statistics_period": ("user_id", "period_type", "period_start"),
    }
    assert unique_constraints("protocol_performance") == {
        "uq_protocol_performance_period": ("user_id", "protocol_id", "period_type", "period_start"),
    }
    assert unique_constraints("portfolio_snapshots") == {
        "uq_portfolio_snapshots_user_date": ("user_id", "snapshot_date"),
    }


def test_amounts_must_be_positive():
    for model in (Stake, Reward):
        checks = [c for c in model.__table__.constraints if isinstance(c, CheckConstraint)]
        assert [str(c.sqltext) for c in checks] == ["amount > 0"]


def test_reward_metadata_attribute_maps_to_metadata_column():
    reward = Reward(
        id="r1",
        stake_id="s1",
        user_id="user-1",
        protocol_id="alpha",
        amount=1,
        reward_type="staking",
        calculation_method="daily",
        apy_at_calculation=10,
        claimed=False,
        period_key="2024-06-11",
        reward_metadata={"daily_rate": "0.0003"},
    )

    assert "metadata" in Reward.__table__.c
    assert reward.to_dict()["metadata"] == {"daily_rate": "0.0003"}
