"""Initial schema - protocols, stakes, rewards, statistics, snapshots

Revision ID: 001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    op.create_table('protocols',
        sa.Column('id', sa.String(length=36), nullable=False, comment='Row identifier (UUID4)'),
        sa.Column('name', sa.String(length=100), nullable=False, comment='Display name'),
        sa.Column('apy', sa.Numeric(precision=8, scale=4), nullable=False, comment='Advertised annual percentage yield, in percent'),
        sa.Column('risk_level', sa.String(length=10), nullable=True, comment='Risk bucket (low, medium, high)'),
        sa.Column('tvl', sa.Numeric(precision=24, scale=8), nullable=False, comment='Total value locked'),
        sa.Column('min_stake', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('max_stake', sa.Numeric(precision=20, scale=8), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_protocols'),
    )

    op.create_table('stakes',
        sa.Column('id', sa.String(length=36), nullable=False, comment='Row identifier (UUID4)'),
        sa.Column('user_id', sa.String(length=64), nullable=False, comment='Owning user'),
        sa.Column('protocol_id', sa.String(length=36), nullable=False, comment='Protocol the stake is locked in'),
        sa.Column('amount', sa.Numeric(precision=20, scale=8), nullable=False, comment='Staked principal'),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('lock_period_days', sa.Integer(), nullable=False),
        sa.Column('compound_frequency', sa.String(length=10), nullable=False),
        sa.Column('last_compound_date', sa.DateTime(timezone=True), nullable=True, comment='Last time a compound reward was issued'),
        sa.Column('status', sa.String(length=10), nullable=False, comment='active, completed or cancelled'),
        *_timestamps(),
        sa.CheckConstraint('amount > 0', name='ck_stakes_amount_positive'),
        sa.ForeignKeyConstraint(['protocol_id'], ['protocols.id'], name='fk_stakes_protocol_id_protocols', ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id', name='pk_stakes'),
    )
    op.create_index('ix_stakes_user_id', 'stakes', ['user_id'])
    op.create_index('ix_stakes_status_end_date', 'stakes', ['status', 'end_date'])

    op.create_table('rewards',
        sa.Column('id', sa.String(length=36), nullable=False, comment='Row identifier (UUID4)'),
        sa.Column('stake_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('protocol_id', sa.String(length=36), nullable=False),
        sa.Column('amount', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('reward_type', sa.String(length=10), nullable=False, comment='staking or compound'),
        sa.Column('calculation_method', sa.String(length=10), nullable=False),
        sa.Column('apy_at_calculation', sa.Numeric(precision=8, scale=4), nullable=False),
        sa.Column('compound_frequency', sa.String(length=10), nullable=True),
        sa.Column('claimed', sa.Boolean(), nullable=False),
        sa.Column('claim_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('transaction_hash', sa.String(length=128), nullable=True),
        sa.Column('reward_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('period_key', sa.String(length=10), nullable=False, comment='YYYY-MM-DD for staking rewards, YYYY-Www for compound rewards'),
        sa.Column('metadata', sa.JSON(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('amount > 0', name='ck_rewards_amount_positive'),
        sa.ForeignKeyConstraint(['stake_id'], ['stakes.id'], name='fk_rewards_stake_id_stakes', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['protocol_id'], ['protocols.id'], name='fk_rewards_protocol_id_protocols', ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id', name='pk_rewards'),
        sa.UniqueConstraint('stake_id', 'reward_type', 'period_key', name='uq_rewards_stake_type_period'),
    )
    op.create_index('ix_rewards_user_id', 'rewards', ['user_id'])
    op.create_index('ix_rewards_stake_type_date', 'rewards', ['stake_id', 'reward_type', 'reward_date'])

    op.create_table('user_statistics',
        sa.Column('id', sa.String(length=36), nullable=False, comment='Row identifier (UUID4)'),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('period_type', sa.String(length=10), nullable=False),
        sa.Column('period_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('period_end', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total_staked_amount', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('total_rewards_earned', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('total_rewards_claimed', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('total_rewards_unclaimed', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('portfolio_value', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('portfolio_growth_percentage', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('average_apy', sa.Numeric(precision=8, scale=2), nullable=False),
        sa.Column('active_stakes_count', sa.Integer(), nullable=False),
        sa.Column('completed_stakes_count', sa.Integer(), nullable=False),
        sa.Column('new_stakes_count', sa.Integer(), nullable=False),
        sa.Column('total_protocols_used', sa.Integer(), nullable=False),
        sa.Column('risk_score', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('diversification_score', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('best_performing_protocol_id', sa.String(length=36), nullable=True),
        sa.Column('worst_performing_protocol_id', sa.String(length=36), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_user_statistics'),
        sa.UniqueConstraint('user_id', 'period_type', 'period_start', name='uq_user_statistics_period'),
    )
    op.create_index('ix_user_statistics_user_period', 'user_statistics', ['user_id', 'period_type'])

    op.create_table('protocol_performance',
        sa.Column('id', sa.String(length=36), nullable=False, comment='Row identifier (UUID4)'),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('protocol_id', sa.String(length=36), nullable=False),
        sa.Column('period_type', sa.String(length=10), nullable=False),
        sa.Column('period_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('period_end', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total_staked', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('total_rewards', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('actual_apy', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('expected_apy', sa.Numeric(precision=8, scale=4), nullable=False),
        sa.Column('performance_ratio', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('stakes_count', sa.Integer(), nullable=False),
        sa.Column('average_stake_duration', sa.Integer(), nullable=False, comment='Days'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['protocol_id'], ['protocols.id'], name='fk_protocol_performance_protocol_id_protocols', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_protocol_performance'),
        sa.UniqueConstraint('user_id', 'protocol_id', 'period_type', 'period_start', name='uq_protocol_performance_period'),
    )

    op.create_table('portfolio_snapshots',
        sa.Column('id', sa.String(length=36), nullable=False, comment='Row identifier (UUID4)'),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('snapshot_date', sa.Date(), nullable=False),
        sa.Column('total_portfolio_value', sa.Numeric(precision=20, scale=2), nullable=False),
        sa.Column('total_staked_amount', sa.Numeric(precision=20, scale=2), nullable=False),
        sa.Column('total_rewards_earned', sa.Numeric(precision=20, scale=2), nullable=False),
        sa.Column('total_rewards_claimed', sa.Numeric(precision=20, scale=2), nullable=False),
        sa.Column('total_rewards_unclaimed', sa.Numeric(precision=20, scale=2), nullable=False),
        sa.Column('active_stakes_count', sa.Integer(), nullable=False),
        sa.Column('protocol_distribution', sa.JSON(), nullable=False),
        sa.Column('risk_distribution', sa.JSON(), nullable=False),
        sa.Column('average_apy', sa.Numeric(precision=8, scale=2), nullable=False),
        sa.Column('portfolio_growth_24h', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('portfolio_growth_7d', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('portfolio_growth_30d', sa.Numeric(precision=12, scale=2), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_portfolio_snapshots'),
        sa.UniqueConstraint('user_id', 'snapshot_date', name='uq_portfolio_snapshots_user_date'),
    )
    op.create_index('ix_portfolio_snapshots_date', 'portfolio_snapshots', ['snapshot_date'])


def downgrade() -> None:
    op.drop_index('ix_portfolio_snapshots_date', table_name='portfolio_snapshots')
    op.drop_table('portfolio_snapshots')
    op.drop_table('protocol_performance')
    op.drop_index('ix_user_statistics_user_period', table_name='user_statistics')
    op.drop_table('user_statistics')
    op.drop_index('ix_rewards_stake_type_date', table_name='rewards')
    op.drop_index('ix_rewards_user_id', table_name='rewards')
    op.drop_table('rewards')
    op.drop_index('ix_stakes_status_end_date', table_name='stakes')
    op.drop_index('ix_stakes_user_id', table_name='stakes')
    op.drop_table('stakes')
    op.drop_table('protocols')
