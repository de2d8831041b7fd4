"""Create tournament, team, wallet, ledger, withdrawal and deposit tables

Revision ID: 3f9c2a7d1b4e
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f9c2a7d1b4e'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade() -> None:
    op.create_table(
        'tournaments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('mode', sa.String(20), nullable=False),
        sa.Column('max_players', sa.Integer(), nullable=False),
        sa.Column('filled_spots', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('min_participants', sa.Integer(), nullable=True),
        sa.Column('entry_fee', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('prize_distribution', JSON, nullable=True),
        sa.Column('manual_prize_pool', JSON, nullable=True),
        sa.Column('current_prize_pool', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_prizes_distributed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('host_earnings_distributed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('host_earnings_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('host_id', sa.String(128), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('ttl', sa.DateTime(), nullable=True),
        sa.Column('participants', JSON, nullable=True),
        sa.Column('participant_uids', JSON, nullable=True),
        sa.Column('winners', JSON, nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        # Prize pool can never go negative
        sa.CheckConstraint('current_prize_pool >= 0', name='ck_tournaments_pool_non_negative'),
        sa.CheckConstraint('filled_spots <= max_players', name='ck_tournaments_capacity'),
    )
    op.create_index('ix_tournaments_status', 'tournaments', ['status'])
    op.create_index('ix_tournaments_host_id', 'tournaments', ['host_id'])
    op.create_index('ix_tournaments_start_date', 'tournaments', ['start_date'])
    op.create_index('ix_tournaments_ttl', 'tournaments', ['ttl'])

    op.create_table(
        'teams',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('tournament_id', sa.String(36), sa.ForeignKey('tournaments.id', ondelete='CASCADE')),
        sa.Column('leader_id', sa.String(128), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('tag', sa.String(20), nullable=False),
        sa.Column('members', JSON, nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_teams_tournament_id', 'teams', ['tournament_id'])
    op.create_index('ix_teams_leader_id', 'teams', ['leader_id'])

    op.create_table(
        'wallets',
        sa.Column('user_id', sa.String(128), primary_key=True),
        sa.Column('tournament_credits', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('host_credits', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('earnings', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_purchased_tournament_credits', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_purchased_host_credits', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint(
            'tournament_credits >= 0 AND host_credits >= 0 AND earnings >= 0',
            name='ck_wallets_non_negative'
        ),
    )

    op.create_table(
        'credit_transactions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('balance_before', sa.Integer(), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=False),
        sa.Column('wallet_type', sa.String(30), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('transaction_details', JSON, nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_credit_transactions_user_id', 'credit_transactions', ['user_id'])
    op.create_index('ix_credit_transactions_created_at', 'credit_transactions', ['created_at'])

    op.create_table(
        'withdrawal_requests',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('commission', sa.Integer(), nullable=False),
        sa.Column('final_amount', sa.Integer(), nullable=False),
        sa.Column('upi_id', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('requested_at', sa.DateTime(), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_withdrawal_requests_user_id', 'withdrawal_requests', ['user_id'])
    op.create_index('ix_withdrawal_requests_status', 'withdrawal_requests', ['status'])

    op.create_table(
        'payment_deposits',
        sa.Column('order_id', sa.String(255), primary_key=True),
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('package_type', sa.String(20), nullable=False),
        sa.Column('credits_amount', sa.Integer(), nullable=False),
        sa.Column('payment_id', sa.String(255), nullable=True),
        sa.Column('transaction_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_payment_deposits_user_id', 'payment_deposits', ['user_id'])


def downgrade() -> None:
    op.drop_table('payment_deposits')
    op.drop_table('withdrawal_requests')
    op.drop_table('credit_transactions')
    op.drop_table('wallets')
    op.drop_table('teams')
    op.drop_table('tournaments')
