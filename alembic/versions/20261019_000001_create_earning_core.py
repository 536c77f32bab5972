"""Create earning core tables.

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create plans, accounts, profiles, ledger, completions, commissions and tier changes."""

    op.create_table(
        'plans',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('code', sa.String(32), nullable=False, comment='Stable slug used in configuration'),
        sa.Column('name', sa.String(64), nullable=False, comment='Display name only'),
        sa.Column('price', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('daily_task_quota', sa.Integer(), nullable=False),
        sa.Column('reward_per_task', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('duration_days', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('is_trial', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_plans'),
        sa.UniqueConstraint('code', name='uq_plans_code'),
        sa.UniqueConstraint('name', name='uq_plans_name'),
        sa.CheckConstraint('price >= 0', name='ck_plans_price_non_negative'),
        sa.CheckConstraint('daily_task_quota >= 0', name='ck_plans_quota_non_negative'),
        sa.CheckConstraint('reward_per_task >= 0', name='ck_plans_reward_non_negative'),
        sa.CheckConstraint('duration_days >= 0', name='ck_plans_duration_non_negative'),
    )
    op.create_index('ix_plans_code', 'plans', ['code'])
    op.create_index('ix_plans_is_active', 'plans', ['is_active'])

    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('external_ref', sa.String(255), nullable=False, comment='Immutable identity from the auth layer'),
        sa.Column('display_handle', sa.String(64), nullable=False),
        sa.Column('plan_id', sa.Integer(), nullable=False),
        sa.Column('daily_task_quota', sa.Integer(), nullable=False, comment='Cached copy of plans.daily_task_quota'),
        sa.Column('referral_code', sa.String(20), nullable=False),
        sa.Column('referred_by_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('ledger_frozen', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('frozen_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_accounts'),
        sa.ForeignKeyConstraint(['plan_id'], ['plans.id'], name='fk_accounts_plan_id_plans', ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['referred_by_id'], ['accounts.id'], name='fk_accounts_referred_by_id_accounts', ondelete='SET NULL'),
        sa.UniqueConstraint('external_ref', name='uq_accounts_external_ref'),
        sa.UniqueConstraint('display_handle', name='uq_accounts_display_handle'),
        sa.UniqueConstraint('referral_code', name='uq_accounts_referral_code'),
        sa.CheckConstraint('daily_task_quota >= 0', name='ck_accounts_daily_task_quota_non_negative'),
    )
    op.create_index('ix_accounts_external_ref', 'accounts', ['external_ref'])
    op.create_index('ix_accounts_plan_id', 'accounts', ['plan_id'])
    op.create_index('ix_accounts_referral_code', 'accounts', ['referral_code'])
    op.create_index('ix_accounts_referred_by_id', 'accounts', ['referred_by_id'])
    op.create_index('ix_accounts_ledger_frozen', 'accounts', ['ledger_frozen'])

    op.create_table(
        'profiles',
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('trial_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('trial_start_date', sa.Date(), nullable=True),
        sa.Column('trial_end_date', sa.Date(), nullable=True, comment='Last operative day of the trial'),
        sa.Column('earning_suspended', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('total_earnings', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('income_balance', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('personal_balance', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('total_deposited', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('tasks_completed_today', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_reset_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('account_id', name='pk_profiles'),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], name='fk_profiles_account_id_accounts', ondelete='CASCADE'),
        sa.CheckConstraint('income_balance >= 0', name='ck_profiles_income_balance_non_negative'),
        sa.CheckConstraint('personal_balance >= 0', name='ck_profiles_personal_balance_non_negative'),
        sa.CheckConstraint('tasks_completed_today >= 0', name='ck_profiles_tasks_completed_today_non_negative'),
    )
    op.create_index('ix_profiles_trial_active', 'profiles', ['trial_active'])
    op.create_index('ix_profiles_trial_end_date', 'profiles', ['trial_end_date'])

    op.create_table(
        'task_completions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('task_id', sa.String(64), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('completion_date', sa.Date(), nullable=False, comment='Operative day (UTC)'),
        sa.Column('reward_amount', sa.DECIMAL(18, 8), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_task_completions'),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], name='fk_task_completions_account_id_accounts', ondelete='CASCADE'),
        sa.UniqueConstraint('account_id', 'task_id', 'completion_date', name='uq_task_completions_account_task_day'),
    )
    op.create_index('idx_task_completions_account_day', 'task_completions', ['account_id', 'completion_date'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('wallet', sa.String(16), nullable=False),
        sa.Column('tx_type', sa.String(32), nullable=False),
        sa.Column('amount', sa.DECIMAL(18, 8), nullable=False, comment='Signed: credits positive, debits negative'),
        sa.Column('balance_before', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('balance_after', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('reference_type', sa.String(32), nullable=True),
        sa.Column('reference', sa.String(255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_transactions'),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], name='fk_transactions_account_id_accounts', ondelete='CASCADE'),
        sa.UniqueConstraint('account_id', 'wallet', 'tx_type', 'reference', name='uq_transactions_account_wallet_type_reference'),
    )
    op.create_index('ix_transactions_tx_type', 'transactions', ['tx_type'])
    op.create_index('idx_transactions_account_created', 'transactions', ['account_id', 'created_at'])
    op.create_index('idx_transactions_account_wallet', 'transactions', ['account_id', 'wallet', 'id'])

    op.create_table(
        'referral_commissions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('referred_id', sa.Integer(), nullable=False),
        sa.Column('source_ref', sa.String(255), nullable=False),
        sa.Column('event_type', sa.String(32), nullable=False),
        sa.Column('source_amount', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('rate', sa.DECIMAL(6, 4), nullable=False),
        sa.Column('amount', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('depth', sa.Integer(), nullable=False, comment='1 = direct referrer'),
        sa.Column('transaction_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_referral_commissions'),
        sa.ForeignKeyConstraint(['referrer_id'], ['accounts.id'], name='fk_referral_commissions_referrer_id_accounts', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['referred_id'], ['accounts.id'], name='fk_referral_commissions_referred_id_accounts', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id'], name='fk_referral_commissions_transaction_id_transactions', ondelete='SET NULL'),
        sa.UniqueConstraint('source_ref', 'referrer_id', 'depth', name='uq_referral_commissions_source_referrer_depth'),
        sa.CheckConstraint('depth >= 1', name='ck_referral_commissions_depth_positive'),
        sa.CheckConstraint('amount > 0', name='ck_referral_commissions_amount_positive'),
    )
    op.create_index('ix_referral_commissions_referrer_id', 'referral_commissions', ['referrer_id'])
    op.create_index('ix_referral_commissions_referred_id', 'referral_commissions', ['referred_id'])

    op.create_table(
        'tier_changes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('from_plan_id', sa.Integer(), nullable=True),
        sa.Column('to_plan_id', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(32), nullable=False),
        sa.Column('source_ref', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_tier_changes'),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], name='fk_tier_changes_account_id_accounts', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['from_plan_id'], ['plans.id'], name='fk_tier_changes_from_plan_id_plans', ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['to_plan_id'], ['plans.id'], name='fk_tier_changes_to_plan_id_plans', ondelete='RESTRICT'),
        sa.UniqueConstraint('account_id', 'source_ref', name='uq_tier_changes_account_source_ref'),
    )
    op.create_index('idx_tier_changes_account_created', 'tier_changes', ['account_id', 'created_at'])


def downgrade() -> None:
    """Drop earning core tables."""
    op.drop_index('idx_tier_changes_account_created', table_name='tier_changes')
    op.drop_table('tier_changes')

    op.drop_index('ix_referral_commissions_referred_id', table_name='referral_commissions')
    op.drop_index('ix_referral_commissions_referrer_id', table_name='referral_commissions')
    op.drop_table('referral_commissions')

    op.drop_index('idx_transactions_account_wallet', table_name='transactions')
    op.drop_index('idx_transactions_account_created', table_name='transactions')
    op.drop_index('ix_transactions_tx_type', table_name='transactions')
    op.drop_table('transactions')

    op.drop_index('idx_task_completions_account_day', table_name='task_completions')
    op.drop_table('task_completions')

    op.drop_index('ix_profiles_trial_end_date', table_name='profiles')
    op.drop_index('ix_profiles_trial_active', table_name='profiles')
    op.drop_table('profiles')

    op.drop_index('ix_accounts_ledger_frozen', table_name='accounts')
    op.drop_index('ix_accounts_referred_by_id', table_name='accounts')
    op.drop_index('ix_accounts_referral_code', table_name='accounts')
    op.drop_index('ix_accounts_plan_id', table_name='accounts')
    op.drop_index('ix_accounts_external_ref', table_name='accounts')
    op.drop_table('accounts')

    op.drop_index('ix_plans_is_active', table_name='plans')
    op.drop_index('ix_plans_code', table_name='plans')
    op.drop_table('plans')
