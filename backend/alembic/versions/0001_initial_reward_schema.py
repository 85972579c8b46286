"""initial reward schema

Revision ID: 0001_initial_reward_schema
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '0001_initial_reward_schema'
down_revision = None
branch_labels = None
depends_on = None

UUID = postgresql.UUID(as_uuid=False)
JSONB = postgresql.JSONB


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Users, ledger, games, gacha, quests, daily bonus and audit tables."""
    op.create_table(
        'users',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('email', sa.String(255), nullable=True, unique=True),
        sa.Column('username', sa.String(50), nullable=False, unique=True),
        sa.Column('display_name', sa.String(100), nullable=True),
        sa.Column('points', sa.BigInteger, nullable=False, server_default='0', comment='Current points balance (never negative)'),
        sa.Column('level', sa.Integer, nullable=False, server_default='1'),
        sa.Column('experience', sa.BigInteger, nullable=False, server_default='0'),
        sa.Column('login_streak', sa.Integer, nullable=False, server_default='0'),
        sa.Column('last_daily_bonus_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_premium', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('is_banned', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('is_admin', sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.CheckConstraint('points >= 0', name='ck_users_points_non_negative'),
        sa.CheckConstraint('level >= 1', name='ck_users_level_positive'),
        sa.CheckConstraint('experience >= 0', name='ck_users_experience_non_negative'),
    )
    op.create_index('ix_users_username', 'users', ['username'])
    op.create_index('ix_users_created_at', 'users', ['created_at'])

    # Ledger
    point_tx_type = postgresql.ENUM('earn', 'spend', 'bonus', 'refund', 'admin', name='point_transaction_type')
    op.create_table(
        'point_transactions',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('type', point_tx_type, nullable=False),
        sa.Column('source', sa.String(30), nullable=False),
        sa.Column('amount', sa.BigInteger, nullable=False, comment='Transaction amount (+credit/-debit)'),
        sa.Column('balance_before', sa.BigInteger, nullable=False),
        sa.Column('balance_after', sa.BigInteger, nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('metadata', JSONB, nullable=False, server_default='{}'),
        sa.Column('reference_id', sa.String(64), nullable=True, comment='Related pull/session/quest id'),
        sa.Column('admin_id', UUID, sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('admin_note', sa.Text, nullable=True),
        sa.Column('integrity_hash', sa.String(64), nullable=False, comment='SHA-256 hash for tamper detection'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_point_transactions_user_id', 'point_transactions', ['user_id'])
    op.create_index('ix_point_transactions_type', 'point_transactions', ['type'])
    op.create_index('ix_point_transactions_source', 'point_transactions', ['source'])
    op.create_index('ix_point_transactions_created_at', 'point_transactions', ['created_at'])
    op.create_index('ix_point_tx_user_created', 'point_transactions', ['user_id', 'created_at'])
    op.create_index('ix_point_tx_user_source_created', 'point_transactions', ['user_id', 'source', 'created_at'])

    # Games
    op.create_table(
        'games',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False, unique=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('config', JSONB, nullable=False, server_default='{}'),
        sa.Column('daily_limit', sa.Integer, nullable=True, comment='Plays per user per reward day (NULL = unlimited)'),
        sa.Column('min_points', sa.Integer, nullable=False, server_default='0'),
        sa.Column('max_points', sa.Integer, nullable=False, server_default='1000'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('requires_premium', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('sort_order', sa.Integer, nullable=False, server_default='0'),
        *_timestamps(),
    )
    op.create_index('ix_games_slug', 'games', ['slug'])
    op.create_index('ix_games_type', 'games', ['type'])

    op.create_table(
        'game_sessions',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('game_id', UUID, sa.ForeignKey('games.id', ondelete='CASCADE'), nullable=False),
        sa.Column('score', sa.Integer, nullable=False, server_default='0'),
        sa.Column('points_earned', sa.Integer, nullable=False, server_default='0'),
        sa.Column('duration_seconds', sa.Integer, nullable=True),
        sa.Column('game_data', JSONB, nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_game_sessions_user_id', 'game_sessions', ['user_id'])
    op.create_index('ix_game_sessions_game_id', 'game_sessions', ['game_id'])
    op.create_index('ix_game_sessions_user_game_created', 'game_sessions', ['user_id', 'game_id', 'created_at'])

    # Gacha
    op.create_table(
        'gacha_machines',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False, unique=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('type', sa.String(20), nullable=False, server_default='standard'),
        sa.Column('cost_type', sa.String(30), nullable=False, server_default='points'),
        sa.Column('cost_amount', sa.Integer, nullable=False),
        sa.Column('pull_rates', JSONB, nullable=False, server_default='{}', comment='{"rates": {rarity: probability}}'),
        sa.Column('daily_limit', sa.Integer, nullable=True),
        sa.Column('requires_premium', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('is_limited', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('available_from', sa.DateTime(timezone=True), nullable=True),
        sa.Column('available_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sort_order', sa.Integer, nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint('cost_amount >= 0', name='ck_gacha_machines_cost_non_negative'),
    )
    op.create_index('ix_gacha_machines_slug', 'gacha_machines', ['slug'])

    op.create_table(
        'gacha_items',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False, unique=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('category', sa.String(30), nullable=False),
        sa.Column('rarity', sa.String(20), nullable=False),
        sa.Column('point_value', sa.Integer, nullable=True),
        sa.Column('icon_emoji', sa.String(16), nullable=True),
        sa.Column('rarity_color', sa.String(16), nullable=False, server_default='#94a3b8'),
        sa.Column('is_tradeable', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('is_consumable', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('max_stack', sa.Integer, nullable=False, server_default='99'),
        *_timestamps(),
    )
    op.create_index('ix_gacha_items_rarity', 'gacha_items', ['rarity'])

    op.create_table(
        'gacha_pools',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('gacha_machine_id', UUID, sa.ForeignKey('gacha_machines.id', ondelete='CASCADE'), nullable=False),
        sa.Column('gacha_item_id', UUID, sa.ForeignKey('gacha_items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('drop_rate', sa.Float, nullable=False, comment='Absolute probability across the whole pool'),
        sa.Column('weight', sa.Integer, nullable=False, server_default='1', comment='Relative weight among items of the same rarity'),
        sa.Column('is_jackpot', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.UniqueConstraint('gacha_machine_id', 'gacha_item_id', name='uq_gacha_pool_machine_item'),
        sa.CheckConstraint('drop_rate >= 0', name='ck_gacha_pools_drop_rate_non_negative'),
    )
    op.create_index('ix_gacha_pools_gacha_machine_id', 'gacha_pools', ['gacha_machine_id'])

    op.create_table(
        'gacha_pulls',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('gacha_machine_id', UUID, sa.ForeignKey('gacha_machines.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('cost_paid', sa.BigInteger, nullable=False),
        sa.Column('currency_type', sa.String(30), nullable=False, server_default='points'),
        sa.Column('items_received', JSONB, nullable=False, server_default='[]'),
        sa.Column('total_value', sa.BigInteger, nullable=False, server_default='0'),
        sa.Column('pull_count', sa.Integer, nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_gacha_pulls_user_id', 'gacha_pulls', ['user_id'])
    op.create_index('ix_gacha_pulls_user_machine_created', 'gacha_pulls', ['user_id', 'gacha_machine_id', 'created_at'])

    op.create_table(
        'user_items',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('gacha_item_id', UUID, sa.ForeignKey('gacha_items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False, server_default='1'),
        sa.Column('is_equipped', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('obtained_from', sa.String(30), nullable=False, server_default='gacha'),
        sa.Column('obtained_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'gacha_item_id', name='uq_user_item'),
        sa.CheckConstraint('quantity >= 0', name='ck_user_items_quantity_non_negative'),
    )
    op.create_index('ix_user_items_user_id', 'user_items', ['user_id'])

    # Quests
    op.create_table(
        'quest_templates',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False, unique=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('difficulty', sa.String(10), nullable=False, server_default='normal'),
        sa.Column('conditions', JSONB, nullable=False, server_default='{}'),
        sa.Column('rewards', JSONB, nullable=False, server_default='{}'),
        sa.Column('duration_hours', sa.Integer, nullable=True),
        sa.Column('sort_order', sa.Integer, nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('requires_premium', sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index('ix_quest_templates_type', 'quest_templates', ['type'])
    op.create_index('ix_quest_templates_category', 'quest_templates', ['category'])

    op.create_table(
        'user_quests',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('quest_template_id', UUID, sa.ForeignKey('quest_templates.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('current_value', sa.Integer, nullable=False, server_default='0'),
        sa.Column('target_value', sa.Integer, nullable=False),
        sa.Column('assigned_date', sa.Date, nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rewards_claimed', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('points_earned', sa.Integer, nullable=False, server_default='0'),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'quest_template_id', 'assigned_date', name='uq_user_quest_per_day'),
    )
    op.create_index('ix_user_quests_user_id', 'user_quests', ['user_id'])
    op.create_index('ix_user_quests_user_status', 'user_quests', ['user_id', 'status'])

    # One claim per user per reward day
    op.create_table(
        'daily_bonuses',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('bonus_date', sa.Date, nullable=False),
        sa.Column('streak_days', sa.Integer, nullable=False, server_default='1'),
        sa.Column('reward_amount', sa.Integer, nullable=False, server_default='0'),
        sa.Column('reward_type', sa.String(20), nullable=False, server_default='daily'),
        sa.Column('claimed_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('user_id', 'bonus_date', name='uq_user_bonus_date'),
    )
    op.create_index('ix_daily_bonuses_user_id', 'daily_bonuses', ['user_id'])
    op.create_index('ix_daily_bonus_user_date', 'daily_bonuses', ['user_id', 'bonus_date'])

    op.create_table(
        'audit_logs',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('actor_user_id', UUID, sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('context', JSONB, nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_audit_logs_actor_user_id', 'audit_logs', ['actor_user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])


def downgrade() -> None:
    """Drop every reward table."""
    for table in (
        'audit_logs',
        'daily_bonuses',
        'user_quests',
        'quest_templates',
        'user_items',
        'gacha_pulls',
        'gacha_pools',
        'gacha_items',
        'gacha_machines',
        'game_sessions',
        'games',
        'point_transactions',
        'users',
    ):
        op.drop_table(table)
    sa.Enum(name='point_transaction_type').drop(op.get_bind(), checkfirst=True)
