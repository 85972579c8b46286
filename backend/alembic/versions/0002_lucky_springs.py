"""lucky springs

Revision ID: 0002_lucky_springs
Revises: 0001_initial_reward_schema
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '0002_lucky_springs'
down_revision = '0001_initial_reward_schema'
branch_labels = None
depends_on = None

UUID = postgresql.UUID(as_uuid=False)
JSONB = postgresql.JSONB


def upgrade() -> None:
    """Create lucky_springs and spring_visits."""
    op.create_table(
        'lucky_springs',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False, unique=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('theme', sa.String(20), nullable=False, server_default='water'),
        sa.Column('level_requirement', sa.Integer, nullable=False, server_default='1'),
        sa.Column('premium_only', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('daily_visits', sa.Integer, nullable=False, server_default='1', comment='Visits per user per reward day'),
        sa.Column('reward_tiers', JSONB, nullable=False, server_default='[]'),
        sa.Column('color_scheme', JSONB, nullable=False, server_default='{}'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('sort_order', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_lucky_springs_slug', 'lucky_springs', ['slug'])
    op.create_index('ix_lucky_springs_created_at', 'lucky_springs', ['created_at'])

    op.create_table(
        'spring_visits',
        sa.Column('id', UUID, primary_key=True),
        sa.Column('user_id', UUID, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('spring_id', UUID, sa.ForeignKey('lucky_springs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('points_earned', sa.Integer, nullable=False, server_default='0'),
        sa.Column('reward_tier', sa.String(20), nullable=False),
        sa.Column('visit_date', sa.Date, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_spring_visits_user_id', 'spring_visits', ['user_id'])
    op.create_index(
        'ix_spring_visits_user_spring_created',
        'spring_visits',
        ['user_id', 'spring_id', 'created_at'],
    )


def downgrade() -> None:
    """Drop lucky spring tables."""
    op.drop_table('spring_visits')
    op.drop_table('lucky_springs')
