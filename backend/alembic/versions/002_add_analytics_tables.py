"""Add analytics events and daily rollups.

Revision ID: 002
Revises: 001
Create Date: 2025-05-20
"""
from alembic import op
import sqlalchemy as sa

revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'analytics_events',
        sa.Column('uuid', sa.String(36), primary_key=True),
        sa.Column('summary_id', sa.String(36), sa.ForeignKey('summaries.uuid', ondelete='CASCADE'), nullable=False),
        sa.Column('event_type', sa.String(20), nullable=False),
        sa.Column('occurred_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('duration_ms', sa.Integer(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.String(512), nullable=True),
        sa.Column('referrer', sa.String(1024), nullable=True),
    )
    op.create_index('idx_analytics_event_summary_occurred', 'analytics_events', ['summary_id', 'occurred_at'])

    op.create_table(
        'daily_analytics',
        sa.Column('uuid', sa.String(36), primary_key=True),
        sa.Column('summary_id', sa.String(36), sa.ForeignKey('summaries.uuid', ondelete='CASCADE'), nullable=False),
        sa.Column('day', sa.Date(), nullable=False),
        sa.Column('views', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('shares', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('clicks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('plays', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('listen_ms_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completion_rate', sa.Float(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('summary_id', 'day', name='uq_daily_analytics_summary_day'),
    )
    op.create_index('idx_daily_analytics_day', 'daily_analytics', ['day'])


def downgrade():
    op.drop_index('idx_daily_analytics_day', table_name='daily_analytics')
    op.drop_table('daily_analytics')
    op.drop_index('idx_analytics_event_summary_occurred', table_name='analytics_events')
    op.drop_table('analytics_events')
