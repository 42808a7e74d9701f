"""Add royalty statements and line items.

Revision ID: 003
Revises: 002
Create Date: 2025-06-02
"""
from alembic import op
import sqlalchemy as sa

revision = '003'
down_revision = '002'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'royalty_statements',
        sa.Column('uuid', sa.String(36), primary_key=True),
        sa.Column('organization_id', sa.String(36), sa.ForeignKey('organizations.uuid'), nullable=False),
        sa.Column('period_start', sa.DateTime(), nullable=False),
        sa.Column('period_end', sa.DateTime(), nullable=False),
        sa.Column('total_views', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_shares', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('calculated_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('payment_status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('external_transaction_id', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint(
            'organization_id', 'period_start', 'period_end',
            name='uq_royalty_statements_organization_period',
        ),
    )
    op.create_index('idx_royalty_statement_payment_status', 'royalty_statements', ['payment_status'])

    op.create_table(
        'royalty_line_items',
        sa.Column('uuid', sa.String(36), primary_key=True),
        sa.Column('statement_id', sa.String(36), sa.ForeignKey('royalty_statements.uuid', ondelete='CASCADE'), nullable=False),
        sa.Column('summary_id', sa.String(36), sa.ForeignKey('summaries.uuid', ondelete='CASCADE'), nullable=False),
        sa.Column('views', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('shares', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
    )
    op.create_index('idx_royalty_line_item_statement_id', 'royalty_line_items', ['statement_id'])


def downgrade():
    op.drop_index('idx_royalty_line_item_statement_id', table_name='royalty_line_items')
    op.drop_table('royalty_line_items')
    op.drop_index('idx_royalty_statement_payment_status', table_name='royalty_statements')
    op.drop_table('royalty_statements')
