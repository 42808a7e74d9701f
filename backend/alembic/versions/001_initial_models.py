"""initial_models

Revision ID: 001
Revises: 
Create Date: 2025-05-12 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create organizations table (payout profile embedded)
    op.create_table(
        'organizations',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False),
        sa.Column('payoneer_payee_id', sa.String(255), nullable=True),
        sa.Column('payout_status', sa.String(50), nullable=False, server_default='NOT_CONFIGURED'),
        sa.Column('tax_form_status', sa.String(50), nullable=False, server_default='NONE'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid', name='pk_organizations'),
        sa.UniqueConstraint('slug', name='uq_organizations_slug'),
    )

    # Create users table
    op.create_table(
        'users',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column('user_role', sa.String(50), nullable=False, server_default='member'),
        sa.Column('organization_id', sa.String(36), sa.ForeignKey('organizations.uuid'), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid', name='pk_users'),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )
    op.create_index('idx_user_organization_id', 'users', ['organization_id'])

    # Create podcasts / episodes / summaries (ownership chain for royalties)
    op.create_table(
        'podcasts',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('organization_id', sa.String(36), sa.ForeignKey('organizations.uuid'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid', name='pk_podcasts'),
    )
    op.create_index('idx_podcast_organization_id', 'podcasts', ['organization_id'])

    op.create_table(
        'episodes',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('podcast_id', sa.String(36), sa.ForeignKey('podcasts.uuid', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid', name='pk_episodes'),
    )
    op.create_index('idx_episode_podcast_id', 'episodes', ['podcast_id'])

    op.create_table(
        'summaries',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('episode_id', sa.String(36), sa.ForeignKey('episodes.uuid', ondelete='CASCADE'), nullable=False),
        sa.Column('variant', sa.String(50), nullable=False, server_default='short'),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('view_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('share_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid', name='pk_summaries'),
    )
    op.create_index('idx_summary_episode_id', 'summaries', ['episode_id'])
    op.create_index('idx_summary_created_at', 'summaries', ['created_at'])


def downgrade() -> None:
    op.drop_index('idx_summary_created_at', table_name='summaries')
    op.drop_index('idx_summary_episode_id', table_name='summaries')
    op.drop_table('summaries')
    op.drop_index('idx_episode_podcast_id', table_name='episodes')
    op.drop_table('episodes')
    op.drop_index('idx_podcast_organization_id', table_name='podcasts')
    op.drop_table('podcasts')
    op.drop_index('idx_user_organization_id', table_name='users')
    op.drop_table('users')
    op.drop_table('organizations')
