"""add client metrics tables

Revision ID: 3c9e5a1f7b20
Revises: 
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3c9e5a1f7b20'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Hourly yes/no counts
    op.create_table('client_metrics_env',
        sa.Column('feature_name', sa.String(length=255), nullable=False),
        sa.Column('app_name', sa.String(length=255), nullable=False),
        sa.Column('environment', sa.String(length=100), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('yes', sa.BigInteger(), nullable=False),
        sa.Column('no', sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint('feature_name', 'app_name', 'environment', 'timestamp')
    )
    # Seen-toggles-for-app lookups
    op.create_index('idx_client_metrics_env_app_name', 'client_metrics_env', ['app_name'], unique=False)
    # Window reads and retention sweep
    op.create_index('idx_client_metrics_env_timestamp', 'client_metrics_env', ['timestamp'], unique=False)

    # Hourly variant counts
    op.create_table('client_metrics_env_variants',
        sa.Column('feature_name', sa.String(length=255), nullable=False),
        sa.Column('app_name', sa.String(length=255), nullable=False),
        sa.Column('environment', sa.String(length=100), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('variant', sa.String(length=255), nullable=False),
        sa.Column('count', sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint('feature_name', 'app_name', 'environment', 'timestamp', 'variant')
    )
    op.create_index('idx_client_metrics_env_variants_timestamp', 'client_metrics_env_variants', ['timestamp'], unique=False)

    # Lifetime totals
    op.create_table('client_metrics_total',
        sa.Column('feature_name', sa.String(length=255), nullable=False),
        sa.Column('environment', sa.String(length=100), nullable=False),
        sa.Column('total', sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint('feature_name', 'environment')
    )

    # Applied batch idempotency tokens
    op.create_table('client_metrics_batches',
        sa.Column('app_name', sa.String(length=255), nullable=False),
        sa.Column('batch_id', sa.String(length=255), nullable=False),
        sa.Column('applied_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('app_name', 'batch_id')
    )


def downgrade() -> None:
    op.drop_table('client_metrics_batches')
    op.drop_table('client_metrics_total')
    op.drop_index('idx_client_metrics_env_variants_timestamp', table_name='client_metrics_env_variants')
    op.drop_table('client_metrics_env_variants')
    op.drop_index('idx_client_metrics_env_timestamp', table_name='client_metrics_env')
    op.drop_index('idx_client_metrics_env_app_name', table_name='client_metrics_env')
    op.drop_table('client_metrics_env')
