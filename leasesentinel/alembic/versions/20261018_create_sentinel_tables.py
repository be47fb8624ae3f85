"""create sentinels and dispatch_logs tables

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import advanced_alchemy.types


# revision identifiers, used by Alembic.
revision: str = '1a2b3c4d5e6f'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'sentinels',
        sa.Column('id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('owner', sa.String(length=255), nullable=False),
        sa.Column('event_name', sa.String(length=255), nullable=False),
        sa.Column('trigger_date', sa.Date(), nullable=False),
        sa.Column('original_text', sa.Text(), nullable=False),
        sa.Column('notification_method', sa.String(length=20), nullable=False, server_default='custom'),
        sa.Column('notification_target', sa.String(length=1024), nullable=False),
        sa.Column('status', sa.String(length=10), nullable=False, server_default='PENDING'),
        sa.Column('created_at', advanced_alchemy.types.datetime.DateTimeUTC(timezone=True), nullable=False),
        sa.Column('updated_at', advanced_alchemy.types.datetime.DateTimeUTC(timezone=True), nullable=False),
        sa.Column('sa_orm_sentinel', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sentinels_owner', 'sentinels', ['owner'])
    op.create_index('ix_sentinels_trigger_date_status', 'sentinels', ['trigger_date', 'status'])

    op.create_table(
        'dispatch_logs',
        sa.Column('id', advanced_alchemy.types.guid.GUID(length=16), nullable=False),
        sa.Column('sentinel_id', sa.Uuid(), nullable=False),
        sa.Column('fired_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('outcome', sa.String(length=10), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('created_at', advanced_alchemy.types.datetime.DateTimeUTC(timezone=True), nullable=False),
        sa.Column('updated_at', advanced_alchemy.types.datetime.DateTimeUTC(timezone=True), nullable=False),
        sa.Column('sa_orm_sentinel', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_dispatch_logs_sentinel_id', 'dispatch_logs', ['sentinel_id'])


def downgrade() -> None:
    op.drop_index('ix_dispatch_logs_sentinel_id', table_name='dispatch_logs')
    op.drop_table('dispatch_logs')
    op.drop_index('ix_sentinels_trigger_date_status', table_name='sentinels')
    op.drop_index('ix_sentinels_owner', table_name='sentinels')
    op.drop_table('sentinels')
