"""tickets and analytics events

Revision ID: 0001_tickets
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa

revision = '0001_tickets'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'tickets',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('object_path', sa.String(length=512), nullable=False),
        sa.Column('pin_hash', sa.String(length=128), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('reveal_seconds', sa.Integer(), nullable=False, server_default='15'),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_attempts', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('unlocked_at', sa.DateTime(), nullable=True),
        sa.Column('last_failed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_tickets_token', 'tickets', ['token'], unique=True)
    op.create_index('ix_tickets_expires_at', 'tickets', ['expires_at'])
    op.create_index('ix_tickets_used', 'tickets', ['used'])

    op.create_table(
        'analytics_events',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_type', sa.String(length=32), nullable=False),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip', sa.String(length=64), nullable=True),
        sa.Column('device_type', sa.String(length=16), nullable=False, server_default='desktop'),
        sa.Column('source', sa.String(length=32), nullable=False, server_default='web'),
        sa.Column('meta', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_analytics_events_event_type', 'analytics_events', ['event_type'])


def downgrade():
    op.drop_index('ix_analytics_events_event_type', table_name='analytics_events')
    op.drop_table('analytics_events')
    op.drop_index('ix_tickets_used', table_name='tickets')
    op.drop_index('ix_tickets_expires_at', table_name='tickets')
    op.drop_index('ix_tickets_token', table_name='tickets')
    op.drop_table('tickets')
