"""initial schema: users, beats, orders, downloads, webhook_events

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-01-18 10:12:41.208113

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


user_role = sa.Enum('user', 'admin', name='userrole')
license_type = sa.Enum('basic', 'standard', 'pro', 'unlimited', 'exclusive', name='licensetype')
order_status = sa.Enum('pending', 'completed', 'failed', 'refunded', name='orderstatus')


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('purchases', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'beats',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('bpm', sa.Integer(), nullable=False),
        sa.Column('musical_key', sa.String(32), nullable=False),
        sa.Column('genres', sa.JSON(), nullable=False),
        sa.Column('moods', sa.JSON(), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('preview_key', sa.String(512), nullable=True),
        sa.Column('cover_key', sa.String(512), nullable=True),
        sa.Column('files', sa.JSON(), nullable=False),
        sa.Column('waveform', sa.JSON(), nullable=False),
        sa.Column('licenses', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('play_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('sales_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_beats_id', 'beats', ['id'])
    op.create_index('ix_beats_title', 'beats', ['title'])
    op.create_index('ix_beats_bpm', 'beats', ['bpm'])
    op.create_index('ix_beats_is_active', 'beats', ['is_active'])

    op.create_table(
        'orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_number', sa.String(32), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('total_amount', sa.Integer(), nullable=False),
        sa.Column('stripe_payment_id', sa.String(255), nullable=True),
        sa.Column('stripe_session_id', sa.String(255), nullable=False),
        sa.Column('status', order_status, nullable=False),
        sa.Column('license_contract', sa.String(512), nullable=True),
        sa.Column('delivery_email', sa.String(255), nullable=False),
        sa.Column('locale', sa.String(8), server_default='en', nullable=False),
        sa.Column('is_guest_order', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('guest_email', sa.String(255), nullable=True),
        sa.Column('download_token', sa.String(64), nullable=True),
        sa.Column('download_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('download_expiry', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_orders_id', 'orders', ['id'])
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_stripe_payment_id', 'orders', ['stripe_payment_id'])
    op.create_index('ix_orders_stripe_session_id', 'orders', ['stripe_session_id'], unique=True)
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_delivery_email', 'orders', ['delivery_email'])
    op.create_index('ix_orders_download_token', 'orders', ['download_token'], unique=True)

    op.create_table(
        'downloads',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('beat_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('beats.id', ondelete='SET NULL'), nullable=True),
        sa.Column('license_type', license_type, nullable=False),
        sa.Column('download_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('files', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('order_id', 'beat_id', name='uq_downloads_order_beat'),
    )
    op.create_index('ix_downloads_id', 'downloads', ['id'])
    op.create_index('ix_downloads_order_id', 'downloads', ['order_id'])
    op.create_index('ix_downloads_user_id', 'downloads', ['user_id'])
    op.create_index('ix_downloads_beat_id', 'downloads', ['beat_id'])
    op.create_index('ix_downloads_expires_at', 'downloads', ['expires_at'])

    op.create_table(
        'webhook_events',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('provider', sa.String(100), nullable=False),
        sa.Column('event_id', sa.String(255), nullable=False),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('processed', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('received_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_webhook_events_id', 'webhook_events', ['id'])
    op.create_index('ix_webhook_events_event_id', 'webhook_events', ['event_id'], unique=True)
    op.create_index('ix_webhook_events_provider', 'webhook_events', ['provider'])
    op.create_index('ix_webhook_events_event_type', 'webhook_events', ['event_type'])
    op.create_index('ix_webhook_events_processed', 'webhook_events', ['processed'])


def downgrade() -> None:
    op.drop_table('webhook_events')
    op.drop_table('downloads')
    op.drop_table('orders')
    op.drop_table('beats')
    op.drop_table('users')

    bind = op.get_bind()
    order_status.drop(bind, checkfirst=True)
    license_type.drop(bind, checkfirst=True)
    user_role.drop(bind, checkfirst=True)
