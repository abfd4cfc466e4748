"""booking engine tables

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-01-15 09:12:41.507231

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f7b9d2'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    # 1. Users
    op.create_table(
        'users',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # 2. Markets and their members
    op.create_table(
        'markets',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('status', sa.String(30), nullable=False, server_default='draft'),
        sa.Column('created_by', sa.Integer, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('weekly_schedule', sa.JSON, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'))
    )

    op.create_table(
        'market_members',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('market_id', sa.Integer, sa.ForeignKey('markets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(30), nullable=False, server_default='member'),
        sa.Column('status', sa.String(30), nullable=False, server_default='pending'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('joined_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.UniqueConstraint('market_id', 'user_id', name='uq_market_members_market_user')
    )
    op.create_index('ix_market_members_market_id', 'market_members', ['market_id'])
    op.create_index('ix_market_members_user_id', 'market_members', ['user_id'])

    # 3. Orders
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('owner_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('order_type', sa.String(20), nullable=False, server_default='one_time'),
        sa.Column('status', sa.String(30), nullable=False, server_default='draft'),
        sa.Column('weekly_schedule', sa.JSON, nullable=True),
        sa.Column('available_dates', sa.JSON, nullable=True),
        sa.Column('resource_booking_mode', sa.String(10), nullable=True),
        sa.Column('required_resource_count', sa.Integer, nullable=True),
        sa.Column('checkin_requires_approval', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('work_duration_per_client', sa.Integer, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True)
    )
    op.create_index('ix_orders_owner_id', 'orders', ['owner_id'])
    op.create_index('ix_orders_order_type', 'orders', ['order_type'])

    op.create_table(
        'market_orders',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('market_id', sa.Integer, sa.ForeignKey('markets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('order_id', sa.Integer, sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('added_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.UniqueConstraint('market_id', 'order_id', name='uq_market_orders_market_order')
    )
    op.create_index('ix_market_orders_market_id', 'market_orders', ['market_id'])
    op.create_index('ix_market_orders_order_id', 'market_orders', ['order_id'])

    # 4. Bookings
    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('order_id', sa.Integer, sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('client_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('market_member_id', sa.Integer, sa.ForeignKey('market_members.id'), nullable=True),
        sa.Column('scheduled_date', sa.Date, nullable=False),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('end_time', sa.String(5), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='confirmed'),
        sa.Column('message', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_reason', sa.Text, nullable=True)
    )
    op.create_index('idx_bookings_order_date', 'bookings', ['order_id', 'scheduled_date'])
    op.create_index('ix_bookings_client_id', 'bookings', ['client_id'])
    op.create_index('ix_bookings_scheduled_date', 'bookings', ['scheduled_date'])
    op.create_index('ix_bookings_status', 'bookings', ['status'])

    # 5. Subscriptions, notifications, order history
    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('plan_name', sa.String(100), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('start_date', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('features', sa.JSON, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'))
    )
    op.create_index('ix_subscriptions_user_id', 'subscriptions', ['user_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('kind', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('payload', sa.JSON, nullable=True),
        sa.Column('is_read', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'))
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])

    op.create_table(
        'order_change_history',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('order_id', sa.Integer, sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('field_changed', sa.String(100), nullable=False),
        sa.Column('old_value', sa.Text, nullable=True),
        sa.Column('new_value', sa.Text, nullable=True),
        sa.Column('changed_by', sa.Integer, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('reason', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'))
    )
    op.create_index('ix_order_change_history_order_id', 'order_change_history', ['order_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('order_change_history')
    op.drop_table('notifications')
    op.drop_table('subscriptions')
    op.drop_table('bookings')
    op.drop_table('market_orders')
    op.drop_table('orders')
    op.drop_table('market_members')
    op.drop_table('markets')
    op.drop_table('users')
