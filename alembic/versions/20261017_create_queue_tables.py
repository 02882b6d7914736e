"""Create queue scheduler tables.

Revision ID: create_queue_tables
Revises:
Create Date: 2026-10-17

Tables:
- locations: processing stations ordered by used_order
- orders: production orders with global queue position and rush flag
- order_locations: one row per (order, location) with local queue position
- audit_trail: order activity log (no FK so rows outlive deleted orders)
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'create_queue_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create locations, orders, order_locations and audit_trail."""

    op.create_table(
        'locations',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), nullable=False, unique=True),
        sa.Column('used_order', sa.Integer, nullable=False),
        sa.Column('is_primary', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('skip_auto_queue', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('count_multiplier', sa.Float, nullable=False, server_default='1'),
        sa.Column('no_count', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_locations_used_order', 'locations', ['used_order'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('order_number', sa.String(50), nullable=False),
        sa.Column('client', sa.String(200), nullable=False, server_default=''),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_quantity', sa.Integer, nullable=False, server_default='0'),
        sa.Column('shipped_quantity', sa.Integer, nullable=False, server_default='0'),
        sa.Column('is_finished', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('is_shipped', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('partially_shipped', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('global_queue_position', sa.Integer, nullable=True),
        sa.Column('rush', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('rush_set_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.Integer, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_active_queue', 'orders', ['is_shipped', 'global_queue_position'])

    op.create_table(
        'order_locations',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('order_id', sa.Integer, sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('location_id', sa.Integer, sa.ForeignKey('locations.id', ondelete='CASCADE'), nullable=False),
        sa.Column(
            'status', sa.String(50), nullable=False, server_default='not_started',
            comment='not_started, in_queue, in_progress, paused, done',
        ),
        sa.Column('queue_position', sa.Integer, nullable=True),
        sa.Column('completed_quantity', sa.Integer, nullable=False, server_default='0'),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('order_id', 'location_id', name='uq_order_locations_order_location'),
    )
    op.create_index('ix_order_locations_order_id', 'order_locations', ['order_id'])
    op.create_index('ix_order_locations_location_id', 'order_locations', ['location_id'])
    op.create_index(
        'ix_order_locations_queue', 'order_locations', ['location_id', 'status', 'queue_position']
    )

    op.create_table(
        'audit_trail',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('order_id', sa.Integer, nullable=False),
        sa.Column('user_id', sa.Integer, nullable=True),
        sa.Column('location_id', sa.Integer, nullable=True),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('details', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_audit_trail_order_id', 'audit_trail', ['order_id'])
    op.create_index('ix_audit_trail_action', 'audit_trail', ['action'])
    op.create_index('ix_audit_trail_created_at', 'audit_trail', ['created_at'])


def downgrade() -> None:
    """Drop queue scheduler tables."""
    op.drop_table('audit_trail')
    op.drop_table('order_locations')
    op.drop_table('orders')
    op.drop_table('locations')
