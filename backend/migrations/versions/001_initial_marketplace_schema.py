"""
Alembic migration: Initial marketplace schema.

Creates the produce catalog with its price history, the orders table and
the negotiation ledger, together with the status enum types, indexes and
check constraints mirroring the model invariants.

Revision ID: 001
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ORDER_STATUS = postgresql.ENUM(
    'negotiation',
    'accepted',
    'rejected',
    'completed',
    'cancelled',
    name='order_status',
    create_type=False,
)

NEGOTIATION_STATUS = postgresql.ENUM(
    'pending',
    'accepted',
    'rejected',
    'countered',
    name='negotiation_status',
    create_type=False,
)

NEGOTIATION_PARTY = postgresql.ENUM(
    'vendor',
    'farmer',
    name='negotiation_party',
    create_type=False,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
            comment='Timestamp when record was created',
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
            comment='Timestamp when record was last updated',
        ),
    ]


def upgrade() -> None:
    """
    Create produce, price_history, orders and negotiations tables.
    """
    bind = op.get_bind()
    ORDER_STATUS.create(bind, checkfirst=True)
    NEGOTIATION_STATUS.create(bind, checkfirst=True)
    NEGOTIATION_PARTY.create(bind, checkfirst=True)

    op.create_table(
        'produce',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column('farmer_id', postgresql.UUID(as_uuid=True), nullable=False,
                  comment='Farmer who owns the listing'),
        sa.Column('name', sa.String(120), nullable=False, comment='Crop name'),
        sa.Column('category', sa.String(60), nullable=False, comment='Crop category'),
        sa.Column('description', sa.String(1000), nullable=True, comment='Listing description'),
        sa.Column('price_per_kg', sa.Numeric(10, 2), nullable=False,
                  comment='Current price per kilogram'),
        sa.Column('min_order_quantity', sa.Integer(), nullable=False,
                  comment='Minimum order quantity in kilograms'),
        sa.Column('available_quantity', sa.Integer(), nullable=False,
                  comment='Available quantity in kilograms'),
        sa.Column('total_quantity', sa.Integer(), nullable=False,
                  comment='Total listed quantity in kilograms'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true(),
                  comment='Whether the listing accepts new orders'),
        *_timestamps(),
        sa.CheckConstraint('price_per_kg > 0', name='ck_produce_price_positive'),
        sa.CheckConstraint('min_order_quantity > 0', name='ck_produce_min_order_positive'),
        sa.CheckConstraint('available_quantity >= 0', name='ck_produce_available_non_negative'),
        sa.CheckConstraint(
            'available_quantity <= total_quantity',
            name='ck_produce_available_within_total',
        ),
    )
    op.create_index('ix_produce_farmer_id', 'produce', ['farmer_id'])
    op.create_index('ix_produce_farmer_active', 'produce', ['farmer_id', 'is_active'])

    op.create_table(
        'price_history',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            'produce_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('produce.id', ondelete='CASCADE'),
            nullable=False,
            comment='Listing the price belongs to',
        ),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('recorded_at', sa.DateTime(timezone=True),
                  server_default=sa.text('now()'), nullable=False),
    )
    op.create_index(
        'ix_price_history_produce_recorded',
        'price_history',
        ['produce_id', 'recorded_at'],
    )

    op.create_table(
        'orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            'produce_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('produce.id', ondelete='RESTRICT'),
            nullable=False,
            comment='Produce listing the order references',
        ),
        sa.Column('vendor_id', postgresql.UUID(as_uuid=True), nullable=False,
                  comment='Vendor who placed the order'),
        sa.Column('farmer_id', postgresql.UUID(as_uuid=True), nullable=False,
                  comment='Farmer who owns the produce'),
        sa.Column('quantity', sa.Integer(), nullable=False,
                  comment='Ordered quantity in kilograms'),
        sa.Column('price_per_kg', sa.Numeric(10, 2), nullable=False,
                  comment='Price per kilogram'),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False,
                  comment='Quantity times price per kilogram'),
        sa.Column('status', ORDER_STATUS, nullable=False, server_default='negotiation',
                  comment='Current order status'),
        sa.Column('commission_amount', sa.Numeric(12, 2), nullable=True,
                  comment='Platform commission assessed on acceptance'),
        *_timestamps(),
        sa.CheckConstraint('quantity > 0', name='ck_orders_quantity_positive'),
        sa.CheckConstraint('price_per_kg > 0', name='ck_orders_price_positive'),
        sa.CheckConstraint('total_amount >= 0', name='ck_orders_total_non_negative'),
        sa.CheckConstraint(
            'commission_amount IS NULL OR commission_amount >= 0',
            name='ck_orders_commission_non_negative',
        ),
    )
    op.create_index('ix_orders_produce_id', 'orders', ['produce_id'])
    op.create_index('ix_orders_vendor_id', 'orders', ['vendor_id'])
    op.create_index('ix_orders_farmer_id', 'orders', ['farmer_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_vendor_status', 'orders', ['vendor_id', 'status'])
    op.create_index('ix_orders_farmer_status', 'orders', ['farmer_id', 'status'])

    op.create_table(
        'negotiations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            'order_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('orders.id', ondelete='CASCADE'),
            nullable=False,
            comment='Order under negotiation',
        ),
        sa.Column('round', sa.Integer(), nullable=False,
                  comment='Negotiation round, starting at 1'),
        sa.Column('vendor_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('farmer_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('proposed_by', NEGOTIATION_PARTY, nullable=False,
                  comment='Party who made the offer'),
        sa.Column('offered_price', sa.Numeric(10, 2), nullable=False,
                  comment='Offered price per kilogram'),
        sa.Column('message', sa.String(1000), nullable=True),
        sa.Column('status', NEGOTIATION_STATUS, nullable=False, server_default='pending'),
        *_timestamps(),
        sa.CheckConstraint('offered_price > 0', name='ck_negotiations_price_positive'),
        sa.CheckConstraint('round >= 1', name='ck_negotiations_round_positive'),
    )
    op.create_index('ix_negotiations_order_round', 'negotiations', ['order_id', 'round'])


def downgrade() -> None:
    """
    Drop the marketplace schema.
    """
    op.drop_index('ix_negotiations_order_round', table_name='negotiations')
    op.drop_table('negotiations')

    for index in (
        'ix_orders_farmer_status',
        'ix_orders_vendor_status',
        'ix_orders_status',
        'ix_orders_farmer_id',
        'ix_orders_vendor_id',
        'ix_orders_produce_id',
    ):
        op.drop_index(index, table_name='orders')
    op.drop_table('orders')

    op.drop_index('ix_price_history_produce_recorded', table_name='price_history')
    op.drop_table('price_history')

    op.drop_index('ix_produce_farmer_active', table_name='produce')
    op.drop_index('ix_produce_farmer_id', table_name='produce')
    op.drop_table('produce')

    bind = op.get_bind()
    NEGOTIATION_PARTY.drop(bind, checkfirst=True)
    NEGOTIATION_STATUS.drop(bind, checkfirst=True)
    ORDER_STATUS.drop(bind, checkfirst=True)
