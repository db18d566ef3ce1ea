"""Initial schema: businesses, stores, users, inventory, lending, sales, requests

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18

This migration adds:
1. Tenancy: businesses and stores (dukas)
2. Users with a fixed role (admin, staff-admin, staff) and store affiliation
3. Inventory stock lines with the pair invariant as a CHECK constraint
4. Lending ledger (lent_shoes)
5. Sales, sale payments and sale returns
6. Shoe requests and the activity event log
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_initial'
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False)


def upgrade():
    # ==========================================================================
    # 1. TENANCY
    # ==========================================================================
    op.create_table('businesses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table('businesses', schema=None) as batch_op:
        batch_op.create_index('ix_businesses_is_active', ['is_active'], unique=False)

    op.create_table('stores',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'name', name='uq_stores_business_name'),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table('stores', schema=None) as batch_op:
        batch_op.create_index('ix_stores_business_id', ['business_id'], unique=False)

    # ==========================================================================
    # 2. USERS
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='staff'),
        sa.Column('store_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _created_at(),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'username', name='uq_users_business_username'),
        sa.UniqueConstraint('business_id', 'email', name='uq_users_business_email'),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index('ix_users_business_id', ['business_id'], unique=False)
        batch_op.create_index('ix_users_username', ['username'], unique=False)
        batch_op.create_index('ix_users_role', ['role'], unique=False)
        batch_op.create_index('ix_users_store_id', ['store_id'], unique=False)

    # ==========================================================================
    # 3. INVENTORY
    # ==========================================================================
    op.create_table('inventory_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('at_no', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('brand', sa.String(length=120), nullable=True),
        sa.Column('category', sa.String(length=120), nullable=True),
        sa.Column('age_group', sa.String(length=16), nullable=True),
        sa.Column('gender', sa.String(length=16), nullable=True),
        sa.Column('sizes', sa.JSON(), nullable=False),
        sa.Column('colors', sa.JSON(), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('incomplete_pairs', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('stock >= 0', name='ck_inventory_stock_nonneg'),
        sa.CheckConstraint(
            'incomplete_pairs >= 0 AND incomplete_pairs <= stock',
            name='ck_inventory_incomplete_within_stock',
        ),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id', 'at_no', name='uq_inventory_store_at_no'),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table('inventory_items', schema=None) as batch_op:
        batch_op.create_index('ix_inventory_items_store_id', ['store_id'], unique=False)
        batch_op.create_index('ix_inventory_store_name', ['store_id', 'name'], unique=False)
        batch_op.create_index('ix_inventory_store_stock', ['store_id', 'stock'], unique=False)

    # ==========================================================================
    # 4. LENDING LEDGER
    # ==========================================================================
    op.create_table('lent_shoes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=True),
        sa.Column('destination_item_id', sa.Integer(), nullable=True),
        sa.Column('at_no', sa.String(length=64), nullable=False),
        sa.Column('item_snapshot', sa.JSON(), nullable=False),
        sa.Column('from_store_id', sa.Integer(), nullable=False),
        sa.Column('to_store_id', sa.Integer(), nullable=False),
        sa.Column('from_staff_id', sa.Integer(), nullable=False),
        sa.Column('to_staff_id', sa.Integer(), nullable=False),
        sa.Column('lend_type', sa.String(length=8), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('single_mode', sa.String(length=16), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='lent'),
        sa.Column('lent_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('returned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('returned_by_user_id', sa.Integer(), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processed_by_user_id', sa.Integer(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['item_id'], ['inventory_items.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['destination_item_id'], ['inventory_items.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['from_store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['to_store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['from_staff_id'], ['users.id']),
        sa.ForeignKeyConstraint(['to_staff_id'], ['users.id']),
        sa.ForeignKeyConstraint(['returned_by_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['processed_by_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table('lent_shoes', schema=None) as batch_op:
        batch_op.create_index('ix_lent_shoes_item_id', ['item_id'], unique=False)
        batch_op.create_index('ix_lent_shoes_destination_item_id', ['destination_item_id'], unique=False)
        batch_op.create_index('ix_lent_shoes_status', ['status'], unique=False)
        batch_op.create_index('ix_lent_shoes_from_status', ['from_store_id', 'status'], unique=False)
        batch_op.create_index('ix_lent_shoes_to_status', ['to_store_id', 'status'], unique=False)

    # ==========================================================================
    # 5. SALES
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('at_no', sa.String(length=64), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('brand', sa.String(length=120), nullable=True),
        sa.Column('size', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('original_price_cents', sa.Integer(), nullable=False),
        sa.Column('is_haggled', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(length=120), nullable=True),
        sa.Column('customer_phone', sa.String(length=32), nullable=True),
        _created_at(),
        sa.CheckConstraint('quantity > 0', name='ck_sales_quantity_positive'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['product_id'], ['inventory_items.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index('ix_sales_store_id', ['store_id'], unique=False)
        batch_op.create_index('ix_sales_product_id', ['product_id'], unique=False)
        batch_op.create_index('ix_sales_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_sales_created_at', ['created_at'], unique=False)
        batch_op.create_index('ix_sales_store_created', ['store_id', 'created_at'], unique=False)

    op.create_table('sale_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('method', sa.String(length=16), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.CheckConstraint('amount_cents >= 0', name='ck_sale_payments_amount_nonneg'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table('sale_payments', schema=None) as batch_op:
        batch_op.create_index('ix_sale_payments_sale_id', ['sale_id'], unique=False)

    op.create_table('sale_returns',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('size', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(length=120), nullable=True),
        sa.Column('customer_phone', sa.String(length=32), nullable=True),
        sa.Column('return_reason', sa.Text(), nullable=False),
        sa.Column('inventory_restored', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('processed_by_user_id', sa.Integer(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.ForeignKeyConstraint(['product_id'], ['inventory_items.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['processed_by_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id', name='uq_sale_returns_sale'),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table('sale_returns', schema=None) as batch_op:
        batch_op.create_index('ix_sale_returns_product_id', ['product_id'], unique=False)
        batch_op.create_index('ix_sale_returns_store_id', ['store_id'], unique=False)
        batch_op.create_index('ix_sale_returns_store_created', ['store_id', 'created_at'], unique=False)

    # ==========================================================================
    # 6. REQUESTS AND ACTIVITY LOG
    # ==========================================================================
    op.create_table('shoe_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=False),
        sa.Column('staff_id', sa.Integer(), nullable=False),
        sa.Column('shoe_name', sa.String(length=255), nullable=False),
        sa.Column('size', sa.String(length=16), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('customer_contact', sa.String(length=120), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processed_by_user_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['staff_id'], ['users.id']),
        sa.ForeignKeyConstraint(['processed_by_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table('shoe_requests', schema=None) as batch_op:
        batch_op.create_index('ix_shoe_requests_store_id', ['store_id'], unique=False)
        batch_op.create_index('ix_shoe_requests_status', ['status'], unique=False)
        batch_op.create_index('ix_shoe_requests_status_created', ['status', 'created_at'], unique=False)

    op.create_table('activity_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('store_id', sa.Integer(), nullable=True),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('actor_user_id', sa.Integer(), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id']),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['actor_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table('activity_events', schema=None) as batch_op:
        batch_op.create_index('ix_activity_events_store_id', ['store_id'], unique=False)
        batch_op.create_index('ix_activity_events_event_type', ['event_type'], unique=False)
        batch_op.create_index('ix_activity_events_occurred_at', ['occurred_at'], unique=False)
        batch_op.create_index('ix_activity_events_business_occurred', ['business_id', 'occurred_at'], unique=False)
        batch_op.create_index('ix_activity_events_entity', ['entity_type', 'entity_id'], unique=False)


def downgrade():
    op.drop_table('activity_events')
    op.drop_table('shoe_requests')
    op.drop_table('sale_returns')
    op.drop_table('sale_payments')
    op.drop_table('sales')
    op.drop_table('lent_shoes')
    op.drop_table('inventory_items')
    op.drop_table('users')
    op.drop_table('stores')
    op.drop_table('businesses')
