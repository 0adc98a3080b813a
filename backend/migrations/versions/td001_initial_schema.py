"""Initial schema: tenancy, catalog, customers, stock, orders, ledger

Creates every table from scratch:
1. organizations, users, members, session_tokens
2. categories, products, customers, suppliers
3. document_sequences (per org / type / month counters)
4. orders, order_items, deliveries
5. stock_batches, stock_transactions (append-only stock ledger)
6. ledger_events (org-wide audit trail)

Revision ID: td001_initial_schema
Revises:
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'td001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(*, updated: bool = True):
    cols = [sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())]
    if updated:
        cols.append(sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()))
    return cols


def upgrade():
    # ==========================================================================
    # Tenancy and identity
    # ==========================================================================
    op.create_table('organizations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_organizations_code', 'organizations', ['code'], unique=True)
    op.create_index('ix_organizations_is_active', 'organizations', ['is_active'])

    op.create_table('users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table('members',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='STAFF'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'org_id', name='uq_members_user_org'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_members_user_id', 'members', ['user_id'])
    op.create_index('ix_members_org_id', 'members', ['org_id'])
    op.create_index('ix_members_org_role', 'members', ['org_id', 'role'])

    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ==========================================================================
    # Catalog, customers, suppliers
    # ==========================================================================
    op.create_table('categories',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'name', name='uq_categories_org_name'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_categories_org_id', 'categories', ['org_id'])

    op.create_table('products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('categories.id'), nullable=True),
        sa.Column('sku', sa.String(length=50), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.String(length=1000), nullable=True),
        sa.Column('type', sa.String(length=16), nullable=False, server_default='PHYSICAL'),
        sa.Column('unit', sa.String(length=32), nullable=False),
        sa.Column('current_price_cents', sa.BigInteger(), nullable=True),
        sa.Column('reorder_point', sa.Numeric(14, 3), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'sku', name='uq_products_org_sku'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_products_org_id', 'products', ['org_id'])
    op.create_index('ix_products_category_id', 'products', ['category_id'])
    op.create_index('ix_products_org_name', 'products', ['org_id', 'name'])
    op.create_index('ix_products_org_active', 'products', ['org_id', 'is_active'])

    op.create_table('customers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('customer_code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('address_line1', sa.String(length=100), nullable=True),
        sa.Column('address_line2', sa.String(length=100), nullable=True),
        sa.Column('city', sa.String(length=50), nullable=True),
        sa.Column('postal_code', sa.String(length=20), nullable=True),
        sa.Column('country', sa.String(length=50), nullable=True),
        sa.Column('loyalty_points', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'customer_code', name='uq_customers_org_code'),
        sa.UniqueConstraint('org_id', 'email', name='uq_customers_org_email'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_customers_org_id', 'customers', ['org_id'])

    op.create_table('suppliers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('contact_name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'name', name='uq_suppliers_org_name'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_suppliers_org_id', 'suppliers', ['org_id'])

    # ==========================================================================
    # Orders
    # ==========================================================================
    op.create_table('document_sequences',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('period', sa.String(length=6), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'document_type', 'period', name='uq_doc_sequences_org_type_period'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_document_sequences_org_id', 'document_sequences', ['org_id'])

    op.create_table('orders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('order_number', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('total_amount_cents', sa.BigInteger(), nullable=False),
        sa.Column('discount_amount_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('final_amount_cents', sa.BigInteger(), nullable=False),
        sa.Column('loyalty_points_earned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.String(length=1000), nullable=True),
        sa.Column('created_by_member_id', sa.Integer(), sa.ForeignKey('members.id'), nullable=False),
        *_timestamps(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'order_number', name='uq_orders_org_number'),
        sa.CheckConstraint('final_amount_cents >= 0', name='ck_orders_final_amount_non_negative'),
        sa.CheckConstraint(
            'final_amount_cents = total_amount_cents - discount_amount_cents',
            name='ck_orders_final_amount_consistent',
        ),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_orders_org_id', 'orders', ['org_id'])
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_created_by_member_id', 'orders', ['created_by_member_id'])
    op.create_index('ix_orders_org_status_created', 'orders', ['org_id', 'status', 'created_at'])

    op.create_table('order_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('quantity', sa.Numeric(14, 3), nullable=False),
        sa.Column('unit_price_cents', sa.BigInteger(), nullable=False),
        sa.Column('total_price_cents', sa.BigInteger(), nullable=False),
        sa.Column('loyalty_points_awarded', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_order_items_quantity_positive'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])

    op.create_table('deliveries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False, server_default='DELIVERY'),
        sa.Column('address_line1', sa.String(length=100), nullable=True),
        sa.Column('address_line2', sa.String(length=100), nullable=True),
        sa.Column('city', sa.String(length=50), nullable=True),
        sa.Column('postal_code', sa.String(length=20), nullable=True),
        sa.Column('country', sa.String(length=50), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=True),
        sa.Column('tracking_number', sa.String(length=100), nullable=True),
        sa.Column('payment_method', sa.String(length=32), nullable=True),
        sa.Column('payment_reference', sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', name='uq_deliveries_order'),
        sqlite_autoincrement=True,
    )

    # ==========================================================================
    # Stock
    # ==========================================================================
    op.create_table('stock_batches',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id'), nullable=True),
        sa.Column('quantity_available', sa.Numeric(14, 3), nullable=False),
        sa.Column('unit', sa.String(length=32), nullable=False),
        sa.Column('unit_cost_cents', sa.BigInteger(), nullable=False),
        sa.Column('batch_number', sa.String(length=50), nullable=True),
        sa.Column('purchase_date', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('expiry_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_stock_batches_org_id', 'stock_batches', ['org_id'])
    op.create_index('ix_stock_batches_product_id', 'stock_batches', ['product_id'])
    op.create_index('ix_stock_batches_supplier_id', 'stock_batches', ['supplier_id'])
    op.create_index('ix_stock_batches_org_product', 'stock_batches', ['org_id', 'product_id'])

    op.create_table('stock_transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('stock_id', sa.Integer(), sa.ForeignKey('stock_batches.id'), nullable=True),
        sa.Column('related_order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=True),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('quantity_change', sa.Numeric(14, 3), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('attachment_url', sa.String(length=500), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('transaction_date', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_stock_transactions_org_id', 'stock_transactions', ['org_id'])
    op.create_index('ix_stock_transactions_product_id', 'stock_transactions', ['product_id'])
    op.create_index('ix_stock_transactions_stock_id', 'stock_transactions', ['stock_id'])
    op.create_index('ix_stock_transactions_related_order_id', 'stock_transactions', ['related_order_id'])
    op.create_index('ix_stock_transactions_type', 'stock_transactions', ['type'])
    op.create_index('ix_stock_transactions_created_by_user_id', 'stock_transactions', ['created_by_user_id'])
    op.create_index('ix_stock_transactions_transaction_date', 'stock_transactions', ['transaction_date'])
    op.create_index('ix_stocktx_org_product_date', 'stock_transactions', ['org_id', 'product_id', 'transaction_date'])
    op.create_index('ix_stocktx_org_type_date', 'stock_transactions', ['org_id', 'type', 'transaction_date'])

    # ==========================================================================
    # Audit ledger
    # ==========================================================================
    op.create_table('ledger_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('event_category', sa.String(length=32), nullable=False),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('actor_user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('actor_member_id', sa.Integer(), sa.ForeignKey('members.id'), nullable=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id'), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('payload', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_ledger_events_org_id', 'ledger_events', ['org_id'])
    op.create_index('ix_ledger_events_event_type', 'ledger_events', ['event_type'])
    op.create_index('ix_ledger_events_event_category', 'ledger_events', ['event_category'])
    op.create_index('ix_ledger_events_order_id', 'ledger_events', ['order_id'])
    op.create_index('ix_ledger_events_org_occurred', 'ledger_events', ['org_id', 'occurred_at'])
    op.create_index('ix_ledger_events_entity', 'ledger_events', ['entity_type', 'entity_id'])


def downgrade():
    for name in (
        'ledger_events',
        'stock_transactions',
        'stock_batches',
        'deliveries',
        'order_items',
        'orders',
        'document_sequences',
        'suppliers',
        'customers',
        'products',
        'categories',
        'session_tokens',
        'members',
        'users',
        'organizations',
    ):
        op.drop_table(name)
