"""Initial schema: catalog, packlists, orders, templates, stock journal

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration adds:
1. products (stock ledger rows, version_id for optimistic locking)
2. points_of_sale
3. packlist_templates / order_templates and their items
4. packlists and packlist_items (snapshot lines, no FK to products)
5. orders and order_items (snapshot lines, no FK to products)
6. stock_movements (append-only ledger journal)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


UNIT_TYPES = ('piece', 'weight-kg', 'weight-g')
PACKLIST_STATUSES = ('open', 'currently_selling', 'sold', 'completed')
ORDER_STATUSES = ('open', 'check_pending', 'completed')


def _unit_type():
    return sa.Enum(*UNIT_TYPES, name='unittype', native_enum=False, length=16)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
    ]


def upgrade():
    # ==========================================================================
    # 1. CATALOG
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('unit_type', _unit_type(), nullable=False),
        sa.Column('unit_label', sa.String(length=32), nullable=False),
        sa.Column('base_price', sa.Float(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('total_stock', sa.Float(), nullable=False),
        sa.Column('current_stock', sa.Float(), nullable=False),
        sa.Column('last_stock_updated_by', sa.String(length=128), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku', name='uq_products_sku'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_products_active_name', 'products', ['is_active', 'name'], unique=False)

    op.create_table('points_of_sale',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_points_of_sale_name'),
        sqlite_autoincrement=True,
    )

    # ==========================================================================
    # 2. TEMPLATES
    # ==========================================================================
    op.create_table('packlist_templates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('default_pos_id', sa.Integer(), nullable=True),
        sa.Column('change_amount', sa.Float(), nullable=True),
        sa.Column('note', sa.Text(), nullable=False),
        sa.Column('created_by', sa.String(length=128), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['default_pos_id'], ['points_of_sale.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_table('packlist_template_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('template_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('unit_type', _unit_type(), nullable=False),
        sa.Column('unit_label', sa.String(length=32), nullable=False),
        sa.Column('base_price', sa.Float(), nullable=False),
        sa.Column('special_price', sa.Float(), nullable=True),
        sa.Column('default_quantity', sa.Float(), nullable=False),
        sa.Column('note', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['template_id'], ['packlist_templates.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_packlist_template_items_template_id', 'packlist_template_items', ['template_id'], unique=False)

    op.create_table('order_templates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('note', sa.Text(), nullable=False),
        sa.Column('created_by', sa.String(length=128), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_table('order_template_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('template_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('unit_type', _unit_type(), nullable=False),
        sa.Column('unit_label', sa.String(length=32), nullable=False),
        sa.Column('default_quantity', sa.Float(), nullable=False),
        sa.Column('note', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['template_id'], ['order_templates.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_order_template_items_template_id', 'order_template_items', ['template_id'], unique=False)

    # ==========================================================================
    # 3. PACKLISTS
    # ==========================================================================
    op.create_table('packlists',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('pos_id', sa.Integer(), nullable=False),
        sa.Column('pos_name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.Enum(*PACKLIST_STATUSES, name='packliststatus', native_enum=False, length=32), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('assigned_user_ids', sa.JSON(), nullable=False),
        sa.Column('change_amount', sa.Float(), nullable=False),
        sa.Column('note', sa.Text(), nullable=False),
        sa.Column('worker_note', sa.Text(), nullable=True),
        sa.Column('template_id', sa.Integer(), nullable=True),
        sa.Column('expected_cash', sa.Float(), nullable=True),
        sa.Column('reported_cash', sa.Float(), nullable=True),
        sa.Column('difference', sa.Float(), nullable=True),
        sa.Column('created_by', sa.String(length=128), nullable=False),
        sa.Column('started_by', sa.String(length=128), nullable=True),
        sa.Column('sold_by', sa.String(length=128), nullable=True),
        sa.Column('completed_by', sa.String(length=128), nullable=True),
        *_timestamps(),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['pos_id'], ['points_of_sale.id']),
        sa.ForeignKeyConstraint(['template_id'], ['packlist_templates.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_packlists_pos_id', 'packlists', ['pos_id'], unique=False)
    op.create_index('ix_packlists_status', 'packlists', ['status'], unique=False)
    op.create_index('ix_packlists_date', 'packlists', ['date'], unique=False)
    op.create_index('ix_packlists_status_date', 'packlists', ['status', 'date'], unique=False)

    # product_id has no FK: items keep their snapshot when a product goes away
    op.create_table('packlist_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('packlist_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('unit_type', _unit_type(), nullable=False),
        sa.Column('unit_label', sa.String(length=32), nullable=False),
        sa.Column('base_price', sa.Float(), nullable=False),
        sa.Column('special_price', sa.Float(), nullable=True),
        sa.Column('planned_quantity', sa.Float(), nullable=False),
        sa.Column('start_quantity', sa.Float(), nullable=True),
        sa.Column('end_quantity', sa.Float(), nullable=True),
        sa.Column('note', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['packlist_id'], ['packlists.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('packlist_id', 'product_id', name='uq_packlist_items_product'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_packlist_items_packlist_id', 'packlist_items', ['packlist_id'], unique=False)
    op.create_index('ix_packlist_items_product_id', 'packlist_items', ['product_id'], unique=False)

    # ==========================================================================
    # 4. ORDERS
    # ==========================================================================
    op.create_table('orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('status', sa.Enum(*ORDER_STATUSES, name='orderstatus', native_enum=False, length=32), nullable=False),
        sa.Column('order_date', sa.Date(), nullable=False),
        sa.Column('expected_arrival_date', sa.Date(), nullable=False),
        sa.Column('note', sa.Text(), nullable=False),
        sa.Column('template_id', sa.Integer(), nullable=True),
        sa.Column('total_kg', sa.Float(), nullable=False),
        sa.Column('total_pieces', sa.Float(), nullable=False),
        sa.Column('confirmed_by', sa.String(length=128), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(length=128), nullable=False),
        *_timestamps(),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['template_id'], ['order_templates.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_orders_status', 'orders', ['status'], unique=False)
    op.create_index('ix_orders_expected_arrival_date', 'orders', ['expected_arrival_date'], unique=False)
    op.create_index('ix_orders_status_arrival', 'orders', ['status', 'expected_arrival_date'], unique=False)

    op.create_table('order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('unit_type', _unit_type(), nullable=False),
        sa.Column('unit_label', sa.String(length=32), nullable=False),
        sa.Column('ordered_quantity', sa.Float(), nullable=False),
        sa.Column('received_quantity', sa.Float(), nullable=True),
        sa.Column('note', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id', 'product_id', name='uq_order_items_product'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'], unique=False)
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'], unique=False)

    # ==========================================================================
    # 5. STOCK JOURNAL
    # ==========================================================================
    op.create_table('stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=32), nullable=False),
        sa.Column('total_delta', sa.Float(), nullable=False),
        sa.Column('available_delta', sa.Float(), nullable=False),
        sa.Column('total_after', sa.Float(), nullable=False),
        sa.Column('available_after', sa.Float(), nullable=False),
        sa.Column('packlist_id', sa.Integer(), nullable=True),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('actor_id', sa.String(length=128), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['packlist_id'], ['packlists.id']),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'], unique=False)
    op.create_index('ix_stock_movements_reason', 'stock_movements', ['reason'], unique=False)
    op.create_index('ix_stock_movements_packlist_id', 'stock_movements', ['packlist_id'], unique=False)
    op.create_index('ix_stock_movements_order_id', 'stock_movements', ['order_id'], unique=False)
    op.create_index('ix_stock_movements_product_created', 'stock_movements', ['product_id', 'created_at'], unique=False)


def downgrade():
    op.drop_table('stock_movements')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('packlist_items')
    op.drop_table('packlists')
    op.drop_table('order_template_items')
    op.drop_table('order_templates')
    op.drop_table('packlist_template_items')
    op.drop_table('packlist_templates')
    op.drop_table('points_of_sale')
    op.drop_table('products')
