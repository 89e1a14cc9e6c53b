"""Initial garment ledger schema

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18

Creates:
1. Catalog: categories, sizes, colors, products, product_sizes, product_colors
2. Size price overrides (product_size_prices)
3. Per-variant stock cells (product_inventory)
4. Invoices, invoice line items and the invoice number counter
5. Store settings singleton
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated: bool = True):
    cols = [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    ]
    if updated:
        cols.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False)
        )
    return cols


def upgrade():
    # ==========================================================================
    # 1. CATALOG
    # ==========================================================================
    op.create_table('categories',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table('sizes',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=32), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table('colors',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('hex_code', sa.String(length=7), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table('products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category_id', sa.Uuid(), nullable=True),
        sa.Column('price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cost_cents', sa.Integer(), nullable=True),
        sa.Column('quantity_in_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('secondary_image_url', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku'),
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_name', ['name'], unique=False)
        batch_op.create_index(batch_op.f('ix_products_category_id'), ['category_id'], unique=False)

    op.create_table('product_sizes',
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('size_id', sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['size_id'], ['sizes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('product_id', 'size_id'),
    )

    op.create_table('product_colors',
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('color_id', sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['color_id'], ['colors.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('product_id', 'color_id'),
    )

    # ==========================================================================
    # 2. SIZE PRICE OVERRIDES
    # ==========================================================================
    op.create_table('product_size_prices',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('size_id', sa.Uuid(), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['size_id'], ['sizes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'size_id', name='uq_product_size_prices_product_size'),
    )
    with op.batch_alter_table('product_size_prices', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_product_size_prices_product_id'), ['product_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_product_size_prices_size_id'), ['size_id'], unique=False)

    # ==========================================================================
    # 3. PER-VARIANT STOCK
    # ==========================================================================
    op.create_table('product_inventory',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('size_id', sa.Uuid(), nullable=True),
        sa.Column('color_id', sa.Uuid(), nullable=True),
        sa.Column('variant_key', sa.String(length=80), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['size_id'], ['sizes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['color_id'], ['colors.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'variant_key', name='uq_product_inventory_variant'),
        sa.CheckConstraint('quantity >= 0', name='ck_product_inventory_quantity_nonneg'),
    )
    with op.batch_alter_table('product_inventory', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_product_inventory_product_id'), ['product_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_product_inventory_size_id'), ['size_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_product_inventory_color_id'), ['color_id'], unique=False)

    # ==========================================================================
    # 4. INVOICES
    # ==========================================================================
    op.create_table('invoices',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('invoice_number', sa.String(length=32), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('customer_phone', sa.String(length=32), nullable=True),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax_rate_bps', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount_type', sa.String(length=16), nullable=True),
        sa.Column('discount_rate_bps', sa.Integer(), nullable=True),
        sa.Column('discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('grand_total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='done'),
        sa.Column('expected_payment_date', sa.Date(), nullable=True),
        sa.Column('pdf_url', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invoice_number'),
        sa.CheckConstraint("payment_status IN ('done', 'pending')", name='ck_invoices_payment_status'),
        sa.CheckConstraint(
            "discount_type IS NULL OR discount_type IN ('percentage', 'fixed')",
            name='ck_invoices_discount_type',
        ),
    )
    with op.batch_alter_table('invoices', schema=None) as batch_op:
        batch_op.create_index('ix_invoices_status_created', ['payment_status', 'created_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_invoices_payment_status'), ['payment_status'], unique=False)
        batch_op.create_index(batch_op.f('ix_invoices_created_by'), ['created_by'], unique=False)

    op.create_table('invoice_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('invoice_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('product_id', sa.Uuid(), nullable=True),
        sa.Column('size_id', sa.Uuid(), nullable=True),
        sa.Column('color_id', sa.Uuid(), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('size_name', sa.String(length=32), nullable=True),
        sa.Column('color_name', sa.String(length=64), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('total_price_cents', sa.Integer(), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['size_id'], ['sizes.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['color_id'], ['colors.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_invoice_items_quantity_positive'),
    )
    with op.batch_alter_table('invoice_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_invoice_items_invoice_id'), ['invoice_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_invoice_items_product_id'), ['product_id'], unique=False)

    op.create_table('invoice_sequences',
        sa.Column('prefix', sa.String(length=16), nullable=False),
        sa.Column('last_number', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('prefix'),
    )

    # ==========================================================================
    # 5. STORE SETTINGS
    # ==========================================================================
    op.create_table('store_settings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('tax_rate_bps', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('currency_symbol', sa.String(length=8), nullable=False),
        sa.Column('logo_url', sa.Text(), nullable=True),
        sa.Column('whatsapp_channel', sa.Text(), nullable=True),
        sa.Column('whatsapp_channel_name', sa.String(length=255), nullable=True),
        sa.Column('whatsapp_tagline', sa.String(length=255), nullable=True),
        sa.Column('whatsapp_qr_url', sa.Text(), nullable=True),
        sa.Column('instagram_page', sa.Text(), nullable=True),
        sa.Column('instagram_page_id', sa.String(length=255), nullable=True),
        sa.Column('instagram_tagline', sa.String(length=255), nullable=True),
        sa.Column('instagram_qr_url', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade():
    op.drop_table('store_settings')
    op.drop_table('invoice_sequences')
    op.drop_table('invoice_items')
    op.drop_table('invoices')
    op.drop_table('product_inventory')
    op.drop_table('product_size_prices')
    op.drop_table('product_colors')
    op.drop_table('product_sizes')
    op.drop_table('products')
    op.drop_table('colors')
    op.drop_table('sizes')
    op.drop_table('categories')
