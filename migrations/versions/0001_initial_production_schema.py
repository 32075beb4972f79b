"""initial production schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True),
        sa.Column('display_name', sa.String(length=120), nullable=True),
        sa.Column('api_token', sa.String(length=64), nullable=True, unique=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_user_api_token', 'user', ['api_token'])

    op.create_table(
        'raw_material',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False, unique=True),
        sa.Column('unit', sa.String(length=32), nullable=False),
        sa.Column('current_stock', sa.Numeric(18, 6), nullable=False),
        sa.Column('min_stock', sa.Numeric(18, 6), nullable=False),
        sa.Column('average_price', sa.Numeric(18, 6), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'bottle_type',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('size', sa.String(length=32), nullable=False),
        sa.Column('capacity_ml', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(18, 6), nullable=False),
        sa.Column('average_price', sa.Numeric(18, 6), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('min_stock', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('stock >= 0', name='check_bottle_stock_non_negative'),
        sa.CheckConstraint('capacity_ml >= 0', name='check_bottle_capacity_non_negative'),
    )

    op.create_table(
        'product',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=True, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'product_recipe',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id'), nullable=False),
        sa.Column('raw_material_id', sa.Integer(), sa.ForeignKey('raw_material.id'), nullable=False),
        sa.Column('quantity_per_unit', sa.Numeric(18, 6), nullable=False),
        sa.UniqueConstraint('product_id', 'raw_material_id', name='uq_product_recipe_material'),
        sa.CheckConstraint('quantity_per_unit >= 0', name='check_recipe_quantity_non_negative'),
    )
    op.create_index('ix_product_recipe_product_id', 'product_recipe', ['product_id'])

    op.create_table(
        'sellable_product',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=64), nullable=False, unique=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id'), nullable=True),
        sa.Column('bottle_type_id', sa.Integer(), sa.ForeignKey('bottle_type.id'), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'sellable_product_variation',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('sellable_product_id', sa.Integer(), sa.ForeignKey('sellable_product.id'), nullable=False),
        sa.Column('bottle_type_id', sa.Integer(), sa.ForeignKey('bottle_type.id'), nullable=True),
        sa.Column('name', sa.String(length=128), nullable=True),
    )
    op.create_index(
        'ix_sellable_product_variation_sellable_product_id',
        'sellable_product_variation',
        ['sellable_product_id'],
    )

    op.create_table(
        'production_batch',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('batch_code', sa.String(length=64), nullable=False, unique=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id'), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('planned_date', sa.Date(), nullable=True),
        sa.Column('planned_items', sa.JSON(), nullable=False),
        sa.Column('planned_notes', sa.Text(), nullable=True),
        sa.Column('planned_volume_liters', sa.Numeric(18, 6), nullable=True),
        sa.Column('insufficient_materials', sa.JSON(), nullable=True),
        sa.Column('planned_by', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('planned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('started_by', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_by', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_by', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_reason', sa.Text(), nullable=True),
        sa.Column('actual_items', sa.JSON(), nullable=True),
        sa.Column('actual_materials', sa.JSON(), nullable=True),
        sa.Column('brix_before', sa.Numeric(10, 3), nullable=True),
        sa.Column('brix_after', sa.Numeric(10, 3), nullable=True),
        sa.Column('acidity_before', sa.Numeric(10, 3), nullable=True),
        sa.Column('acidity_after', sa.Numeric(10, 3), nullable=True),
        sa.Column('execution_notes', sa.Text(), nullable=True),
        sa.Column('material_cost', sa.Numeric(18, 6), nullable=True),
        sa.Column('bottle_cost', sa.Numeric(18, 6), nullable=True),
        sa.Column('total_cost', sa.Numeric(18, 6), nullable=True),
        sa.Column('total_volume_ml', sa.Numeric(18, 6), nullable=True),
        sa.Column('unit_cost_per_ml', sa.Numeric(18, 8), nullable=True),
        sa.Column('cost_breakdown', sa.JSON(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('planned', 'in_progress', 'completed', 'cancelled')",
            name='check_production_batch_status',
        ),
    )
    op.create_index('ix_production_batch_product_id', 'production_batch', ['product_id'])
    op.create_index('ix_production_batch_status', 'production_batch', ['status'])

    op.create_table(
        'stock_transaction',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('raw_material_id', sa.Integer(), sa.ForeignKey('raw_material.id'), nullable=False),
        sa.Column('transaction_type', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Numeric(18, 6), nullable=False),
        sa.Column('unit_price', sa.Numeric(18, 6), nullable=True),
        sa.Column('total_price', sa.Numeric(18, 6), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column(
            'production_batch_id', sa.Integer(),
            sa.ForeignKey('production_batch.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_stock_transaction_raw_material_id', 'stock_transaction', ['raw_material_id'])
    op.create_index('ix_stock_transaction_production_batch_id', 'stock_transaction', ['production_batch_id'])

    op.create_table(
        'raw_material_lot',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('raw_material_id', sa.Integer(), sa.ForeignKey('raw_material.id'), nullable=False),
        sa.Column('acquired_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('original_quantity', sa.Numeric(18, 6), nullable=False),
        sa.Column('quantity_remaining', sa.Numeric(18, 6), nullable=False),
        sa.Column('unit_cost', sa.Numeric(18, 6), nullable=False),
        sa.Column('stock_transaction_id', sa.Integer(), sa.ForeignKey('stock_transaction.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('quantity_remaining >= 0', name='check_lot_remaining_non_negative'),
        sa.CheckConstraint('original_quantity > 0', name='check_lot_original_positive'),
        sa.CheckConstraint(
            'quantity_remaining <= original_quantity', name='check_lot_remaining_not_exceeds_original'
        ),
    )
    op.create_index('ix_raw_material_lot_raw_material_id', 'raw_material_lot', ['raw_material_id'])
    op.create_index('ix_raw_material_lot_fifo', 'raw_material_lot', ['raw_material_id', 'acquired_at', 'id'])

    op.create_table(
        'stock_lot_usage',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'production_batch_id', sa.Integer(),
            sa.ForeignKey('production_batch.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('lot_id', sa.Integer(), sa.ForeignKey('raw_material_lot.id'), nullable=False),
        sa.Column('raw_material_id', sa.Integer(), sa.ForeignKey('raw_material.id'), nullable=False),
        sa.Column('quantity_consumed', sa.Numeric(18, 6), nullable=False),
        sa.Column('unit_cost_at_consumption', sa.Numeric(18, 6), nullable=False),
        sa.Column('stock_transaction_id', sa.Integer(), sa.ForeignKey('stock_transaction.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('quantity_consumed > 0', name='check_usage_quantity_positive'),
    )
    op.create_index('ix_stock_lot_usage_production_batch_id', 'stock_lot_usage', ['production_batch_id'])
    op.create_index('ix_stock_lot_usage_lot_id', 'stock_lot_usage', ['lot_id'])

    op.create_table(
        'bottle_stock_transaction',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('bottle_type_id', sa.Integer(), sa.ForeignKey('bottle_type.id'), nullable=False),
        sa.Column('transaction_type', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column(
            'production_batch_id', sa.Integer(),
            sa.ForeignKey('production_batch.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_bottle_stock_transaction_bottle_type_id', 'bottle_stock_transaction', ['bottle_type_id'])
    op.create_index(
        'ix_bottle_stock_transaction_production_batch_id', 'bottle_stock_transaction', ['production_batch_id']
    )

    op.create_table(
        'finished_goods',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id'), nullable=False),
        sa.Column('bottle_type_id', sa.Integer(), sa.ForeignKey('bottle_type.id'), nullable=False),
        sa.Column(
            'production_batch_id', sa.Integer(),
            sa.ForeignKey('production_batch.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_cost', sa.Numeric(18, 6), nullable=False),
        sa.Column('total_cost', sa.Numeric(18, 6), nullable=False),
        sa.Column('manufactured_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('production_batch_id', 'bottle_type_id', name='uq_finished_goods_batch_bottle'),
        sa.CheckConstraint('quantity > 0', name='check_finished_goods_quantity_positive'),
    )
    op.create_index('ix_finished_goods_product_id', 'finished_goods', ['product_id'])
    op.create_index('ix_finished_goods_production_batch_id', 'finished_goods', ['production_batch_id'])

    op.create_table(
        'customer_order',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_number', sa.String(length=64), nullable=False, unique=True),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('delivery_date', sa.Date(), nullable=True),
        sa.Column('order_status', sa.String(length=32), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_customer_order_delivery_date', 'customer_order', ['delivery_date'])

    op.create_table(
        'order_item',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('customer_order.id'), nullable=False),
        sa.Column('sellable_product_id', sa.Integer(), sa.ForeignKey('sellable_product.id'), nullable=True),
        sa.Column('variation_id', sa.Integer(), sa.ForeignKey('sellable_product_variation.id'), nullable=True),
        sa.Column('bottle_size', sa.String(length=32), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
    )
    op.create_index('ix_order_item_order_id', 'order_item', ['order_id'])


def downgrade():
    op.drop_table('order_item')
    op.drop_table('customer_order')
    op.drop_table('finished_goods')
    op.drop_table('bottle_stock_transaction')
    op.drop_table('stock_lot_usage')
    op.drop_table('raw_material_lot')
    op.drop_table('stock_transaction')
    op.drop_table('production_batch')
    op.drop_table('sellable_product_variation')
    op.drop_table('sellable_product')
    op.drop_table('product_recipe')
    op.drop_table('product')
    op.drop_table('bottle_type')
    op.drop_table('raw_material')
    op.drop_table('user')
