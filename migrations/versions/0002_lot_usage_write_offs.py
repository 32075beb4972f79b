"""0002 lot usage write-offs

Revision ID: 0002_lot_usage_write_offs
Revises: 0001_initial
Create Date: 2026-10-18 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0002_lot_usage_write_offs'
down_revision = '0001_initial'
branch_labels = None
depends_on = None


def upgrade():
    # Damage write-offs consume lots without a production batch.
    with op.batch_alter_table('stock_lot_usage') as batch_op:
        batch_op.alter_column('production_batch_id', existing_type=sa.Integer(), nullable=True)


def downgrade():
    op.execute('DELETE FROM stock_lot_usage WHERE production_batch_id IS NULL')
    with op.batch_alter_table('stock_lot_usage') as batch_op:
        batch_op.alter_column('production_batch_id', existing_type=sa.Integer(), nullable=False)
