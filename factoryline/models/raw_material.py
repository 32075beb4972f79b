from ..extensions import db
from ..utils.quantities import as_float
from ..utils.timezone_utils import TimezoneUtils
from .mixins import TimestampMixin


class RawMaterial(TimestampMixin, db.Model):
    """Raw material with an aggregate stock counter kept in step with its lots."""
    __tablename__ = 'raw_material'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), unique=True, nullable=False)
    unit = db.Column(db.String(32), nullable=False, default='kg')
    current_stock = db.Column(db.Numeric(18, 6), nullable=False, default=0)
    min_stock = db.Column(db.Numeric(18, 6), nullable=False, default=0)
    average_price = db.Column(db.Numeric(18, 6), nullable=False, default=0)

    lots = db.relationship(
        'RawMaterialLot',
        backref='raw_material',
        lazy='dynamic',
        order_by='RawMaterialLot.acquired_at',
    )

    def __repr__(self):
        return f'<RawMaterial {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'unit': self.unit,
            'current_stock': as_float(self.current_stock),
            'min_stock': as_float(self.min_stock),
            'average_price': as_float(self.average_price),
        }


class StockTransaction(db.Model):
    """Raw-material movement log."""
    __tablename__ = 'stock_transaction'

    TYPE_IN = 'in'
    TYPE_PRODUCTION = 'production'
    TYPE_DAMAGE = 'damage'

    id = db.Column(db.Integer, primary_key=True)
    raw_material_id = db.Column(db.Integer, db.ForeignKey('raw_material.id'), nullable=False, index=True)
    transaction_type = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Numeric(18, 6), nullable=False)
    unit_price = db.Column(db.Numeric(18, 6), nullable=True)
    total_price = db.Column(db.Numeric(18, 6), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    production_batch_id = db.Column(
        db.Integer, db.ForeignKey('production_batch.id', ondelete='SET NULL'), nullable=True, index=True
    )
    created_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)

    raw_material = db.relationship('RawMaterial')

    def to_dict(self):
        return {
            'id': self.id,
            'raw_material_id': self.raw_material_id,
            'transaction_type': self.transaction_type,
            'quantity': as_float(self.quantity),
            'unit_price': as_float(self.unit_price),
            'total_price': as_float(self.total_price),
            'notes': self.notes,
            'production_batch_id': self.production_batch_id,
            'created_at': TimezoneUtils.format_datetime_for_api(self.created_at)['utc'],
        }


class RawMaterialLot(db.Model):
    """
    A dated acquisition of a raw material with its own unit cost.
    Lots are consumed oldest-first by the FIFO ledger.
    """
    __tablename__ = 'raw_material_lot'

    id = db.Column(db.Integer, primary_key=True)
    raw_material_id = db.Column(db.Integer, db.ForeignKey('raw_material.id'), nullable=False, index=True)
    acquired_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)
    original_quantity = db.Column(db.Numeric(18, 6), nullable=False)
    quantity_remaining = db.Column(db.Numeric(18, 6), nullable=False)
    unit_cost = db.Column(db.Numeric(18, 6), nullable=False, default=0)
    stock_transaction_id = db.Column(db.Integer, db.ForeignKey('stock_transaction.id'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)

    stock_transaction = db.relationship('StockTransaction')

    __table_args__ = (
        db.CheckConstraint('quantity_remaining >= 0', name='check_lot_remaining_non_negative'),
        db.CheckConstraint('original_quantity > 0', name='check_lot_original_positive'),
        db.CheckConstraint('quantity_remaining <= original_quantity', name='check_lot_remaining_not_exceeds_original'),
        db.Index('ix_raw_material_lot_fifo', 'raw_material_id', 'acquired_at', 'id'),
    )

    def __repr__(self):
        return f'<RawMaterialLot {self.id}: {self.quantity_remaining}/{self.original_quantity}>'

    @property
    def is_depleted(self) -> bool:
        return self.quantity_remaining <= 0

    def to_dict(self):
        return {
            'id': self.id,
            'raw_material_id': self.raw_material_id,
            'acquired_at': TimezoneUtils.format_datetime_for_api(self.acquired_at)['utc'],
            'original_quantity': as_float(self.original_quantity),
            'quantity_remaining': as_float(self.quantity_remaining),
            'unit_cost': as_float(self.unit_cost),
            'stock_transaction_id': self.stock_transaction_id,
        }


class StockLotUsage(db.Model):
    """
    Append-only record of how much of a lot was consumed, and at what cost.
    Rows without a production batch are damage write-offs.
    """
    __tablename__ = 'stock_lot_usage'

    id = db.Column(db.Integer, primary_key=True)
    production_batch_id = db.Column(
        db.Integer, db.ForeignKey('production_batch.id', ondelete='CASCADE'), nullable=True, index=True
    )
    lot_id = db.Column(db.Integer, db.ForeignKey('raw_material_lot.id'), nullable=False, index=True)
    raw_material_id = db.Column(db.Integer, db.ForeignKey('raw_material.id'), nullable=False)
    quantity_consumed = db.Column(db.Numeric(18, 6), nullable=False)
    unit_cost_at_consumption = db.Column(db.Numeric(18, 6), nullable=False)
    stock_transaction_id = db.Column(db.Integer, db.ForeignKey('stock_transaction.id'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)

    lot = db.relationship('RawMaterialLot')
    raw_material = db.relationship('RawMaterial')

    __table_args__ = (
        db.CheckConstraint('quantity_consumed > 0', name='check_usage_quantity_positive'),
    )

    @property
    def cost(self):
        return self.quantity_consumed * self.unit_cost_at_consumption

    def to_dict(self):
        return {
            'id': self.id,
            'production_batch_id': self.production_batch_id,
            'lot_id': self.lot_id,
            'raw_material_id': self.raw_material_id,
            'quantity_consumed': as_float(self.quantity_consumed),
            'unit_cost_at_consumption': as_float(self.unit_cost_at_consumption),
            'stock_transaction_id': self.stock_transaction_id,
        }
