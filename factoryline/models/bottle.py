from ..extensions import db
from ..utils.quantities import as_float
from ..utils.timezone_utils import TimezoneUtils
from .mixins import TimestampMixin


class BottleType(TimestampMixin, db.Model):
    __tablename__ = 'bottle_type'

    id = db.Column(db.Integer, primary_key=True)
    size = db.Column(db.String(32), nullable=False)
    capacity_ml = db.Column(db.Integer, nullable=False, default=0)
    price = db.Column(db.Numeric(18, 6), nullable=False, default=0)
    # Running average purchase price, used by the planner when present.
    average_price = db.Column(db.Numeric(18, 6), nullable=True)
    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.CheckConstraint('stock >= 0', name='check_bottle_stock_non_negative'),
        db.CheckConstraint('capacity_ml >= 0', name='check_bottle_capacity_non_negative'),
    )

    def __repr__(self):
        return f'<BottleType {self.size}>'

    @property
    def is_low(self) -> bool:
        return (self.stock or 0) <= (self.min_stock or 0)

    def to_dict(self):
        return {
            'id': self.id,
            'size': self.size,
            'capacity_ml': self.capacity_ml,
            'price': as_float(self.price),
            'average_price': as_float(self.average_price),
            'stock': self.stock,
            'min_stock': self.min_stock,
        }


class BottleStockTransaction(db.Model):
    """Bottle movement log (receipts, production usage, damage)."""
    __tablename__ = 'bottle_stock_transaction'

    id = db.Column(db.Integer, primary_key=True)
    bottle_type_id = db.Column(db.Integer, db.ForeignKey('bottle_type.id'), nullable=False, index=True)
    transaction_type = db.Column(db.String(16), nullable=False)  # in | production | damage
    quantity = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.Text, nullable=True)
    production_batch_id = db.Column(
        db.Integer, db.ForeignKey('production_batch.id', ondelete='SET NULL'), nullable=True, index=True
    )
    created_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)

    bottle_type = db.relationship('BottleType', backref=db.backref('transactions', lazy='dynamic'))

    def to_dict(self):
        return {
            'id': self.id,
            'bottle_type_id': self.bottle_type_id,
            'transaction_type': self.transaction_type,
            'quantity': self.quantity,
            'notes': self.notes,
            'production_batch_id': self.production_batch_id,
            'created_at': TimezoneUtils.format_datetime_for_api(self.created_at)['utc'],
        }
