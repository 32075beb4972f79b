from ..extensions import db
from ..utils.quantities import as_float
from ..utils.timezone_utils import TimezoneUtils
from .mixins import TimestampMixin


class BatchStatus:
    PLANNED = 'planned'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

    ALL = (PLANNED, IN_PROGRESS, COMPLETED, CANCELLED)
    TERMINAL = (COMPLETED, CANCELLED)


def _stamp(value):
    return TimezoneUtils.format_datetime_for_api(value)['utc']


class ProductionBatch(TimestampMixin, db.Model):
    __tablename__ = 'production_batch'

    id = db.Column(db.Integer, primary_key=True)
    batch_code = db.Column(db.String(64), unique=True, nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey('product.id'), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default=BatchStatus.PLANNED, index=True)

    # Planning
    planned_date = db.Column(db.Date, nullable=True)
    planned_items = db.Column(db.JSON, nullable=False, default=list)  # [{bottle_type_id, quantity}]
    planned_notes = db.Column(db.Text, nullable=True)
    planned_volume_liters = db.Column(db.Numeric(18, 6), nullable=True)
    insufficient_materials = db.Column(db.JSON, nullable=True)
    planned_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    planned_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Transitions
    started_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_reason = db.Column(db.Text, nullable=True)

    # Execution
    actual_items = db.Column(db.JSON, nullable=True)  # [{bottle_type_id, quantity, defects}]
    actual_materials = db.Column(db.JSON, nullable=True)  # [{material_id, quantity_used}]
    brix_before = db.Column(db.Numeric(10, 3), nullable=True)
    brix_after = db.Column(db.Numeric(10, 3), nullable=True)
    acidity_before = db.Column(db.Numeric(10, 3), nullable=True)
    acidity_after = db.Column(db.Numeric(10, 3), nullable=True)
    execution_notes = db.Column(db.Text, nullable=True)

    # Costing
    material_cost = db.Column(db.Numeric(18, 6), nullable=True)
    bottle_cost = db.Column(db.Numeric(18, 6), nullable=True)
    total_cost = db.Column(db.Numeric(18, 6), nullable=True)
    total_volume_ml = db.Column(db.Numeric(18, 6), nullable=True)
    unit_cost_per_ml = db.Column(db.Numeric(18, 8), nullable=True)
    cost_breakdown = db.Column(db.JSON, nullable=True)

    product = db.relationship('Product', backref=db.backref('production_batches', lazy='dynamic'))

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('planned', 'in_progress', 'completed', 'cancelled')",
            name='check_production_batch_status',
        ),
    )

    def __repr__(self):
        return f'<ProductionBatch {self.batch_code} ({self.status})>'

    @property
    def total_planned_bottles(self) -> int:
        return sum(int(item.get('quantity') or 0) for item in (self.planned_items or []))

    @property
    def has_warning(self) -> bool:
        return bool(self.insufficient_materials)

    def to_dict(self, include_costing: bool = True):
        data = {
            'id': self.id,
            'batch_code': self.batch_code,
            'product_id': self.product_id,
            'product_name': self.product.name if self.product else None,
            'status': self.status,
            'planned_date': self.planned_date.isoformat() if self.planned_date else None,
            'planned_items': self.planned_items or [],
            'planned_notes': self.planned_notes,
            'planned_volume_liters': as_float(self.planned_volume_liters),
            'total_bottles': self.total_planned_bottles,
            'insufficient_materials': self.insufficient_materials or [],
            'has_warning': self.has_warning,
            'planned_by': self.planned_by,
            'planned_at': _stamp(self.planned_at),
            'started_by': self.started_by,
            'started_at': _stamp(self.started_at),
            'completed_by': self.completed_by,
            'completed_at': _stamp(self.completed_at),
            'cancelled_by': self.cancelled_by,
            'cancelled_at': _stamp(self.cancelled_at),
            'cancelled_reason': self.cancelled_reason,
            'actual_items': self.actual_items or [],
            'actual_materials': self.actual_materials or [],
            'brix_before': as_float(self.brix_before),
            'brix_after': as_float(self.brix_after),
            'acidity_before': as_float(self.acidity_before),
            'acidity_after': as_float(self.acidity_after),
            'execution_notes': self.execution_notes,
            'created_at': _stamp(self.created_at),
            'updated_at': _stamp(self.updated_at),
        }
        if include_costing:
            data.update({
                'material_cost': as_float(self.material_cost),
                'bottle_cost': as_float(self.bottle_cost),
                'total_cost': as_float(self.total_cost),
                'total_volume_ml': as_float(self.total_volume_ml),
                'unit_cost_per_ml': as_float(self.unit_cost_per_ml, places=6),
                'cost_breakdown': self.cost_breakdown,
            })
        return data


class FinishedGoods(db.Model):
    """Sellable output of a completed batch, one row per bottle type."""
    __tablename__ = 'finished_goods'

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey('product.id'), nullable=False, index=True)
    bottle_type_id = db.Column(db.Integer, db.ForeignKey('bottle_type.id'), nullable=False)
    production_batch_id = db.Column(
        db.Integer, db.ForeignKey('production_batch.id', ondelete='CASCADE'), nullable=False, index=True
    )
    quantity = db.Column(db.Integer, nullable=False)
    unit_cost = db.Column(db.Numeric(18, 6), nullable=False)
    total_cost = db.Column(db.Numeric(18, 6), nullable=False)
    manufactured_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)

    bottle_type = db.relationship('BottleType')
    production_batch = db.relationship('ProductionBatch', backref=db.backref('finished_goods', lazy='dynamic'))

    __table_args__ = (
        db.UniqueConstraint('production_batch_id', 'bottle_type_id', name='uq_finished_goods_batch_bottle'),
        db.CheckConstraint('quantity > 0', name='check_finished_goods_quantity_positive'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'bottle_type_id': self.bottle_type_id,
            'bottle_size': self.bottle_type.size if self.bottle_type else None,
            'production_batch_id': self.production_batch_id,
            'quantity': self.quantity,
            'unit_cost': as_float(self.unit_cost),
            'total_cost': as_float(self.total_cost),
            'manufactured_date': self.manufactured_date.isoformat() if self.manufactured_date else None,
        }
