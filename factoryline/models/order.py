from ..extensions import db
from .mixins import TimestampMixin


class Order(TimestampMixin, db.Model):
    """Customer order. Reference data for the production-plan report."""
    __tablename__ = 'customer_order'

    STATUS_CANCELLED = 'cancelled'

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(64), unique=True, nullable=False)
    customer_name = db.Column(db.String(255), nullable=True)
    delivery_date = db.Column(db.Date, nullable=True, index=True)
    order_status = db.Column(db.String(32), nullable=False, default='pending')

    items = db.relationship('OrderItem', backref='order', cascade='all, delete-orphan', order_by='OrderItem.id')

    def __repr__(self):
        return f'<Order {self.order_number}>'


class OrderItem(db.Model):
    __tablename__ = 'order_item'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('customer_order.id'), nullable=False, index=True)
    sellable_product_id = db.Column(db.Integer, db.ForeignKey('sellable_product.id'), nullable=True)
    variation_id = db.Column(db.Integer, db.ForeignKey('sellable_product_variation.id'), nullable=True)
    bottle_size = db.Column(db.String(32), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)

    sellable_product = db.relationship('SellableProduct')
    variation = db.relationship('SellableProductVariation')
