from ..extensions import db
from .mixins import TimestampMixin


class Product(TimestampMixin, db.Model):
    """Manufactured product; owns the recipe used for production."""
    __tablename__ = 'product'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    code = db.Column(db.String(64), unique=True, nullable=True)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    recipe_lines = db.relationship(
        'RecipeLine',
        backref='product',
        cascade='all, delete-orphan',
        order_by='RecipeLine.id',
    )

    def __repr__(self):
        return f'<Product {self.name}>'

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'code': self.code,
            'description': self.description,
        }


class RecipeLine(db.Model):
    """Quantity of one raw material needed per liter of product."""
    __tablename__ = 'product_recipe'

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey('product.id'), nullable=False, index=True)
    raw_material_id = db.Column(db.Integer, db.ForeignKey('raw_material.id'), nullable=False)
    quantity_per_unit = db.Column(db.Numeric(18, 6), nullable=False)

    raw_material = db.relationship('RawMaterial')

    __table_args__ = (
        db.UniqueConstraint('product_id', 'raw_material_id', name='uq_product_recipe_material'),
        db.CheckConstraint('quantity_per_unit >= 0', name='check_recipe_quantity_non_negative'),
    )


class SellableProduct(TimestampMixin, db.Model):
    """Commercial SKU sold to customers; maps to a manufactured product."""
    __tablename__ = 'sellable_product'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False)
    name = db.Column(db.String(128), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey('product.id'), nullable=True)
    bottle_type_id = db.Column(db.Integer, db.ForeignKey('bottle_type.id'), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    product = db.relationship('Product', backref='sellable_products')
    default_bottle = db.relationship('BottleType')
    variations = db.relationship(
        'SellableProductVariation',
        backref='sellable_product',
        order_by='SellableProductVariation.id',
        cascade='all, delete-orphan',
    )

    def __repr__(self):
        return f'<SellableProduct {self.code}>'

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'product_id': self.product_id,
            'bottle_type_id': self.bottle_type_id,
        }


class SellableProductVariation(db.Model):
    """Packaging variant of a sellable product (one bottle type)."""
    __tablename__ = 'sellable_product_variation'

    id = db.Column(db.Integer, primary_key=True)
    sellable_product_id = db.Column(db.Integer, db.ForeignKey('sellable_product.id'), nullable=False, index=True)
    bottle_type_id = db.Column(db.Integer, db.ForeignKey('bottle_type.id'), nullable=True)
    name = db.Column(db.String(128), nullable=True)

    bottle_type = db.relationship('BottleType')
