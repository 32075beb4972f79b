"""Builders for test data. All of them expect an active app context."""

from datetime import date, datetime, timezone
from decimal import Decimal

from factoryline.extensions import db
from factoryline.models import (
    BottleType,
    Order,
    OrderItem,
    Product,
    RawMaterial,
    RecipeLine,
    SellableProduct,
    SellableProductVariation,
    User,
)
from factoryline.services.material_ledger import receive_material


def make_user(email='operator@example.com', is_admin=False, is_active=True):
    user = User(email=email, is_admin=is_admin, is_active=is_active)
    user.issue_token()
    db.session.add(user)
    db.session.commit()
    return user


def make_product(name='P1', code=None):
    product = Product(name=name, code=code or name.upper())
    db.session.add(product)
    db.session.commit()
    return product


def make_material(name='matA', unit='kg', current_stock=0, average_price=0):
    material = RawMaterial(
        name=name,
        unit=unit,
        current_stock=Decimal(str(current_stock)),
        average_price=Decimal(str(average_price)),
    )
    db.session.add(material)
    db.session.commit()
    return material


def add_recipe_line(product, material, quantity_per_unit):
    line = RecipeLine(
        product_id=product.id,
        raw_material_id=material.id,
        quantity_per_unit=Decimal(str(quantity_per_unit)),
    )
    db.session.add(line)
    db.session.commit()
    return line


def make_bottle(size='250ml', capacity_ml=250, price='0.5', stock=0, average_price=None):
    bottle = BottleType(
        size=size,
        capacity_ml=capacity_ml,
        price=Decimal(str(price)),
        average_price=Decimal(str(average_price)) if average_price is not None else None,
        stock=stock,
    )
    db.session.add(bottle)
    db.session.commit()
    return bottle


def add_lot(material, quantity, unit_cost, day=1):
    """Receive a lot acquired on 2024-01-<day> so FIFO order is deterministic."""
    acquired = datetime(2024, 1, day, 8, 0, tzinfo=timezone.utc)
    _, lot = receive_material(material.id, quantity, unit_cost, acquired_at=acquired)
    return lot


def make_sellable(code, product, bottle=None, name=None):
    sellable = SellableProduct(
        code=code,
        name=name or code,
        product_id=product.id if product else None,
        bottle_type_id=bottle.id if bottle else None,
    )
    db.session.add(sellable)
    db.session.commit()
    return sellable


def add_variation(sellable, bottle, name=None):
    variation = SellableProductVariation(
        sellable_product_id=sellable.id,
        bottle_type_id=bottle.id if bottle else None,
        name=name or (bottle.size if bottle else None),
    )
    db.session.add(variation)
    db.session.commit()
    return variation


def make_order(number, delivery_date, items, status='pending', customer_name='Cafe Sol'):
    """items: [(sellable, quantity, variation_or_None, bottle_size_or_None)]"""
    order = Order(
        order_number=number,
        customer_name=customer_name,
        delivery_date=delivery_date if isinstance(delivery_date, date) else date.fromisoformat(delivery_date),
        order_status=status,
    )
    for sellable, quantity, variation, bottle_size in items:
        order.items.append(OrderItem(
            sellable_product_id=sellable.id,
            variation_id=variation.id if variation else None,
            bottle_size=bottle_size,
            quantity=quantity,
        ))
    db.session.add(order)
    db.session.commit()
    return order


def auth_headers(token):
    return {'Authorization': f'Bearer {token}'}
