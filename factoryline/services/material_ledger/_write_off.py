import logging
from decimal import Decimal
from typing import Optional

import sqlalchemy as sa

from ...extensions import db
from ...models import BottleStockTransaction, BottleType, RawMaterial, StockTransaction
from ...utils.quantities import parse_decimal, to_decimal
from ..exceptions import InsufficientStockError, NotFoundError, ValidationError
from ._fifo_ops import consume_fifo

logger = logging.getLogger(__name__)


def write_off_material(
    material_id: int,
    quantity,
    notes: Optional[str] = None,
    actor_id: Optional[int] = None,
    commit: bool = True,
):
    """
    Write off damaged raw material.

    Decrements the counter, takes the quantity from the oldest lots and books a
    ``damage`` transaction priced at the cost of the lots consumed.

    Returns (transaction, usages).
    """
    qty = parse_decimal(quantity)
    if qty is None or qty <= 0:
        raise ValidationError('Quantity must be greater than zero', field='quantity')

    try:
        material = RawMaterial.query.filter_by(id=material_id).with_for_update().first()
        if not material:
            raise NotFoundError('RawMaterial', material_id)

        result = db.session.execute(
            sa.update(RawMaterial)
            .where(RawMaterial.id == material.id, RawMaterial.current_stock >= qty)
            .values(current_stock=RawMaterial.current_stock - qty)
        )
        if result.rowcount != 1:
            available = to_decimal(material.current_stock)
            raise InsufficientStockError(
                f'Not enough {material.name} to write off: requested {qty} {material.unit}, '
                f'available {available}',
                [{
                    'material_id': material.id,
                    'material_name': material.name,
                    'unit': material.unit,
                    'needed': float(qty),
                    'available': float(available),
                    'shortage': float(qty - available),
                }],
            )

        transaction = StockTransaction(
            raw_material_id=material.id,
            transaction_type=StockTransaction.TYPE_DAMAGE,
            quantity=qty,
            notes=notes,
            created_by=actor_id,
        )
        db.session.add(transaction)
        db.session.flush()

        usages = consume_fifo(material.id, qty, None, stock_transaction_id=transaction.id)
        total = sum((usage.cost for usage in usages), Decimal('0'))
        transaction.total_price = total
        transaction.unit_price = total / qty
        db.session.flush()

        if commit:
            db.session.commit()
    except Exception:
        if commit:
            db.session.rollback()
        raise

    logger.warning(
        "Wrote off %s %s of %s as damaged (cost %s)", qty, material.unit, material.name, transaction.total_price
    )
    return transaction, usages


def write_off_bottles(
    bottle_type_id: int,
    quantity,
    notes: Optional[str] = None,
    actor_id: Optional[int] = None,
    commit: bool = True,
):
    """Write off damaged bottles; the stock never goes below zero."""
    qty = parse_decimal(quantity)
    if qty is None or qty <= 0 or qty != qty.to_integral_value():
        raise ValidationError('Quantity must be a positive whole number', field='quantity')
    qty = int(qty)

    try:
        bottle = BottleType.query.filter_by(id=bottle_type_id).with_for_update().first()
        if not bottle:
            raise NotFoundError('BottleType', bottle_type_id)

        result = db.session.execute(
            sa.update(BottleType)
            .where(BottleType.id == bottle.id, BottleType.stock >= qty)
            .values(stock=BottleType.stock - qty)
        )
        if result.rowcount != 1:
            available = bottle.stock or 0
            raise InsufficientStockError(
                f'Not enough {bottle.size} bottles to write off: requested {qty}, available {available}',
                [{
                    'bottle_type_id': bottle.id,
                    'size': bottle.size,
                    'needed': qty,
                    'available': available,
                    'shortage': qty - available,
                }],
            )

        transaction = BottleStockTransaction(
            bottle_type_id=bottle.id,
            transaction_type='damage',
            quantity=qty,
            notes=notes,
            created_by=actor_id,
        )
        db.session.add(transaction)
        db.session.flush()

        if commit:
            db.session.commit()
    except Exception:
        if commit:
            db.session.rollback()
        raise

    logger.warning("Wrote off %s x %s bottles as damaged", qty, bottle.size)
    return transaction
