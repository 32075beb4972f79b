import logging
from decimal import Decimal
from typing import Optional

from ...extensions import db
from ...models import BottleStockTransaction, BottleType, RawMaterial, RawMaterialLot, StockTransaction
from ...utils.quantities import parse_decimal, to_decimal
from ...utils.timezone_utils import TimezoneUtils
from ..exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _weighted_average(old_quantity: Decimal, old_price: Decimal, added_quantity: Decimal, added_price: Decimal) -> Decimal:
    old_quantity = max(old_quantity, Decimal('0'))
    combined = old_quantity + added_quantity
    if combined <= 0:
        return added_price
    return (old_quantity * old_price + added_quantity * added_price) / combined


def receive_material(
    material_id: int,
    quantity,
    unit_price,
    acquired_at=None,
    notes: Optional[str] = None,
    actor_id: Optional[int] = None,
    commit: bool = True,
):
    """
    Book a raw-material receipt: an ``in`` transaction, a new FIFO lot, the
    counter increment and the moving-average price, all in one unit.

    Returns (transaction, lot).
    """
    qty = parse_decimal(quantity)
    if qty is None or qty <= 0:
        raise ValidationError('Quantity must be greater than zero', field='quantity')
    price = parse_decimal(unit_price)
    if price is None or price <= 0:
        raise ValidationError('Unit price must be greater than zero', field='unit_price')

    try:
        material = (
            RawMaterial.query.filter_by(id=material_id).with_for_update().first()
        )
        if not material:
            raise NotFoundError('RawMaterial', material_id)

        acquired = TimezoneUtils.ensure_timezone_aware(acquired_at) or TimezoneUtils.utc_now()

        transaction = StockTransaction(
            raw_material_id=material.id,
            transaction_type=StockTransaction.TYPE_IN,
            quantity=qty,
            unit_price=price,
            total_price=qty * price,
            notes=notes,
            created_by=actor_id,
            created_at=acquired,
        )
        db.session.add(transaction)
        db.session.flush()

        lot = RawMaterialLot(
            raw_material_id=material.id,
            acquired_at=acquired,
            original_quantity=qty,
            quantity_remaining=qty,
            unit_cost=price,
            stock_transaction_id=transaction.id,
        )
        db.session.add(lot)

        current = to_decimal(material.current_stock)
        material.average_price = _weighted_average(current, to_decimal(material.average_price), qty, price)
        material.current_stock = current + qty
        db.session.flush()

        if commit:
            db.session.commit()
    except Exception:
        if commit:
            db.session.rollback()
        raise

    logger.info(
        "Received %s %s of %s at %s (lot %s)", qty, material.unit, material.name, price, lot.id
    )
    return transaction, lot


def receive_bottles(
    bottle_type_id: int,
    quantity,
    notes: Optional[str] = None,
    unit_price=None,
    actor_id: Optional[int] = None,
    commit: bool = True,
):
    """Book a bottle receipt; optionally folds the purchase price into average_price."""
    qty = parse_decimal(quantity)
    if qty is None or qty <= 0 or qty != qty.to_integral_value():
        raise ValidationError('Quantity must be a positive whole number', field='quantity')
    qty = int(qty)

    price = None
    if unit_price not in (None, ''):
        price = parse_decimal(unit_price)
        if price is None or price <= 0:
            raise ValidationError('Unit price must be greater than zero', field='unit_price')

    try:
        bottle = BottleType.query.filter_by(id=bottle_type_id).with_for_update().first()
        if not bottle:
            raise NotFoundError('BottleType', bottle_type_id)

        transaction = BottleStockTransaction(
            bottle_type_id=bottle.id,
            transaction_type='in',
            quantity=qty,
            notes=notes,
            created_by=actor_id,
        )
        db.session.add(transaction)

        if price is not None:
            baseline = to_decimal(bottle.average_price if bottle.average_price is not None else bottle.price)
            bottle.average_price = _weighted_average(Decimal(bottle.stock or 0), baseline, Decimal(qty), price)
        bottle.stock = (bottle.stock or 0) + qty
        db.session.flush()

        if commit:
            db.session.commit()
    except Exception:
        if commit:
            db.session.rollback()
        raise

    logger.info("Received %s x %s bottles (stock now %s)", qty, bottle.size, bottle.stock)
    return transaction
