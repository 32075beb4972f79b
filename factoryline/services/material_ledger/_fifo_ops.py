import logging
from decimal import Decimal
from typing import List, Optional, Tuple

import sqlalchemy as sa

from ...extensions import db
from ...models import RawMaterial, RawMaterialLot, StockLotUsage
from ...utils.quantities import to_decimal
from ..exceptions import InsufficientLotsError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _open_lots_query(material_id: int):
    return (
        RawMaterialLot.query
        .filter(
            RawMaterialLot.raw_material_id == material_id,
            RawMaterialLot.quantity_remaining > 0,
        )
        .order_by(RawMaterialLot.acquired_at.asc(), RawMaterialLot.id.asc())
    )


def ledger_total(material_id: int) -> Decimal:
    """Sum of quantity_remaining across a material's lots."""
    total = (
        db.session.query(sa.func.coalesce(sa.func.sum(RawMaterialLot.quantity_remaining), 0))
        .filter(RawMaterialLot.raw_material_id == material_id)
        .scalar()
    )
    return to_decimal(total)


def calculate_deduction_plan(material_id: int, quantity_needed, lock: bool = False) -> Tuple[List[Tuple[RawMaterialLot, Decimal]], Decimal]:
    """
    Walk open lots oldest-first and decide how much to take from each.

    Returns (plan, available) where plan is [(lot, take)]. The plan is short
    when available < quantity_needed; callers decide whether that is fatal.
    """
    needed = to_decimal(quantity_needed)
    query = _open_lots_query(material_id)
    if lock:
        query = query.with_for_update()
    lots = query.all()

    available = sum((to_decimal(lot.quantity_remaining) for lot in lots), Decimal('0'))
    plan = []
    still_needed = needed
    for lot in lots:
        if still_needed <= 0:
            break
        take = min(to_decimal(lot.quantity_remaining), still_needed)
        plan.append((lot, take))
        still_needed -= take
    return plan, available


def consume_fifo(
    material_id: int,
    quantity_needed,
    production_batch_id: Optional[int],
    stock_transaction_id: Optional[int] = None,
) -> List[StockLotUsage]:
    """
    Consume a material's lots oldest-first for a production batch, or for a
    damage write-off when production_batch_id is None.

    Each lot is decremented with a conditional UPDATE so a concurrent writer
    can never drive quantity_remaining below zero, and every slice taken is
    recorded as a StockLotUsage at the lot's unit cost. Must run inside the
    caller's transaction; nothing is committed here.
    """
    needed = to_decimal(quantity_needed)
    if needed <= 0:
        raise ValidationError('Quantity to consume must be greater than zero', field='quantity_needed')

    material = db.session.get(RawMaterial, material_id)
    if not material:
        raise NotFoundError('RawMaterial', material_id)

    purpose = f'batch {production_batch_id}' if production_batch_id else 'write-off'
    plan, available = calculate_deduction_plan(material_id, needed, lock=True)
    if available < needed:
        logger.error(
            "FIFO: ledger for material %s (%s) holds %s, %s required by %s",
            material.id, material.name, available, needed, purpose,
        )
        raise InsufficientLotsError(material.id, material.name, needed, available)

    usages = []
    for lot, take in plan:
        result = db.session.execute(
            sa.update(RawMaterialLot)
            .where(
                RawMaterialLot.id == lot.id,
                RawMaterialLot.quantity_remaining >= take,
            )
            .values(quantity_remaining=RawMaterialLot.quantity_remaining - take)
        )
        if result.rowcount != 1:
            # Lot moved underneath us; report what the ledger holds now.
            db.session.expire(lot)
            raise InsufficientLotsError(material.id, material.name, needed, ledger_total(material.id))

        usage = StockLotUsage(
            production_batch_id=production_batch_id,
            lot_id=lot.id,
            raw_material_id=material.id,
            quantity_consumed=take,
            unit_cost_at_consumption=to_decimal(lot.unit_cost),
            stock_transaction_id=stock_transaction_id,
        )
        db.session.add(usage)
        usages.append(usage)
        logger.debug("FIFO: lot %s gave %s of %s to %s", lot.id, take, material.name, purpose)

    db.session.flush()
    logger.info(
        "FIFO: consumed %s of %s across %d lot(s) for %s",
        needed, material.name, len(usages), purpose,
    )
    return usages
