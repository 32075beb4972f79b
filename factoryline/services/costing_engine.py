import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..extensions import db
from ..models import BottleType, RawMaterial, StockLotUsage
from ..utils.quantities import ZERO, as_float, quantize, safe_divide, to_decimal
from .exceptions import CostingError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class BatchCost:
    """Cost rollup for one production batch. Values are unrounded Decimals."""
    material_cost: Decimal = ZERO
    bottle_cost: Decimal = ZERO
    total_volume_ml: Decimal = ZERO
    materials: List[Dict[str, Any]] = field(default_factory=list)
    bottles: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def total_cost(self) -> Decimal:
        return self.material_cost + self.bottle_cost

    @property
    def unit_cost_per_ml(self) -> Decimal:
        return safe_divide(self.total_cost, self.total_volume_ml)

    @property
    def material_cost_per_ml(self) -> Decimal:
        return safe_divide(self.material_cost, self.total_volume_ml)

    def breakdown(self) -> Dict[str, Any]:
        """JSON-ready breakdown; this is where rounding happens."""
        return {
            'materials': [
                {
                    'material_id': row['material_id'],
                    'name': row['name'],
                    'unit': row['unit'],
                    'quantity': as_float(row['quantity']),
                    'cost': as_float(row['cost']),
                    'lots': [
                        {
                            'lot_id': lot['lot_id'],
                            'quantity': as_float(lot['quantity']),
                            'unit_cost': as_float(lot['unit_cost']),
                            'cost': as_float(lot['cost']),
                        }
                        for lot in row['lots']
                    ],
                }
                for row in self.materials
            ],
            'bottles': [
                {
                    'bottle_type_id': row['bottle_type_id'],
                    'size': row['size'],
                    'quantity': row['quantity'],
                    'unit_price': as_float(row['unit_price']),
                    'cost': as_float(row['cost']),
                }
                for row in self.bottles
            ],
            'material_cost': as_float(self.material_cost),
            'bottle_cost': as_float(self.bottle_cost),
            'total_cost': as_float(self.total_cost),
            'total_volume_ml': as_float(self.total_volume_ml),
            'unit_cost_per_ml': as_float(self.unit_cost_per_ml, places=6),
        }


def weighted_unit_cost_for_batch_material(production_batch_id: int, raw_material_id: int) -> Decimal:
    """Weighted-average unit cost of the lots a batch drew for one material."""
    usages = StockLotUsage.query.filter_by(
        production_batch_id=production_batch_id, raw_material_id=raw_material_id
    ).all()
    total_qty = sum((to_decimal(u.quantity_consumed) for u in usages), ZERO)
    total_cost = sum((to_decimal(u.quantity_consumed) * to_decimal(u.unit_cost_at_consumption) for u in usages), ZERO)
    return safe_divide(total_cost, total_qty)


def _material_rollup(production_batch_id: int, expected: Optional[Mapping[int, Decimal]]) -> List[Dict[str, Any]]:
    usages = (
        StockLotUsage.query
        .filter_by(production_batch_id=production_batch_id)
        .order_by(StockLotUsage.raw_material_id, StockLotUsage.id)
        .all()
    )
    rows: "OrderedDict[int, Dict[str, Any]]" = OrderedDict()
    for usage in usages:
        row = rows.get(usage.raw_material_id)
        if row is None:
            material = db.session.get(RawMaterial, usage.raw_material_id)
            row = {
                'material_id': usage.raw_material_id,
                'name': material.name if material else None,
                'unit': material.unit if material else None,
                'quantity': ZERO,
                'cost': ZERO,
                'lots': [],
            }
            rows[usage.raw_material_id] = row
        quantity = to_decimal(usage.quantity_consumed)
        unit_cost = to_decimal(usage.unit_cost_at_consumption)
        row['quantity'] += quantity
        row['cost'] += quantity * unit_cost
        row['lots'].append({
            'lot_id': usage.lot_id,
            'quantity': quantity,
            'unit_cost': unit_cost,
            'cost': quantity * unit_cost,
        })

    if expected is not None:
        for material_id, quantity in expected.items():
            consumed = rows[material_id]['quantity'] if material_id in rows else ZERO
            if quantize(consumed, 6) != quantize(quantity, 6):
                raise CostingError(
                    f"Consumption records for material {material_id} total {consumed}, expected {quantity}",
                    {'material_id': material_id, 'consumed': float(consumed), 'expected': float(quantity)},
                )
    return list(rows.values())


def compute_batch_cost(
    production_batch_id: int,
    actual_items: Iterable[Mapping[str, Any]],
    expected_materials: Optional[Mapping[int, Decimal]] = None,
) -> BatchCost:
    """
    Roll up the cost of a batch from its consumption records and bottle usage.

    Material cost comes only from StockLotUsage rows. When expected_materials
    is given, each material's consumed total must match it exactly.
    """
    materials = _material_rollup(production_batch_id, expected_materials)
    cost = BatchCost(materials=materials)
    cost.material_cost = sum((row['cost'] for row in materials), ZERO)

    bottles: "OrderedDict[int, Dict[str, Any]]" = OrderedDict()
    for item in actual_items:
        bottle_id = item['bottle_type_id']
        quantity = int(item['quantity'])
        bottle = db.session.get(BottleType, bottle_id)
        if not bottle:
            raise NotFoundError('BottleType', bottle_id)
        unit_price = to_decimal(bottle.price)
        row = bottles.setdefault(bottle_id, {
            'bottle_type_id': bottle_id,
            'size': bottle.size,
            'quantity': 0,
            'unit_price': unit_price,
            'cost': ZERO,
            'capacity_ml': bottle.capacity_ml or 0,
        })
        row['quantity'] += quantity
        row['cost'] += unit_price * quantity
        cost.total_volume_ml += Decimal(bottle.capacity_ml or 0) * quantity

    cost.bottles = list(bottles.values())
    cost.bottle_cost = sum((row['cost'] for row in cost.bottles), ZERO)

    logger.info(
        "Costed batch %s: materials=%s bottles=%s volume_ml=%s",
        production_batch_id, cost.material_cost, cost.bottle_cost, cost.total_volume_ml,
    )
    return cost
