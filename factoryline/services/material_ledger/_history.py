from typing import Any, Dict, List, Optional

from flask import current_app

from ...models import BottleStockTransaction, StockTransaction

DEFAULT_HISTORY_LIMIT = 100


def _clamp_limit(limit: Optional[int]) -> int:
    ceiling = current_app.config.get('MOVEMENT_HISTORY_LIMIT', DEFAULT_HISTORY_LIMIT)
    if limit is None:
        return ceiling
    return max(1, min(int(limit), ceiling))


def material_movements(material_id: Optional[int] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Raw-material movements, newest first, optionally for one material."""
    query = StockTransaction.query
    if material_id:
        query = query.filter(StockTransaction.raw_material_id == material_id)
    rows = (
        query.order_by(StockTransaction.created_at.desc(), StockTransaction.id.desc())
        .limit(_clamp_limit(limit))
        .all()
    )
    movements = []
    for row in rows:
        data = row.to_dict()
        data['material_name'] = row.raw_material.name
        data['unit'] = row.raw_material.unit
        movements.append(data)
    return movements


def bottle_movements(bottle_type_id: Optional[int] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Bottle movements, newest first, optionally for one bottle type."""
    query = BottleStockTransaction.query
    if bottle_type_id:
        query = query.filter(BottleStockTransaction.bottle_type_id == bottle_type_id)
    rows = (
        query.order_by(BottleStockTransaction.created_at.desc(), BottleStockTransaction.id.desc())
        .limit(_clamp_limit(limit))
        .all()
    )
    movements = []
    for row in rows:
        data = row.to_dict()
        data['size'] = row.bottle_type.size
        movements.append(data)
    return movements
