from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from ...extensions import db
from ...models import RawMaterial
from ...utils.quantities import as_float, to_decimal
from ._fifo_ops import ledger_total

logger = logging.getLogger(__name__)

SYNC_TOLERANCE = Decimal('0.001')


def validate_ledger_sync(material_id: int) -> Tuple[bool, str | None, Decimal, Decimal]:
    """Validate that the stock counter matches the lot ledger.

    Returns (is_valid, message, counter, ledger_total).
    """
    material = db.session.get(RawMaterial, material_id)
    if not material:
        return False, "Material not found", Decimal('0'), Decimal('0')

    counter = to_decimal(material.current_stock)
    total = ledger_total(material.id)
    difference = abs(counter - total)

    if difference > SYNC_TOLERANCE:
        logger.error(
            "LEDGER SYNC MISMATCH for material %s (%s): counter=%s ledger=%s diff=%s",
            material.id, material.name, counter, total, difference,
        )
        return False, f"Ledger sync error: counter={counter}, ledger={total}, diff={difference}", counter, total

    return True, None, counter, total


def drift_report() -> List[Dict[str, Any]]:
    """Per-material reconciliation rows, drifted materials flagged."""
    rows = []
    for material in RawMaterial.query.order_by(RawMaterial.name).all():
        is_valid, message, counter, total = validate_ledger_sync(material.id)
        rows.append({
            'material_id': material.id,
            'material_name': material.name,
            'unit': material.unit,
            'counter': as_float(counter),
            'ledger_total': as_float(total),
            'difference': as_float(counter - total),
            'is_valid': is_valid,
            'message': message,
        })
    return rows
