import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Any, Iterable, List, Mapping

from ..extensions import db
from ..models import BottleType, FinishedGoods, ProductionBatch
from ..utils.quantities import to_decimal
from ..utils.timezone_utils import TimezoneUtils
from .costing_engine import BatchCost
from .exceptions import NotFoundError

logger = logging.getLogger(__name__)


class FinishedGoodsService:
    """Registers the sellable output of a completed batch."""

    @staticmethod
    def good_quantities(actual_items: Iterable[Mapping[str, Any]]) -> "OrderedDict[int, int]":
        """Good bottles per bottle type (quantity minus defects), merged across items."""
        merged: "OrderedDict[int, int]" = OrderedDict()
        for item in actual_items:
            good = int(item['quantity']) - int(item.get('defects') or 0)
            merged[item['bottle_type_id']] = merged.get(item['bottle_type_id'], 0) + good
        return merged

    @staticmethod
    def unit_cost_for(bottle: BottleType, cost: BatchCost) -> Decimal:
        return cost.material_cost_per_ml * Decimal(bottle.capacity_ml or 0) + to_decimal(bottle.price)

    @classmethod
    def register(
        cls,
        batch: ProductionBatch,
        actual_items: Iterable[Mapping[str, Any]],
        cost: BatchCost,
        manufactured_date=None,
    ) -> List[FinishedGoods]:
        """Create one FinishedGoods row per bottle type with good > 0. Does not commit."""
        manufactured = manufactured_date or TimezoneUtils.today()
        rows = []
        for bottle_id, good in cls.good_quantities(actual_items).items():
            if good <= 0:
                logger.info("Batch %s: no good bottles of type %s, skipping", batch.batch_code, bottle_id)
                continue
            bottle = db.session.get(BottleType, bottle_id)
            if not bottle:
                raise NotFoundError('BottleType', bottle_id)

            unit_cost = cls.unit_cost_for(bottle, cost)
            row = FinishedGoods(
                product_id=batch.product_id,
                bottle_type_id=bottle.id,
                production_batch_id=batch.id,
                quantity=good,
                unit_cost=unit_cost,
                total_cost=unit_cost * good,
                manufactured_date=manufactured,
            )
            db.session.add(row)
            rows.append(row)

        db.session.flush()
        logger.info("Batch %s: registered %d finished goods row(s)", batch.batch_code, len(rows))
        return rows
