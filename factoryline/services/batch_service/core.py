import logging
from typing import Any, Dict, List, Optional

from flask import current_app

from ...extensions import db
from ...models import (
    BottleType,
    FinishedGoods,
    ProductionBatch,
    RecipeLine,
    SellableProduct,
    SellableProductVariation,
    StockLotUsage,
)
from ...utils.code_generator import generate_batch_code
from ...utils.quantities import as_float
from ..exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class BatchService:
    """Core batch service for lookups and read models"""

    @classmethod
    def get_batch(cls, batch_id) -> ProductionBatch:
        batch = db.session.get(ProductionBatch, batch_id)
        if not batch:
            raise NotFoundError('ProductionBatch', batch_id)
        return batch

    @classmethod
    def get_batch_by_identifier(cls, batch_identifier) -> ProductionBatch:
        """Get batch by ID or batch code"""
        if str(batch_identifier).isdigit():
            return cls.get_batch(int(batch_identifier))
        batch = ProductionBatch.query.filter_by(batch_code=str(batch_identifier)).first()
        if not batch:
            raise NotFoundError('ProductionBatch', batch_identifier)
        return batch

    @classmethod
    def list_batches(cls, product_id=None, status=None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Newest first, each entry carrying its total planned bottles"""
        max_limit = current_app.config.get('BATCH_LIST_LIMIT', 100)
        limit = max_limit if limit is None else max(1, min(int(limit), max_limit))

        query = ProductionBatch.query
        if product_id:
            query = query.filter(ProductionBatch.product_id == product_id)
        if status and status != 'all':
            query = query.filter(ProductionBatch.status == status)

        batches = (
            query.order_by(ProductionBatch.created_at.desc(), ProductionBatch.id.desc())
            .limit(limit)
            .all()
        )
        return [batch.to_dict(include_costing=False) for batch in batches]

    @classmethod
    def get_batch_detail(cls, batch_id) -> Dict[str, Any]:
        """Batch with product, planned bottle types, recipe and sellable products per bottle."""
        batch = cls.get_batch(batch_id)
        product = batch.product

        bottle_ids = sorted({int(item['bottle_type_id']) for item in (batch.planned_items or [])})
        bottles = BottleType.query.filter(BottleType.id.in_(bottle_ids)).order_by(BottleType.capacity_ml).all() if bottle_ids else []

        recipe = []
        for line in RecipeLine.query.filter_by(product_id=batch.product_id).order_by(RecipeLine.id).all():
            material = line.raw_material
            recipe.append({
                'raw_material_id': material.id,
                'material_name': material.name,
                'unit': material.unit,
                'quantity_per_unit': as_float(line.quantity_per_unit),
                'current_stock': as_float(material.current_stock),
                'average_price': as_float(material.average_price),
            })

        sellable_by_bottle = {}
        for bottle in bottles:
            sellable = cls._sellable_for_bottle(batch.product_id, bottle.id)
            sellable_by_bottle[str(bottle.id)] = sellable.to_dict() if sellable else None

        data = {
            'batch': batch.to_dict(),
            'product': product.to_dict() if product else None,
            'bottle_types': [bottle.to_dict() for bottle in bottles],
            'recipes': recipe,
            'sellable_by_bottle_type': sellable_by_bottle,
        }
        if batch.status == 'completed':
            data['finished_goods'] = [
                row.to_dict() for row in FinishedGoods.query.filter_by(production_batch_id=batch.id).order_by(FinishedGoods.id)
            ]
            data['consumption'] = [
                usage.to_dict() for usage in StockLotUsage.query.filter_by(production_batch_id=batch.id).order_by(StockLotUsage.id)
            ]
        return data

    @staticmethod
    def _sellable_for_bottle(product_id: int, bottle_type_id: int) -> Optional[SellableProduct]:
        via_variation = (
            SellableProduct.query
            .join(SellableProductVariation, SellableProductVariation.sellable_product_id == SellableProduct.id)
            .filter(
                SellableProduct.product_id == product_id,
                SellableProductVariation.bottle_type_id == bottle_type_id,
            )
            .order_by(SellableProduct.id)
            .first()
        )
        if via_variation:
            return via_variation
        return (
            SellableProduct.query
            .filter_by(product_id=product_id, bottle_type_id=bottle_type_id)
            .order_by(SellableProduct.id)
            .first()
        )

    @classmethod
    def next_batch_code(cls, year=None) -> str:
        if year is not None:
            try:
                year = int(year)
            except (TypeError, ValueError):
                raise ValidationError('year must be an integer', field='year')
            if year < 2000 or year > 9999:
                raise ValidationError('year is out of range', field='year')
        return generate_batch_code(year)
