"""
Material availability check

Compares a product's recipe, scaled to a volume in liters, against the
aggregate RawMaterial.current_stock counters. Lots are not consulted here.
"""

import logging
from decimal import Decimal
from typing import Iterable, Mapping

from ...extensions import db
from ...models import BottleType, Product, RecipeLine
from ...utils.quantities import parse_decimal, to_decimal
from ..exceptions import NotFoundError, ValidationError
from .types import AvailabilityResult, ShortageLine

logger = logging.getLogger(__name__)

ML_PER_LITER = Decimal('1000')


class MaterialAvailabilityService:
    """Read-only availability checks for planning and batch start."""

    @classmethod
    def check(cls, product_id: int, volume_liters) -> AvailabilityResult:
        volume = parse_decimal(volume_liters)
        if volume is None or volume < 0:
            raise ValidationError('Volume must be a non-negative number', field='volume_liters')

        product = db.session.get(Product, product_id)
        if not product:
            raise NotFoundError('Product', product_id)

        result = AvailabilityResult(product_id=product.id, volume_liters=volume)
        lines = RecipeLine.query.filter_by(product_id=product.id).order_by(RecipeLine.id).all()
        for line in lines:
            material = line.raw_material
            required = to_decimal(line.quantity_per_unit) * volume
            available = to_decimal(material.current_stock)
            if required > available:
                result.insufficient_lines.append(ShortageLine(
                    material_id=material.id,
                    material_name=material.name,
                    unit=material.unit,
                    required=required,
                    available=available,
                ))

        if not result.is_sufficient:
            logger.info(
                "Availability check for product %s at %s L: %d material(s) short",
                product.id, volume, len(result.insufficient_lines),
            )
        return result

    @classmethod
    def volume_for_items(cls, items: Iterable[Mapping]) -> Decimal:
        """Total liters for [{bottle_type_id, quantity}] using bottle capacities."""
        total_ml = Decimal('0')
        for item in items:
            quantity = to_decimal(item.get('quantity'))
            if quantity <= 0:
                continue
            bottle_id = item.get('bottle_type_id')
            bottle = db.session.get(BottleType, bottle_id) if bottle_id is not None else None
            if not bottle:
                raise NotFoundError('BottleType', bottle_id)
            total_ml += Decimal(bottle.capacity_ml or 0) * quantity
        return total_ml / ML_PER_LITER

    @classmethod
    def check_items(cls, product_id: int, items: Iterable[Mapping]) -> AvailabilityResult:
        return cls.check(product_id, cls.volume_for_items(items))
