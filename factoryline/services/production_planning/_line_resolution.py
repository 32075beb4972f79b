"""
Line resolution

Turns sellable-product demand (order items or manual entries) into plan
lines with a concrete bottle and the product's recipe cost per liter.
"""

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from ...extensions import db
from ...models import BottleType, RecipeLine, SellableProduct, SellableProductVariation
from ...utils.quantities import ZERO, to_decimal
from .types import BottleInfo, RecipeIngredient

logger = logging.getLogger(__name__)


def bottle_info(bottle: Optional[BottleType]) -> Optional[BottleInfo]:
    """Planning cost per bottle is the average purchase price, falling back to list price."""
    if bottle is None:
        return None
    average = to_decimal(bottle.average_price) if bottle.average_price is not None else ZERO
    cost = average if average > 0 else to_decimal(bottle.price)
    return BottleInfo(
        id=bottle.id,
        size=bottle.size,
        capacity_ml=bottle.capacity_ml or 0,
        cost_per_bottle=cost,
    )


def load_recipes(product_ids: Iterable[Optional[int]]) -> Dict[int, List[RecipeIngredient]]:
    ids = sorted({pid for pid in product_ids if pid})
    recipes: Dict[int, List[RecipeIngredient]] = {pid: [] for pid in ids}
    if not ids:
        return recipes
    lines = RecipeLine.query.filter(RecipeLine.product_id.in_(ids)).order_by(RecipeLine.id).all()
    for line in lines:
        material = line.raw_material
        recipes[line.product_id].append(RecipeIngredient(
            raw_material_id=material.id,
            name=material.name,
            unit=material.unit,
            quantity_per_unit=to_decimal(line.quantity_per_unit),
            average_price=to_decimal(material.average_price),
        ))
    return recipes


def cost_per_liter(recipe: Iterable[RecipeIngredient]) -> Decimal:
    return sum((ing.quantity_per_unit * ing.average_price for ing in recipe), ZERO)


def load_sellables(sellable_ids: Iterable[int]) -> Dict[int, SellableProduct]:
    ids = sorted({sid for sid in sellable_ids if sid})
    if not ids:
        return {}
    return {sp.id: sp for sp in SellableProduct.query.filter(SellableProduct.id.in_(ids)).all()}


def first_variation(sellable: SellableProduct) -> Optional[SellableProductVariation]:
    return (
        SellableProductVariation.query
        .filter_by(sellable_product_id=sellable.id)
        .order_by(SellableProductVariation.id)
        .first()
    )


def resolve_bottle(
    sellable: SellableProduct,
    variation_id: Optional[int] = None,
    use_first_variation: bool = False,
    size_hint: Optional[str] = None,
) -> BottleInfo:
    """
    Resolve the bottle for a demand line.

    Order of preference: the chosen variation's bottle; when no variation was
    chosen, the product's first variation (manual planning only) and then the
    sellable product's default bottle. Anything unresolvable becomes the
    zero-capacity placeholder.
    """
    if variation_id:
        variation = db.session.get(SellableProductVariation, variation_id)
        if variation is not None and variation.sellable_product_id == sellable.id and variation.bottle_type:
            return bottle_info(variation.bottle_type)
        if use_first_variation:
            return BottleInfo.placeholder(size_hint)
    else:
        if use_first_variation:
            variation = first_variation(sellable)
            if variation is not None and variation.bottle_type:
                return bottle_info(variation.bottle_type)

    if sellable.bottle_type_id:
        bottle = db.session.get(BottleType, sellable.bottle_type_id)
        if bottle is not None:
            return bottle_info(bottle)

    logger.debug("No bottle resolved for sellable product %s; using placeholder", sellable.id)
    return BottleInfo.placeholder(size_hint)
