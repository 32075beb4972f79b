"""
Plan cost aggregation

Groups plan lines per (sellable product, bottle) and rolls the recipe out
into per-material quantities and costs.
"""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List

from .types import MaterialUsage, PlanLine, ProductSummary, RecipeIngredient

logger = logging.getLogger(__name__)


def group_lines(lines: Iterable[PlanLine]) -> List[ProductSummary]:
    """Aggregate lines per key, sorted by total quantity descending."""
    summaries: "OrderedDict[str, ProductSummary]" = OrderedDict()
    for line in lines:
        summary = summaries.get(line.key)
        if summary is None:
            summary = ProductSummary.from_line(line)
            summaries[line.key] = summary
        summary.add(line)
    return sorted(summaries.values(), key=lambda s: s.total_quantity, reverse=True)


def material_usage(lines: Iterable[PlanLine], recipes: Dict[int, List[RecipeIngredient]]) -> List[MaterialUsage]:
    """Materials needed for the lines, sorted by cost descending."""
    usage: "OrderedDict[int, MaterialUsage]" = OrderedDict()
    for line in lines:
        liters = line.bottle.capacity_liters * line.quantity
        for ingredient in recipes.get(line.product_id, []):
            row = usage.get(ingredient.raw_material_id)
            if row is None:
                row = MaterialUsage(
                    material_id=ingredient.raw_material_id,
                    material_name=ingredient.name,
                    unit=ingredient.unit,
                    average_price=ingredient.average_price,
                )
                usage[ingredient.raw_material_id] = row
            needed = ingredient.quantity_per_unit * liters
            row.total_quantity += needed
            row.total_cost += needed * ingredient.average_price
    return sorted(usage.values(), key=lambda m: m.total_cost, reverse=True)
