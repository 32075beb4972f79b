"""
Production Plan Service

Read-only projection of production demand. Historical mode aggregates
customer orders due in a date range; manual mode prices an ad-hoc list of
sellable products. Both share the recipe cost model used for batches.
"""

import logging
from collections import OrderedDict
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

from flask import current_app

from ...extensions import cache
from ...models import BottleType, Order, OrderItem, RawMaterial
from ...utils.quantities import ZERO, parse_decimal, to_decimal
from ...utils.timezone_utils import TimezoneUtils
from ..batch_service.dto import parse_id
from ..exceptions import ValidationError
from ._cost_calculation import group_lines, material_usage
from ._line_resolution import cost_per_liter, load_recipes, load_sellables, resolve_bottle
from .types import BottleUsage, PlanLine, summarize_totals

logger = logging.getLogger(__name__)


def _parse_date(value, field: str) -> date:
    if isinstance(value, date):
        return value
    if not value:
        raise ValidationError(f'{field} is required', field=field)
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f'{field} must be an ISO date (YYYY-MM-DD)', field=field)


class ProductionPlanService:
    """Production plan reports"""

    _CACHE_PREFIX = 'production_plan'

    @classmethod
    def _cache_key(cls, start: date, end: date) -> str:
        return f"{cls._CACHE_PREFIX}:{start.isoformat()}:{end.isoformat()}"

    @classmethod
    def build_report(cls, start_date, end_date, force_refresh: bool = False) -> Dict[str, Any]:
        """Historical report over orders delivering in [start_date, end_date]."""
        start = _parse_date(start_date, 'start_date')
        end = _parse_date(end_date, 'end_date')
        if start > end:
            raise ValidationError('start_date must not be after end_date', field='start_date')

        key = cls._cache_key(start, end)
        if not force_refresh:
            cached = cache.get(key)
            if cached is not None:
                return cached

        report = cls._build_historical(start, end)
        cache.set(key, report, timeout=current_app.config.get('PRODUCTION_PLAN_CACHE_TTL', 60))
        return report

    @classmethod
    def _build_historical(cls, start: date, end: date) -> Dict[str, Any]:
        orders = (
            Order.query
            .filter(
                Order.delivery_date >= start,
                Order.delivery_date <= end,
                Order.order_status != Order.STATUS_CANCELLED,
            )
            .order_by(Order.delivery_date.asc(), Order.id.asc())
            .all()
        )
        items = (
            OrderItem.query.filter(OrderItem.order_id.in_([o.id for o in orders])).order_by(OrderItem.id).all()
            if orders else []
        )
        sellables = load_sellables(item.sellable_product_id for item in items)
        recipes = load_recipes(sp.product_id for sp in sellables.values())

        lines: List[PlanLine] = []
        for item in items:
            sellable = sellables.get(item.sellable_product_id)
            if sellable is None or not item.quantity:
                continue
            order = item.order
            delivery = order.delivery_date.isoformat() if order.delivery_date else None
            bottle = resolve_bottle(sellable, item.variation_id, use_first_variation=False, size_hint=item.bottle_size)
            lines.append(PlanLine(
                sellable_product_id=sellable.id,
                sellable_product_code=sellable.code,
                sellable_product_name=sellable.name,
                product_id=sellable.product_id,
                bottle=bottle,
                quantity=int(item.quantity),
                cost_per_liter=cost_per_liter(recipes.get(sellable.product_id, [])),
                order={
                    'order_id': order.id,
                    'order_number': order.order_number,
                    'customer_name': order.customer_name,
                    'delivery_date': delivery,
                },
                delivery_date=delivery,
                bottle_size_hint=item.bottle_size,
            ))

        summary = group_lines(lines)

        by_date: "OrderedDict[str, List[PlanLine]]" = OrderedDict()
        for line in lines:
            by_date.setdefault(line.delivery_date, []).append(line)

        date_groups = []
        for day in sorted(by_date):
            products = group_lines(by_date[day])
            day_totals = summarize_totals(products)
            date_groups.append({
                'date': day,
                'products': [p.to_dict() for p in products],
                'date_totals': {
                    'total_bottles': day_totals['total_bottles'],
                    'total_volume_liters': day_totals['total_volume_liters'],
                    'total_cost': day_totals['total_cost'],
                },
            })

        logger.info(
            "Production plan %s..%s: %d order(s), %d line(s)", start, end, len(orders), len(lines)
        )
        return {
            'start_date': start.isoformat(),
            'end_date': end.isoformat(),
            'summary': [s.to_dict() for s in summary],
            'by_date': date_groups,
            'materials_summary': [m.to_dict() for m in material_usage(lines, recipes)],
            'totals': summarize_totals(summary),
        }

    @classmethod
    def calculate(cls, items: Optional[Iterable[Mapping[str, Any]]]) -> Dict[str, Any]:
        """Manual report for [{sellable_product_id, variation_id?, quantity}]."""
        entries = cls._parse_manual_items(items)
        sellables = load_sellables(entry['sellable_product_id'] for entry in entries)
        recipes = load_recipes(sp.product_id for sp in sellables.values())

        lines: List[PlanLine] = []
        for entry in entries:
            sellable = sellables.get(entry['sellable_product_id'])
            if sellable is None:
                logger.debug("Skipping unknown sellable product %s", entry['sellable_product_id'])
                continue
            bottle = resolve_bottle(sellable, entry['variation_id'], use_first_variation=True)
            lines.append(PlanLine(
                sellable_product_id=sellable.id,
                sellable_product_code=sellable.code,
                sellable_product_name=sellable.name,
                product_id=sellable.product_id,
                bottle=bottle,
                quantity=entry['quantity'],
                cost_per_liter=cost_per_liter(recipes.get(sellable.product_id, [])),
            ))

        summary = group_lines(lines)

        materials = material_usage(lines, recipes)
        stock = {
            m.id: to_decimal(m.current_stock)
            for m in RawMaterial.query.filter(RawMaterial.id.in_([row.material_id for row in materials])).all()
        } if materials else {}
        for row in materials:
            row.current_stock = stock.get(row.material_id, ZERO)

        today = TimezoneUtils.today().isoformat()
        return {
            'start_date': today,
            'end_date': today,
            'summary': [s.to_dict() for s in summary],
            'by_date': [],
            'materials_summary': [m.to_dict() for m in materials],
            'bottle_summary': [b.to_dict() for b in cls._bottle_usage(summary)],
            'totals': summarize_totals(summary),
        }

    @staticmethod
    def _bottle_usage(summary) -> List[BottleUsage]:
        usage: "OrderedDict[int, BottleUsage]" = OrderedDict()
        for row in summary:
            if row.bottle.id is None:
                continue
            entry = usage.get(row.bottle.id)
            if entry is None:
                entry = BottleUsage(
                    bottle_type_id=row.bottle.id,
                    bottle_size=row.bottle.size,
                    capacity_ml=row.bottle.capacity_ml,
                    price=row.bottle.cost_per_bottle,
                )
                usage[row.bottle.id] = entry
            entry.total_quantity += row.total_quantity

        if usage:
            for bottle in BottleType.query.filter(BottleType.id.in_(list(usage))).all():
                usage[bottle.id].current_stock = bottle.stock or 0
        return list(usage.values())

    @staticmethod
    def _parse_manual_items(items) -> List[Dict[str, Any]]:
        if not items:
            raise ValidationError('No items provided', field='items')
        if not isinstance(items, (list, tuple)):
            raise ValidationError('items must be a list', field='items')

        entries = []
        for raw in items:
            if not isinstance(raw, Mapping):
                raise ValidationError('Each item must be an object', field='items')
            sellable_id = parse_id(raw.get('sellable_product_id'), 'sellable_product_id')
            variation_id = raw.get('variation_id')
            if variation_id not in (None, ''):
                variation_id = parse_id(variation_id, 'variation_id')
            quantity = parse_decimal(raw.get('quantity'))
            if quantity is None or quantity < 0 or quantity != quantity.to_integral_value():
                raise ValidationError('quantity must be a non-negative whole number', field='quantity')
            entries.append({
                'sellable_product_id': sellable_id,
                'variation_id': variation_id or None,
                'quantity': int(quantity),
            })
        return entries
