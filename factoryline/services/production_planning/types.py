"""
Production Planning Types

Data structures shared by the historical and manual production-plan reports.
Amounts are kept as Decimal until ``to_dict``.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ...utils.quantities import ZERO, as_float

ML_PER_LITER = Decimal('1000')


@dataclass(frozen=True)
class BottleInfo:
    """Bottle a plan line is packed in; id None marks the placeholder."""
    id: Optional[int]
    size: str
    capacity_ml: int
    cost_per_bottle: Decimal

    @property
    def capacity_liters(self) -> Decimal:
        return Decimal(self.capacity_ml or 0) / ML_PER_LITER

    @classmethod
    def placeholder(cls, size: Optional[str] = None) -> 'BottleInfo':
        return cls(id=None, size=size or '-', capacity_ml=0, cost_per_bottle=ZERO)


@dataclass(frozen=True)
class RecipeIngredient:
    raw_material_id: int
    name: str
    unit: str
    quantity_per_unit: Decimal
    average_price: Decimal


@dataclass
class PlanLine:
    """One resolved demand line: a sellable product in a bottle, with a quantity."""
    sellable_product_id: int
    sellable_product_code: str
    sellable_product_name: str
    product_id: Optional[int]
    bottle: BottleInfo
    quantity: int
    cost_per_liter: Decimal = ZERO
    order: Optional[Dict[str, Any]] = None
    delivery_date: Optional[str] = None
    bottle_size_hint: Optional[str] = None

    @property
    def key(self) -> str:
        suffix = self.bottle.id if self.bottle.id is not None else (self.bottle_size_hint or 'default')
        return f'{self.sellable_product_id}-{suffix}'

    @property
    def material_cost_per_bottle(self) -> Decimal:
        return self.cost_per_liter * self.bottle.capacity_liters

    @property
    def total_cost_per_bottle(self) -> Decimal:
        return self.material_cost_per_bottle + self.bottle.cost_per_bottle


@dataclass
class ProductSummary:
    sellable_product_id: int
    sellable_product_code: str
    sellable_product_name: str
    product_id: Optional[int]
    bottle: BottleInfo
    material_cost_per_bottle: Decimal
    bottle_cost_per_bottle: Decimal
    total_quantity: int = 0
    volume_liters: Decimal = ZERO
    total_material_cost: Decimal = ZERO
    total_bottle_cost: Decimal = ZERO
    total_cost: Decimal = ZERO
    orders: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_line(cls, line: PlanLine) -> 'ProductSummary':
        return cls(
            sellable_product_id=line.sellable_product_id,
            sellable_product_code=line.sellable_product_code,
            sellable_product_name=line.sellable_product_name,
            product_id=line.product_id,
            bottle=line.bottle,
            material_cost_per_bottle=line.material_cost_per_bottle,
            bottle_cost_per_bottle=line.bottle.cost_per_bottle,
        )

    def add(self, line: PlanLine) -> None:
        self.total_quantity += line.quantity
        self.volume_liters += line.bottle.capacity_liters * line.quantity
        self.total_material_cost += line.material_cost_per_bottle * line.quantity
        self.total_bottle_cost += line.bottle.cost_per_bottle * line.quantity
        self.total_cost += line.total_cost_per_bottle * line.quantity
        if line.order is not None:
            self.orders.append(dict(line.order, quantity=line.quantity))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sellable_product_id': self.sellable_product_id,
            'sellable_product_code': self.sellable_product_code,
            'sellable_product_name': self.sellable_product_name,
            'product_id': self.product_id,
            'bottle_type_id': self.bottle.id,
            'bottle_size': self.bottle.size,
            'capacity_ml': self.bottle.capacity_ml,
            'total_quantity': self.total_quantity,
            'volume_liters': as_float(self.volume_liters),
            'material_cost_per_bottle': as_float(self.material_cost_per_bottle),
            'bottle_cost_per_bottle': as_float(self.bottle_cost_per_bottle),
            'total_cost_per_bottle': as_float(self.material_cost_per_bottle + self.bottle_cost_per_bottle),
            'total_material_cost': as_float(self.total_material_cost),
            'total_bottle_cost': as_float(self.total_bottle_cost),
            'total_cost': as_float(self.total_cost),
            'orders': self.orders,
        }


@dataclass
class MaterialUsage:
    material_id: int
    material_name: str
    unit: str
    average_price: Decimal
    total_quantity: Decimal = ZERO
    total_cost: Decimal = ZERO
    current_stock: Optional[Decimal] = None

    @property
    def is_sufficient(self) -> Optional[bool]:
        if self.current_stock is None:
            return None
        return self.current_stock >= self.total_quantity

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'material_id': self.material_id,
            'material_name': self.material_name,
            'unit': self.unit,
            'total_quantity': as_float(self.total_quantity),
            'average_price': as_float(self.average_price),
            'total_cost': as_float(self.total_cost),
        }
        if self.current_stock is not None:
            data['current_stock'] = as_float(self.current_stock)
            data['is_sufficient'] = self.is_sufficient
        return data


@dataclass
class BottleUsage:
    bottle_type_id: int
    bottle_size: str
    capacity_ml: int
    price: Decimal
    total_quantity: int = 0
    current_stock: int = 0

    @property
    def is_sufficient(self) -> bool:
        return self.current_stock >= self.total_quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bottle_type_id': self.bottle_type_id,
            'bottle_size': self.bottle_size,
            'capacity_ml': self.capacity_ml,
            'total_quantity': self.total_quantity,
            'price': as_float(self.price),
            'current_stock': self.current_stock,
            'is_sufficient': self.is_sufficient,
        }


def summarize_totals(summaries: List[ProductSummary]) -> Dict[str, Any]:
    return {
        'total_bottles': sum(s.total_quantity for s in summaries),
        'total_volume_liters': as_float(sum((s.volume_liters for s in summaries), ZERO)),
        'total_material_cost': as_float(sum((s.total_material_cost for s in summaries), ZERO)),
        'total_bottle_cost': as_float(sum((s.total_bottle_cost for s in summaries), ZERO)),
        'total_cost': as_float(sum((s.total_cost for s in summaries), ZERO)),
    }
