"""Request parsing for batch operations.

Payloads arrive as loose JSON; everything is validated here, before any
database write, and turned into frozen value objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ...utils.quantities import parse_decimal
from ..exceptions import ValidationError


@dataclass(frozen=True)
class PlannedItem:
    bottle_type_id: int
    quantity: int

    def to_dict(self) -> Dict[str, Any]:
        return {'bottle_type_id': self.bottle_type_id, 'quantity': self.quantity}


@dataclass(frozen=True)
class ActualItem:
    bottle_type_id: int
    quantity: int
    defects: int = 0

    @property
    def good(self) -> int:
        return self.quantity - self.defects

    def to_dict(self) -> Dict[str, Any]:
        return {'bottle_type_id': self.bottle_type_id, 'quantity': self.quantity, 'defects': self.defects}


@dataclass(frozen=True)
class ActualMaterial:
    material_id: int
    quantity_used: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {'material_id': self.material_id, 'quantity_used': float(self.quantity_used)}


@dataclass(frozen=True)
class CompletionData:
    actual_items: Tuple[ActualItem, ...]
    actual_materials: Tuple[ActualMaterial, ...]
    brix_before: Optional[Decimal] = None
    brix_after: Optional[Decimal] = None
    acidity_before: Optional[Decimal] = None
    acidity_after: Optional[Decimal] = None
    notes: Optional[str] = None

    def bottle_totals(self) -> Dict[int, int]:
        totals: Dict[int, int] = {}
        for item in self.actual_items:
            totals[item.bottle_type_id] = totals.get(item.bottle_type_id, 0) + item.quantity
        return totals

    def material_totals(self) -> Dict[int, Decimal]:
        totals: Dict[int, Decimal] = {}
        for material in self.actual_materials:
            totals[material.material_id] = totals.get(material.material_id, Decimal('0')) + material.quantity_used
        return totals


def _field(raw: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if name in raw:
            return raw[name]
    return None


def parse_id(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be an integer id', field=field)
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an integer id', field=field)
    if parsed <= 0 or str(parsed) != str(value).strip():
        raise ValidationError(f'{field} must be an integer id', field=field)
    return parsed


def _as_count(value: Any, field: str, default: Optional[int] = None) -> int:
    if value is None and default is not None:
        return default
    number = parse_decimal(value)
    if number is None or number != number.to_integral_value():
        raise ValidationError(f'{field} must be a whole number', field=field)
    return int(number)


def _as_reading(raw: Mapping[str, Any], *names: str) -> Optional[Decimal]:
    value = _field(raw, *names)
    if value is None or value == '':
        return None
    number = parse_decimal(value)
    if number is None:
        raise ValidationError(f'{names[0]} must be numeric', field=names[0])
    return number


def parse_planned_date(value: Any) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError('planned_date must be an ISO date (YYYY-MM-DD)', field='planned_date')


def parse_planned_items(raw_items: Optional[Iterable[Mapping[str, Any]]]) -> List[PlannedItem]:
    """Parse planned items; items with quantity <= 0 are dropped."""
    if raw_items is None:
        raw_items = []
    if not isinstance(raw_items, (list, tuple)):
        raise ValidationError('planned_items must be a list', field='planned_items')

    items = []
    for raw in raw_items:
        if not isinstance(raw, Mapping):
            raise ValidationError('Each planned item must be an object', field='planned_items')
        quantity = _as_count(_field(raw, 'quantity'), 'quantity')
        if quantity <= 0:
            continue
        items.append(PlannedItem(
            bottle_type_id=parse_id(_field(raw, 'bottle_type_id', 'bottleTypeId'), 'bottle_type_id'),
            quantity=quantity,
        ))
    if not items:
        raise ValidationError('At least one planned item with quantity > 0 is required', field='planned_items')
    return items


def parse_completion(payload: Optional[Mapping[str, Any]]) -> CompletionData:
    payload = payload or {}
    raw_items = _field(payload, 'actual_items', 'actualItems') or []
    raw_materials = _field(payload, 'actual_materials', 'actualMaterials') or []
    if not isinstance(raw_items, (list, tuple)) or not raw_items:
        raise ValidationError('actual_items is required', field='actual_items')
    if not isinstance(raw_materials, (list, tuple)) or not raw_materials:
        raise ValidationError('actual_materials is required', field='actual_materials')

    items = []
    for raw in raw_items:
        if not isinstance(raw, Mapping):
            raise ValidationError('Each actual item must be an object', field='actual_items')
        quantity = _as_count(_field(raw, 'quantity'), 'quantity')
        defects = _as_count(_field(raw, 'defects'), 'defects', default=0)
        if quantity < 0:
            raise ValidationError('quantity cannot be negative', field='quantity')
        if defects < 0:
            raise ValidationError('defects cannot be negative', field='defects')
        if defects > quantity:
            raise ValidationError('defects cannot exceed quantity', field='defects')
        items.append(ActualItem(
            bottle_type_id=parse_id(_field(raw, 'bottle_type_id', 'bottleTypeId'), 'bottle_type_id'),
            quantity=quantity,
            defects=defects,
        ))

    materials = []
    for raw in raw_materials:
        if not isinstance(raw, Mapping):
            raise ValidationError('Each actual material must be an object', field='actual_materials')
        used = parse_decimal(_field(raw, 'quantity_used', 'quantityUsed', 'quantity'))
        if used is None:
            raise ValidationError('quantity_used must be numeric', field='quantity_used')
        if used < 0:
            raise ValidationError('quantity_used cannot be negative', field='quantity_used')
        if used == 0:
            continue
        materials.append(ActualMaterial(
            material_id=parse_id(_field(raw, 'material_id', 'materialId', 'raw_material_id'), 'material_id'),
            quantity_used=used,
        ))

    if not any(item.quantity > 0 for item in items):
        raise ValidationError('At least one actual item with quantity > 0 is required', field='actual_items')
    if not materials:
        raise ValidationError('At least one actual material with quantity > 0 is required', field='actual_materials')

    notes = _field(payload, 'execution_notes', 'notes')
    return CompletionData(
        actual_items=tuple(item for item in items if item.quantity > 0),
        actual_materials=tuple(materials),
        brix_before=_as_reading(payload, 'brix_before', 'brixBefore'),
        brix_after=_as_reading(payload, 'brix_after', 'brixAfter'),
        acidity_before=_as_reading(payload, 'acidity_before', 'acidityBefore'),
        acidity_after=_as_reading(payload, 'acidity_after', 'acidityAfter'),
        notes=str(notes).strip() if notes else None,
    )
