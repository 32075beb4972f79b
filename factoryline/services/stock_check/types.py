"""
Type definitions for the material availability check
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List

from ...utils.quantities import as_float


@dataclass
class ShortageLine:
    """One recipe material the current stock cannot cover"""
    material_id: int
    material_name: str
    unit: str
    required: Decimal
    available: Decimal

    @property
    def shortage(self) -> Decimal:
        return self.required - self.available

    def to_dict(self) -> Dict[str, Any]:
        return {
            'material_id': self.material_id,
            'material_name': self.material_name,
            'unit': self.unit,
            'required': as_float(self.required),
            'available': as_float(self.available),
            'shortage': as_float(self.shortage),
        }


@dataclass
class AvailabilityResult:
    """Result of checking a product's recipe against the stock counters"""
    product_id: int
    volume_liters: Decimal
    insufficient_lines: List[ShortageLine] = field(default_factory=list)

    @property
    def is_sufficient(self) -> bool:
        return not self.insufficient_lines

    def shortage_for(self, material_id: int) -> Decimal:
        for line in self.insufficient_lines:
            if line.material_id == material_id:
                return line.shortage
        return Decimal('0')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product_id': self.product_id,
            'volume_liters': as_float(self.volume_liters),
            'is_sufficient': self.is_sufficient,
            'insufficient_materials': [line.to_dict() for line in self.insufficient_lines],
        }
