"""
Production Planning Service Package

Historical and manual production-plan reports built on recipe costs.
"""

from .service import ProductionPlanService
from .types import BottleInfo, MaterialUsage, PlanLine, ProductSummary

__all__ = [
    'ProductionPlanService',
    'BottleInfo',
    'MaterialUsage',
    'PlanLine',
    'ProductSummary',
]
