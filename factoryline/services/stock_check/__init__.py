"""
Material availability check

Recipe-driven shortage detection against the raw-material stock counters.
"""

from .core import MaterialAvailabilityService
from .types import AvailabilityResult, ShortageLine

__all__ = [
    'MaterialAvailabilityService',
    'AvailabilityResult',
    'ShortageLine',
]
