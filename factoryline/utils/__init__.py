from .quantities import as_float, parse_decimal, quantize, safe_divide, to_decimal
from .timezone_utils import TimezoneUtils

__all__ = [
    "TimezoneUtils",
    "as_float",
    "parse_decimal",
    "quantize",
    "safe_divide",
    "to_decimal",
]
