"""Decimal helpers for stock quantities and money.

Synopsis:
All arithmetic on quantities and costs is done on ``Decimal``. Values are only
rounded when they leave the system (JSON payloads, log lines).
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

ZERO = Decimal("0")
DISPLAY_PLACES = 4


# --- Decimal normalize ---
# Purpose: Coerce user or database values into Decimal without float drift.
def to_decimal(value: object, default: Decimal = ZERO) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise InvalidOperation(f"Boolean is not a quantity: {value!r}")
    return Decimal(str(value))


def parse_decimal(value: object) -> Decimal | None:
    """Lenient variant for request parsing; returns None when the value is not numeric."""
    try:
        result = to_decimal(value, default=None)
    except (InvalidOperation, ValueError, TypeError):
        return None
    if result is None or not result.is_finite():
        return None
    return result


# --- Presentation rounding ---
def quantize(value: object, places: int = DISPLAY_PLACES) -> Decimal:
    exponent = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def as_float(value: object, places: int = DISPLAY_PLACES) -> float | None:
    if value is None:
        return None
    return float(quantize(value, places))


def safe_divide(numerator: object, denominator: object) -> Decimal:
    denominator = to_decimal(denominator)
    if denominator == ZERO:
        return ZERO
    return to_decimal(numerator) / denominator
