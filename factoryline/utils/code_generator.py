from __future__ import annotations

import re

from flask import current_app, has_app_context

from ..models.production_batch import ProductionBatch
from .timezone_utils import TimezoneUtils

__all__ = ["generate_batch_code", "batch_code_prefix"]

DEFAULT_PREFIX = "BATCH"


def batch_code_prefix() -> str:
    if has_app_context():
        return (current_app.config.get("BATCH_CODE_PREFIX") or DEFAULT_PREFIX).upper()
    return DEFAULT_PREFIX


def generate_batch_code(year: int | None = None) -> str:
    """
    Generate the next batch code for a year.

    Format: {PREFIX}-{YEAR}-{SEQUENCE}
    - PREFIX: BATCH_CODE_PREFIX config value
    - YEAR: given year, or the current UTC year
    - SEQUENCE: 4-digit, zero-padded, one past the highest sequence already used that year
    """
    prefix = batch_code_prefix()
    year = year or TimezoneUtils.utc_now().year
    stem = f"{prefix}-{year}-"
    pattern = re.compile(rf"^{re.escape(stem)}(\d+)$")

    codes = (
        ProductionBatch.query.with_entities(ProductionBatch.batch_code)
        .filter(ProductionBatch.batch_code.like(f"{stem}%"))
        .all()
    )
    highest = 0
    for (code,) in codes:
        match = pattern.match(code or "")
        if match:
            highest = max(highest, int(match.group(1)))

    return f"{stem}{highest + 1:04d}"
