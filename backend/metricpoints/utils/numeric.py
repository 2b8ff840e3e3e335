# metricpoints/utils/numeric.py
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional


def coerce_decimal(value) -> Optional[Decimal]:
    """
    Best-effort Decimal conversion that returns None when the value cannot be parsed.
    Floats go through their shortest repr so 0.1 stays 0.1.
    """
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None


def round_half_away(value, places: int) -> Decimal:
    """
    Round to exactly `places` decimal digits, halves away from zero
    (2.5 -> 3, -2.5 -> -3).
    """
    if places < 0:
        raise ValueError("places must be >= 0")
    number = coerce_decimal(value)
    if number is None:
        raise ValueError(f"cannot round non-numeric value {value!r}")
    return number.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


__all__ = ["coerce_decimal", "round_half_away"]
