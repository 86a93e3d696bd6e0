"""
Rounding helpers shared by the aggregators.

Averages and percentages round half-up (4.25 -> 4.3, 62.5 -> 63), which
differs from Python's built-in banker's rounding.
"""

from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float, places: int = 1) -> float:
    """Round ``value`` to ``places`` decimals, halves away from zero."""
    exponent = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP))


def average(total: int, count: int, places: int = 1) -> float:
    """``total / count`` rounded half-up; 0 when ``count`` is 0."""
    if count <= 0:
        return 0.0
    exponent = Decimal(1).scaleb(-places)
    return float((Decimal(total) / Decimal(count)).quantize(exponent, rounding=ROUND_HALF_UP))


def percentage(done: int, total: int) -> int:
    """
    Whole-number completion percentage.

    0 when ``total`` is 0, clamped to [0, 100] otherwise.
    """
    if total <= 0:
        return 0
    value = (Decimal(done) * 100 / Decimal(total)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return max(0, min(100, int(value)))
