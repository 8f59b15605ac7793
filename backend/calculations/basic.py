"""
Basic Math

Arithmetic primitives with no business meaning. Every argument is coerced
through `to_number`, so CSV strings and missing values are accepted; division
by zero yields 0.
"""

import math
from typing import Any

from core.fields import to_number


def add(a: Any, b: Any) -> float:
    return to_number(a) + to_number(b)


def subtract(a: Any, b: Any) -> float:
    return to_number(a) - to_number(b)


def multiply(a: Any, b: Any) -> float:
    return to_number(a) * to_number(b)


def divide(a: Any, b: Any) -> float:
    """Safe division: 0 when the divisor is 0."""
    divisor = to_number(b)
    return to_number(a) / divisor if divisor != 0 else 0


def percentage(part: Any, whole: Any) -> float:
    whole = to_number(whole)
    return to_number(part) / whole * 100 if whole != 0 else 0


def percentage_change(old_value: Any, new_value: Any) -> float:
    old = to_number(old_value)
    return (to_number(new_value) - old) / old * 100 if old != 0 else 0


def apply_percentage(value: Any, percent: Any) -> float:
    return to_number(value) * (to_number(percent) / 100)


def round_to(value: Any, decimals: int = 2) -> float:
    """Round half-up to `decimals` places (0.125 -> 0.13)."""
    number = to_number(value)
    if not math.isfinite(number):
        return 0
    factor = 10 ** decimals
    return math.floor(number * factor + 0.5) / factor


def floor_to(value: Any, decimals: int = 2) -> float:
    factor = 10 ** decimals
    return math.floor(to_number(value) * factor) / factor


def ceil_to(value: Any, decimals: int = 2) -> float:
    factor = 10 ** decimals
    return math.ceil(to_number(value) * factor) / factor


def minimum(*values: Any) -> float:
    return min(to_number(v) for v in values) if values else 0


def maximum(*values: Any) -> float:
    return max(to_number(v) for v in values) if values else 0


def clamp(value: Any, low: Any, high: Any) -> float:
    return min(max(to_number(value), to_number(low)), to_number(high))


def is_zero(value: Any) -> bool:
    return to_number(value) == 0


def is_positive(value: Any) -> bool:
    return to_number(value) > 0


def is_negative(value: Any) -> bool:
    return to_number(value) < 0
