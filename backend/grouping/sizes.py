"""
Size ordering for size-first tables.

Letter sizes come first, then numeric sizes, waist-only pant sizes,
waist x inseam pant sizes, other numbers, one-size labels, and finally
anything unrecognized.
"""

import re
from typing import Any

SIZE_RANKS = {
    "XXS": 0, "XS": 1, "S": 2, "M": 3, "L": 4, "XL": 5, "XXL": 6, "3XL": 7, "4XL": 8, "5XL": 9,
    "0": 10, "2": 11, "4": 12, "6": 13, "8": 14, "10": 15, "12": 16, "14": 17, "16": 18, "18": 19, "20": 20,
}
ONE_SIZE_LABELS = frozenset({"One Size", "OS", "Free Size", "Universal"})

WAIST_ONLY_BASE = 30000
WAIST_INSEAM_BASE = 50000
OTHER_NUMERIC_BASE = 70000
ONE_SIZE_RANK = 90000
UNKNOWN_SIZE_RANK = 99999
# Numeric ranks stay below one-size labels
LAST_NUMERIC_RANK = ONE_SIZE_RANK - 1

WAIST_MIN, WAIST_MAX = 24, 50

_WAIST_INSEAM = re.compile(r"^(\d+)\s*[xX]\s*(\d+)$")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def get_size_order(size: Any) -> int:
    """Sort rank for a size label; lower sorts first."""
    label = "" if size is None else str(size)

    if label in SIZE_RANKS:
        return SIZE_RANKS[label]
    if label in ONE_SIZE_LABELS:
        return ONE_SIZE_RANK

    pant = _WAIST_INSEAM.match(label)
    if pant:
        waist, inseam = int(pant.group(1)), int(pant.group(2))
        return min(WAIST_INSEAM_BASE + waist * 1000 + inseam, LAST_NUMERIC_RANK)

    number = _LEADING_INT.match(label)
    if number:
        value = int(number.group(1))
        if WAIST_MIN <= value <= WAIST_MAX:
            return WAIST_ONLY_BASE + value
        return min(OTHER_NUMERIC_BASE + max(value, 0), LAST_NUMERIC_RANK)

    return UNKNOWN_SIZE_RANK


def sort_sizes(sizes: list[Any]) -> list[Any]:
    """Stable sort of size labels by `get_size_order`."""
    return sorted(sizes, key=get_size_order)
