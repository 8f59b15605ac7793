"""
Statistical Math

Reducers over lists of loosely-typed values. Values are coerced with
`to_number`; empty input yields 0 rather than NaN.
"""

from collections import Counter
from typing import Any, Iterable, Optional

import numpy as np
from numba import jit

from core.fields import to_number


@jit(nopython=True, cache=True)
def _fast_percentile(arr: np.ndarray, percentile: float) -> float:
    """Numba-accelerated linear-interpolation percentile."""
    sorted_arr = np.sort(arr)
    n = len(sorted_arr)
    idx = (n - 1) * percentile / 100.0
    lower = int(np.floor(idx))
    upper = int(np.ceil(idx))

    if lower == upper:
        return sorted_arr[lower]

    weight = idx - lower
    return sorted_arr[lower] * (1 - weight) + sorted_arr[upper] * weight


def _as_array(values: Optional[Iterable[Any]]) -> np.ndarray:
    if not values:
        return np.empty(0, dtype=np.float64)
    return np.array([to_number(v) for v in values], dtype=np.float64)


def total(values: Optional[Iterable[Any]]) -> float:
    """Sum of coerced values."""
    if not values:
        return 0
    return sum(to_number(v) for v in values)


def mean(values: Optional[Iterable[Any]]) -> float:
    arr = _as_array(values)
    return float(np.mean(arr)) if arr.size else 0


def median(values: Optional[Iterable[Any]]) -> float:
    arr = _as_array(values)
    return float(np.median(arr)) if arr.size else 0


def mode(values: Optional[Iterable[Any]]) -> float:
    """Most frequent value; ties go to the value that reached the top count first."""
    if not values:
        return 0
    counts: Counter = Counter()
    best, best_count = 0, 0
    for v in values:
        value = to_number(v)
        counts[value] += 1
        if counts[value] > best_count:
            best, best_count = value, counts[value]
    return best


def variance(values: Optional[Iterable[Any]]) -> float:
    """Population variance."""
    arr = _as_array(values)
    return float(np.var(arr)) if arr.size else 0


def standard_deviation(values: Optional[Iterable[Any]]) -> float:
    arr = _as_array(values)
    return float(np.std(arr)) if arr.size else 0


def value_range(values: Optional[Iterable[Any]]) -> float:
    arr = _as_array(values)
    return float(np.max(arr) - np.min(arr)) if arr.size else 0


def percentile(values: Optional[Iterable[Any]], p: float) -> float:
    """Linearly interpolated percentile; `p` is clamped to 0..100."""
    arr = _as_array(values)
    if arr.size == 0:
        return 0
    p = float(min(max(to_number(p), 0), 100))
    return float(_fast_percentile(arr, p))


def count(values: Optional[Iterable[Any]]) -> int:
    return len(list(values)) if values else 0


def count_non_zero(values: Optional[Iterable[Any]]) -> int:
    return sum(1 for v in values or [] if to_number(v) != 0)


def count_positive(values: Optional[Iterable[Any]]) -> int:
    return sum(1 for v in values or [] if to_number(v) > 0)


def count_negative(values: Optional[Iterable[Any]]) -> int:
    return sum(1 for v in values or [] if to_number(v) < 0)
