"""
Aggregation Operations

Pure functions over lists of row mappings, built on the math primitives.
Grouping keeps first-seen order; numeric fields are coerced (non-numeric -> 0).
"""

import math
from typing import Any, Iterable, Mapping, Optional

from calculations.basic import round_to
from calculations.statistical import count, count_non_zero, mean, total
from config import get_settings
from core.fields import parse_timestamp, to_number


Row = Mapping[str, Any]


# Field extraction

def extract_field(rows: Optional[Iterable[Row]], field: str) -> list[Any]:
    """Values of `field`, skipping rows where it is missing or None."""
    if not rows:
        return []
    return [
        row.get(field)
        for row in rows
        if isinstance(row, Mapping) and row.get(field) is not None
    ]


def extract_numeric_field(rows: Optional[Iterable[Row]], field: str, default: float = 0) -> list[float]:
    return [to_number(v, default) for v in extract_field(rows, field)]


# Basic aggregations

def sum_field(rows: Optional[Iterable[Row]], field: str) -> float:
    return total(extract_numeric_field(rows, field))


def average_field(rows: Optional[Iterable[Row]], field: str) -> float:
    """Mean of `field`; 0 for an empty set."""
    return mean(extract_numeric_field(rows, field))


def count_field(rows: Optional[Iterable[Row]], field: str) -> int:
    return count(extract_field(rows, field))


def count_non_zero_field(rows: Optional[Iterable[Row]], field: str) -> int:
    return count_non_zero(extract_numeric_field(rows, field))


# Grouping

def group_by(rows: Optional[Iterable[Row]], key: str) -> dict[Any, list[Row]]:
    """
    Group rows by the value of `key`.

    Rows whose key is missing or None are dropped, not bucketed. Callers
    grouping on a sparse key lose those rows.
    """
    groups: dict[Any, list[Row]] = {}
    if not rows:
        return groups

    for row in rows:
        if not isinstance(row, Mapping):
            continue
        value = row.get(key)
        if value is None:
            continue
        groups.setdefault(value, []).append(row)

    return groups


def group_by_multiple(rows: Optional[Iterable[Row]], keys: list[str]) -> dict[str, list[Row]]:
    """Group by a "|"-joined composite key; missing parts render as ""."""
    groups: dict[str, list[Row]] = {}
    if not rows or not isinstance(keys, (list, tuple)):
        return groups

    for row in rows:
        if not isinstance(row, Mapping):
            continue
        composite = "|".join(
            "" if row.get(k) is None else str(row.get(k)) for k in keys
        )
        groups.setdefault(composite, []).append(row)

    return groups


def aggregate_groups(
    groups: Mapping[Any, list[Row]],
    aggregations: Mapping[str, Mapping[str, str]],
) -> list[dict[str, Any]]:
    """
    Reduce each group with named aggregations.

    `aggregations` maps an output name to {"field": ..., "operation": ...};
    operations are sum, average, count, countNonZero. Unknown operations
    produce 0.
    """
    results = []
    for key, rows in groups.items():
        result: dict[str, Any] = {"groupKey": key}
        for output, rule in aggregations.items():
            field = rule.get("field")
            operation = rule.get("operation")
            if operation == "sum":
                result[output] = sum_field(rows, field)
            elif operation == "average":
                result[output] = round_to(average_field(rows, field), 2)
            elif operation == "count":
                result[output] = count_field(rows, field)
            elif operation == "countNonZero":
                result[output] = count_non_zero_field(rows, field)
            else:
                result[output] = 0
        results.append(result)
    return results


def sum_by_group(rows: Optional[Iterable[Row]], group_field: str, value_field: str) -> list[dict[str, Any]]:
    return [
        {group_field: key, value_field: sum_field(items, value_field), "count": len(items)}
        for key, items in group_by(rows, group_field).items()
    ]


def average_by_group(rows: Optional[Iterable[Row]], group_field: str, value_field: str) -> list[dict[str, Any]]:
    return [
        {group_field: key, value_field: round_to(average_field(items, value_field), 2), "count": len(items)}
        for key, items in group_by(rows, group_field).items()
    ]


def sort_chronologically(rows: list[dict[str, Any]], key: str, newest_first: bool = False) -> list[dict[str, Any]]:
    """Sort rows by a timestamp field; rows whose timestamp does not parse go last."""
    dated, undated = [], []
    for row in rows:
        stamp = parse_timestamp(row.get(key))
        (dated if stamp is not None else undated).append((stamp, row))
    dated.sort(key=lambda pair: pair[0], reverse=newest_first)
    return [row for _, row in dated] + [row for _, row in undated]


# Filters

def filter_by_value(rows: Optional[Iterable[Row]], field: str, value: Any) -> list[Row]:
    if not rows:
        return []
    return [row for row in rows if isinstance(row, Mapping) and row.get(field) == value]


def filter_by_range(rows: Optional[Iterable[Row]], field: str, low: Any, high: Any) -> list[Row]:
    """Rows whose numeric `field` lies in [low, high]."""
    if not rows:
        return []
    low, high = to_number(low), to_number(high)
    return [
        row for row in rows
        if isinstance(row, Mapping) and low <= to_number(row.get(field)) <= high
    ]


def filter_non_zero(rows: Optional[Iterable[Row]], field: str) -> list[Row]:
    if not rows:
        return []
    return [row for row in rows if isinstance(row, Mapping) and to_number(row.get(field)) != 0]


# Basket analysis

def _products_by_order(line_items: Optional[Iterable[Row]]) -> dict[Any, set]:
    orders: dict[Any, set] = {}
    for order_id, items in group_by(line_items, "order_id").items():
        orders[order_id] = {item.get("product_name") for item in items}
    return orders


def find_orders_with_products(line_items: Optional[Iterable[Row]], product_names: Iterable[str]) -> set:
    """Order ids whose product-name set contains every name in `product_names`."""
    wanted = set(product_names or [])
    return {
        order_id
        for order_id, products in _products_by_order(line_items).items()
        if wanted <= products
    }


def calculate_attach_rate(
    line_items: Optional[Iterable[Row]],
    product_name: str,
    reference_products: Optional[Iterable[str]] = None,
) -> float:
    """
    Attach rate of `product_name`.

    Without `reference_products`: share of orders containing the product that
    also contain at least one other product, on a 0-1 scale, 2 decimals.

    With `reference_products`: share of orders containing any reference
    product that also contain the product, on a 0-100 scale, 1 decimal.

    The two scales differ; use `normalized_attach_rate` at API boundaries.
    """
    orders = _products_by_order(line_items)

    if reference_products:
        references = set(reference_products)
        reference_orders = [products for products in orders.values() if products & references]
        if not reference_orders:
            return 0
        attached = sum(1 for products in reference_orders if product_name in products)
        return round_to(attached / len(reference_orders) * 100, 1)

    product_orders = [products for products in orders.values() if product_name in products]
    if not product_orders:
        return 0
    attached = sum(1 for products in product_orders if len(products - {product_name}) > 0)
    return round_to(attached / len(product_orders), 2)


def normalized_attach_rate(
    line_items: Optional[Iterable[Row]],
    product_name: str,
    reference_products: Optional[Iterable[str]] = None,
) -> float:
    """`calculate_attach_rate` on a 0-100 scale regardless of mode."""
    rate = calculate_attach_rate(line_items, product_name, reference_products)
    if reference_products:
        return rate
    return round_to(rate * 100, 1)


def resolve_days(date_range: Optional[Mapping[str, Any]], default: Optional[int] = None) -> Optional[float]:
    """
    Number of days covered by `date_range`.

    Uses `days` when positive, otherwise ceil(end - start) in days with a
    minimum of 1. Returns `default` when neither is usable.
    """
    if date_range:
        days = to_number(date_range.get("days"))
        if days > 0:
            return days

        start = parse_timestamp(date_range.get("start"))
        end = parse_timestamp(date_range.get("end"))
        if start is not None and end is not None:
            return max(1, math.ceil((end - start).total_seconds() / 86400))

    return default


def calculate_velocity(
    line_items: Optional[Iterable[Row]],
    date_range: Optional[Mapping[str, Any]] = None,
) -> float:
    """Unique orders per day over `date_range` (default window from settings)."""
    days = resolve_days(date_range, get_settings().analytics.default_velocity_days)
    orders = {row.get("order_id") for row in line_items or [] if isinstance(row, Mapping)}
    orders.discard(None)
    if not days:
        return 0
    return round_to(len(orders) / days, 2)
