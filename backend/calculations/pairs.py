"""
Pair Metrics

Metrics for products bought together, and the secondary metrics table
(attach rate and velocity per product) used to pick pairing candidates.
"""

from typing import Any, Mapping, Optional

from calculations.aggregations import (
    calculate_attach_rate,
    calculate_velocity,
    find_orders_with_products,
    group_by,
    resolve_days,
)
from config import get_settings
from core.fields import REVENUE_FIELDS


EMPTY_PAIR_METRICS = {
    "orders_together": 0,
    "net_together": 0,
    "bundle_rate": 0,
    "velocity_together": 0,
}


def _orders_with(line_items: list[dict[str, Any]], product_name: str) -> set:
    return {item.get("order_id") for item in line_items if item.get("product_name") == product_name}


def bundle_rate(
    line_items: list[dict[str, Any]],
    product_a: str,
    product_b: str,
    pair_orders: Optional[set] = None,
) -> float:
    """Orders holding both products over the orders holding A plus the orders holding B (0-1)."""
    if pair_orders is None:
        pair_orders = find_orders_with_products(line_items, [product_a, product_b])
    appearances = len(_orders_with(line_items, product_a)) + len(_orders_with(line_items, product_b))
    if appearances == 0:
        return 0
    return len(pair_orders) / appearances


def pair_velocity(order_count: int, date_range: Optional[Mapping[str, Any]] = None) -> float:
    """Orders per day; the raw count when no usable date range is given."""
    days = resolve_days(date_range)
    if days is None:
        return order_count
    return order_count / days


def coupled_metrics(
    product_a: Optional[str],
    product_b: Optional[str],
    line_items: list[dict[str, Any]],
    date_range: Optional[Mapping[str, Any]] = None,
) -> dict[str, float]:
    if not product_a or not product_b or not isinstance(line_items, list):
        return dict(EMPTY_PAIR_METRICS)

    pair_orders = find_orders_with_products(line_items, [product_a, product_b])
    pair_lines = [item for item in line_items if item.get("order_id") in pair_orders]

    return {
        "orders_together": len(pair_orders),
        "net_together": REVENUE_FIELDS.first_with_sum(pair_lines),
        "bundle_rate": bundle_rate(line_items, product_a, product_b, pair_orders),
        "velocity_together": pair_velocity(len(pair_orders), date_range),
    }


def metrics_for_pairs(
    pairs: list[Mapping[str, Any]],
    line_items: list[dict[str, Any]],
    date_range: Optional[Mapping[str, Any]] = None,
) -> list[dict[str, Any]]:
    """Attach `metrics` to each {"product_a", "product_b"} pair."""
    return [
        {
            **pair,
            "metrics": coupled_metrics(pair.get("product_a"), pair.get("product_b"), line_items, date_range),
        }
        for pair in pairs
    ]


def secondary_metrics_table(
    line_items: list[dict[str, Any]],
    sample_size: Optional[int] = None,
    sort_by: str = "attach_rate",
    descending: bool = True,
    date_range: Optional[Mapping[str, Any]] = None,
    reference_products: Optional[list[str]] = None,
) -> dict[str, Any]:
    """
    Attach rate and velocity for every product, sorted and sampled.

    Totals are averages over the sampled rows. Attach rates follow
    `calculate_attach_rate`, so their scale depends on `reference_products`.
    """
    sample_size = sample_size or get_settings().analytics.secondary_sample_size
    table: dict[str, Any] = {
        "rows": [],
        "totals": {},
        "column_keys": ["product_name", "attach_rate", "velocity"],
        "column_labels": {"product_name": "Product", "attach_rate": "Attach %", "velocity": "Velocity"},
    }
    if not line_items:
        return table

    rows = [
        {
            "product_name": product_name,
            "product_title": items[0].get("product_title") or product_name,
            "attach_rate": calculate_attach_rate(line_items, product_name, reference_products),
            "velocity": calculate_velocity(items, date_range),
        }
        for product_name, items in group_by(line_items, "product_name").items()
    ]

    sort_field = "attach_rate" if sort_by == "attach_rate" else "velocity"
    rows.sort(key=lambda r: r[sort_field], reverse=descending)
    sampled = rows[:sample_size]

    table["rows"] = sampled
    if sampled:
        table["totals"] = {
            "attach_rate": sum(r["attach_rate"] for r in sampled) / len(sampled),
            "velocity": sum(r["velocity"] for r in sampled) / len(sampled),
        }
    return table
