"""
Revenue Metrics

Revenue totals, per-product and per-period revenue, margins, and unit
economics over enriched line items.
"""

from typing import Any, Optional

from calculations.aggregations import average_field, group_by, sort_chronologically, sum_field
from calculations.basic import round_to
from calculations.financial import gross_margin, margin_percent, unit_price
from core.fields import COST_FIELDS, QUANTITY_FIELDS, REVENUE_FIELDS, to_number


def total_revenue(line_items: list[dict[str, Any]]) -> float:
    """Sum of the first revenue column with a positive total."""
    return REVENUE_FIELDS.first_with_sum(line_items)


def _total_quantity(line_items: list[dict[str, Any]]) -> float:
    return QUANTITY_FIELDS.first_with_sum(line_items)


def _order_count(line_items: list[dict[str, Any]]) -> int:
    return len({item.get("order_id") for item in line_items})


def average_order_value(line_items: list[dict[str, Any]]) -> float:
    """Mean of per-order revenue."""
    orders = group_by(line_items, "order_id")
    if not orders:
        return 0
    totals = [total_revenue(items) for items in orders.values()]
    return round_to(sum(totals) / len(totals), 2)


def average_item_value(line_items: list[dict[str, Any]]) -> float:
    return round_to(average_field(line_items, "discounted_price") or average_field(line_items, "Net") or 0, 2)


def revenue_by_product(line_items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    results = [
        {
            "product_name": product_name,
            "total_revenue": total_revenue(items),
            "total_quantity": _total_quantity(items),
            "average_price": average_item_value(items),
            "order_count": _order_count(items),
        }
        for product_name, items in group_by(line_items, "product_name").items()
    ]
    return sorted(results, key=lambda r: r["total_revenue"], reverse=True)


def revenue_by_period(line_items: list[dict[str, Any]], period_field: str = "date") -> list[dict[str, Any]]:
    """Revenue rollups per distinct value of `period_field`, oldest first."""
    results = [
        {
            "period": period,
            "total_revenue": total_revenue(items),
            "total_quantity": _total_quantity(items),
            "order_count": _order_count(items),
            "average_order_value": average_order_value(items),
        }
        for period, items in group_by(line_items, period_field).items()
    ]
    return sort_chronologically(results, "period")


def calculate_margins(line_items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Copy of each line item with `gross_margin` and `margin_percent` added."""
    results = []
    for item in line_items:
        revenue = to_number(item.get("discounted_price") or item.get("Net") or 0)
        cost = to_number(COST_FIELDS.first_present(item, 0))
        results.append({
            **item,
            "gross_margin": gross_margin(revenue, cost),
            "margin_percent": round_to(margin_percent(revenue, cost), 2),
        })
    return results


def total_margin(line_items: list[dict[str, Any]]) -> dict[str, float]:
    revenue = total_revenue(line_items)
    cost = sum_field(line_items, "unit_cost") or sum_field(line_items, "cost") or 0
    return {
        "total_revenue": revenue,
        "total_cost": cost,
        "gross_margin": gross_margin(revenue, cost),
        "margin_percent": round_to(margin_percent(revenue, cost), 2),
    }


def average_unit_price(line_items: list[dict[str, Any]]) -> float:
    quantity = _total_quantity(line_items)
    if quantity <= 0:
        return 0
    return round_to(unit_price(total_revenue(line_items), quantity), 2)


def revenue_per_unit(line_items: list[dict[str, Any]], group_field: Optional[str] = "product_name") -> list[dict[str, Any]]:
    results = []
    for value, items in group_by(line_items, group_field).items():
        revenue = total_revenue(items)
        quantity = _total_quantity(items)
        results.append({
            group_field: value,
            "total_revenue": revenue,
            "total_quantity": quantity,
            "revenue_per_unit": round_to(revenue / quantity, 2) if quantity > 0 else 0,
        })
    return sorted(results, key=lambda r: r["total_revenue"], reverse=True)
