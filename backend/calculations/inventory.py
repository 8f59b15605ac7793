"""
Inventory Metrics

Quantity rollups, product and variant performance, size/color distribution,
sell-through velocity, and basket size.
"""

from typing import Any

from calculations.aggregations import average_field, group_by
from calculations.basic import round_to
from core.fields import QUANTITY_FIELDS


def total_quantity_sold(line_items: list[dict[str, Any]]) -> float:
    """Sum of the first quantity column with a positive total."""
    return QUANTITY_FIELDS.first_with_sum(line_items)


def average_quantity_per_order(line_items: list[dict[str, Any]]) -> float:
    orders = group_by(line_items, "order_id")
    if not orders:
        return 0
    quantities = [total_quantity_sold(items) for items in orders.values()]
    return round_to(sum(quantities) / len(quantities), 2)


def average_quantity_per_item(line_items: list[dict[str, Any]]) -> float:
    return round_to(average_field(line_items, "quantity") or average_field(line_items, "Units") or 0, 2)


def _unique(items: list[dict[str, Any]], field: str) -> int:
    return len({item.get(field) for item in items})


def product_performance(line_items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    results = []
    for product_name, items in group_by(line_items, "product_name").items():
        quantity = total_quantity_sold(items)
        unique_orders = _unique(items, "order_id")
        results.append({
            "product_name": product_name,
            "total_quantity": quantity,
            "unique_orders": unique_orders,
            "average_qty_per_order": round_to(quantity / unique_orders, 2) if unique_orders else 0,
            "line_items_count": len(items),
            "average_qty_per_line": round_to(quantity / len(items), 2),
        })
    return sorted(results, key=lambda r: r["total_quantity"], reverse=True)


def variant_performance(line_items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Per-SKU rollups; product, color, and size come from the SKU's first line."""
    results = []
    for sku, items in group_by(line_items, "sku").items():
        first = items[0]
        results.append({
            "sku": sku,
            "product_name": first.get("product_name") or "",
            "color": first.get("color") or first.get("Color") or "",
            "size": first.get("size") or first.get("Size") or "",
            "total_quantity": total_quantity_sold(items),
            "order_count": _unique(items, "order_id"),
            "line_items_count": len(items),
        })
    return sorted(results, key=lambda r: r["total_quantity"], reverse=True)


def _distribution(line_items: list[dict[str, Any]], field: str) -> list[dict[str, Any]]:
    results = [
        {
            field: value or "Unknown",
            "total_quantity": total_quantity_sold(items),
            "order_count": _unique(items, "order_id"),
            "product_count": _unique(items, "product_name"),
        }
        for value, items in group_by(line_items, field).items()
    ]
    return sorted(results, key=lambda r: r["total_quantity"], reverse=True)


def size_distribution(line_items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return _distribution(line_items, "size")


def color_distribution(line_items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return _distribution(line_items, "color")


def product_velocity(line_items: list[dict[str, Any]], time_field: str = "date") -> list[dict[str, Any]]:
    """
    Sell-through per product: quantity divided by the number of distinct
    `time_field` values with sales. Highest velocity first.
    """
    results = []
    for product_name, items in group_by(line_items, "product_name").items():
        periods = len(group_by(items, time_field))
        quantity = total_quantity_sold(items)
        results.append({
            "product_name": product_name,
            "total_quantity": quantity,
            "periods_with_sales": periods,
            "average_qty_per_period": round_to(quantity / periods, 2) if periods else 0,
            "velocity_score": round_to(quantity / max(periods, 1), 2),
        })
    return sorted(results, key=lambda r: r["velocity_score"], reverse=True)


def items_per_order(line_items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    results = [
        {
            "order_id": order_id,
            "item_count": len(items),
            "total_quantity": total_quantity_sold(items),
            "unique_products": _unique(items, "product_name"),
        }
        for order_id, items in group_by(line_items, "order_id").items()
    ]
    return sorted(results, key=lambda r: r["item_count"], reverse=True)


def average_items_per_order(line_items: list[dict[str, Any]]) -> float:
    orders = items_per_order(line_items)
    if not orders:
        return 0
    return round_to(sum(o["item_count"] for o in orders) / len(orders), 2)
