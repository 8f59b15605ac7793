"""
Order Metrics

Order-level summaries and breakdowns by value tier, channel, location,
associate, date, and status.

Every breakdown rebuilds `order_summary` from the line items it is given;
there is no shared summary cache between metrics.
"""

from typing import Any, Optional

from calculations.aggregations import group_by, sort_chronologically
from calculations.basic import percentage, round_to
from calculations.inventory import total_quantity_sold
from calculations.revenue import total_revenue
from core.fields import DATE_FIELDS, LOCATION_FIELDS, parse_timestamp


# (label, inclusive min, inclusive max)
ORDER_VALUE_TIERS: list[tuple[str, float, float]] = [
    ("$0-$50", 0, 50),
    ("$51-$100", 51, 100),
    ("$101-$250", 101, 250),
    ("$251-$500", 251, 500),
    ("$500+", 501, float("inf")),
]


def order_summary(line_items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """One row per order, newest first; order fields come from its first line."""
    results = []
    for order_id, items in group_by(line_items, "order_id").items():
        first = items[0]
        results.append({
            "order_id": order_id,
            "customer_name": first.get("customer_name") or "",
            "associate": first.get("associate") or "",
            "date_time": DATE_FIELDS.first_present(first, ""),
            "channel": first.get("channel") or "",
            "location": LOCATION_FIELDS.first_present(first, ""),
            "item_count": len(items),
            "total_quantity": total_quantity_sold(items),
            "total_revenue": total_revenue(items),
            "unique_products": len({item.get("product_name") for item in items}),
            "status": first.get("status") or "Unknown",
        })
    return sort_chronologically(results, "date_time", newest_first=True)


def total_orders(line_items: list[dict[str, Any]]) -> int:
    return len({item.get("order_id") for item in line_items})


def average_order_size(line_items: list[dict[str, Any]]) -> float:
    """Mean line items per order."""
    orders = order_summary(line_items)
    if not orders:
        return 0
    return round_to(sum(o["item_count"] for o in orders) / len(orders), 2)


def average_order_quantity(line_items: list[dict[str, Any]]) -> float:
    orders = order_summary(line_items)
    if not orders:
        return 0
    return round_to(sum(o["total_quantity"] for o in orders) / len(orders), 2)


def orders_by_value(line_items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Orders bucketed into value tiers.

    Tier bounds are inclusive integers, so an order worth 50.50 falls between
    "$0-$50" and "$51-$100" and is counted in neither.
    """
    orders = order_summary(line_items)
    results = []
    for label, low, high in ORDER_VALUE_TIERS:
        in_tier = [o for o in orders if low <= o["total_revenue"] <= high]
        results.append({
            "tier": label,
            "order_count": len(in_tier),
            "total_revenue": sum(o["total_revenue"] for o in in_tier),
        })
    return results


def _breakdown(orders: list[dict[str, Any]], field: str) -> list[dict[str, Any]]:
    results = []
    for value, group in group_by(orders, field).items():
        revenue = sum(o["total_revenue"] for o in group)
        results.append({
            field: value or "Unknown",
            "order_count": len(group),
            "total_revenue": revenue,
            "average_order_value": round_to(revenue / len(group), 2),
        })
    return results


def orders_by_channel(line_items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    results = _breakdown(order_summary(line_items), "channel")
    return sorted(results, key=lambda r: r["order_count"], reverse=True)


def orders_by_location(line_items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    results = _breakdown(order_summary(line_items), "location")
    return sorted(results, key=lambda r: r["order_count"], reverse=True)


def orders_by_associate(line_items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    results = []
    for associate, group in group_by(order_summary(line_items), "associate").items():
        revenue = sum(o["total_revenue"] for o in group)
        results.append({
            "associate": associate or "Unknown",
            "order_count": len(group),
            "total_revenue": revenue,
            "average_order_value": round_to(revenue / len(group), 2),
            "total_items": sum(o["item_count"] for o in group),
        })
    return sorted(results, key=lambda r: r["total_revenue"], reverse=True)


def _date_key(value: Any) -> str:
    if not value:
        return "Unknown"
    stamp = parse_timestamp(value)
    if stamp is not None:
        return stamp.date().isoformat()
    return str(value).split("T")[0]


def orders_by_time_frame(line_items: list[dict[str, Any]], time_field: Optional[str] = "date_time") -> list[dict[str, Any]]:
    """Daily order rollups keyed by the date part of `time_field`, oldest first."""
    orders = [
        {**order, "date": _date_key(order.get(time_field))}
        for order in order_summary(line_items)
    ]

    results = []
    for day, group in group_by(orders, "date").items():
        revenue = sum(o["total_revenue"] for o in group)
        results.append({
            "date": day,
            "order_count": len(group),
            "total_revenue": revenue,
            "total_items": sum(o["item_count"] for o in group),
            "average_order_value": round_to(revenue / len(group), 2),
        })
    return sort_chronologically(results, "date")


def orders_by_status(line_items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    orders = order_summary(line_items)
    results = [
        {
            "status": status or "Unknown",
            "order_count": len(group),
            "total_revenue": sum(o["total_revenue"] for o in group),
            "percentage": round_to(percentage(len(group), len(orders)), 2),
        }
        for status, group in group_by(orders, "status").items()
    ]
    return sorted(results, key=lambda r: r["order_count"], reverse=True)
