"""
Performance KPIs

Dashboard-level indicators combining the revenue, inventory, and order
metrics, with optional period-over-period comparison.
"""

import math
from typing import Any, Optional

from calculations.basic import divide, percentage, percentage_change, round_to
from calculations.inventory import average_items_per_order, product_performance, total_quantity_sold
from calculations.orders import orders_by_associate, orders_by_value, total_orders
from calculations.revenue import average_order_value, revenue_by_product, total_margin, total_revenue
from config import get_settings


def _unique_products(line_items: list[dict[str, Any]]) -> int:
    return len({item.get("product_name") for item in line_items})


def performance_dashboard(
    line_items: list[dict[str, Any]],
    comparison_line_items: Optional[list[dict[str, Any]]] = None,
) -> dict[str, Any]:
    """
    Revenue, order, and inventory headline numbers.

    When `comparison_line_items` is given, a `growth` section holds percent
    changes from the comparison period to the current one.
    """
    revenue = total_revenue(line_items)
    orders = total_orders(line_items)
    quantity = total_quantity_sold(line_items)
    aov = average_order_value(line_items)
    products = _unique_products(line_items)
    margin = total_margin(line_items)

    dashboard: dict[str, Any] = {
        "revenue": {
            "total": revenue,
            "average_order_value": aov,
            "margin_percent": margin["margin_percent"],
        },
        "orders": {
            "total_orders": orders,
            "average_items_per_order": average_items_per_order(line_items),
            "conversion_metrics": {
                "items_per_order": round_to(divide(len(line_items), orders), 2),
                "units_per_order": round_to(divide(quantity, orders), 2),
            },
        },
        "inventory": {
            "total_quantity": quantity,
            "unique_products": products,
            "average_qty_per_product": round_to(divide(quantity, products), 2),
        },
    }

    if comparison_line_items is not None:
        dashboard["growth"] = {
            "revenue_change": percentage_change(total_revenue(comparison_line_items), revenue),
            "orders_change": percentage_change(total_orders(comparison_line_items), orders),
            "aov_change": percentage_change(average_order_value(comparison_line_items), aov),
            "quantity_change": percentage_change(total_quantity_sold(comparison_line_items), quantity),
        }

    return dashboard


def top_performers(line_items: list[dict[str, Any]], limit: Optional[int] = None) -> dict[str, list]:
    limit = limit or get_settings().analytics.top_n
    return {
        "top_products_by_revenue": revenue_by_product(line_items)[:limit],
        "top_products_by_quantity": product_performance(line_items)[:limit],
        "top_associates": orders_by_associate(line_items)[:limit],
    }


def efficiency_metrics(line_items: list[dict[str, Any]]) -> dict[str, float]:
    revenue = total_revenue(line_items)
    orders = total_orders(line_items)
    quantity = total_quantity_sold(line_items)
    products = _unique_products(line_items)

    return {
        "revenue_per_order": round_to(divide(revenue, orders), 2),
        "revenue_per_unit": round_to(divide(revenue, quantity), 2),
        "revenue_per_product": round_to(divide(revenue, products), 2),
        "units_per_order": round_to(divide(quantity, orders), 2),
        "products_per_order": round_to(divide(products, orders), 2),
        "order_efficiency_score": round_to(
            (revenue / max(orders, 1)) * (quantity / max(orders, 1)) / 100, 2
        ),
    }


def customer_behavior_metrics(line_items: list[dict[str, Any]]) -> dict[str, Any]:
    """Order value distribution and high/medium/low value segments."""
    tiers = orders_by_value(line_items)
    orders = total_orders(line_items)
    by_label = {tier["tier"]: tier["order_count"] for tier in tiers}

    high = by_label.get("$500+", 0)
    medium = by_label.get("$251-$500", 0) + by_label.get("$101-$250", 0)
    low = by_label.get("$51-$100", 0) + by_label.get("$0-$50", 0)

    return {
        "value_distribution": [
            {**tier, "percentage": round_to(percentage(tier["order_count"], orders), 2)}
            for tier in tiers
        ],
        "customer_segments": {
            "high_value": {"count": high, "percentage": round_to(percentage(high, orders), 2)},
            "medium_value": {"count": medium, "percentage": round_to(percentage(medium, orders), 2)},
            "low_value": {"count": low, "percentage": round_to(percentage(low, orders), 2)},
        },
    }


def product_mix_metrics(line_items: list[dict[str, Any]]) -> dict[str, Any]:
    """Revenue concentration across the product catalog."""
    products = revenue_by_product(line_items)
    revenue = total_revenue(line_items)
    quantity = total_quantity_sold(line_items)

    top_share = math.ceil(len(products) * 0.2)

    return {
        "total_products": len(products),
        "top_5_concentration": round_to(percentage(sum(p["total_revenue"] for p in products[:5]), revenue), 2),
        "top_10_concentration": round_to(percentage(sum(p["total_revenue"] for p in products[:10]), revenue), 2),
        "revenue_distribution": {
            "top_20_percent": sum(p["total_revenue"] for p in products[:top_share]),
            "bottom_80_percent": sum(p["total_revenue"] for p in products[top_share:]),
        },
        "average_product_performance": {
            "average_revenue_per_product": round_to(divide(revenue, len(products)), 2),
            "average_quantity_per_product": round_to(divide(quantity, len(products)), 2),
        },
    }


def calculate_growth_metrics(
    current_period: list[dict[str, Any]],
    previous_period: list[dict[str, Any]],
) -> dict[str, Any]:
    current = performance_dashboard(current_period)
    previous = performance_dashboard(previous_period)

    return {
        "revenue_growth": percentage_change(previous["revenue"]["total"], current["revenue"]["total"]),
        "order_growth": percentage_change(previous["orders"]["total_orders"], current["orders"]["total_orders"]),
        "aov_growth": percentage_change(
            previous["revenue"]["average_order_value"], current["revenue"]["average_order_value"]
        ),
        "quantity_growth": percentage_change(
            previous["inventory"]["total_quantity"], current["inventory"]["total_quantity"]
        ),
        "product_growth": percentage_change(
            previous["inventory"]["unique_products"], current["inventory"]["unique_products"]
        ),
        "efficiency_change": {
            "revenue_per_order": percentage_change(
                divide(previous["revenue"]["total"], previous["orders"]["total_orders"]),
                divide(current["revenue"]["total"], current["orders"]["total_orders"]),
            ),
            "items_per_order": percentage_change(
                previous["orders"]["conversion_metrics"]["items_per_order"],
                current["orders"]["conversion_metrics"]["items_per_order"],
            ),
        },
    }
