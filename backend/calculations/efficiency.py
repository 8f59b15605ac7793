"""
Efficiency KPIs

Operational efficiency: sales per transaction, associate productivity,
day-over-day consistency, catalog efficiency, cross-sell, and a weighted
0-100 overall score.
"""

import math
from typing import Any

from calculations.aggregations import group_by
from calculations.basic import divide, round_to
from calculations.inventory import total_quantity_sold
from calculations.orders import orders_by_associate, orders_by_time_frame, total_orders
from calculations.revenue import total_revenue
from calculations.statistical import mean, variance
from core.fields import to_number


def sales_efficiency(line_items: list[dict[str, Any]]) -> dict[str, float]:
    revenue = total_revenue(line_items)
    orders = total_orders(line_items)
    quantity = total_quantity_sold(line_items)
    lines = len(line_items)

    return {
        "revenue_per_transaction": divide(revenue, lines),
        "revenue_per_order": divide(revenue, orders),
        "revenue_per_unit": divide(revenue, quantity),
        "units_per_transaction": divide(quantity, lines),
        "transactions_per_order": divide(lines, orders),
        "efficiency_ratio": round_to(divide(revenue, lines) * divide(quantity, lines), 2),
    }


def associate_productivity(line_items: list[dict[str, Any]]) -> dict[str, Any]:
    """Per-associate shares of revenue and orders, plus team spread."""
    associates = orders_by_associate(line_items)
    revenue = total_revenue(line_items)
    orders = total_orders(line_items)

    individual = [
        {
            **associate,
            "revenue_share": round_to(divide(associate["total_revenue"], revenue) * 100, 2),
            "order_share": round_to(divide(associate["order_count"], orders) * 100, 2),
            "efficiency_score": round_to(
                (associate["average_order_value"] / 100) * (associate["order_count"] / max(orders, 1)), 2
            ),
        }
        for associate in associates
    ]

    revenues = [a["total_revenue"] for a in associates]
    avg_revenue = mean(revenues)
    revenue_variance = variance(revenues)
    consistency = 100 - divide(math.sqrt(revenue_variance), avg_revenue) * 100 if avg_revenue else 0

    return {
        "individual_performance": individual,
        "team_metrics": {
            "total_associates": len(associates),
            "average_revenue_per_associate": round_to(avg_revenue, 2),
            "average_orders_per_associate": round_to(mean([a["order_count"] for a in associates]), 2),
            "revenue_variance": round_to(revenue_variance, 2),
            "performance_consistency": round_to(consistency, 2),
        },
    }


def _efficiency_trend(daily: list[dict[str, Any]]) -> float:
    """Percent change in average order value from the earlier to the later half of the days."""
    if len(daily) < 2:
        return 0
    recent = daily[math.ceil(len(daily) / 2):]
    earlier = daily[:len(daily) // 2]
    recent_avg = mean([d["average_order_value"] for d in recent])
    earlier_avg = mean([d["average_order_value"] for d in earlier])
    return round_to(divide(recent_avg - earlier_avg, earlier_avg) * 100, 2)


def time_efficiency(line_items: list[dict[str, Any]]) -> dict[str, Any]:
    daily = orders_by_time_frame(line_items, "date_time")

    if not daily:
        return {
            "daily_averages": {"revenue": 0, "orders": 0, "items": 0},
            "peak_performance": {"date": "", "revenue": 0, "orders": 0},
            "consistency_metrics": {"revenue_variance": 0, "order_variance": 0, "efficiency_trend": 0},
        }

    best = daily[0]
    for day in daily[1:]:
        if day["total_revenue"] > best["total_revenue"]:
            best = day

    return {
        "daily_averages": {
            "revenue": round_to(mean([d["total_revenue"] for d in daily]), 2),
            "orders": round_to(mean([d["order_count"] for d in daily]), 2),
            "items": round_to(mean([d["total_items"] for d in daily]), 2),
        },
        "peak_performance": {
            "date": best["date"],
            "revenue": best["total_revenue"],
            "orders": best["order_count"],
        },
        "consistency_metrics": {
            "revenue_variance": round_to(variance([d["total_revenue"] for d in daily]), 2),
            "order_variance": round_to(variance([d["order_count"] for d in daily]), 2),
            "efficiency_trend": _efficiency_trend(daily),
        },
    }


def product_efficiency(line_items: list[dict[str, Any]]) -> dict[str, Any]:
    products = len({item.get("product_name") for item in line_items})
    revenue = total_revenue(line_items)
    quantity = total_quantity_sold(line_items)
    orders = total_orders(line_items)
    lines = len(line_items)

    return {
        "catalog_efficiency": {
            "products_sold": products,
            "revenue_per_product": round_to(divide(revenue, products), 2),
            "quantity_per_product": round_to(divide(quantity, products), 2),
            "transactions_per_product": round_to(divide(lines, products), 2),
        },
        "product_velocity": {
            "average_items_per_order": round_to(divide(lines, orders), 2),
            "average_products_per_order": round_to(divide(products, orders), 2),
            "product_penetration": round_to(divide(products, lines) * 100, 2),
        },
    }


def _order_net(items: list[dict[str, Any]]) -> float:
    return sum(to_number(item.get("discounted_price")) for item in items)


def cross_sell_efficiency(line_items: list[dict[str, Any]]) -> dict[str, float]:
    """Share of multi-item orders and their revenue lift over single-item orders."""
    orders = list(group_by(line_items, "order_id").values())
    multi = [items for items in orders if len(items) > 1]
    single = [items for items in orders if len(items) == 1]

    lift = mean([_order_net(items) for items in multi]) - mean([_order_net(items) for items in single])

    return {
        "cross_sell_rate": round_to(divide(len(multi), len(orders)) * 100, 2),
        "average_items_per_order": round_to(mean([len(items) for items in orders]), 2),
        "multi_item_orders": len(multi),
        "single_item_orders": len(orders) - len(multi),
        "cross_sell_revenue_lift": round_to(lift, 2),
    }


def overall_efficiency_score(line_items: list[dict[str, Any]]) -> dict[str, Any]:
    """Four components weighted 25 points each."""
    sales = sales_efficiency(line_items)
    team = associate_productivity(line_items)
    catalog = product_efficiency(line_items)
    cross_sell = cross_sell_efficiency(line_items)

    revenue_score = min(sales["revenue_per_order"] / 100, 1) * 25
    team_score = (team["team_metrics"]["performance_consistency"] / 100) * 25
    product_score = min(catalog["catalog_efficiency"]["revenue_per_product"] / 500, 1) * 25
    cross_sell_score = (cross_sell["cross_sell_rate"] / 100) * 25

    return {
        "overall_score": round_to(revenue_score + team_score + product_score + cross_sell_score, 2),
        "component_scores": {
            "revenue_efficiency": round_to(revenue_score, 2),
            "team_efficiency": round_to(team_score, 2),
            "product_efficiency": round_to(product_score, 2),
            "cross_sell_efficiency": round_to(cross_sell_score, 2),
        },
    }
