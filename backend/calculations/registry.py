"""
Metric Registry

Named entry points into the business and KPI layers, used by the metrics
API. Each metric takes enriched line items plus optional parameters and
returns JSON-ready data.
"""

from typing import Any, Callable, Mapping, Optional

from calculations import efficiency, inventory, orders, performance, revenue
from calculations.pairs import secondary_metrics_table
from core.logging_config import calculations_logger as logger


MetricFn = Callable[[list[dict[str, Any]], Mapping[str, Any]], Any]


CALCULATION_CATEGORIES = {
    "math": {
        "basic": "Basic arithmetic and percentage calculations",
        "statistical": "Statistical functions like mean, median, variance",
        "financial": "Financial calculations including margins and discounts",
    },
    "operations": {
        "aggregations": "Data grouping, filtering, and aggregation functions",
    },
    "business": {
        "revenue": "Revenue analysis and calculations",
        "inventory": "Inventory and product performance metrics",
        "orders": "Order analysis and customer behavior",
    },
    "kpis": {
        "performance": "High-level performance dashboards and metrics",
        "efficiency": "Operational efficiency and productivity metrics",
    },
}


class UnknownMetricError(KeyError):
    """Raised for a metric name that is not registered."""


def basic_metrics(line_items: list[dict[str, Any]]) -> dict[str, float]:
    return {
        "total_revenue": revenue.total_revenue(line_items),
        "total_orders": orders.total_orders(line_items),
        "total_quantity": inventory.total_quantity_sold(line_items),
        "average_order_value": revenue.average_order_value(line_items),
    }


def order_stats(line_items: list[dict[str, Any]]) -> dict[str, float]:
    return {
        "total_orders": orders.total_orders(line_items),
        "average_order_size": orders.average_order_size(line_items),
        "average_order_quantity": orders.average_order_quantity(line_items),
        "average_items_per_order": inventory.average_items_per_order(line_items),
    }


def revenue_stats(line_items: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "total_revenue": revenue.total_revenue(line_items),
        "average_order_value": revenue.average_order_value(line_items),
        "average_item_value": revenue.average_item_value(line_items),
        "total_margin": revenue.total_margin(line_items),
    }


def inventory_stats(line_items: list[dict[str, Any]]) -> dict[str, float]:
    return {
        "total_quantity": inventory.total_quantity_sold(line_items),
        "average_quantity_per_order": inventory.average_quantity_per_order(line_items),
        "average_quantity_per_item": inventory.average_quantity_per_item(line_items),
    }


def _date_range(params: Mapping[str, Any]) -> Optional[dict[str, Any]]:
    picked = {k: params[k] for k in ("days", "start", "end") if params.get(k) is not None}
    return picked or None


METRICS: dict[str, MetricFn] = {
    # Summaries
    "basic": lambda items, p: basic_metrics(items),
    "order-stats": lambda items, p: order_stats(items),
    "revenue-stats": lambda items, p: revenue_stats(items),
    "inventory-stats": lambda items, p: inventory_stats(items),

    # Revenue
    "revenue-by-product": lambda items, p: revenue.revenue_by_product(items),
    "revenue-by-period": lambda items, p: revenue.revenue_by_period(items, p.get("period_field") or "date"),
    "margins": lambda items, p: revenue.calculate_margins(items),
    "revenue-per-unit": lambda items, p: revenue.revenue_per_unit(items, p.get("group_field") or "product_name"),

    # Inventory
    "product-performance": lambda items, p: inventory.product_performance(items),
    "variant-performance": lambda items, p: inventory.variant_performance(items),
    "size-distribution": lambda items, p: inventory.size_distribution(items),
    "color-distribution": lambda items, p: inventory.color_distribution(items),
    "product-velocity": lambda items, p: inventory.product_velocity(items, p.get("time_field") or "date_time"),
    "items-per-order": lambda items, p: inventory.items_per_order(items),

    # Orders
    "order-summary": lambda items, p: orders.order_summary(items),
    "orders-by-value": lambda items, p: orders.orders_by_value(items),
    "orders-by-channel": lambda items, p: orders.orders_by_channel(items),
    "orders-by-location": lambda items, p: orders.orders_by_location(items),
    "orders-by-associate": lambda items, p: orders.orders_by_associate(items),
    "orders-by-time-frame": lambda items, p: orders.orders_by_time_frame(items, p.get("time_field") or "date_time"),
    "orders-by-status": lambda items, p: orders.orders_by_status(items),

    # KPIs
    "dashboard": lambda items, p: performance.performance_dashboard(items),
    "top-performers": lambda items, p: performance.top_performers(items, p.get("limit")),
    "efficiency": lambda items, p: performance.efficiency_metrics(items),
    "customer-behavior": lambda items, p: performance.customer_behavior_metrics(items),
    "product-mix": lambda items, p: performance.product_mix_metrics(items),
    "sales-efficiency": lambda items, p: efficiency.sales_efficiency(items),
    "associate-productivity": lambda items, p: efficiency.associate_productivity(items),
    "time-efficiency": lambda items, p: efficiency.time_efficiency(items),
    "product-efficiency": lambda items, p: efficiency.product_efficiency(items),
    "cross-sell-efficiency": lambda items, p: efficiency.cross_sell_efficiency(items),
    "efficiency-score": lambda items, p: efficiency.overall_efficiency_score(items),

    # Pairing candidates
    "secondary-metrics": lambda items, p: secondary_metrics_table(
        items,
        sample_size=p.get("limit"),
        sort_by=p.get("sort_by") or "attach_rate",
        descending=p.get("descending", True),
        date_range=_date_range(p),
    ),
}


def available_metrics() -> list[str]:
    return sorted(METRICS)


def compute_metric(
    name: str,
    line_items: list[dict[str, Any]],
    params: Optional[Mapping[str, Any]] = None,
) -> Any:
    """
    Run a registered metric.

    Raises:
        UnknownMetricError: if `name` is not registered
    """
    metric = METRICS.get(name)
    if metric is None:
        raise UnknownMetricError(name)

    logger.debug(f"Computing {name} over {len(line_items)} line items")
    return metric(line_items, dict(params or {}))
