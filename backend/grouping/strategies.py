"""
Grouping strategies for product tables.
"""

from typing import Any, Mapping, Optional

from core.fields import PRODUCT_NAME_FIELDS
from grouping.naming import variant_depth


GROUP_STRATEGIES: dict[str, dict[str, Any]] = {
    "product_variants": {
        "id": "product_variants",
        "name": "Product Variants",
        "description": "Group by product name, then by color variants",
        "groupBy": ["product_name"],
        "nestedBy": ["color"],
        "displayFields": ["color", "size", "quantity", "discounted_price"],
        "aggregation": "sum",
        "defaultExpanded": False,
        "allowCollapse": True,
        "sortBy": "quantity",
        "sortDirection": "desc",
    },
    "product_performance": {
        "id": "product_performance",
        "name": "Product Performance",
        "description": "Group by product with all variants combined",
        "groupBy": ["product_name"],
        "nestedBy": [],
        "displayFields": ["quantity", "discounted_price", "unit_price"],
        "aggregation": "sum",
        "defaultExpanded": True,
        "allowCollapse": False,
        "sortBy": "discounted_price",
        "sortDirection": "desc",
    },
    "color_analysis": {
        "id": "color_analysis",
        "name": "Color Analysis",
        "description": "Group by color across all products",
        "groupBy": ["color"],
        "nestedBy": ["product_name"],
        "displayFields": ["product_name", "size", "quantity", "discounted_price"],
        "aggregation": "sum",
        "defaultExpanded": False,
        "allowCollapse": True,
        "sortBy": "quantity",
        "sortDirection": "desc",
    },
}

DEFAULT_STRATEGY = "product_variants"
NO_GROUPING = "none"

REQUIRED_CONFIG_KEYS = ("id", "groupBy", "displayFields")
LIST_CONFIG_KEYS = ("displayFields", "groupBy", "nestedBy")


def detect_best_grouping(rows: Optional[list[Mapping[str, Any]]]) -> str:
    """
    Pick a strategy id for the rows.

    Empty input gets `product_performance`; anything else is grouped by
    product variants.
    """
    if not rows:
        return "product_performance"
    return DEFAULT_STRATEGY


def has_variant_names(rows: list[Mapping[str, Any]]) -> bool:
    """True when any product name carries at least two variant suffixes."""
    return any(variant_depth(PRODUCT_NAME_FIELDS.first_present(row, "")) >= 2 for row in rows or [])


def create_grouping_config(
    strategy_id: Optional[str] = None,
    custom_options: Optional[Mapping[str, Any]] = None,
) -> dict[str, Any]:
    """Strategy defaults overlaid with `custom_options`; list fields fall back to the strategy's."""
    base = GROUP_STRATEGIES.get(strategy_id or "", GROUP_STRATEGIES[DEFAULT_STRATEGY])
    custom_options = dict(custom_options or {})

    config = {**base, **custom_options}
    for key in LIST_CONFIG_KEYS:
        config[key] = list(custom_options.get(key) or base[key])
    return config


def get_available_strategies() -> list[dict[str, Any]]:
    return [dict(strategy) for strategy in GROUP_STRATEGIES.values()]


def validate_grouping_config(config: Any) -> bool:
    if not isinstance(config, Mapping):
        return False
    return all(key in config for key in REQUIRED_CONFIG_KEYS)
