"""
Product naming convention.

Storefront product names encode variants as suffixes:
"Waxed Trucker Jacket - Brown - M". The base product is everything before
the first delimiter.
"""

from typing import Any

BASE_NAME_DELIMITER = " - "


def parse_product_base(name: Any, delimiter: str = BASE_NAME_DELIMITER) -> str:
    """
    Return the base product name: the text before the first `delimiter`.

    Names without the delimiter are returned whole. An empty leading
    segment (a name starting with the delimiter) also yields the full name.
    """
    full_name = "" if name is None else str(name)
    base = full_name.split(delimiter, 1)[0]
    return base or full_name


def variant_depth(name: Any, delimiter: str = BASE_NAME_DELIMITER) -> int:
    """Number of variant suffixes in a product name."""
    return 0 if not name else str(name).count(delimiter)
