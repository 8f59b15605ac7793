"""
Field Access

Schema-tolerant accessors for loosely-typed CSV rows.

The scraper has produced two generations of column naming (snake_case and
the storefront's display labels). Every lookup that must tolerate both goes
through a named `FieldChain` so the fallback order is visible in one place.
"""

import json
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional


@dataclass(frozen=True)
class FieldChain:
    """Ordered list of candidate column names for one logical field."""

    name: str
    candidates: tuple[str, ...]

    def first_present(self, row: Mapping[str, Any], default: Any = None) -> Any:
        """Value of the first candidate that is present and truthy."""
        if not isinstance(row, Mapping):
            return default
        for key in self.candidates:
            value = row.get(key)
            if value not in (None, ""):
                return value
        return default

    def first_with_sum(self, rows: Iterable[Mapping[str, Any]]) -> float:
        """Sum of the first candidate column whose total is positive."""
        rows = list(rows) if rows is not None else []
        for key in self.candidates:
            total = sum(to_number(row.get(key)) for row in rows if isinstance(row, Mapping) and row.get(key) is not None)
            if total > 0:
                return total
        return 0


# Line-item revenue, tried in order until one yields a positive sum
REVENUE_FIELDS = FieldChain(
    "revenue",
    ("discounted_price", "net_price", "total_price", "revenue", "Net", "Product Net"),
)
QUANTITY_FIELDS = FieldChain(
    "quantity",
    ("quantity", "Units", "quantity_sold", "units_sold"),
)
COST_FIELDS = FieldChain("cost", ("unit_cost", "cost"))

# Grouping-table fields (storefront export labels first)
PRODUCT_NAME_FIELDS = FieldChain("product_name", ("Product Name", "product_name"))
COLOR_FIELDS = FieldChain("color", ("Color", "color"))
SIZE_FIELDS = FieldChain("size", ("Size", "size"))
UPC_FIELDS = FieldChain("upc", ("UPC", "upc"))
UNITS_SOLD_FIELDS = FieldChain("units_sold", ("Quantity Sold", "quantity"))
PRODUCT_NET_FIELDS = FieldChain("product_net", ("Product Net", "discounted_price"))

# Order-level fields
DATE_FIELDS = FieldChain("date_time", ("date_time", "date"))
LOCATION_FIELDS = FieldChain("location", ("demand_location", "location"))


def to_number(value: Any, default: float = 0) -> float:
    """
    Coerce a CSV cell to a number.

    Empty, missing, and non-numeric values become `default`. Currency strings
    such as "$1,234.50" are accepted.
    """
    if value is None or isinstance(value, bool):
        return default if value is None else int(value)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return default
        return value
    text = str(value).strip().replace("$", "").replace(",", "")
    if not text:
        return default
    try:
        number = float(text)
    except ValueError:
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return int(number) if number.is_integer() and "." not in text and "e" not in text.lower() else number


def to_text(value: Any) -> str:
    """
    Render an arbitrary field value as text.

    Lists join with a space, mappings are JSON-encoded, None is empty.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple, set)):
        return " ".join(to_text(v) for v in value)
    if isinstance(value, Mapping):
        return json.dumps(value, default=str)
    return str(value)


# Timestamp formats seen in the exports, tried in order after ISO-8601
TIMESTAMP_FORMATS = [
    "%b %d, %Y, %I:%M %p",  # Aug 1, 2025, 5:24 PM (zone suffix stripped)
    "%b %d, %Y",            # Aug 1, 2025
    "%m/%d/%Y %I:%M %p",    # 08/01/2025 5:24 PM
    "%m/%d/%Y",             # 08/01/2025
]


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an export timestamp into a naive datetime, or None.

    Accepts datetime/date objects, ISO-8601 strings (with or without a
    trailing "Z"), and the storefront's "Aug 1, 2025, 5:24 PM PDT" form.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    text = str(value).strip()
    if not text:
        return None

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        pass

    # Drop a trailing zone abbreviation such as PDT/PST
    parts = text.rsplit(" ", 1)
    if len(parts) == 2 and parts[1].isalpha() and parts[1].isupper() and len(parts[1]) <= 4:
        text = parts[0]

    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_json_field(value: Any, default: Optional[Any] = None) -> Any:
    """Parse a JSON blob stored in a CSV cell, or `default` when malformed."""
    if not isinstance(value, str):
        return value if value is not None else default
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        return default
