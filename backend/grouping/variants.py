"""
Variant Grouping

Builds the Product -> Color -> Size hierarchy from flat line-item rows and
flattens it into color-first or size-first display tables.

Every call rebuilds from scratch; the only identity carried between calls is
the variant key "{product base} - {color}".
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from core.fields import (
    COLOR_FIELDS,
    PRODUCT_NAME_FIELDS,
    PRODUCT_NET_FIELDS,
    SIZE_FIELDS,
    UNITS_SOLD_FIELDS,
    UPC_FIELDS,
    FieldChain,
    to_number,
)
from grouping.naming import parse_product_base
from grouping.sizes import get_size_order
from grouping.strategies import DEFAULT_STRATEGY, NO_GROUPING


DEFAULT_COLOR = "Default"
DEFAULT_SIZE = "One Size"
ALL_COLORS = "All Colors"
ALL_SIZES = "All Sizes"

COLOR_FIRST_COLUMNS = ["Color", "Size", "Units", "Net"]
SIZE_FIRST_COLUMNS = ["Size", "Color", "Units", "Net"]


def _truthy(chain: FieldChain, row: Mapping[str, Any]) -> Any:
    """First candidate value that is truthy (0 falls through)."""
    for key in chain.candidates:
        value = row.get(key)
        if value:
            return value
    return None


def row_color(row: Mapping[str, Any]) -> str:
    return str(_truthy(COLOR_FIELDS, row) or DEFAULT_COLOR)


def row_size(row: Mapping[str, Any]) -> str:
    return str(_truthy(SIZE_FIELDS, row) or DEFAULT_SIZE)


def row_units(row: Mapping[str, Any]) -> float:
    """Units sold; missing, zero, or non-numeric counts as one unit."""
    return to_number(_truthy(UNITS_SOLD_FIELDS, row)) or 1


def row_net(row: Mapping[str, Any]) -> float:
    return to_number(_truthy(PRODUCT_NET_FIELDS, row))


@dataclass
class VariantGroup:
    """Rows of one base product in one color."""
    key: str
    product_name: str
    color: str
    upc: str
    rows: list[Mapping[str, Any]] = field(default_factory=list)

    @property
    def units(self) -> float:
        return sum(row_units(row) for row in self.rows)


def group_rows_by_product_color(rows: list[Mapping[str, Any]]) -> list[VariantGroup]:
    """Group rows by "{base} - {color}", most units first."""
    groups: dict[str, VariantGroup] = {}

    for row in rows or []:
        if not isinstance(row, Mapping):
            continue
        product_base = parse_product_base(_truthy(PRODUCT_NAME_FIELDS, row) or "")
        color = row_color(row)
        key = f"{product_base} - {color}"

        if key not in groups:
            groups[key] = VariantGroup(
                key=key,
                product_name=product_base,
                color=color,
                upc=str(_truthy(UPC_FIELDS, row) or ""),
            )
        groups[key].rows.append(row)

    return sorted(groups.values(), key=lambda g: g.units, reverse=True)


def variant_size_rows(rows: list[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Sum units and net per size, in first-seen size order."""
    sizes: dict[str, dict[str, Any]] = {}
    for row in rows:
        size = row_size(row)
        if size not in sizes:
            sizes[size] = {"color": row_color(row), "size": size, "units": 0, "net": 0}
        sizes[size]["units"] += row_units(row)
        sizes[size]["net"] += row_net(row)

    return [
        {"#": index, "Color": s["color"], "Size": s["size"], "Units": s["units"], "Net": s["net"]}
        for index, s in enumerate(sizes.values(), start=1)
    ]


def variant_totals(rows: list[Mapping[str, Any]]) -> dict[str, Any]:
    return {
        "Color": row_color(rows[0]) if rows else DEFAULT_COLOR,
        "Size": ALL_SIZES,
        "Units": sum(row_units(row) for row in rows),
        "Net": sum(row_net(row) for row in rows),
    }


def _table(column_keys: list[str], rows: list[dict[str, Any]], totals: dict[str, Any]) -> dict[str, Any]:
    return {
        "columnKeys": list(column_keys),
        "rows": rows,
        "totals": totals,
        "rowCount": len(rows),
        "columnCount": len(column_keys),
    }


def _empty_table() -> dict[str, Any]:
    return _table(COLOR_FIRST_COLUMNS, [], {})


def generate_product_config(
    table: Optional[Mapping[str, Any]],
    grouping_config: Optional[Mapping[str, Any]] = None,
) -> dict[str, list[dict[str, Any]]]:
    """
    Build `{"products": [...]}` from `{"rows": [...]}`.

    Each product owns its color variants; each variant owns a size table
    with "All Sizes" totals. Products are ordered by total units, largest
    first. A grouping config with id "none" yields no products.
    """
    rows = list((table or {}).get("rows") or [])
    if not rows:
        return {"products": []}

    strategy = (grouping_config or {}).get("id") or DEFAULT_STRATEGY
    if strategy == NO_GROUPING:
        return {"products": []}

    products: dict[str, dict[str, Any]] = {}
    for group in group_rows_by_product_color(rows):
        product = products.setdefault(
            group.product_name,
            {"key": group.product_name, "name": group.product_name, "variants": []},
        )
        product["variants"].append({
            "key": group.key,
            "productName": group.product_name,
            "color": group.color,
            "displayName": group.key,
            "upc": group.upc,
            "table": _table(COLOR_FIRST_COLUMNS, variant_size_rows(group.rows), variant_totals(group.rows)),
        })

    ordered = sorted(
        products.values(),
        key=lambda p: sum(v["table"]["totals"].get("Units", 0) for v in p["variants"]),
        reverse=True,
    )
    return {"products": ordered}


def _variant_size_rollup(variants: list[Mapping[str, Any]]) -> dict[str, dict[str, float]]:
    """Units and net per size across the size rows of all variants."""
    sizes: dict[str, dict[str, float]] = {}
    for variant in variants:
        for row in ((variant or {}).get("table") or {}).get("rows") or []:
            if not row:
                continue
            size = str(row.get("Size") or row.get("size") or DEFAULT_SIZE)
            bucket = sizes.setdefault(size, {"units": 0, "net": 0})
            bucket["units"] += to_number(row.get("Units") or row.get("units"))
            bucket["net"] += to_number(row.get("Net") or row.get("net"))
    return sizes


def _color_first(variants: list[Mapping[str, Any]]) -> dict[str, Any]:
    rows = [
        {"#": index, **variant["table"]["totals"]}
        for index, variant in enumerate(variants, start=1)
    ]
    totals = {
        "Color": ALL_COLORS,
        "Size": ALL_SIZES,
        "Units": sum(v["table"]["totals"].get("Units", 0) for v in variants),
        "Net": sum(v["table"]["totals"].get("Net", 0) for v in variants),
    }
    return _table(COLOR_FIRST_COLUMNS, rows, totals)


def _size_first(variants: list[Mapping[str, Any]], by_size_order: bool = True) -> dict[str, Any]:
    sizes = _variant_size_rollup(variants)
    ordered = list(sizes.items())
    if by_size_order:
        ordered.sort(key=lambda item: get_size_order(item[0]))

    rows = [
        {"#": index, "Size": size, "Color": ALL_COLORS, "Units": bucket["units"], "Net": bucket["net"]}
        for index, (size, bucket) in enumerate(ordered, start=1)
    ]
    totals = {
        "Size": ALL_SIZES,
        "Color": ALL_COLORS,
        "Units": sum(bucket["units"] for bucket in sizes.values()),
        "Net": sum(bucket["net"] for bucket in sizes.values()),
    }
    return _table(SIZE_FIRST_COLUMNS, rows, totals)


def create_collapsed_table(variants: Optional[list[Mapping[str, Any]]], sort_column: Optional[str] = None) -> dict[str, Any]:
    """
    One row per variant (Color-first) or per size (Size-first).

    Size-first rows come from the variants' size rows, regrouped by size
    with color collapsed to "All Colors" and ordered by `get_size_order`.
    """
    if not variants:
        return _empty_table()
    if sort_column == "Size":
        return _size_first(variants)
    return _color_first(variants)


def create_expanded_table(variants: Optional[list[Mapping[str, Any]]], sort_column: Optional[str] = None) -> dict[str, Any]:
    """Summary rows for the expanded view; size rows keep first-seen order."""
    if not variants:
        return _empty_table()
    if sort_column == "Size":
        return _size_first(variants, by_size_order=False)
    return _color_first(variants)


def get_sortable_columns() -> list[dict[str, str]]:
    return [
        {"key": "Color", "label": "color"},
        {"key": "Size", "label": "size"},
    ]
