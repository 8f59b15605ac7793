"""
Test Variant Grouping

Unit tests for product naming, size ordering, strategies, and the
Product -> Color -> Size tables.
"""

import pytest

from grouping.naming import parse_product_base, variant_depth
from grouping.sizes import get_size_order, sort_sizes
from grouping.strategies import (
    create_grouping_config,
    detect_best_grouping,
    get_available_strategies,
    has_variant_names,
    validate_grouping_config,
)
from grouping.variants import (
    create_collapsed_table,
    create_expanded_table,
    generate_product_config,
    group_rows_by_product_color,
    row_units,
)


@pytest.fixture
def shirt_rows():
    return [
        {"Product Name": "Shirt - Red - M", "Color": "Red", "Size": "M", "Quantity Sold": 2, "Product Net": 20},
        {"Product Name": "Shirt - Red - L", "Color": "Red", "Size": "L", "Quantity Sold": 3, "Product Net": 30},
        {"Product Name": "Shirt - Blue - S", "Color": "Blue", "Size": "S", "Quantity Sold": 1, "Product Net": 12},
    ]


@pytest.fixture
def shirt_variants(shirt_rows):
    return generate_product_config({"rows": shirt_rows})["products"][0]["variants"]


class TestNaming:
    def test_parse_product_base(self):
        assert parse_product_base("Waxed Trucker Jacket - Brown - M") == "Waxed Trucker Jacket"
        assert parse_product_base("Canvas Tote") == "Canvas Tote"
        assert parse_product_base(" - Red") == " - Red"
        assert parse_product_base(None) == ""
        assert parse_product_base("Cap / Black", delimiter=" / ") == "Cap"

    def test_variant_depth(self):
        assert variant_depth("Shirt - Red - M") == 2
        assert variant_depth("Shirt") == 0
        assert variant_depth(None) == 0


class TestSizeOrder:
    @pytest.mark.parametrize("size,rank", [
        ("XS", 1),
        ("M", 3),
        ("8", 14),
        ("32", 30032),
        ("32x30", 82030),
        ("34 X 32", 84032),
        ("100", 70100),
        ("20000", 89999),
        ("30000", 89999),
        ("-5", 70000),
        ("44x30", 89999),
        ("One Size", 90000),
        ("OS", 90000),
        ("Petite", 99999),
        (None, 99999),
    ])
    def test_get_size_order(self, size, rank):
        assert get_size_order(size) == rank

    def test_sort_sizes(self):
        assert sort_sizes(["XL", "One Size", "S", "30", "6", "Tall", "M"]) == [
            "S", "M", "XL", "6", "30", "One Size", "Tall",
        ]

    def test_large_numbers_sort_before_one_size_and_unknown(self):
        assert sort_sizes(["Mystery", "One Size", "30000", "20000"]) == ["30000", "20000", "One Size", "Mystery"]


class TestStrategies:
    def test_detect_best_grouping(self, shirt_rows):
        assert detect_best_grouping(shirt_rows) == "product_variants"
        assert detect_best_grouping([]) == "product_performance"

    def test_has_variant_names(self, shirt_rows):
        assert has_variant_names(shirt_rows)
        assert not has_variant_names([{"product_name": "Canvas Tote - Natural"}])

    def test_create_grouping_config(self):
        config = create_grouping_config("color_analysis", {"sortBy": "units", "displayFields": []})

        assert config["id"] == "color_analysis"
        assert config["sortBy"] == "units"
        assert config["displayFields"] == ["product_name", "size", "quantity", "discounted_price"]

    def test_unknown_strategy_uses_default(self):
        assert create_grouping_config("bogus")["id"] == "product_variants"

    def test_validate_grouping_config(self):
        assert validate_grouping_config(create_grouping_config())
        assert not validate_grouping_config({"id": "x"})
        assert not validate_grouping_config(None)

    def test_available_strategies(self):
        ids = [s["id"] for s in get_available_strategies()]

        assert ids == ["product_variants", "product_performance", "color_analysis"]


class TestProductConfig:
    def test_variant_totals(self, shirt_rows):
        """Two Red rows roll up to one variant with 5 units and 50 net."""
        products = generate_product_config({"rows": shirt_rows})["products"]

        assert [p["name"] for p in products] == ["Shirt"]
        red = products[0]["variants"][0]
        assert red["key"] == "Shirt - Red"
        assert red["table"]["totals"] == {"Color": "Red", "Size": "All Sizes", "Units": 5, "Net": 50}
        assert [row["Size"] for row in red["table"]["rows"]] == ["M", "L"]
        assert red["table"]["columnKeys"] == ["Color", "Size", "Units", "Net"]

    def test_variants_sorted_by_units(self, shirt_rows):
        groups = group_rows_by_product_color(shirt_rows)

        assert [g.key for g in groups] == ["Shirt - Red", "Shirt - Blue"]
        assert groups[0].units == 5

    def test_products_sorted_by_units(self, shirt_rows):
        rows = shirt_rows + [{"Product Name": "Cap - Black", "Color": "Black", "Quantity Sold": 10, "Product Net": 100}]

        products = generate_product_config({"rows": rows})["products"]

        assert [p["name"] for p in products] == ["Cap", "Shirt"]
        assert products[0]["variants"][0]["table"]["rows"][0]["Size"] == "One Size"

    def test_snake_case_fallback_fields(self):
        rows = [{"product_name": "Tote - Natural", "color": "Natural", "quantity": "2", "discounted_price": "90.00"}]

        variant = generate_product_config({"rows": rows})["products"][0]["variants"][0]

        assert variant["table"]["totals"]["Units"] == 2
        assert variant["table"]["totals"]["Net"] == 90

    def test_missing_values_default(self):
        assert row_units({}) == 1
        assert row_units({"Quantity Sold": "0"}) == 1

        variant = generate_product_config({"rows": [{"Product Name": "Belt"}]})["products"][0]["variants"][0]
        assert variant["color"] == "Default"
        assert variant["table"]["totals"]["Units"] == 1

    def test_no_grouping(self, shirt_rows):
        assert generate_product_config({"rows": shirt_rows}, {"id": "none"}) == {"products": []}

    def test_empty_table(self):
        assert generate_product_config({"rows": []}) == {"products": []}
        assert generate_product_config(None) == {"products": []}


class TestDisplayTables:
    def test_color_first(self, shirt_variants):
        table = create_collapsed_table(shirt_variants, "Color")

        assert [row["Color"] for row in table["rows"]] == ["Red", "Blue"]
        assert table["totals"] == {"Color": "All Colors", "Size": "All Sizes", "Units": 6, "Net": 62}
        assert table["rowCount"] == 2

    def test_collapsed_size_first_uses_size_order(self, shirt_variants):
        table = create_collapsed_table(shirt_variants, "Size")

        assert table["columnKeys"] == ["Size", "Color", "Units", "Net"]
        assert [row["Size"] for row in table["rows"]] == ["S", "M", "L"]
        assert all(row["Color"] == "All Colors" for row in table["rows"])
        assert table["totals"]["Units"] == 6

    def test_expanded_size_first_keeps_first_seen_order(self, shirt_variants):
        table = create_expanded_table(shirt_variants, "Size")

        assert [row["Size"] for row in table["rows"]] == ["M", "L", "S"]
        assert [row["#"] for row in table["rows"]] == [1, 2, 3]

    def test_sizes_merge_across_colors(self):
        rows = [
            {"Product Name": "Tee - Red - M", "Color": "Red", "Size": "M", "Quantity Sold": 2, "Product Net": 40},
            {"Product Name": "Tee - Blue - M", "Color": "Blue", "Size": "M", "Quantity Sold": 1, "Product Net": 20},
        ]
        variants = generate_product_config({"rows": rows})["products"][0]["variants"]

        table = create_collapsed_table(variants, "Size")

        assert table["rows"] == [{"#": 1, "Size": "M", "Color": "All Colors", "Units": 3, "Net": 60}]

    def test_empty_variants(self):
        table = create_collapsed_table([], "Size")

        assert table["rows"] == []
        assert table["totals"] == {}
