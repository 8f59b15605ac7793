"""
Test Catalog Report

Unit tests for the full-catalog pattern report.
"""

import pytest

from discovery.catalog import analyze_full_catalog, price_bucket


@pytest.fixture
def catalog():
    return [
        {"title": "Waxed Canvas Jacket", "description": "Classic black jacket", "price": 189, "color": "Black", "size": "M"},
        {"title": "Canvas Tote", "description": "Natural canvas bag", "price": "48.00", "color": "Natural", "size": ""},
        {"title": "Leather Boot", "description": "Brown leather work boot", "price": 320, "color": "Brown", "size": "10"},
        {"title": "", "description": "", "price": None, "color": "", "size": ""},
    ]


class TestPriceBuckets:
    @pytest.mark.parametrize("price,bucket", [
        (0.5, "$0-25"),
        (25, "$25-50"),
        (99.99, "$50-100"),
        (100, "$100-200"),
        (499, "$200-500"),
        (500, "$500+"),
    ])
    def test_price_bucket(self, price, bucket):
        assert price_bucket(price) == bucket


class TestCatalogReport:
    def test_overview(self, catalog):
        overview = analyze_full_catalog(catalog)["overview"]

        assert overview["totalProducts"] == 4
        assert overview["priceRange"] == {"min": 48.0, "max": 320, "average": pytest.approx(185.667, abs=1e-3), "median": 189}
        assert overview["dataQuality"] == {
            "titleCompleteness": "75.0%",
            "priceCompleteness": "75.0%",
            "colorCompleteness": "75.0%",
            "sizeCompleteness": "50.0%",
        }

    def test_categories(self, catalog):
        categories = analyze_full_catalog(catalog)["categories"]
        types = dict(categories["discoveredTypes"])

        assert types == {"Clothing": 1, "Accessories": 1, "Footwear": 1}
        assert ["canvas", 2] in categories["commonKeywords"]
        assert ["waxed canvas", 1] in categories["subcategories"]
        assert dict(categories["priceRanges"]) == {"$100-200": 1, "$25-50": 1, "$200-500": 1}

    def test_short_title_words_skipped(self):
        report = analyze_full_catalog([{"title": "A Big Hat"}])

        assert dict(report["categories"]["commonKeywords"]) == {"big": 1, "hat": 1}

    def test_attributes(self, catalog):
        attributes = analyze_full_catalog(catalog)["attributes"]

        assert dict(attributes["colors"]) == {"Black": 1, "Natural": 1, "Brown": 1}
        assert dict(attributes["sizes"]) == {"M": 1, "10": 1}
        assert dict(attributes["materials"]) == {"canvas": 2, "leather": 1}

        extracted = dict(attributes["extractedAttributes"])
        assert extracted["material:canvas"] == 2
        assert extracted["style:classic"] == 1
        assert extracted["color:brown"] == 1

    def test_attribute_counted_once_per_type(self):
        report = analyze_full_catalog([{"title": "Black and Navy Scarf", "description": "black"}])

        extracted = dict(report["attributes"]["extractedAttributes"])
        assert extracted == {"color:black": 1}

    def test_title_patterns(self, catalog):
        patterns = analyze_full_catalog(catalog)["patterns"]
        categories = dict(patterns["categoryPatterns"])

        assert categories["first:canvas"] == 1
        assert categories["last:jacket"] == 1
        assert patterns["titleStatistics"]["min"] == len("Canvas Tote")
        assert patterns["titleStatistics"]["max"] == len("Waxed Canvas Jacket")

    def test_recommendations(self, catalog):
        recommendations = analyze_full_catalog(catalog)["recommendations"]

        assert [r["type"] for r in recommendations] == ["categories", "filters", "filters", "pricing"]
        assert recommendations[1]["suggestion"] == "Primary color filters: Black, Natural, Brown"
        assert all(r["confidence"] == "high" for r in recommendations)

    def test_empty_catalog(self):
        report = analyze_full_catalog([])

        assert report["overview"]["totalProducts"] == 0
        assert report["overview"]["priceRange"] == {"min": 0, "max": 0, "average": 0, "median": 0}
        assert report["overview"]["dataQuality"]["titleCompleteness"] == "0.0%"
        assert report["categories"]["discoveredTypes"] == []
        assert report["recommendations"][0]["suggestion"] == "Create main categories: "

    def test_none_catalog(self):
        assert analyze_full_catalog(None)["overview"]["totalProducts"] == 0
