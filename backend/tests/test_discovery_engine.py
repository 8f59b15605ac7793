"""
Test Pattern Discovery

Unit tests for word extraction, batch merging, confidence, and ranking.
"""

import pytest
from pydantic import ValidationError

from discovery.combinations import find_combinations
from discovery.engine import (
    DiscoveryOptions,
    PatternDiscoveryEngine,
    _rank_compare,
    is_valid_word,
    normalize_word,
    semantic_variants,
)


@pytest.fixture
def products():
    return [
        {"product_id": "1", "title": "Waxed Canvas Jacket", "description": "Classic canvas", "price": 189},
        {"product_id": "2", "title": "Canvas Tote", "description": "", "price": "48.00"},
        {"product_id": "3", "title": "Canvas Jacket Canvas", "price": None},
        {"product_id": "4", "title": "Wool Cap", "description": "Warm wool", "price": 35},
        {"product_id": "5", "title": "The Jacket", "price": 210},
    ]


@pytest.fixture
def engine():
    return PatternDiscoveryEngine({
        "batch_size": 2,
        "min_threshold": 1,
        "confidence_threshold": 0.01,
        "include_fields": ["title", "description"],
    })


class TestWordHandling:
    def test_normalize_word(self):
        assert normalize_word("  Wax-Cloth! ") == "wax-cloth"
        assert normalize_word("Men's") == "mens"

    @pytest.mark.parametrize("word", ["  Wax-Cloth! ", "CAFÉ", "Men's", "", "--"])
    def test_normalize_word_is_idempotent(self, word):
        assert normalize_word(normalize_word(word)) == normalize_word(word)

    def test_is_valid_word(self):
        assert is_valid_word("jacket")
        assert not is_valid_word("the")
        assert not is_valid_word("x")
        assert not is_valid_word("2025")
        assert not is_valid_word("a" * 51)

    def test_semantic_variants(self):
        assert "jacket" in semantic_variants("jackets")
        assert "jackets" in semantic_variants("jacket")
        assert "gray" in semantic_variants("grey")

        variants = semantic_variants("colored")
        assert "coloured" in variants
        assert "color" in variants
        assert "colored" not in variants

    def test_context_window(self):
        words = PatternDiscoveryEngine.extract_from_field("A very long leading phrase before Canvas", "title")

        canvas = next(w for w in words if w.original == "Canvas")
        assert canvas.context == "ading phrase before Canvas"
        assert canvas.field == "title"

    def test_list_fields_are_joined(self):
        words = PatternDiscoveryEngine.extract_from_field(["Outerwear", "Jackets"], "categories")

        assert [w.original for w in words] == ["Outerwear", "Jackets"]


class TestDiscoveryOptions:
    def test_defaults_from_settings(self):
        options = DiscoveryOptions()

        assert options.batch_size == 2000
        assert options.min_threshold == 50

    def test_falsy_values_use_defaults(self):
        """Zero and empty values fall back to the configured defaults."""
        options = DiscoveryOptions(batch_size=0, include_fields=[], min_threshold=3)

        assert options.batch_size == 2000
        assert options.include_fields
        assert options.min_threshold == 3

    def test_negative_values_rejected(self):
        with pytest.raises(ValidationError):
            DiscoveryOptions(batch_size=-5)


class TestDiscoverPatterns:
    def test_counts_occurrences_and_products(self, engine, products):
        patterns = {p["word"]: p for p in engine.discover_patterns(products)}

        canvas = patterns["canvas"]
        assert canvas["count"] == 5
        assert canvas["uniqueProducts"] == 3
        assert canvas["variations"] == ["Canvas", "canvas"]
        assert canvas["fields"] == ["title", "description"]
        assert "the" not in patterns

    def test_unique_products_never_exceed_count(self, engine, products):
        for pattern in engine.discover_patterns(products):
            assert pattern["uniqueProducts"] <= pattern["count"]
            assert 0 <= pattern["confidence"] <= 1

    def test_batching_does_not_change_counts(self, products):
        """Merged batch results equal a single-batch run."""
        small = PatternDiscoveryEngine({"batch_size": 1, "min_threshold": 1, "confidence_threshold": 0.01})
        large = PatternDiscoveryEngine({"batch_size": 100, "min_threshold": 1, "confidence_threshold": 0.01})

        small_counts = {p["word"]: (p["count"], p["uniqueProducts"]) for p in small.discover_patterns(products)}
        large_counts = {p["word"]: (p["count"], p["uniqueProducts"]) for p in large.discover_patterns(products)}

        assert small_counts == large_counts

    def test_price_metrics(self, engine, products):
        patterns = {p["word"]: p for p in engine.discover_patterns(products)}

        prices = patterns["jacket"]["metrics"]["priceCorrelation"]
        assert prices["min"] == 189
        assert prices["max"] == 210
        assert prices["hasPrice"] == 2

    def test_min_threshold(self, products):
        engine = PatternDiscoveryEngine({"min_threshold": 2, "confidence_threshold": 0.01})

        words = {p["word"] for p in engine.discover_patterns(products)}

        assert "canvas" in words
        assert "wool" in words
        assert "tote" not in words

    def test_max_patterns_per_round(self, products):
        engine = PatternDiscoveryEngine({"min_threshold": 1, "confidence_threshold": 0.01, "max_patterns_per_round": 2})

        assert len(engine.discover_patterns(products)) == 2

    def test_ranking_adjacency(self, engine, products):
        ranked = engine.discover_patterns(products)

        for first, second in zip(ranked, ranked[1:]):
            assert _rank_compare(first, second) <= 0

    def test_non_transitive_ranking_is_repaired(self, engine):
        patterns = [
            {"word": "a", "confidence": 0.50, "count": 1},
            {"word": "c", "confidence": 0.35, "count": 5},
            {"word": "b", "confidence": 0.42, "count": 10},
        ]

        ranked = engine.rank_patterns(patterns)

        assert len(ranked) == 3
        for first, second in zip(ranked, ranked[1:]):
            assert _rank_compare(first, second) <= 0

    def test_empty_input(self, engine):
        assert engine.discover_patterns([]) == []

        result = engine.get_pass_result()
        assert result["patterns"] == []
        assert result["productCount"] == 0
        assert result["batchCount"] == 0

    def test_rerun_resets_patterns(self, engine, products):
        engine.discover_patterns(products)
        second = {p["word"]: p["count"] for p in engine.discover_patterns(products)}

        assert second["canvas"] == 5

    def test_progress_callback(self, products):
        calls = []
        engine = PatternDiscoveryEngine(
            {"batch_size": 2, "min_threshold": 1},
            on_batch_complete=lambda done, total: calls.append((done, total)),
        )

        engine.discover_patterns(products)

        assert calls == [(1, 3), (2, 3), (3, 3)]

    def test_repeated_title_scenario(self):
        products = [{"product_id": str(i), "title": "Blue Canvas Jacket", "price": price}
                    for i, price in enumerate([100, 120, 140])]
        engine = PatternDiscoveryEngine({"min_threshold": 2, "confidence_threshold": 0.01})

        canvas = next(p for p in engine.discover_patterns(products) if p["word"] == "canvas")

        assert canvas["count"] == 3
        assert canvas["uniqueProducts"] == 3
        assert canvas["metrics"]["priceCorrelation"] == {"min": 100, "max": 140, "avg": 120, "hasPrice": 3}

    def test_stop_words_only(self):
        engine = PatternDiscoveryEngine({"min_threshold": 1, "confidence_threshold": 0.01})

        assert engine.discover_patterns([{"product_id": "1", "title": "the a of"}]) == []

    def test_raising_threshold_never_adds_patterns(self, products):
        sizes = []
        for threshold in (1, 2, 3, 5):
            engine = PatternDiscoveryEngine({"min_threshold": threshold, "confidence_threshold": 0.01})
            sizes.append(len(engine.discover_patterns(products)))

        assert sizes == sorted(sizes, reverse=True)

    def test_non_mapping_products_skipped(self, engine):
        patterns = engine.discover_patterns(["not a product", {"product_id": "1", "title": "Canvas Tote"}])

        assert {p["word"] for p in patterns} == {"canvas", "tote"}


class TestConfidence:
    def test_confidence_is_clamped(self):
        metrics = {
            "frequency": 10_000,
            "productPenetration": 10_000,
            "fieldSpread": 10,
            "variationCount": 10,
            "priceCorrelation": {"min": 1, "max": 2},
            "semanticRichness": 50,
        }

        assert PatternDiscoveryEngine.calculate_confidence(metrics) == pytest.approx(1.0)

    def test_confidence_without_price(self):
        metrics = {
            "frequency": 50,
            "productPenetration": 500,
            "fieldSpread": 2,
            "variationCount": 0,
            "priceCorrelation": None,
            "semanticRichness": 0,
        }

        assert PatternDiscoveryEngine.calculate_confidence(metrics) == pytest.approx(0.15 + 0.1 + 0.1)


class TestSurvey:
    def test_survey_ids_follow_pass(self, engine, products):
        engine.set_pass(2)
        engine.discover_patterns(products)

        survey = engine.get_patterns_for_survey()

        assert survey
        assert all(p["id"] == f"2-{p['word']}" for p in survey)
        assert engine.get_progress()["passResults"][0]["pass"] == 2

    def test_survey_before_any_run(self, engine):
        assert engine.get_patterns_for_survey() == []
        assert engine.get_pass_result() is None

    def test_passes_are_kept_separately(self, engine, products):
        engine.discover_patterns(products)
        engine.set_pass(2)
        engine.discover_patterns(products[:1])

        progress = engine.get_progress()
        assert [p["pass"] for p in progress["passResults"]] == [1, 2]
        assert progress["passResults"][1]["productCount"] == 1

    def test_suggest_classifications(self):
        suggestions = PatternDiscoveryEngine.suggest_classifications({"word": "jacket"})

        assert suggestions == [
            {"type": "Category", "confidence": 0.8},
            {"type": "Subcategory", "confidence": 0.6},
        ]
        assert PatternDiscoveryEngine.suggest_classifications({"word": "zipper"}) == [
            {"type": "Attribute", "confidence": 0.4},
        ]

    def test_generate_reasoning(self):
        reasoning = PatternDiscoveryEngine.generate_reasoning({
            "count": 120,
            "uniqueProducts": 150,
            "fields": ["title", "description", "keywords"],
            "variations": ["Canvas", "canvas", "CANVAS", "Canvas's"],
            "metrics": {"priceCorrelation": {"min": 20, "max": 300}},
        })

        assert reasoning.startswith("High frequency (120 occurrences)")
        assert "appears across 150 products" in reasoning
        assert "price range $20-$300" in reasoning
        assert reasoning.endswith("multiple variations (Canvas, canvas, CANVAS...)")
        assert PatternDiscoveryEngine.generate_reasoning({"count": 3}) == ""


class TestCombinations:
    def test_find_combinations(self):
        products = [
            {"title": "Waxed Canvas Jacket"},
            {"title": "Waxed Canvas Tote"},
            {"title": "Canvas Jacket"},
        ]

        combinations = find_combinations("Canvas", products)

        assert {c["combination"] for c in combinations} == {"waxed canvas", "canvas jacket"}
        assert all(c["count"] == 2 for c in combinations)
        assert all(c["confidence"] == 0.67 for c in combinations)

    def test_pairs_count_once_per_product(self):
        products = [{"title": "Canvas Tote Canvas Tote"}, {"title": "Canvas Tote"}]

        assert find_combinations("tote", products) == [
            {"combination": "canvas tote", "count": 2, "confidence": 1.0},
        ]
