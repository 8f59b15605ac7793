"""
Full-Catalog Report

One-shot analysis of an entire catalog: title keywords, price buckets,
color and size counts, material keywords, product-type detection, title
structure, attribute mining, statistics, and filter recommendations.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from core.fields import to_number
from core.logging_config import discovery_logger as logger
from discovery.vocabulary import (
    CATALOG_ATTRIBUTES,
    CATALOG_MATERIALS,
    CATALOG_PRODUCT_TYPES,
    PRICE_BUCKETS,
    TOP_PRICE_BUCKET,
)


def price_bucket(price: float) -> str:
    for upper, label in PRICE_BUCKETS:
        if price < upper:
            return label
    return TOP_PRICE_BUCKET


def _summary(values: list[float]) -> dict[str, float]:
    """min / max / average / median (upper middle element)."""
    if not values:
        return {"min": 0, "max": 0, "average": 0, "median": 0}
    ordered = sorted(values)
    return {
        "min": ordered[0],
        "max": ordered[-1],
        "average": sum(ordered) / len(ordered),
        "median": ordered[len(ordered) // 2],
    }


def _completeness(total: int, missing: int) -> str:
    if total == 0:
        return "0.0%"
    return f"{(total - missing) / total * 100:.1f}%"


def _top(counter: Counter, limit: int) -> list[list]:
    return [[key, count] for key, count in counter.most_common(limit)]


@dataclass
class CatalogAnalysis:
    """Counters collected over one catalog."""
    title_words: Counter = field(default_factory=Counter)
    price_buckets: Counter = field(default_factory=Counter)
    colors: Counter = field(default_factory=Counter)
    sizes: Counter = field(default_factory=Counter)
    materials: Counter = field(default_factory=Counter)
    product_types: Counter = field(default_factory=Counter)
    category_keywords: Counter = field(default_factory=Counter)
    subcategories: Counter = field(default_factory=Counter)
    attributes: Counter = field(default_factory=Counter)
    prices: list[float] = field(default_factory=list)
    title_lengths: list[int] = field(default_factory=list)
    missing: Counter = field(default_factory=Counter)
    total_products: int = 0


class CatalogAnalyzer:
    """Builds the full-catalog pattern report."""

    def analyze_full_catalog(self, products: list[Mapping[str, Any]]) -> dict[str, Any]:
        products = [p for p in products or [] if isinstance(p, Mapping)]
        logger.info(f"Analyzing full catalog of {len(products)} products")

        analysis = CatalogAnalysis(total_products=len(products))
        for product in products:
            title = str(product.get("title") or "")
            text = f"{title} {product.get('description') or ''}".lower()

            self._extract_basic_patterns(analysis, product, title, text)
            self._detect_product_types(analysis, text)
            self._discover_title_structure(analysis, title)
            self._mine_attributes(analysis, text)
            self._count_missing(analysis, product, title)

        return self.generate_report(analysis)

    @staticmethod
    def _extract_basic_patterns(analysis: CatalogAnalysis, product: Mapping[str, Any], title: str, text: str) -> None:
        if title:
            analysis.title_lengths.append(len(title))
            for word in title.lower().split():
                clean = "".join(ch for ch in word if ch.isalnum() or ch == "_")
                if len(clean) > 2:
                    analysis.title_words[clean] += 1

        price = to_number(product.get("price"))
        if price > 0:
            analysis.prices.append(price)
            analysis.price_buckets[price_bucket(price)] += 1

        if product.get("color"):
            analysis.colors[str(product["color"])] += 1
        if product.get("size"):
            analysis.sizes[str(product["size"])] += 1

        for material in CATALOG_MATERIALS:
            if material in text:
                analysis.materials[material] += 1

    @staticmethod
    def _detect_product_types(analysis: CatalogAnalysis, text: str) -> None:
        for pattern, category in CATALOG_PRODUCT_TYPES:
            if pattern.search(text):
                analysis.product_types[category] += 1

    @staticmethod
    def _discover_title_structure(analysis: CatalogAnalysis, title: str) -> None:
        words = title.lower().split()
        if not words:
            return
        analysis.category_keywords[f"first:{words[0]}"] += 1
        analysis.category_keywords[f"last:{words[-1]}"] += 1
        for left, right in zip(words, words[1:]):
            analysis.subcategories[f"{left} {right}"] += 1

    @staticmethod
    def _mine_attributes(analysis: CatalogAnalysis, text: str) -> None:
        # First match per attribute type
        for pattern, attr_type in CATALOG_ATTRIBUTES:
            match = pattern.search(text)
            if match:
                analysis.attributes[f"{attr_type}:{match.group(0).strip()}"] += 1

    @staticmethod
    def _count_missing(analysis: CatalogAnalysis, product: Mapping[str, Any], title: str) -> None:
        if not title:
            analysis.missing["title"] += 1
        if to_number(product.get("price")) <= 0:
            analysis.missing["price"] += 1
        if not product.get("color"):
            analysis.missing["color"] += 1
        if not product.get("size"):
            analysis.missing["size"] += 1

    def generate_report(self, analysis: CatalogAnalysis) -> dict[str, Any]:
        total = analysis.total_products
        report = {
            "overview": {
                "totalProducts": total,
                "analysisTimestamp": datetime.now(timezone.utc).isoformat(),
                "priceRange": _summary(analysis.prices),
                "dataQuality": {
                    f"{name}Completeness": _completeness(total, analysis.missing[name])
                    for name in ("title", "price", "color", "size")
                },
            },
            "categories": {
                "discoveredTypes": _top(analysis.product_types, 20),
                "commonKeywords": _top(analysis.title_words, 50),
                "subcategories": _top(analysis.subcategories, 30),
                "priceRanges": _top(analysis.price_buckets, 10),
            },
            "attributes": {
                "colors": _top(analysis.colors, 50),
                "sizes": _top(analysis.sizes, 30),
                "materials": _top(analysis.materials, 20),
                "extractedAttributes": _top(analysis.attributes, 100),
            },
            "patterns": {
                "categoryPatterns": _top(analysis.category_keywords, 50),
                "titleStatistics": _summary(analysis.title_lengths),
                "commonWords": _top(analysis.title_words, 100),
            },
            "recommendations": self.generate_recommendations(analysis),
        }

        logger.info(
            f"Catalog report: {len(analysis.product_types)} product types, "
            f"{len(analysis.title_words)} title keywords"
        )
        return report

    @staticmethod
    def generate_recommendations(analysis: CatalogAnalysis) -> list[dict[str, str]]:
        def names(counter: Counter, limit: int) -> str:
            return ", ".join(str(key) for key, _ in counter.most_common(limit))

        return [
            {
                "type": "categories",
                "suggestion": f"Create main categories: {names(analysis.product_types, 10)}",
                "confidence": "high",
                "impact": "navigation improvement",
            },
            {
                "type": "filters",
                "suggestion": f"Primary color filters: {names(analysis.colors, 10)}",
                "confidence": "high",
                "impact": "search refinement",
            },
            {
                "type": "filters",
                "suggestion": f"Size filters: {names(analysis.sizes, 15)}",
                "confidence": "high",
                "impact": "size selection",
            },
            {
                "type": "pricing",
                "suggestion": f"Effective price ranges: {names(analysis.price_buckets, 10)}",
                "confidence": "high",
                "impact": "price filtering",
            },
        ]


# Global analyzer instance
catalog_analyzer = CatalogAnalyzer()


def analyze_full_catalog(products: Optional[list[Mapping[str, Any]]]) -> dict[str, Any]:
    return catalog_analyzer.analyze_full_catalog(products or [])
