"""
Pattern Discovery Engine

Batch word-pattern mining over product catalogs. Products are split into
fixed-size batches; each batch extracts candidate words from the configured
text fields, the batch results merge into the engine's state, and the merged
patterns are thresholded, scored, and ranked.

An engine owns one `DiscoveryState`. Calls to `discover_patterns` on the same
engine must be serialized by the caller; give each concurrent run its own
engine.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import cmp_to_key
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from pydantic import BaseModel, Field, model_validator

from config import get_settings
from core.fields import to_number, to_text
from core.logging_config import discovery_logger as logger
from discovery.vocabulary import (
    AFFIX_STRIPS,
    CONTEXT_RADIUS,
    DEFAULT_SURVEY_SUGGESTION,
    MAX_REPORTED_CONTEXTS,
    MAX_WORD_LENGTH,
    MIN_WORD_LENGTH,
    SPELLING_SWAPS,
    STOP_WORDS,
    SURVEY_SUGGESTIONS,
    WORD_PATTERN,
)


ProgressCallback = Callable[[int, int], None]

_NON_WORD = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"\s+")
_DIGITS = re.compile(r"^\d+$")

# Confidences closer than this are ranked by count instead
RANK_TIE_TOLERANCE = 0.1


def _settings_default(name: str):
    return lambda: getattr(get_settings().discovery, name)


class DiscoveryOptions(BaseModel):
    """
    Discovery run configuration.

    Defaults come from `DiscoverySettings`. Falsy values (0, empty list,
    None) fall back to the defaults.
    """

    batch_size: int = Field(default_factory=_settings_default("batch_size"), gt=0)
    min_threshold: int = Field(default_factory=_settings_default("min_threshold"), gt=0)
    max_patterns_per_round: int = Field(default_factory=_settings_default("max_patterns_per_round"), gt=0)
    confidence_threshold: float = Field(default_factory=_settings_default("confidence_threshold"), ge=0)
    include_fields: list[str] = Field(default_factory=_settings_default("include_fields"))

    @model_validator(mode="before")
    @classmethod
    def _drop_falsy(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            return {k: v for k, v in data.items() if v}
        return data


@dataclass
class PriceRange:
    """Running price observations for one word."""

    min: float = math.inf
    max: float = 0
    values: list[float] = field(default_factory=list)

    def add(self, price: float) -> None:
        self.min = min(self.min, price)
        self.max = max(self.max, price)
        self.values.append(price)

    def merge(self, other: "PriceRange") -> None:
        self.min = min(self.min, other.min)
        self.max = max(self.max, other.max)
        self.values.extend(other.values)


@dataclass
class WordPattern:
    """
    Accumulated observations of one normalized word.

    Variations, contexts, fields, and semantic variants are insertion-ordered
    sets (dicts with None values) so reports list them in first-seen order.
    """

    word: str
    count: int = 0
    original_variations: dict[str, None] = field(default_factory=dict)
    products: set = field(default_factory=set)
    contexts: dict[str, None] = field(default_factory=dict)
    fields: dict[str, None] = field(default_factory=dict)
    price_range: PriceRange = field(default_factory=PriceRange)
    semantic_variants: dict[str, None] = field(default_factory=dict)

    def merge(self, other: "WordPattern") -> None:
        """Fold a batch-local pattern for the same word into this one."""
        self.count += other.count
        self.original_variations.update(other.original_variations)
        self.products.update(other.products)
        self.contexts.update(other.contexts)
        self.fields.update(other.fields)
        self.semantic_variants.update(other.semantic_variants)
        self.price_range.merge(other.price_range)


@dataclass
class PassResult:
    """Ranked output of one discovery pass."""

    patterns: list[dict[str, Any]]
    timestamp: str
    batch_count: int
    product_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "patterns": self.patterns,
            "timestamp": self.timestamp,
            "batchCount": self.batch_count,
            "productCount": self.product_count,
        }


@dataclass
class DiscoveryState:
    """Mutable state of one discovery engine."""

    patterns: dict[str, WordPattern] = field(default_factory=dict)
    pass_results: dict[int, PassResult] = field(default_factory=dict)
    current_pass: int = 1
    processed_batches: int = 0
    total_batches: int = 0


@dataclass
class ExtractedWord:
    original: str
    context: str
    field: str
    position: int


def normalize_word(word: str) -> str:
    """Lowercase, keep only word characters, whitespace and hyphens, collapse spaces."""
    text = str(word).lower().strip()
    text = _NON_WORD.sub("", text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip()


def is_valid_word(word: str) -> bool:
    """Reject stop words, purely numeric tokens, and tokens outside 2..50 chars."""
    if len(word) < MIN_WORD_LENGTH or len(word) > MAX_WORD_LENGTH or word in STOP_WORDS:
        return False
    if _DIGITS.match(word):
        return False
    return True


def semantic_variants(word: str) -> list[str]:
    """
    Heuristic alternate spellings of a normalized word.

    Plural/singular toggle, US/UK color and grey/gray swaps, and a leading
    "un" or trailing "ing"/"ed"/"er"/"ly" stripped. Variants equal to the
    word or a single character long are dropped.
    """
    candidates = [word[:-1] if word.endswith("s") else word + "s"]
    candidates.extend(word.replace(old, new, 1) for old, new in SPELLING_SWAPS)
    candidates.extend(pattern.sub("", word, count=1) for pattern in AFFIX_STRIPS)

    variants: dict[str, None] = {}
    for variant in candidates:
        if variant != word and len(variant) > 1:
            variants[variant] = None
    return list(variants)


def _rank_compare(a: Mapping[str, Any], b: Mapping[str, Any]) -> float:
    if abs(a["confidence"] - b["confidence"]) > RANK_TIE_TOLERANCE:
        return b["confidence"] - a["confidence"]
    return b["count"] - a["count"]


def _repair_adjacent_order(patterns: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Rebuild the ranking so every adjacent pair satisfies the comparator.

    The comparator is not transitive, so sorting alone does not guarantee
    this. Each pattern is inserted, in sorted order, at the rightmost
    position whose neighbours accept it; such a position always exists.
    """
    ordered: list[dict[str, Any]] = []
    for pattern in patterns:
        if not ordered or _rank_compare(ordered[-1], pattern) <= 0:
            ordered.append(pattern)
            continue

        for i in range(len(ordered) - 1, 0, -1):
            if _rank_compare(ordered[i - 1], pattern) <= 0 and _rank_compare(pattern, ordered[i]) <= 0:
                ordered.insert(i, pattern)
                break
        else:
            ordered.insert(0, pattern)

    return ordered


class PatternDiscoveryEngine:
    """Batch pattern discovery over product records."""

    def __init__(
        self,
        options: Optional[Union[DiscoveryOptions, Mapping[str, Any]]] = None,
        state: Optional[DiscoveryState] = None,
        on_batch_complete: Optional[ProgressCallback] = None,
    ):
        if options is None:
            options = DiscoveryOptions()
        elif not isinstance(options, DiscoveryOptions):
            options = DiscoveryOptions(**options)
        self.options = options
        self.state = state or DiscoveryState()
        self.on_batch_complete = on_batch_complete

    @property
    def current_pass(self) -> int:
        return self.state.current_pass

    def set_pass(self, pass_number: int) -> None:
        """Select the pass number future runs store their results under."""
        self.state.current_pass = int(pass_number)

    def discover_patterns(self, products: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
        """
        Run one discovery pass.

        Resets the accumulated patterns, processes `products` in batches,
        then returns the ranked patterns and stores them under the current
        pass number.
        """
        products = list(products or [])
        batch_size = self.options.batch_size
        state = self.state

        logger.info(
            f"Starting pass {state.current_pass} on {len(products)} products "
            f"(batch size {batch_size}, min threshold {self.options.min_threshold})"
        )

        state.total_batches = math.ceil(len(products) / batch_size)
        state.processed_batches = 0
        state.patterns.clear()

        for start in range(0, len(products), batch_size):
            batch = products[start:start + batch_size]
            self.process_batch(batch, start // batch_size + 1)

            if self.on_batch_complete is not None:
                self.on_batch_complete(state.processed_batches, state.total_batches)

        ranked = self.rank_patterns(self.consolidate_patterns())

        state.pass_results[state.current_pass] = PassResult(
            patterns=ranked,
            timestamp=datetime.now(timezone.utc).isoformat(),
            batch_count=state.total_batches,
            product_count=len(products),
        )

        logger.info(f"Pass {state.current_pass} complete: {len(ranked)} patterns discovered")
        return ranked

    def process_batch(self, products: list[Mapping[str, Any]], batch_number: int) -> dict[str, WordPattern]:
        """Extract words from one batch and merge them into the state."""
        logger.debug(
            f"Processing batch {batch_number}/{self.state.total_batches} ({len(products)} products)"
        )

        batch_patterns: dict[str, WordPattern] = {}
        variant_cache: dict[str, list[str]] = {}

        for product in products:
            if not isinstance(product, Mapping):
                continue
            price = to_number(product.get("price"))

            for extracted in self.extract_words(product):
                word = normalize_word(extracted.original)
                if not is_valid_word(word):
                    continue

                pattern = batch_patterns.get(word)
                if pattern is None:
                    pattern = batch_patterns[word] = WordPattern(word=word)

                pattern.count += 1
                pattern.products.add(product.get("product_id"))
                pattern.original_variations[extracted.original] = None
                pattern.contexts[extracted.context] = None
                pattern.fields[extracted.field] = None

                if price > 0:
                    pattern.price_range.add(price)

                if word not in variant_cache:
                    variant_cache[word] = semantic_variants(word)
                pattern.semantic_variants.update(dict.fromkeys(variant_cache[word]))

        self.merge_batch_patterns(batch_patterns)
        self.state.processed_batches += 1
        return batch_patterns

    def extract_words(self, product: Mapping[str, Any]) -> list[ExtractedWord]:
        words: list[ExtractedWord] = []
        for field_name in self.options.include_fields:
            value = product.get(field_name)
            if not value:
                continue
            words.extend(self.extract_from_field(value, field_name))
        return words

    @staticmethod
    def extract_from_field(value: Any, field_name: str) -> list[ExtractedWord]:
        """
        Candidate words of one field value with their surrounding context.

        Context spans 20 characters either side of the first occurrence of
        the matched text.
        """
        text = to_text(value)
        words = []
        for match in WORD_PATTERN.finditer(text):
            original = match.group(0)
            index = text.find(original)
            start = max(0, index - CONTEXT_RADIUS)
            end = min(len(text), index + len(original) + CONTEXT_RADIUS)
            words.append(ExtractedWord(
                original=original,
                context=text[start:end].strip(),
                field=field_name,
                position=index,
            ))
        return words

    def merge_batch_patterns(self, batch_patterns: Mapping[str, WordPattern]) -> None:
        patterns = self.state.patterns
        for word, batch_pattern in batch_patterns.items():
            existing = patterns.get(word)
            if existing is None:
                patterns[word] = WordPattern(word=word)
                existing = patterns[word]
            existing.merge(batch_pattern)

    def consolidate_patterns(self) -> list[dict[str, Any]]:
        """Patterns at or above the minimum count, with metrics and confidence."""
        consolidated = []
        for word, pattern in self.state.patterns.items():
            if pattern.count < self.options.min_threshold:
                continue

            metrics = self.calculate_pattern_metrics(pattern)
            consolidated.append({
                "word": word,
                "count": pattern.count,
                "uniqueProducts": len(pattern.products),
                "variations": list(pattern.original_variations),
                "contexts": list(pattern.contexts)[:MAX_REPORTED_CONTEXTS],
                "fields": list(pattern.fields),
                "semanticVariants": list(pattern.semantic_variants),
                "metrics": metrics,
                "confidence": self.calculate_confidence(metrics),
            })
        return consolidated

    @staticmethod
    def calculate_pattern_metrics(pattern: WordPattern) -> dict[str, Any]:
        prices = [p for p in pattern.price_range.values if p > 0]
        price_correlation = None
        if prices:
            price_correlation = {
                "min": min(prices),
                "max": max(prices),
                "avg": sum(prices) / len(prices),
                "hasPrice": len(prices),
            }

        return {
            "frequency": pattern.count,
            "productPenetration": len(pattern.products),
            "variationCount": len(pattern.original_variations),
            "fieldSpread": len(pattern.fields),
            "priceCorrelation": price_correlation,
            "semanticRichness": len(pattern.semantic_variants),
        }

    @staticmethod
    def calculate_confidence(metrics: Mapping[str, Any]) -> float:
        """Weighted blend of the pattern metrics, clamped to [0, 1]."""
        confidence = 0.0
        confidence += min(metrics["frequency"] / 100, 1) * 0.3
        confidence += min(metrics["productPenetration"] / 1000, 1) * 0.2
        confidence += min(metrics["fieldSpread"] / 4, 1) * 0.2
        confidence += min(metrics["variationCount"] / 5, 1) * 0.15
        if metrics["priceCorrelation"]:
            confidence += 0.1
        confidence += min(metrics["semanticRichness"] / 10, 1) * 0.05
        return max(0.0, min(confidence, 1.0))

    def rank_patterns(self, patterns: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        Drop low-confidence patterns, order by confidence (ties within 0.1
        broken by count), and keep the top `max_patterns_per_round`.
        """
        kept = [p for p in patterns if p["confidence"] >= self.options.confidence_threshold]
        kept.sort(key=cmp_to_key(_rank_compare))
        return _repair_adjacent_order(kept)[:self.options.max_patterns_per_round]

    def get_patterns_for_survey(self) -> list[dict[str, Any]]:
        """Current pass patterns with survey ids, reasoning, and suggestions."""
        result = self.state.pass_results.get(self.state.current_pass)
        if result is None:
            return []

        return [
            {
                "id": f"{self.state.current_pass}-{pattern['word']}",
                "word": pattern["word"],
                "count": pattern["count"],
                "uniqueProducts": pattern["uniqueProducts"],
                "variations": pattern["variations"],
                "contexts": pattern["contexts"],
                "fields": pattern["fields"],
                "confidence": pattern["confidence"],
                "reasoning": self.generate_reasoning(pattern),
                "suggestedClassifications": self.suggest_classifications(pattern),
            }
            for pattern in result.patterns
        ]

    @staticmethod
    def generate_reasoning(pattern: Mapping[str, Any]) -> str:
        reasons = []

        count = pattern.get("count", 0)
        if count > 100:
            reasons.append(f"High frequency ({count} occurrences)")
        elif count > 50:
            reasons.append(f"Medium frequency ({count} occurrences)")

        if pattern.get("uniqueProducts", 0) > 100:
            reasons.append(f"appears across {pattern['uniqueProducts']} products")

        fields = pattern.get("fields") or []
        if len(fields) > 2:
            reasons.append(f"found in multiple fields ({', '.join(fields)})")

        price = (pattern.get("metrics") or {}).get("priceCorrelation")
        if price:
            reasons.append(f"price range ${price['min']:.0f}-${price['max']:.0f}")

        variations = pattern.get("variations") or []
        if len(variations) > 3:
            reasons.append(f"multiple variations ({', '.join(variations[:3])}...)")

        return " + ".join(reasons)

    @staticmethod
    def suggest_classifications(pattern: Mapping[str, Any]) -> list[dict[str, Any]]:
        word = str(pattern.get("word", "")).lower()
        suggestions = [
            {"type": label, "confidence": confidence}
            for label, confidence, words in SURVEY_SUGGESTIONS
            if word in words
        ]
        if not suggestions:
            label, confidence = DEFAULT_SURVEY_SUGGESTION
            suggestions.append({"type": label, "confidence": confidence})
        return sorted(suggestions, key=lambda s: s["confidence"], reverse=True)

    def get_progress(self) -> dict[str, Any]:
        state = self.state
        return {
            "currentPass": state.current_pass,
            "batchesProcessed": state.processed_batches,
            "totalBatches": state.total_batches,
            "patternsFound": len(state.patterns),
            "passResults": [
                {
                    "pass": number,
                    "patternCount": len(result.patterns),
                    "timestamp": result.timestamp,
                    "batchCount": result.batch_count,
                    "productCount": result.product_count,
                }
                for number, result in state.pass_results.items()
            ],
        }

    def get_pass_result(self, pass_number: Optional[int] = None) -> Optional[dict[str, Any]]:
        result = self.state.pass_results.get(pass_number or self.state.current_pass)
        return result.to_dict() if result else None
