"""
Word Combinations

Two-word phrases containing a discovered pattern word, offered to the
Layer-2 combination question.
"""

from collections import Counter
from typing import Any, Iterable, Mapping, Optional

from core.fields import to_text
from discovery.engine import is_valid_word, normalize_word
from discovery.vocabulary import WORD_PATTERN


def _tokens(text: str) -> list[str]:
    return [normalize_word(match.group(0)) for match in WORD_PATTERN.finditer(text)]


def find_combinations(
    word: str,
    products: Iterable[Mapping[str, Any]],
    fields: Optional[list[str]] = None,
    min_count: int = 2,
    limit: int = 10,
) -> list[dict[str, Any]]:
    """
    Adjacent word pairs that contain `word`, most frequent first.

    A pair is counted once per product. Its confidence is the share of
    products containing `word` that also contain the pair.
    """
    word = normalize_word(word)
    fields = fields or ["title"]
    pair_counts: Counter = Counter()
    products_with_word = 0

    for product in products or []:
        if not isinstance(product, Mapping):
            continue

        pairs: set[str] = set()
        seen_word = False
        for field_name in fields:
            value = product.get(field_name)
            if not value:
                continue
            tokens = _tokens(to_text(value))
            if word in tokens:
                seen_word = True
            for left, right in zip(tokens, tokens[1:]):
                if word not in (left, right):
                    continue
                other = right if left == word else left
                if other == word or not is_valid_word(other):
                    continue
                pairs.add(f"{left} {right}")

        if seen_word:
            products_with_word += 1
        pair_counts.update(pairs)

    combinations = [
        {
            "combination": combination,
            "count": count,
            "confidence": round(min(count / products_with_word, 1.0), 2) if products_with_word else 0,
        }
        for combination, count in pair_counts.most_common()
        if count >= min_count
    ]
    return combinations[:limit]
