"""
Layer-2 Question Generator

Turns an approved discovery pattern into a follow-up questionnaire and learns
from the custom classifications given in the answers.

Learned state (custom classification counts and primary/secondary type
pairs) lives on the generator instance and is only persisted through
`export_learning` / `import_learning`.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from core.logging_config import discovery_logger as logger
from discovery.vocabulary import (
    BRAND_MIN_PRODUCTS,
    CLASSIFICATION_SUGGESTIONS,
    COLOR_MARKERS,
    COLORS,
    FEATURE_MARKERS,
    FEATURE_SUFFIXES,
    FEATURES,
    LEARNED_MIN_COUNT,
    LEARNED_OPTION_CONFIDENCE,
    LEARNED_OPTION_LIMIT,
    MATERIAL_MARKERS,
    MATERIALS,
    MEASUREMENT_PATTERN,
    PLACEHOLDER_SIMILARITY,
    PRODUCT_CONTEXT_MARKERS,
    PRODUCT_TYPES,
    SIZES,
    STYLES,
)


Question = dict[str, Any]

# Substrings of question ids routed into the response result, checked in order
RESPONSE_ROUTES = ["classification", "hierarchy", "properties", "expansion", "combinations"]


class PatternRequiredError(ValueError):
    """Raised when questions are requested without a pattern."""


def _option(value: str, label: str, custom: bool = False) -> dict[str, Any]:
    option: dict[str, Any] = {"value": value, "label": label}
    if custom:
        option["isCustomInput"] = True
    return option


def _as_list(response: Any) -> list:
    return list(response) if isinstance(response, (list, tuple)) else [response]


class Layer2QuestionGenerator:
    """Builds Layer-2 questionnaires and learns custom classifications."""

    def __init__(self):
        # lowercased classification -> {"count", "firstSeen", "examples"}
        self.custom_classifications: dict[str, dict[str, Any]] = {}
        # primary type -> observed secondary types
        self.classification_patterns: dict[str, set[str]] = {}

        self._type_builders: dict[str, Callable[[Mapping[str, Any]], list[Question]]] = {
            "material": self.create_material_questions,
            "color": self.create_color_questions,
            "size": self.create_size_questions,
            "product": self.create_product_questions,
            "feature": self.create_feature_questions,
            "brand": self.create_brand_questions,
            "style": self.create_style_questions,
            "general": self.create_general_questions,
        }

    def generate_layer2_questions(
        self,
        pattern: Optional[Mapping[str, Any]],
        discovered_combinations: Optional[list[Mapping[str, Any]]] = None,
    ) -> dict[str, Any]:
        """
        Build the questionnaire for one pattern.

        Raises:
            PatternRequiredError: if `pattern` is None
        """
        if pattern is None:
            raise PatternRequiredError("A pattern is required to generate Layer-2 questions")

        pattern_type = self.detect_pattern_type(pattern)

        questions = [self.create_classification_question(pattern, pattern_type)]
        questions.extend(self.create_type_specific_questions(pattern, pattern_type))

        if discovered_combinations:
            questions.append(self.create_combination_question(pattern, discovered_combinations))

        questions.append(self.create_expansion_question(pattern, pattern_type))

        learning = self.create_learning_question(pattern)
        if learning is not None:
            questions.append(learning)

        logger.debug(f"Generated {len(questions)} {pattern_type} questions for {pattern.get('word')!r}")

        return {
            "patternId": pattern.get("id"),
            "patternWord": pattern.get("word"),
            "patternType": pattern_type,
            "questions": questions,
            "metadata": {
                "confidence": pattern.get("confidence"),
                "count": pattern.get("count"),
                "reasoning": pattern.get("reasoning"),
            },
        }

    # Type detection

    def detect_pattern_type(self, pattern: Mapping[str, Any]) -> str:
        word = str(pattern.get("word") or "").lower()
        contexts = " ".join(str(c) for c in pattern.get("contexts") or []).lower()

        if self.is_material(word):
            return "material"
        if self.is_color(word):
            return "color"
        if self.is_size(word):
            return "size"
        if self.is_product_type(word, contexts):
            return "product"
        if self.is_feature(word, contexts):
            return "feature"
        if self.is_brand_term(word, pattern):
            return "brand"
        if self.is_style_descriptor(word):
            return "style"
        return "general"

    @staticmethod
    def is_material(word: str) -> bool:
        return word in MATERIALS or any(marker in word for marker in MATERIAL_MARKERS)

    @staticmethod
    def is_color(word: str) -> bool:
        return word in COLORS or any(marker in word for marker in COLOR_MARKERS)

    @staticmethod
    def is_size(word: str) -> bool:
        return word in SIZES or bool(MEASUREMENT_PATTERN.match(word))

    @staticmethod
    def is_product_type(word: str, contexts: str) -> bool:
        return word in PRODUCT_TYPES or any(marker in contexts for marker in PRODUCT_CONTEXT_MARKERS)

    @staticmethod
    def is_feature(word: str, contexts: str) -> bool:
        return (
            word in FEATURES
            or word.endswith(FEATURE_SUFFIXES)
            or any(marker in word for marker in FEATURE_MARKERS)
        )

    @staticmethod
    def is_brand_term(word: str, pattern: Mapping[str, Any]) -> bool:
        """Seen in enough products, in titles, first spelled with a capital letter."""
        variations = pattern.get("variations") or []
        return (
            (pattern.get("uniqueProducts") or 0) >= BRAND_MIN_PRODUCTS
            and "title" in (pattern.get("fields") or [])
            and len(variations) > 0
            and str(variations[0])[:1].isupper()
        )

    @staticmethod
    def is_style_descriptor(word: str) -> bool:
        return word in STYLES

    # Classification

    def get_classification_suggestions(self, pattern_type: str) -> list[dict[str, Any]]:
        suggestions = CLASSIFICATION_SUGGESTIONS.get(pattern_type, CLASSIFICATION_SUGGESTIONS["general"])
        return [{"type": label, "confidence": confidence} for label, confidence in suggestions]

    def get_learned_custom_options(self, pattern_type: Optional[str] = None) -> list[str]:
        """Custom classifications used at least twice, first three in learning order."""
        learned = [
            classification
            for classification, data in self.custom_classifications.items()
            if data.get("count", 0) >= LEARNED_MIN_COUNT
        ]
        return learned[:LEARNED_OPTION_LIMIT]

    def create_classification_question(self, pattern: Mapping[str, Any], pattern_type: str) -> Question:
        options = [
            {
                "value": s["type"],
                "label": s["type"],
                "confidence": s["confidence"],
                "suggested": True,
            }
            for s in self.get_classification_suggestions(pattern_type)
        ]
        options.extend(
            {
                "value": learned,
                "label": learned,
                "confidence": LEARNED_OPTION_CONFIDENCE,
                "suggested": False,
                "learned": True,
            }
            for learned in self.get_learned_custom_options(pattern_type)
        )
        options.append({
            "value": "custom",
            "label": "Custom classification",
            "isCustomInput": True,
            "placeholder": 'e.g. "material, outdoor", "category, outerwear"',
        })

        return {
            "id": f"{pattern.get('id')}_classification",
            "type": "classification",
            "question": f'"{pattern.get("word")}" appears in {pattern.get("count")} products. How should I classify this?',
            "required": True,
            "options": options,
        }

    # Type-specific question sets

    def create_type_specific_questions(self, pattern: Mapping[str, Any], pattern_type: str) -> list[Question]:
        builder = self._type_builders.get(pattern_type, self.create_general_questions)
        return builder(pattern)

    @staticmethod
    def create_material_questions(pattern: Mapping[str, Any]) -> list[Question]:
        pid, word = pattern.get("id"), pattern.get("word")
        return [
            {
                "id": f"{pid}_material_hierarchy",
                "type": "multiple_choice",
                "question": f'Should "{word}" be grouped with other materials?',
                "options": [
                    _option("fabric", "Fabric materials (cotton, wool, silk)"),
                    _option("leather", "Leather materials (leather, suede, hide)"),
                    _option("synthetic", "Synthetic materials (nylon, polyester)"),
                    _option("natural", "Natural materials (cotton, wool, leather)"),
                    _option("standalone", "Keep as standalone material"),
                    _option("custom_group", "Custom grouping", custom=True),
                ],
            },
            {
                "id": f"{pid}_material_properties",
                "type": "checkbox_multiple",
                "question": f'What properties should I associate with "{word}"?',
                "options": [
                    _option("waterproof", "Waterproof/water-resistant"),
                    _option("breathable", "Breathable"),
                    _option("durable", "Durable/heavy-duty"),
                    _option("luxury", "Premium/luxury"),
                    _option("casual", "Casual/everyday"),
                    _option("outdoor", "Outdoor/technical"),
                ],
            },
        ]

    @staticmethod
    def create_color_questions(pattern: Mapping[str, Any]) -> list[Question]:
        pid, word = pattern.get("id"), pattern.get("word")
        return [
            {
                "id": f"{pid}_color_family",
                "type": "multiple_choice",
                "question": f'What color family does "{word}" belong to?',
                "options": [
                    _option("neutral", "Neutral (black, white, gray, brown)"),
                    _option("earth", "Earth tones (tan, olive, khaki)"),
                    _option("bright", "Bright colors (red, blue, green)"),
                    _option("dark", "Dark colors (navy, charcoal, forest)"),
                    _option("metallic", "Metallic (gold, silver, bronze)"),
                    _option("custom_family", "Custom family", custom=True),
                ],
            },
            {
                "id": f"{pid}_color_variants",
                "type": "text",
                "question": f'What variations of "{word}" should I look for?',
                "placeholder": 'e.g. "dark brown, light brown, chocolate brown"',
            },
        ]

    @staticmethod
    def create_size_questions(pattern: Mapping[str, Any]) -> list[Question]:
        pid, word = pattern.get("id"), pattern.get("word")
        return [
            {
                "id": f"{pid}_size_system",
                "type": "multiple_choice",
                "question": f'Which sizing system does "{word}" belong to?',
                "options": [
                    _option("alpha", "Letter sizes (XS, S, M, L, XL)"),
                    _option("numeric", "Numeric sizes (0-20)"),
                    _option("waist_inseam", "Waist x inseam (32x30)"),
                    _option("one_size", "One size fits all"),
                    _option("custom_system", "Custom system", custom=True),
                ],
            },
            {
                "id": f"{pid}_size_products",
                "type": "checkbox_multiple",
                "question": f'Which product types are sold in "{word}"?',
                "options": [
                    _option("tops", "Tops and outerwear"),
                    _option("bottoms", "Pants and shorts"),
                    _option("footwear", "Footwear"),
                    _option("accessories", "Hats, belts, and gloves"),
                    _option("all_products", "All product types"),
                ],
            },
        ]

    @staticmethod
    def create_product_questions(pattern: Mapping[str, Any]) -> list[Question]:
        pid, word = pattern.get("id"), pattern.get("word")
        return [
            {
                "id": f"{pid}_product_hierarchy",
                "type": "multiple_choice",
                "question": f'Where should "{word}" fit in the product hierarchy?',
                "options": [
                    _option("main_category", "Main category (top-level navigation)"),
                    _option("subcategory", "Subcategory (under another product type)"),
                    _option("variant", "Product variant (style of another product)"),
                    _option("standalone", "Standalone product type"),
                ],
            },
            {
                "id": f"{pid}_product_parent",
                "type": "conditional_text",
                "question": f'What should "{word}" be a subcategory of?',
                "condition": "product_hierarchy === subcategory",
                "placeholder": 'e.g. "outerwear", "bags", "footwear"',
            },
            {
                "id": f"{pid}_product_gender",
                "type": "checkbox_multiple",
                "question": f'What gender categories apply to "{word}"?',
                "options": [
                    _option("mens", "Men's"),
                    _option("womens", "Women's"),
                    _option("unisex", "Unisex"),
                    _option("kids", "Kids/Children"),
                ],
            },
        ]

    @staticmethod
    def create_feature_questions(pattern: Mapping[str, Any]) -> list[Question]:
        pid, word = pattern.get("id"), pattern.get("word")
        return [
            {
                "id": f"{pid}_feature_type",
                "type": "multiple_choice",
                "question": f'What type of feature is "{word}"?',
                "options": [
                    _option("technical", "Technical feature (waterproof, breathable)"),
                    _option("construction", "Construction feature (lined, insulated)"),
                    _option("style", "Style feature (vintage, classic)"),
                    _option("fit", "Fit feature (slim, regular, loose)"),
                    _option("care", "Care feature (machine washable, dry clean)"),
                    _option("custom_type", "Custom type", custom=True),
                ],
            },
            {
                "id": f"{pid}_feature_products",
                "type": "checkbox_multiple",
                "question": f'Which product types commonly have the "{word}" feature?',
                "options": [
                    _option("outerwear", "Outerwear (jackets, coats)"),
                    _option("bags", "Bags and accessories"),
                    _option("footwear", "Footwear"),
                    _option("clothing", "General clothing"),
                    _option("all_products", "All product types"),
                ],
            },
        ]

    @staticmethod
    def create_brand_questions(pattern: Mapping[str, Any]) -> list[Question]:
        pid, word = pattern.get("id"), pattern.get("word")
        return [
            {
                "id": f"{pid}_brand_kind",
                "type": "multiple_choice",
                "question": f'What kind of name is "{word}"?',
                "options": [
                    _option("brand", "Brand name (who makes the product)"),
                    _option("collection", "Collection or product line"),
                    _option("designer", "Designer or collaboration"),
                    _option("custom_kind", "Custom kind", custom=True),
                ],
            },
            {
                "id": f"{pid}_brand_hierarchy",
                "type": "multiple_choice",
                "question": f'How should products named "{word}" be organized?',
                "options": [
                    _option("top_level", "Top-level brand filter"),
                    _option("within_category", "Filter within each category"),
                    _option("collection_page", "Dedicated collection page"),
                    _option("tag_only", "Tag only (no navigation)"),
                ],
            },
        ]

    @staticmethod
    def create_style_questions(pattern: Mapping[str, Any]) -> list[Question]:
        pid, word = pattern.get("id"), pattern.get("word")
        return [
            {
                "id": f"{pid}_style_family",
                "type": "multiple_choice",
                "question": f'Which style family does "{word}" belong to?',
                "options": [
                    _option("heritage", "Heritage (vintage, classic, rustic)"),
                    _option("contemporary", "Contemporary (modern, minimalist, urban)"),
                    _option("occasion", "Occasion (casual, formal)"),
                    _option("activity", "Activity (sporty, outdoor)"),
                    _option("custom_family", "Custom family", custom=True),
                ],
            },
            {
                "id": f"{pid}_style_products",
                "type": "checkbox_multiple",
                "question": f'Which product types are described as "{word}"?',
                "options": [
                    _option("outerwear", "Outerwear (jackets, coats)"),
                    _option("bags", "Bags and accessories"),
                    _option("footwear", "Footwear"),
                    _option("clothing", "General clothing"),
                    _option("all_products", "All product types"),
                ],
            },
        ]

    @staticmethod
    def create_general_questions(pattern: Mapping[str, Any]) -> list[Question]:
        pid, word = pattern.get("id"), pattern.get("word")
        return [
            {
                "id": f"{pid}_general_context",
                "type": "multiple_choice",
                "question": f'How does "{word}" relate to your products?',
                "options": [
                    _option("describes_product", "Describes the product itself"),
                    _option("describes_style", "Describes the style/aesthetic"),
                    _option("describes_use", "Describes how it's used"),
                    _option("marketing_term", "Marketing/promotional term"),
                    _option("technical_spec", "Technical specification"),
                ],
                "required": True,
            },
            {
                "id": f"{pid}_general_grouping",
                "type": "text",
                "question": f'Should "{word}" be grouped with similar terms? If so, what would you call this group?',
                "placeholder": 'e.g., "Product Features", "Style Descriptors", "Usage Context"',
                "required": False,
            },
        ]

    # Optional questions

    @staticmethod
    def create_combination_question(
        pattern: Mapping[str, Any],
        combinations: list[Mapping[str, Any]],
    ) -> Question:
        options = [
            {
                "value": combo.get("combination"),
                "label": f"{combo.get('combination')} (found {combo.get('count')}x)",
                "metadata": {"count": combo.get("count"), "confidence": combo.get("confidence")},
            }
            for combo in combinations
        ]
        options.append(_option("all_combinations", "Track all combinations automatically"))
        options.append(_option("no_combinations", "Don't track combinations for this pattern"))

        return {
            "id": f"{pattern.get('id')}_combinations",
            "type": "checkbox_multiple",
            "question": (
                f'I found these combinations with "{pattern.get("word")}". '
                "Which should I track as separate patterns?"
            ),
            "options": options,
        }

    @staticmethod
    def create_expansion_question(pattern: Mapping[str, Any], pattern_type: Optional[str] = None) -> Question:
        return {
            "id": f"{pattern.get('id')}_expansion",
            "type": "checkbox_multiple",
            "question": f'How should I expand the search for "{pattern.get("word")}"?',
            "options": [
                _option("synonyms", "Find synonyms and alternative terms"),
                _option("variations", "Find spelling variations and plurals"),
                _option("related", "Find related terms in the same category"),
                _option("technical", "Find technical specifications"),
                _option("descriptive", "Find descriptive modifiers (premium, vintage, etc.)"),
                _option("stop_expansion", "Don't expand - use exact term only"),
            ],
        }

    def find_similar_classifications(self, word: Optional[str] = None) -> list[dict[str, Any]]:
        """
        Learned classifications offered as "similar", most used first.

        No text similarity is computed: every classification used at least
        twice qualifies and carries a fixed similarity score.
        """
        similar = [
            {
                "classification": classification,
                "count": data.get("count", 0),
                "similarity": PLACEHOLDER_SIMILARITY,
            }
            for classification, data in self.custom_classifications.items()
            if data.get("count", 0) >= LEARNED_MIN_COUNT
        ]
        similar.sort(key=lambda s: s["count"], reverse=True)
        return similar[:LEARNED_OPTION_LIMIT]

    def create_learning_question(self, pattern: Mapping[str, Any]) -> Optional[Question]:
        similar = self.find_similar_classifications(pattern.get("word"))
        if not similar:
            return None

        top = similar[0]["classification"]
        word = pattern.get("word")
        return {
            "id": f"{pattern.get('id')}_learning",
            "type": "confirmation",
            "question": (
                f'I notice you previously classified similar terms as "{top}". '
                f'Should I apply the same to "{word}"?'
            ),
            "options": [
                _option("yes", f'Yes, classify as "{top}"'),
                _option("no", "No, let me specify differently"),
                _option("similar", "Similar but needs modification", custom=True),
            ],
            "metadata": {"learned": True, "similarity": similar},
        }

    # Responses and learning

    def process_layer2_response(self, pattern_id: str, responses: Mapping[str, Any]) -> dict[str, Any]:
        """
        Fold questionnaire answers into a classification result.

        Answers are routed by substrings of their question id; answers to
        other questions are ignored. Custom answers are learned.
        """
        result: dict[str, Any] = {
            "patternId": pattern_id,
            "classification": None,
            "hierarchy": None,
            "properties": [],
            "expansionStrategy": [],
            "combinations": [],
            "customDefinitions": [],
        }

        for question_id, response in (responses or {}).items():
            route = next((r for r in RESPONSE_ROUTES if r in question_id), None)

            if route == "classification":
                result["classification"] = self.process_classification_response(response, learn=False)
            elif route == "hierarchy":
                result["hierarchy"] = response
            elif route == "properties":
                result["properties"] = _as_list(response)
            elif route == "expansion":
                result["expansionStrategy"] = _as_list(response)
            elif route == "combinations":
                result["combinations"] = _as_list(response)

            if isinstance(response, Mapping) and response.get("isCustom"):
                value = response.get("value")
                result["customDefinitions"].append({"question": question_id, "value": value})
                if value:
                    self.learn_custom_classification(str(value))

        return result

    def process_classification_response(self, response: Any, learn: bool = True) -> dict[str, Any]:
        """
        Parse a classification answer.

        Custom answers such as "material, outdoor" split into a type and a
        subtype.
        """
        if isinstance(response, str):
            return {"type": response, "subtype": None, "custom": False}

        if isinstance(response, Mapping) and response.get("isCustom"):
            original = str(response.get("value") or "")
            parts = [p.strip() for p in original.split(",")]
            if learn and original:
                self.learn_custom_classification(original)
            return {
                "type": parts[0],
                "subtype": parts[1] if len(parts) > 1 and parts[1] else None,
                "custom": True,
                "original": original,
            }

        if isinstance(response, Mapping):
            return {"type": response.get("value"), "subtype": None, "custom": False}
        return {"type": response, "subtype": None, "custom": False}

    def learn_custom_classification(self, classification: str) -> None:
        key = classification.lower()
        entry = self.custom_classifications.get(key)
        if entry is None:
            self.custom_classifications[key] = {
                "count": 1,
                "firstSeen": datetime.now(timezone.utc).isoformat(),
                "examples": [],
            }
        else:
            entry["count"] += 1

        self.recognize_classification_patterns(classification)
        logger.debug(f"Learned custom classification {key!r}")

    def recognize_classification_patterns(self, classification: str) -> None:
        """Record the secondary type (after the comma) under its primary type."""
        parts = [p.strip() for p in classification.split(",")]
        secondaries = self.classification_patterns.setdefault(parts[0], set())
        if len(parts) > 1 and parts[1]:
            secondaries.add(parts[1])

    def export_learning(self) -> dict[str, Any]:
        return {
            "customClassifications": {k: dict(v) for k, v in self.custom_classifications.items()},
            "classificationPatterns": {k: sorted(v) for k, v in self.classification_patterns.items()},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def import_learning(self, data: Mapping[str, Any]) -> None:
        """Replace learned tables with previously exported ones."""
        if not isinstance(data, Mapping):
            return

        if data.get("customClassifications"):
            self.custom_classifications = {
                str(k): dict(v) for k, v in data["customClassifications"].items() if isinstance(v, Mapping)
            }

        if data.get("classificationPatterns"):
            self.classification_patterns = {
                str(k): set(v or []) for k, v in data["classificationPatterns"].items()
            }

        logger.info(f"Imported {len(self.custom_classifications)} learned classifications")
