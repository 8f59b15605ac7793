"""
Discovery Vocabularies

Constant word tables used by pattern discovery, survey suggestions, Layer-2
type detection, and the catalog report. Algorithms read these tables; they
hold no behavior of their own.
"""

import re


# Word validation
STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "is", "are", "was", "were", "be", "been", "have",
    "has", "had", "do", "does", "did", "will", "would", "could", "should",
    "this", "that", "these", "those", "i", "you", "he", "she", "it", "we", "they",
})
MIN_WORD_LENGTH = 2
MAX_WORD_LENGTH = 50

WORD_PATTERN = re.compile(r"\b[\w'-]+\b")
CONTEXT_RADIUS = 20
MAX_REPORTED_CONTEXTS = 3

# (old, new) substitutions applied once each when deriving semantic variants
SPELLING_SWAPS = [
    ("colour", "color"),
    ("color", "colour"),
    ("grey", "gray"),
    ("gray", "grey"),
]
# Affix patterns stripped when deriving semantic variants
AFFIX_STRIPS = [
    re.compile(r"^un"),
    re.compile(r"ing$"),
    re.compile(r"ed$"),
    re.compile(r"er$"),
    re.compile(r"ly$"),
]


# Survey suggestions: (type, confidence, words); a word may match several rows
SURVEY_SUGGESTIONS = [
    ("Material", 0.9, frozenset({"leather", "canvas", "wool", "cotton", "silk", "denim", "nylon"})),
    ("Category", 0.8, frozenset({"jacket", "shirt", "pants", "bag", "boot", "hat"})),
    ("Subcategory", 0.6, frozenset({"jacket", "shirt", "pants", "bag", "boot", "hat"})),
    ("Color", 0.9, frozenset({"black", "white", "brown", "navy", "gray", "red", "blue", "green"})),
    ("Size", 0.9, frozenset({"small", "medium", "large", "xl", "xxl", "xs"})),
    ("Feature", 0.7, frozenset({"waterproof", "insulated", "lined", "vintage", "classic"})),
]
DEFAULT_SURVEY_SUGGESTION = ("Attribute", 0.4)


# Layer-2 type detection
MATERIALS = frozenset({
    "leather", "canvas", "wool", "cotton", "denim", "silk", "polyester", "nylon",
    "fleece", "cashmere", "linen", "twill", "corduroy", "suede",
})
MATERIAL_MARKERS = ("fabric", "material")

COLORS = frozenset({
    "black", "white", "brown", "navy", "gray", "grey", "red", "blue", "green",
    "yellow", "orange", "purple", "pink", "tan", "khaki", "olive", "burgundy", "charcoal",
})
COLOR_MARKERS = ("color", "colour")

SIZES = frozenset({"xs", "small", "medium", "large", "xl", "xxl", "xxxl", "petite", "tall", "plus"})
MEASUREMENT_PATTERN = re.compile(r"^\d+(\.\d+)?(in|inch|cm|mm)$")

PRODUCT_TYPES = frozenset({
    "jacket", "coat", "shirt", "pants", "jeans", "shorts", "dress", "skirt", "bag",
    "backpack", "tote", "wallet", "belt", "hat", "cap", "boot", "shoe", "sneaker",
})
PRODUCT_CONTEXT_MARKERS = ("product", "item")

FEATURES = frozenset({
    "waterproof", "breathable", "insulated", "lined", "vintage", "classic",
    "modern", "slim", "regular", "loose", "fitted",
})
FEATURE_SUFFIXES = ("proof", "able")
FEATURE_MARKERS = ("resist",)

STYLES = frozenset({
    "vintage", "classic", "modern", "casual", "formal", "sporty", "outdoor",
    "urban", "rustic", "minimalist",
})

BRAND_MIN_PRODUCTS = 5

# Order in which type tests run; first match wins
PATTERN_TYPES = ["material", "color", "size", "product", "feature", "brand", "style", "general"]

CLASSIFICATION_SUGGESTIONS = {
    "material": [("Material", 0.9), ("Attribute", 0.6)],
    "color": [("Color", 0.9), ("Variant", 0.7)],
    "product": [("Category", 0.8), ("Subcategory", 0.8), ("Product Type", 0.7)],
    "feature": [("Feature", 0.8), ("Attribute", 0.7)],
    "size": [("Size", 0.9), ("Variant", 0.6)],
    "brand": [("Brand", 0.8), ("Collection", 0.7)],
    "style": [("Style", 0.8), ("Attribute", 0.6)],
    "general": [("Attribute", 0.5), ("Feature", 0.4)],
}

LEARNED_MIN_COUNT = 2
LEARNED_OPTION_LIMIT = 3
LEARNED_OPTION_CONFIDENCE = 0.8
# Fixed score attached to "similar" classifications; no text similarity is computed
PLACEHOLDER_SIMILARITY = 0.8


# Catalog report
CATALOG_PRODUCT_TYPES = [
    (re.compile(r"\b(jacket|coat|parka|vest|sweater|shirt|pants|jeans|shorts|dress|skirt|blouse)\b", re.I), "Clothing"),
    (re.compile(r"\b(bag|backpack|tote|wallet|belt|hat|cap|gloves|scarf|watch|sunglasses)\b", re.I), "Accessories"),
    (re.compile(r"\b(boot|shoe|sneaker|sandal|loafer|oxford|heel|pump)\b", re.I), "Footwear"),
    (re.compile(r"\b(tent|sleeping|camping|hiking|fishing|hunting|outdoor|gear|equipment)\b", re.I), "Outdoor"),
    (re.compile(r"\b(blanket|pillow|towel|sheet|curtain|rug|candle|lamp)\b", re.I), "Home"),
]

CATALOG_ATTRIBUTES = [
    (re.compile(r"\b(small|medium|large|xl|xxl|xs|[0-9]+[\"']|size\s*[0-9]+)\b", re.I), "size"),
    (re.compile(r"\b(black|white|red|blue|green|yellow|brown|gray|grey|navy|khaki|tan|burgundy|olive)\b", re.I), "color"),
    (re.compile(r"\b(cotton|wool|leather|canvas|denim|silk|polyester|nylon|fleece|cashmere|linen)\b", re.I), "material"),
    (re.compile(r"\b(vintage|modern|classic|casual|formal|sporty|outdoor|urban|rustic)\b", re.I), "style"),
    (re.compile(r"\b(slim|regular|loose|tight|fitted|relaxed|stretch|tailored)\b", re.I), "fit"),
]

CATALOG_MATERIALS = [
    "cotton", "wool", "leather", "canvas", "denim", "silk", "polyester",
    "nylon", "fleece", "cashmere", "linen", "bamboo", "hemp", "twill",
]

# (exclusive upper bound, label)
PRICE_BUCKETS = [
    (25, "$0-25"),
    (50, "$25-50"),
    (100, "$50-100"),
    (200, "$100-200"),
    (500, "$200-500"),
]
TOP_PRICE_BUCKET = "$500+"
