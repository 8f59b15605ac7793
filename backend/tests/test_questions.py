"""
Test Layer-2 Questions

Unit tests for pattern type detection, questionnaire building, and learning
from custom classifications.
"""

import pytest

from discovery.questions import Layer2QuestionGenerator, PatternRequiredError


@pytest.fixture
def generator():
    return Layer2QuestionGenerator()


@pytest.fixture
def leather_pattern():
    return {
        "id": "1-leather",
        "word": "leather",
        "count": 84,
        "uniqueProducts": 70,
        "variations": ["Leather", "leather"],
        "contexts": ["Horween leather strap"],
        "fields": ["title", "description"],
        "confidence": 0.62,
        "reasoning": "Medium frequency (84 occurrences)",
    }


def _pattern(word, **extra):
    return {"id": f"1-{word}", "word": word, "count": 10, **extra}


class TestPatternTypes:
    @pytest.mark.parametrize("word,expected", [
        ("leather", "material"),
        ("performance-fabric", "material"),
        ("navy", "color"),
        ("colorblock", "color"),
        ("xl", "size"),
        ("12in", "size"),
        ("jacket", "product"),
        ("waterproof", "feature"),
        ("washable", "feature"),
        ("stain-resistant", "feature"),
        ("vintage", "feature"),
        ("rustic", "style"),
        ("heritage", "general"),
    ])
    def test_detect_pattern_type(self, generator, word, expected):
        assert generator.detect_pattern_type(_pattern(word)) == expected

    def test_product_context_marker(self, generator):
        pattern = _pattern("zipper", contexts=["Replacement product zipper"])

        assert generator.detect_pattern_type(pattern) == "product"

    def test_brand_needs_enough_title_products(self, generator):
        brand = _pattern("filson", uniqueProducts=12, fields=["title"], variations=["Filson"])

        assert generator.detect_pattern_type(brand) == "brand"
        assert generator.detect_pattern_type({**brand, "uniqueProducts": 4}) == "general"
        assert generator.detect_pattern_type({**brand, "fields": ["description"]}) == "general"
        assert generator.detect_pattern_type({**brand, "variations": ["filson"]}) == "general"


class TestQuestionnaire:
    def test_material_questions(self, generator, leather_pattern):
        result = generator.generate_layer2_questions(leather_pattern)

        assert result["patternId"] == "1-leather"
        assert result["patternType"] == "material"
        assert [q["id"] for q in result["questions"]] == [
            "1-leather_classification",
            "1-leather_material_hierarchy",
            "1-leather_material_properties",
            "1-leather_expansion",
        ]
        assert result["metadata"] == {
            "confidence": 0.62,
            "count": 84,
            "reasoning": "Medium frequency (84 occurrences)",
        }

    def test_classification_question(self, generator, leather_pattern):
        question = generator.generate_layer2_questions(leather_pattern)["questions"][0]

        assert question["required"] is True
        assert question["question"] == '"leather" appears in 84 products. How should I classify this?'
        assert [o["value"] for o in question["options"]] == ["Material", "Attribute", "custom"]
        assert question["options"][-1]["isCustomInput"] is True

    @pytest.mark.parametrize("word,ids", [
        ("navy", ["color_family", "color_variants"]),
        ("xl", ["size_system", "size_products"]),
        ("jacket", ["product_hierarchy", "product_parent", "product_gender"]),
        ("waterproof", ["feature_type", "feature_products"]),
        ("rustic", ["style_family", "style_products"]),
        ("heritage", ["general_context", "general_grouping"]),
    ])
    def test_type_specific_questions(self, generator, word, ids):
        questions = generator.generate_layer2_questions(_pattern(word))["questions"]

        assert [q["id"] for q in questions[1:-1]] == [f"1-{word}_{suffix}" for suffix in ids]

    def test_brand_questions(self, generator):
        brand = _pattern("filson", uniqueProducts=12, fields=["title"], variations=["Filson"])

        questions = generator.generate_layer2_questions(brand)["questions"]
        hierarchy = next(q for q in questions if q["id"] == "1-filson_brand_hierarchy")

        assert [o["value"] for o in hierarchy["options"]] == [
            "top_level", "within_category", "collection_page", "tag_only",
        ]

    def test_combination_question(self, generator, leather_pattern):
        combinations = [{"combination": "leather strap", "count": 3, "confidence": 0.5}]

        questions = generator.generate_layer2_questions(leather_pattern, combinations)["questions"]
        combo = next(q for q in questions if q["id"] == "1-leather_combinations")

        assert combo["options"][0]["label"] == "leather strap (found 3x)"
        assert [o["value"] for o in combo["options"][1:]] == ["all_combinations", "no_combinations"]

    def test_no_combination_question_without_combinations(self, generator, leather_pattern):
        questions = generator.generate_layer2_questions(leather_pattern, [])["questions"]

        assert not any(q["id"].endswith("_combinations") for q in questions)

    def test_pattern_required(self, generator):
        with pytest.raises(PatternRequiredError):
            generator.generate_layer2_questions(None)


class TestResponses:
    def test_process_layer2_response(self, generator):
        result = generator.process_layer2_response("1-leather", {
            "1-leather_classification": {"isCustom": True, "value": "Material, Outdoor"},
            "1-leather_material_hierarchy": "natural",
            "1-leather_material_properties": ["durable", "outdoor"],
            "1-leather_expansion": "synonyms",
            "1-leather_unrelated": "ignored",
        })

        assert result["classification"] == {
            "type": "Material",
            "subtype": "Outdoor",
            "custom": True,
            "original": "Material, Outdoor",
        }
        assert result["hierarchy"] == "natural"
        assert result["properties"] == ["durable", "outdoor"]
        assert result["expansionStrategy"] == ["synonyms"]
        assert result["combinations"] == []
        assert result["customDefinitions"] == [
            {"question": "1-leather_classification", "value": "Material, Outdoor"},
        ]

    def test_custom_answer_learned_once(self, generator):
        generator.process_layer2_response("1-leather", {
            "1-leather_classification": {"isCustom": True, "value": "Material, Outdoor"},
        })

        assert generator.custom_classifications["material, outdoor"]["count"] == 1
        assert generator.classification_patterns == {"Material": {"Outdoor"}}

    def test_process_classification_response(self, generator):
        assert generator.process_classification_response("Category") == {
            "type": "Category", "subtype": None, "custom": False,
        }
        assert generator.process_classification_response({"value": "Feature"})["type"] == "Feature"

        parsed = generator.process_classification_response({"isCustom": True, "value": "Heritage"})
        assert parsed["type"] == "Heritage"
        assert parsed["subtype"] is None
        assert generator.custom_classifications["heritage"]["count"] == 1


class TestLearning:
    def test_learned_options_need_two_uses(self, generator, leather_pattern):
        generator.learn_custom_classification("Heritage, Workwear")

        options = generator.generate_layer2_questions(leather_pattern)["questions"][0]["options"]
        assert not any(o.get("learned") for o in options)

        generator.learn_custom_classification("heritage, workwear")
        options = generator.generate_layer2_questions(leather_pattern)["questions"][0]["options"]
        learned = [o for o in options if o.get("learned")]

        assert [o["value"] for o in learned] == ["heritage, workwear"]
        assert learned[0]["confidence"] == 0.8
        assert options[-1]["value"] == "custom"

    def test_learned_options_limit(self, generator):
        for name in ["a", "b", "c", "d"]:
            generator.learn_custom_classification(name)
            generator.learn_custom_classification(name)

        assert generator.get_learned_custom_options() == ["a", "b", "c"]

    def test_learning_question(self, generator, leather_pattern):
        for _ in range(3):
            generator.learn_custom_classification("workwear")
        generator.learn_custom_classification("heritage")
        generator.learn_custom_classification("heritage")

        questions = generator.generate_layer2_questions(leather_pattern)["questions"]
        learning = questions[-1]

        assert learning["id"] == "1-leather_learning"
        assert learning["type"] == "confirmation"
        assert '"workwear"' in learning["question"]
        assert [s["classification"] for s in learning["metadata"]["similarity"]] == ["workwear", "heritage"]
        assert all(s["similarity"] == 0.8 for s in learning["metadata"]["similarity"])

    def test_export_import_round_trip(self, generator):
        generator.learn_custom_classification("Material, Outdoor")
        generator.learn_custom_classification("Material, Luxury")

        exported = generator.export_learning()
        assert exported["classificationPatterns"] == {"Material": ["Luxury", "Outdoor"]}

        restored = Layer2QuestionGenerator()
        restored.import_learning(exported)

        assert restored.custom_classifications == generator.custom_classifications
        assert restored.classification_patterns == {"Material": {"Luxury", "Outdoor"}}

    def test_import_ignores_empty_tables(self, generator):
        generator.learn_custom_classification("workwear")

        generator.import_learning({"customClassifications": {}, "classificationPatterns": {}})
        generator.import_learning("not a mapping")

        assert "workwear" in generator.custom_classifications
