import pytest

from ecofood.ingredients.fuzzy_matcher import get_best_match
from ecofood.ingredients.ingredient_parser import (
    filter_ingredients,
    get_additive_type_info,
    is_boilerplate,
    normalize_e_number,
    split_ingredients_text,
)
from ecofood.models import RawIngredientRecord


@pytest.mark.parametrize("raw", ["E-330", "e 330", "INS 330", "en:e330", "E330"])
def test_normalize_e_number(raw):
    assert normalize_e_number(raw) == "e330"


def test_normalize_e_number_rejects_words():
    assert normalize_e_number("sugar") is None


def test_split_respects_parentheses():
    text = "Sugar, Cocoa Butter (emulsifier: lecithin, salt); Milk"
    assert split_ingredients_text(text) == ["Sugar", "Cocoa Butter (emulsifier: lecithin, salt)", "Milk"]


def test_split_keeps_ingredients_after_lead_in():
    text = "Ingredients: water, contains less than 2% of the following: salt, sugar."
    assert split_ingredients_text(text) == ["water", "salt", "sugar"]


@pytest.mark.parametrize("text", [
    "contains less than 2% of the following: salt, sugar",
    "May contain traces of nuts",
    "Manufactured in a facility that also processes peanuts",
    "Ingredients:",
    "",
])
def test_boilerplate(text):
    assert is_boilerplate(text)


def test_filter_drops_boilerplate_and_keeps_order():
    entries = [
        RawIngredientRecord(text="Water"),
        RawIngredientRecord(text="contains less than 2% of the following: salt, sugar"),
        RawIngredientRecord(text="Citric Acid"),
        RawIngredientRecord(text="  "),
    ]
    assert [i.name for i in filter_ingredients(entries)] == ["Water", "Citric Acid"]


def test_additive_type_by_range():
    assert get_additive_type_info("e330")["category"] == "Antioxidants & Acidity Regulators"
    assert get_additive_type_info("e102")["category"] == "Colours"
    assert get_additive_type_info("sugar") is None


@pytest.mark.parametrize("name,expected", [
    ("Sugar", "sugar"),
    ("MSG", "monosodium glutamate"),
    ("e330", "citric acid"),
    ("palm oil (sustainable)", "palm oil"),
    ("citric acd", "citric acid"),
    ("xylophone", None),
])
def test_best_match(name, expected):
    assert get_best_match(name) == expected
