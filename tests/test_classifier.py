import pytest

from ecofood.ingredients.classifier import classify_ingredient
from ecofood.models import (
    Allergenicity,
    GMOStatus,
    ProcessingLevel,
    RawIngredientRecord,
    RiskLevel,
    Sustainability,
)


def ingredient(text, **flags):
    return RawIngredientRecord(text=text, **flags)


def test_palm_oil_from_palm_flag():
    result = classify_ingredient(ingredient("Palm Oil", from_palm_oil=True))
    assert result.risk_level is RiskLevel.HIGH
    assert result.gmo_status is GMOStatus.LIKELY_GMO
    assert result.gmo_confidence in (50, 65, 80)
    assert result.sustainability is Sustainability.LOW
    assert "Environmental impact" in result.concerns
    assert "Potential health risks" in result.concerns


def test_palm_oil_without_flag_is_moderate():
    assert classify_ingredient(ingredient("Palm Oil")).risk_level is RiskLevel.MODERATE


def test_classification_is_deterministic():
    record = ingredient("Soy Lecithin", vegan=True, vegetarian=True)
    assert classify_ingredient(record, ["en:vegetarian"]) == classify_ingredient(record, ["en:vegetarian"])


@pytest.mark.parametrize("name,expected", [
    ("Sodium Nitrite", RiskLevel.HIGH),
    ("Monosodium Glutamate", RiskLevel.HIGH),
    ("Aspartame", RiskLevel.MODERATE),
    ("E250", RiskLevel.MODERATE),
    ("Salt", RiskLevel.CAUTION),
])
def test_risk_levels(name, expected):
    assert classify_ingredient(ingredient(name)).risk_level is expected


def test_additive_id_is_used_for_risk():
    record = RawIngredientRecord(text="Colour", id="en:e102")
    assert classify_ingredient(record).risk_level is RiskLevel.MODERATE


def test_organic_vegan_vegetarian_is_safe_and_gmo_free():
    result = classify_ingredient(ingredient("Oats", vegan=True, vegetarian=True, organic=True))
    assert result.risk_level is RiskLevel.SAFE
    assert result.gmo_status is GMOStatus.GMO_FREE
    assert result.gmo_confidence == 95
    assert result.sustainability is Sustainability.HIGH


def test_gmo_crop_detection():
    result = classify_ingredient(ingredient("Corn Syrup"))
    assert (result.gmo_status, result.gmo_confidence) == (GMOStatus.LIKELY_GMO, 80)


def test_gmo_derived_ingredient():
    result = classify_ingredient(ingredient("Maltodextrin"))
    assert (result.gmo_status, result.gmo_confidence) == (GMOStatus.LIKELY_GMO, 65)


def test_gmo_uncertain_default():
    result = classify_ingredient(ingredient("Salt"))
    assert (result.gmo_status, result.gmo_confidence) == (GMOStatus.LIKELY_GMO, 50)


def test_product_labels_drive_gmo_status():
    free = classify_ingredient(ingredient("Corn Syrup"), ["en:no-gmos"])
    assert (free.gmo_status, free.gmo_confidence) == (GMOStatus.GMO_FREE, 90)

    contains = classify_ingredient(ingredient("Corn Syrup"), ["en:contains-gmos"])
    assert contains.gmo_status is GMOStatus.CONTAINS_GMO
    assert "Contains genetically modified ingredients" in contains.concerns


@pytest.mark.parametrize("name,expected", [
    ("Skim Milk Powder", Allergenicity.HIGH),
    ("Eggs", Allergenicity.HIGH),
    ("Eggplant", Allergenicity.NONE),
    ("Mustard Seeds", Allergenicity.MEDIUM),
    ("Natural Flavouring", Allergenicity.LOW),
    ("Water", Allergenicity.NONE),
])
def test_allergenicity(name, expected):
    assert classify_ingredient(ingredient(name)).allergenicity is expected


def test_major_allergen_is_listed_as_concern():
    result = classify_ingredient(ingredient("Hazelnuts"))
    assert "Common allergen (tree nut)" in result.concerns


@pytest.mark.parametrize("name,expected", [
    ("Modified Starch", ProcessingLevel.HIGH),
    ("E415", ProcessingLevel.HIGH),
    ("Fresh Tomatoes", ProcessingLevel.MINIMAL),
    ("Sugar", ProcessingLevel.MODERATE),
])
def test_processing_level(name, expected):
    assert classify_ingredient(ingredient(name)).processing_level is expected


def test_red_meat_is_low_sustainability():
    assert classify_ingredient(ingredient("Beef")).sustainability is Sustainability.LOW


def test_certified_palm_oil_is_not_low_sustainability():
    result = classify_ingredient(ingredient("Palm Oil", from_palm_oil=True), ["en:sustainable-palm-oil"])
    assert result.sustainability is not Sustainability.LOW


def test_name_falls_back_to_taxonomy_id():
    result = classify_ingredient(RawIngredientRecord(id="en:sunflower-oil"))
    assert result.name == "sunflower oil"
