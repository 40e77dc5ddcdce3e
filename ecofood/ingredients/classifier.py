"""
Per-ingredient classification: risk level, GMO likelihood, sustainability,
allergenicity and processing level. Every function here is a pure function
of the ingredient record and the static tables below.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ecofood.allergens import major_allergen_class, may_hide_allergen, secondary_allergen_class
from ecofood.ingredients.ingredient_parser import find_e_number
from ecofood.models import (
    Allergenicity,
    GMOStatus,
    ProcessingLevel,
    RawIngredientRecord,
    RiskLevel,
    Sustainability,
)

HIGH_RISK_SUBSTANCES = [
    "sodium nitrite", "sodium nitrate", "potassium nitrite", "potassium nitrate",
    "bha", "butylated hydroxyanisole", "bht", "butylated hydroxytoluene", "tbhq",
    "msg", "monosodium glutamate",
    "red 40", "allura red", "red 3", "erythrosine", "yellow 5", "tartrazine",
    "yellow 6", "sunset yellow", "ponceau", "carmoisine",
    "potassium bromate", "brominated vegetable oil", "propyl gallate",
]

MODERATE_RISK_SUBSTANCES = [
    "palm oil", "palm fat", "palm kernel",
    "high fructose corn syrup", "high-fructose corn syrup", "glucose-fructose syrup",
    "aspartame", "sucralose", "acesulfame", "saccharin", "cyclamate", "neotame",
    "partially hydrogenated", "hydrogenated vegetable oil",
    "carrageenan", "soy lecithin", "soya lecithin",
]

CONCERNING_ADDITIVE_CODES = {
    "e102", "e104", "e110", "e122", "e124", "e129", "e150c", "e150d", "e171",
    "e200", "e202", "e211", "e212", "e220", "e223", "e249", "e250", "e251", "e252",
    "e319", "e320", "e321", "e407", "e433", "e450", "e451", "e452", "e466", "e471",
    "e621", "e627", "e631", "e635", "e950", "e951", "e952", "e954", "e955", "e961",
}

HIGH_GMO_CROPS = ["corn", "maize", "soy", "soya", "canola", "rapeseed", "cottonseed",
                  "sugar beet", "beet sugar", "papaya", "potato"]

GMO_DERIVED_INGREDIENTS = [
    "modified starch", "modified food starch", "high fructose corn syrup", "glucose syrup",
    "maltodextrin", "dextrose", "lecithin", "vegetable oil", "citric acid", "xanthan gum",
    "ascorbic acid", "natural flavor", "natural flavour", "caramel color", "caramel colour",
    "mono- and diglycerides", "sucrose",
]

RED_MEAT = ["beef", "pork", "lamb", "veal", "mutton", "bacon", "ham"]
HIGH_SUSTAINABILITY_TERMS = ["organic", "local", "fair trade", "fairtrade", "fair-trade"]
PALM_CERTIFICATIONS = ["sustainable", "rspo", "certified"]

HIGH_PROCESSING_TERMS = ["hydrolyzed", "hydrolysed", "modified", "isolate", "artificial",
                         "hydrogenated", "interesterified", "synthetic"]
MINIMAL_PROCESSING_TERMS = ["organic", "raw", "fresh", "whole"]

NO_GMO_LABELS = ["no-gmos", "no-gmo", "non-gmo", "non-gmo-project", "gmo-free", "ohne-gentechnik",
                 "without-gmo"]
CONTAINS_GMO_LABELS = ["contains-gmos", "contains-gmo", "genetically-modified", "gmo"]

_TERM_CACHE = {}


def _has_term(text: str, term: str) -> bool:
    pattern = _TERM_CACHE.get(term)
    if pattern is None:
        pattern = re.compile(r"(?<![a-z])" + re.escape(term) + r"(?![a-z])")
        _TERM_CACHE[term] = pattern
    return pattern.search(text) is not None


def _any_term(text: str, terms: Iterable[str]) -> Optional[str]:
    for term in terms:
        if _has_term(text, term):
            return term
    return None


def _label_set(labels: Iterable[str]) -> List[str]:
    return [label.lower().split(":", 1)[-1].strip() for label in labels or [] if label]


def has_no_gmo_label(labels: Iterable[str]) -> bool:
    return any(label in NO_GMO_LABELS for label in _label_set(labels))


def has_contains_gmo_label(labels: Iterable[str]) -> bool:
    return any(label in CONTAINS_GMO_LABELS for label in _label_set(labels))


def has_organic_label(labels: Iterable[str]) -> bool:
    return any(label == "organic" or "organic" in label.split("-") for label in _label_set(labels))


@dataclass(frozen=True)
class IngredientClassification:
    name: str
    risk_level: RiskLevel
    gmo_status: GMOStatus
    gmo_confidence: int
    sustainability: Sustainability
    allergenicity: Allergenicity
    processing_level: ProcessingLevel
    concerns: Tuple[str, ...] = ()


def classify_risk(ingredient: RawIngredientRecord) -> RiskLevel:
    name = ingredient.name.lower()
    if _any_term(name, HIGH_RISK_SUBSTANCES):
        return RiskLevel.HIGH
    # palm-derived entries outrank the name-based moderate list
    if ingredient.from_palm_oil:
        return RiskLevel.HIGH
    if _any_term(name, MODERATE_RISK_SUBSTANCES):
        return RiskLevel.MODERATE
    code = find_e_number(ingredient.id or "") or find_e_number(name)
    if code and code in CONCERNING_ADDITIVE_CODES:
        return RiskLevel.MODERATE
    if ingredient.vegan and ingredient.vegetarian and _is_organic(ingredient):
        return RiskLevel.SAFE
    return RiskLevel.CAUTION


def _is_organic(ingredient: RawIngredientRecord) -> bool:
    return bool(ingredient.organic) or _has_term(ingredient.name.lower(), "organic")


def classify_gmo(ingredient: RawIngredientRecord, labels: Iterable[str] = ()) -> Tuple[GMOStatus, int]:
    """
    GMO likelihood with a confidence in [0, 100].

    Uncertainty defaults to likely-gmo @ 50; nothing is assumed GMO-free without evidence.
    """
    name = ingredient.name.lower()
    hint = (ingredient.gmo_risk or "").strip().lower()
    labels = list(labels or [])

    if _is_organic(ingredient) or has_organic_label(labels):
        return GMOStatus.GMO_FREE, 95
    if (_any_term(name, ["non-gmo", "non gmo", "gmo-free", "gmo free"])
            or has_no_gmo_label(labels) or hint in ("no", "none", "no gmo")):
        return GMOStatus.GMO_FREE, 90
    if (_any_term(name, ["genetically modified", "contains gmo"])
            or has_contains_gmo_label(labels) or hint == "high"):
        return GMOStatus.CONTAINS_GMO, 90
    if ingredient.vegan and ingredient.vegetarian:
        return GMOStatus.GMO_FREE, 75
    if _any_term(name, HIGH_GMO_CROPS):
        return GMOStatus.LIKELY_GMO, 80
    if _any_term(name, GMO_DERIVED_INGREDIENTS):
        return GMOStatus.LIKELY_GMO, 65
    return GMOStatus.LIKELY_GMO, 50


def classify_sustainability(ingredient: RawIngredientRecord, labels: Iterable[str] = ()) -> Sustainability:
    name = ingredient.name.lower()
    label_text = " ".join(_label_set(labels))
    palm = bool(ingredient.from_palm_oil) or _has_term(name, "palm")
    certified = _any_term(name, PALM_CERTIFICATIONS) or "sustainable-palm-oil" in label_text \
        or "rspo" in label_text
    if (palm and not certified) or _any_term(name, RED_MEAT):
        return Sustainability.LOW
    if _is_organic(ingredient) or _any_term(name, HIGH_SUSTAINABILITY_TERMS):
        return Sustainability.HIGH
    return Sustainability.MEDIUM


def classify_allergenicity(ingredient: RawIngredientRecord) -> Allergenicity:
    name = ingredient.name
    if major_allergen_class(name):
        return Allergenicity.HIGH
    if secondary_allergen_class(name):
        return Allergenicity.MEDIUM
    if may_hide_allergen(name):
        return Allergenicity.LOW
    return Allergenicity.NONE


def classify_processing(ingredient: RawIngredientRecord) -> ProcessingLevel:
    name = ingredient.name.lower()
    if _any_term(name, HIGH_PROCESSING_TERMS) or find_e_number(ingredient.id or "") or find_e_number(name):
        return ProcessingLevel.HIGH
    if _is_organic(ingredient) or _any_term(name, MINIMAL_PROCESSING_TERMS):
        return ProcessingLevel.MINIMAL
    return ProcessingLevel.MODERATE


def collect_concerns(ingredient: RawIngredientRecord, risk: RiskLevel, gmo: GMOStatus) -> Tuple[str, ...]:
    concerns = list(ingredient.health_concerns or [])
    name = ingredient.name.lower()
    if ingredient.from_palm_oil:
        concerns += ["Environmental impact", "Potential health risks"]
    if _any_term(name, HIGH_RISK_SUBSTANCES):
        concerns.append("Associated with adverse health effects in some studies")
    elif risk is RiskLevel.MODERATE:
        concerns.append("Best consumed in moderation")
    if gmo is GMOStatus.CONTAINS_GMO:
        concerns.append("Contains genetically modified ingredients")
    allergen = major_allergen_class(ingredient.name)
    if allergen:
        concerns.append(f"Common allergen ({allergen})")

    seen, ordered = set(), []
    for concern in concerns:
        if concern not in seen:
            seen.add(concern)
            ordered.append(concern)
    return tuple(ordered)


def classify_ingredient(ingredient: RawIngredientRecord, labels: Iterable[str] = ()) -> IngredientClassification:
    labels = tuple(labels or ())
    risk = classify_risk(ingredient)
    gmo_status, gmo_confidence = classify_gmo(ingredient, labels)
    return IngredientClassification(
        name=ingredient.name,
        risk_level=risk,
        gmo_status=gmo_status,
        gmo_confidence=max(0, min(100, gmo_confidence)),
        sustainability=classify_sustainability(ingredient, labels),
        allergenicity=classify_allergenicity(ingredient),
        processing_level=classify_processing(ingredient),
        concerns=collect_concerns(ingredient, risk, gmo_status),
    )
