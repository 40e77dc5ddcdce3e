"""
Analysis Builder: turns one normalized product record into an AnalysisResult.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional

from ecofood.ingredients.classifier import has_no_gmo_label, classify_ingredient
from ecofood.ingredients.enricher import IngredientEnricher
from ecofood.ingredients.ingredient_parser import filter_ingredients, find_e_number
from ecofood.models import (
    AnalysisResult,
    GMOStatus,
    IngredientAnalysis,
    RawIngredientRecord,
    RawProductRecord,
    RiskLevel,
    clamp,
)
from ecofood.scoring.category import estimate_category
from ecofood.scoring.environment import score_environment
from ecofood.scoring.nutrition import build_nutritional_profile, score_nutrition
from ecofood.scoring.safety import score_safety

logger = logging.getLogger(__name__)

SUGAR_LIMIT = 10.0
SALT_LIMIT = 1.5
ADDITIVE_LIMIT = 5
DEGRADED_PENALTY = 5

EU_COUNTRY_CODES = ["fr", "de", "it", "es", "nl", "be", "pt", "pl", "se", "dk", "fi", "ie", "at", "gr", "cz",
                    "france", "germany", "italy", "spain", "netherlands", "belgium", "portugal", "poland",
                    "sweden", "denmark", "finland", "ireland", "austria", "greece", "czech"]
US_COUNTRY_CODES = ["us", "usa", "united-states"]


class SourceTier(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    TERTIARY = "tertiary"


# placeholder pillars (environmental, nutritional, safety) for reduced results
FALLBACK_PILLARS = {
    SourceTier.SECONDARY: (50, 50, 60),
    SourceTier.TERTIARY: (50, 50, 70),
}
TRUST_PENALTY = {SourceTier.PRIMARY: 0, SourceTier.SECONDARY: 10, SourceTier.TERTIARY: 20}
TRUST_CAP = {SourceTier.PRIMARY: 100, SourceTier.SECONDARY: 60, SourceTier.TERTIARY: 50}


def overall_score(environmental: int, nutritional: int, safety: int) -> int:
    return int(round((environmental + nutritional + safety) / 3))


def has_palm_oil(record: RawProductRecord) -> bool:
    tags = [t.lower().split(":", 1)[-1] for t in record.ingredients_analysis_tags]
    if "palm-oil" in tags or "non-sustainable-palm-oil" in tags or "sustainable-palm-oil" in tags:
        return True
    return any(ing.from_palm_oil for ing in record.ingredients)


def product_concerns(record: RawProductRecord) -> List[str]:
    facts = record.nutriments
    concerns = []
    if facts.sugars is not None and facts.sugars > SUGAR_LIMIT:
        concerns.append("High sugar content")
    if facts.salt is not None and facts.salt > SALT_LIMIT:
        concerns.append("High salt content")
    if len(record.additives_tags) > ADDITIVE_LIMIT:
        concerns.append("High number of additives")
    if has_palm_oil(record):
        concerns.append("Contains palm oil")
    return concerns


def is_gmo_free(ingredients: Iterable[IngredientAnalysis], labels: Iterable[str]) -> bool:
    """True iff every ingredient is gmo-free or the product has a no-GMO tag; never with a contains-gmo ingredient."""
    statuses = [ing.gmo_status for ing in ingredients]
    if GMOStatus.CONTAINS_GMO in statuses:
        return False
    if has_no_gmo_label(labels):
        return True
    return bool(statuses) and all(s is GMOStatus.GMO_FREE for s in statuses)


def available_in(countries_tags: Iterable[str]) -> List[str]:
    countries = [c.lower().split(":", 1)[-1] for c in countries_tags]
    markets = []
    if any(c in EU_COUNTRY_CODES for c in countries):
        markets.append("EU")
    if any(c in US_COUNTRY_CODES for c in countries):
        markets.append("US")
    if not markets:
        markets.append("Global")
    return markets


def base_trust_score(record: RawProductRecord, environmental: int, nutritional: int, safety: int) -> int:
    if record.data_quality_score is not None:
        return int(round(clamp(record.data_quality_score, 0, 100)))
    # completeness proxy
    return int(round((environmental + nutritional + safety) / 5))


def count_allergens(record: RawProductRecord) -> int:
    return len({tag.lower() for tag in record.allergens_tags})


def count_additives(record: RawProductRecord) -> List[str]:
    if record.additives_tags:
        return list(record.additives_tags)
    # no additive tags: fall back to E-numbers spotted in the ingredient list
    codes = []
    for ing in record.ingredients:
        code = find_e_number(ing.id or "") or find_e_number(ing.name)
        if code and code not in codes:
            codes.append(code)
    return codes


class AnalysisBuilder:
    def __init__(self, enricher: Optional[IngredientEnricher] = None, today=None):
        self.enricher = enricher or IngredientEnricher()
        self._today = today or (lambda: datetime.now(timezone.utc).date())

    def pillar_scores(self, record: RawProductRecord):
        ingredient_text = record.ingredients_text or ", ".join(ing.name for ing in record.ingredients)
        category = estimate_category(record.categories_tags, ingredient_text)
        names = [ing.name for ing in record.ingredients] or [ingredient_text]
        environmental, profile = score_environment(record, category, names)
        nutritional = score_nutrition(record.nutriscore_grade)
        safety = score_safety(
            allergen_count=count_allergens(record),
            additives=count_additives(record),
            processing_level=record.nova_group,
            labels=record.labels_tags,
        )
        return category, environmental, nutritional, safety, profile

    def build(self, record: RawProductRecord, tier: SourceTier = SourceTier.PRIMARY) -> AnalysisResult:
        """Full-fidelity analysis of a record."""
        category, environmental, nutritional, safety, profile = self.pillar_scores(record)
        report = self.enricher.enrich(record.ingredients, record.labels_tags)

        trust = base_trust_score(record, environmental, nutritional, safety)
        if report.degraded:
            trust -= DEGRADED_PENALTY
        logger.info(f"Built analysis for {record.code} ({category.value}) from {record.source}")
        return self._assemble(record, tier, environmental, nutritional, safety, profile,
                              report.ingredients, trust, report.sources)

    def build_reduced(self, record: RawProductRecord, tier: SourceTier) -> AnalysisResult:
        """
        Partial-fidelity analysis for fallback tiers: fixed placeholder pillars
        and a single placeholder ingredient.
        """
        _, environmental, nutritional, safety, profile = self.pillar_scores(record)
        trust = base_trust_score(record, environmental, nutritional, safety)
        placeholder_env, placeholder_nutr, placeholder_safety = FALLBACK_PILLARS[tier]

        placeholder = self._placeholder_ingredient(record)
        return self._assemble(record, tier, placeholder_env, placeholder_nutr, placeholder_safety,
                              profile, [placeholder], trust, [])

    def _placeholder_ingredient(self, record: RawProductRecord) -> IngredientAnalysis:
        names = [ing.name for ing in filter_ingredients(list(record.ingredients))]
        text = ", ".join(names) or record.ingredients_text
        name = text if text else "Ingredient data unavailable"
        classification = classify_ingredient(RawIngredientRecord(text=name), record.labels_tags)
        return IngredientAnalysis(
            name=name,
            risk_level=RiskLevel.CAUTION,
            description=(f"Detailed ingredient data is not available from {record.source}; "
                         f"the ingredient statement could not be analysed individually."),
            concerns=None,
            scientific_references=None,
            gmo_status=GMOStatus.LIKELY_GMO,
            gmo_confidence=50,
            sustainability=classification.sustainability,
            allergenicity=classification.allergenicity,
            processing_level=classification.processing_level,
        )

    def _assemble(self, record, tier, environmental, nutritional, safety, profile,
                  ingredients, trust, extra_sources) -> AnalysisResult:
        trust = min(trust - TRUST_PENALTY[tier], TRUST_CAP[tier])
        sources = [record.source] + [s for s in extra_sources if s != record.source]
        return AnalysisResult(
            barcode=record.code,
            product_name=record.product_name or "Unknown Product",
            brand=record.brands,
            image_url=record.image_url,
            overall_score=overall_score(environmental, nutritional, safety),
            environmental_score=environmental,
            nutritional_score=nutritional,
            safety_score=safety,
            gmo_free=is_gmo_free(ingredients, record.labels_tags),
            concerns=product_concerns(record),
            ingredients=ingredients,
            environmental_data=profile,
            nutritional_data=build_nutritional_profile(record),
            data_source=", ".join(sources),
            last_updated=record.last_updated or self._today(),
            trust_score=int(clamp(trust, 0, 100)),
            available_in=available_in(record.countries_tags),
        )
