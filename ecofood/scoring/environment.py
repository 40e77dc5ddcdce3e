"""Environmental scoring and impact profile estimation."""

from typing import Iterable, List, Optional, Tuple

from ecofood.models import Category, EnvironmentalProfile, RawProductRecord, clamp

BASELINE = 50

PACKAGING_POINTS = [
    (("plastic",), -15),
    (("single-use", "single use", "disposable"), -10),
    (("recycled",), 15),
    (("recyclable",), 10),
    (("glass",), 5),
    (("paper", "cardboard"), 8),
    (("biodegradable",), 20),
    (("compostable",), 20),
]

# checked in order, only the first palm-oil tag counts
PALM_OIL_POINTS = [
    ("non-sustainable-palm-oil", -25),
    ("sustainable-palm-oil", -5),
    ("palm-oil", -20),
]

FLAG_POINTS = [
    (("organic", "bio"), 15),
    (("fair-trade", "fairtrade"), 10),
    (("local",), 10),
    (("seasonal",), 5),
]

ECO_GRADE_POINTS = {"a": 30, "b": 20, "c": 10, "d": -10, "e": -20}

ORIGIN_POINTS = [
    (("air-freight", "air freight", "airfreight"), -25),
    (("local", "regional"), 15),
    (("imported", "foreign"), -10),
]

# kg CO2-eq per 100g
CARBON_BY_CATEGORY = {
    Category.MEAT: 5.0,
    Category.SEAFOOD: 1.4,
    Category.DAIRY: 1.2,
    Category.PROCESSED_FOODS: 0.9,
    Category.SNACKS: 0.8,
    Category.GRAINS: 0.4,
    Category.PLANT_BASED: 0.3,
    Category.VEGETABLES: 0.2,
    Category.BEVERAGES: 0.2,
    Category.FRUITS: 0.15,
    Category.DEFAULT: 0.8,
}

# litres per 100g
WATER_BY_CATEGORY = {
    Category.MEAT: 1540,
    Category.SEAFOOD: 60,
    Category.DAIRY: 100,
    Category.PROCESSED_FOODS: 150,
    Category.SNACKS: 120,
    Category.GRAINS: 160,
    Category.PLANT_BASED: 80,
    Category.VEGETABLES: 32,
    Category.BEVERAGES: 30,
    Category.FRUITS: 60,
    Category.DEFAULT: 100,
}

# 1 (worst) .. 5 (best)
PACKAGING_BY_CATEGORY = {
    Category.MEAT: 2, Category.SEAFOOD: 2, Category.DAIRY: 3, Category.PROCESSED_FOODS: 2,
    Category.SNACKS: 2, Category.GRAINS: 3, Category.PLANT_BASED: 3, Category.VEGETABLES: 4,
    Category.BEVERAGES: 2, Category.FRUITS: 4, Category.DEFAULT: 3,
}

TRANSPORT_BY_CATEGORY = {
    Category.MEAT: 3, Category.SEAFOOD: 2, Category.DAIRY: 4, Category.PROCESSED_FOODS: 3,
    Category.SNACKS: 3, Category.GRAINS: 3, Category.PLANT_BASED: 3, Category.VEGETABLES: 4,
    Category.BEVERAGES: 3, Category.FRUITS: 2, Category.DEFAULT: 3,
}

# 0 (no impact) .. 5 (severe)
LAND_USE_BY_CATEGORY = {
    Category.MEAT: 4.5, Category.SEAFOOD: 1.5, Category.DAIRY: 3.5, Category.PROCESSED_FOODS: 2.5,
    Category.SNACKS: 2.0, Category.GRAINS: 2.0, Category.PLANT_BASED: 1.5, Category.VEGETABLES: 1.0,
    Category.BEVERAGES: 1.0, Category.FRUITS: 1.5, Category.DEFAULT: 2.0,
}

BIODIVERSITY_BY_CATEGORY = {
    Category.MEAT: 4.0, Category.SEAFOOD: 3.5, Category.DAIRY: 3.0, Category.PROCESSED_FOODS: 2.5,
    Category.SNACKS: 2.5, Category.GRAINS: 2.5, Category.PLANT_BASED: 1.5, Category.VEGETABLES: 1.5,
    Category.BEVERAGES: 1.5, Category.FRUITS: 2.0, Category.DEFAULT: 2.0,
}

LAND_USE_ADJUSTMENTS = [
    (("organic", "bio"), 0.5),
    (("intensive-farming", "intensive farming"), -0.5),
    (("free-range", "free range"), 1.0),
]

BIODIVERSITY_ADJUSTMENTS = [
    (("pesticide",), 0.5),
    (("monoculture",), 0.5),
]

DEFORESTATION_FACTORS = [
    (("palm",), 4.5),
    (("beef",), 4.0),
    (("soy", "soya"), 3.5),
    (("cocoa", "cacao"), 3.0),
    (("coffee",), 2.5),
    (("rubber",), 2.0),
    (("sugar",), 1.5),
    (("maize", "corn"), 1.0),
    (("coconut",), 1.0),
]

DEFORESTATION_MITIGATIONS = [
    (("rainforest-alliance", "rainforest alliance"), 2.0),
    (("sustainable-palm-oil", "rspo"), 1.5),
    (("organic", "bio"), 1.0),
]


def _strip_prefix(tag: str) -> str:
    tag = tag.lower().strip()
    return tag.split(":", 1)[1] if ":" in tag else tag


def _normalize_tags(tags: Iterable[str]) -> List[str]:
    return [_strip_prefix(t) for t in tags or [] if t]


def _tag_matches(tags: List[str], words: Tuple[str, ...]) -> bool:
    # hyphenated tags like "en:eu-organic" should still match "organic"
    for tag in tags:
        if tag.startswith("non-"):
            continue
        parts = tag.split("-")
        for word in words:
            if tag == word or word in parts or ("-" in word and word in tag):
                return True
    return False


def _eco_grade(record: RawProductRecord) -> Optional[str]:
    if record.ecoscore_grade and record.ecoscore_grade.lower() in ECO_GRADE_POINTS:
        return record.ecoscore_grade.lower()
    for tag in _normalize_tags(record.labels_tags):
        for prefix in ("eco-score-", "ecoscore-"):
            if tag.startswith(prefix) and tag[len(prefix):] in ECO_GRADE_POINTS:
                return tag[len(prefix):]
    return None


def packaging_points(packaging: str) -> int:
    text = (packaging or "").lower()
    return sum(points for words, points in PACKAGING_POINTS if any(w in text for w in words))


def label_points(record: RawProductRecord) -> int:
    tags = _normalize_tags(list(record.labels_tags) + list(record.ingredients_analysis_tags))
    points = 0
    for tag_name, delta in PALM_OIL_POINTS:
        if tag_name in tags:
            points += delta
            break
    for words, delta in FLAG_POINTS:
        if _tag_matches(tags, words):
            points += delta
    grade = _eco_grade(record)
    if grade:
        points += ECO_GRADE_POINTS[grade]
    return points


def origin_points(record: RawProductRecord) -> int:
    text = " ".join(_normalize_tags(record.origins_tags) + [record.manufacturing_places.lower()])
    return sum(points for words, points in ORIGIN_POINTS if any(w in text for w in words))


def heuristic_environmental_score(record: RawProductRecord) -> int:
    score = BASELINE + packaging_points(record.packaging) + label_points(record) + origin_points(record)
    return int(clamp(score, 0, 100))


def provider_environmental_score(record: RawProductRecord) -> Optional[int]:
    data = record.environmental_data
    if data is None or data.carbon_footprint_score is None:
        return None
    return int(round(clamp(100 - 10 * data.carbon_footprint_score, 0, 100)))


def deforestation_risk(ingredient_names: Iterable[str], labels: Iterable[str]) -> float:
    risk = 0.0
    for name in ingredient_names:
        text = name.lower()
        for words, factor in DEFORESTATION_FACTORS:
            if any(w in text for w in words):
                risk = max(risk, factor)
    if risk == 0:
        return 0.0
    tags = _normalize_tags(labels)
    for words, mitigation in DEFORESTATION_MITIGATIONS:
        if _tag_matches(tags, words):
            risk -= mitigation
    return clamp(risk, 0, 5)


def _adjusted(base: float, tags: List[str], adjustments) -> float:
    value = base
    for words, delta in adjustments:
        if _tag_matches(tags, words):
            value += delta
    return round(clamp(value, 0, 5), 2)


def _confidence(record: RawProductRecord, category: Category) -> int:
    data = record.environmental_data
    if data is not None and data.data_reliability is not None:
        return int(round(clamp(data.data_reliability, 0, 100)))
    confidence = 40
    if category is not Category.DEFAULT:
        confidence += 15
    if record.packaging:
        confidence += 10
    if record.labels_tags:
        confidence += 10
    if record.origins_tags:
        confidence += 10
    return int(clamp(confidence, 0, 100))


def build_environmental_profile(record: RawProductRecord, category: Category,
                                ingredient_names: Iterable[str]) -> EnvironmentalProfile:
    data = record.environmental_data
    tags = _normalize_tags(list(record.labels_tags) + list(record.ingredients_analysis_tags))

    carbon = data.carbon_footprint if data and data.carbon_footprint is not None else None
    water = data.water_usage if data and data.water_usage is not None else None
    packaging = data.packaging_score if data and data.packaging_score is not None else None
    transport = data.transport_score if data and data.transport_score is not None else None
    from_provider = any(v is not None for v in (carbon, water, packaging, transport))

    if carbon is None:
        carbon = CARBON_BY_CATEGORY[category]
    if water is None:
        water = WATER_BY_CATEGORY[category]
    if packaging is None:
        packaging = PACKAGING_BY_CATEGORY[category]
    if transport is None:
        transport = TRANSPORT_BY_CATEGORY[category]

    if from_provider:
        methodology = f"Provider data ({(data.source or 'upstream')}) with {category.value} category defaults"
    else:
        methodology = f"Category defaults ({category.value}) adjusted by packaging, label and origin heuristics"

    return EnvironmentalProfile(
        carbon_footprint=max(0.0, float(carbon)),
        water_footprint=max(0.0, float(water)),
        packaging_score=int(clamp(int(packaging), 1, 5)),
        transport_score=int(clamp(int(transport), 1, 5)),
        land_use_score=_adjusted(LAND_USE_BY_CATEGORY[category], tags, LAND_USE_ADJUSTMENTS),
        biodiversity_impact=_adjusted(BIODIVERSITY_BY_CATEGORY[category], tags, BIODIVERSITY_ADJUSTMENTS),
        deforestation_risk=deforestation_risk(ingredient_names, record.labels_tags),
        confidence_score=_confidence(record, category),
        methodology=methodology,
    )


def score_environment(record: RawProductRecord, category: Category,
                      ingredient_names: Iterable[str]) -> Tuple[int, EnvironmentalProfile]:
    """Return (environmental pillar score, impact profile) for one product."""
    names = list(ingredient_names)
    score = provider_environmental_score(record)
    if score is None:
        score = heuristic_environmental_score(record)
    return score, build_environmental_profile(record, category, names)
