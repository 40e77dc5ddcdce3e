from typing import Optional

from ecofood.models import NutritionalProfile, RawProductRecord

GRADE_SCORES = {"a": 100, "b": 80, "c": 60, "d": 40, "e": 20}
UNKNOWN_GRADE_SCORE = 30


def normalize_grade(grade: Optional[str]) -> Optional[str]:
    if not grade:
        return None
    key = grade.strip().lower()
    return key if key in GRADE_SCORES else None


def score_nutrition(grade: Optional[str]) -> int:
    key = normalize_grade(grade)
    if key is None:
        return UNKNOWN_GRADE_SCORE
    return GRADE_SCORES[key]


def build_nutritional_profile(record: RawProductRecord) -> NutritionalProfile:
    facts = record.nutriments
    grade = normalize_grade(record.nutriscore_grade)

    def value(v):
        return max(0.0, float(v)) if v is not None else 0.0

    return NutritionalProfile(
        grade=grade.upper() if grade else None,
        calories=value(facts.energy_kcal),
        sugar=value(facts.sugars),
        salt=value(facts.salt),
        saturated_fat=value(facts.saturated_fat),
        fiber=value(facts.fiber),
    )
