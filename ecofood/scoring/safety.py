from typing import Iterable, Optional

from ecofood.models import clamp

BASELINE = 80

# colourants, preservatives and flavour enhancers with the strongest evidence of concern
HIGH_CONCERN_ADDITIVES = {
    "e102", "e104", "e110", "e122", "e124", "e129",   # azo and coal-tar dyes
    "e127", "e133", "e171",                           # erythrosine, brilliant blue, titanium dioxide
    "e211", "e220", "e249", "e250", "e251", "e252",   # benzoate, sulphite, nitrites/nitrates
    "e319", "e320", "e321",                           # TBHQ, BHA, BHT
    "e621", "e627", "e631", "e951",                   # glutamates, nucleotides, aspartame
}

ORGANIC_LABELS = ("organic", "bio", "eu-organic", "usda-organic")
QUALITY_LABELS = (
    "fair-trade", "fairtrade", "rainforest-alliance", "msc", "asc", "utz", "pdo", "pgi",
    "label-rouge", "non-gmo-project", "certified", "quality",
)


def additive_code(tag: str) -> str:
    return tag.lower().split(":", 1)[-1].strip().replace("-", "").replace(" ", "")


def _has_label(labels, names) -> bool:
    for label in labels:
        tag = label.lower().split(":", 1)[-1]
        parts = tag.split("-")
        if any(tag == n or n in parts or ("-" in n and n in tag) for n in names):
            return True
    return False


def score_safety(allergen_count: int, additives: Iterable[str],
                 processing_level: Optional[int] = None, labels: Iterable[str] = ()) -> int:
    """
    Safety pillar, 0-100.

    processing_level is the NOVA group (1 unprocessed .. 4 ultra-processed).
    """
    additives = list(additives or [])
    labels = list(labels or [])

    score = BASELINE
    score -= 5 * max(0, allergen_count)
    score -= min(30, 2 * len(additives))
    if any(additive_code(a) in HIGH_CONCERN_ADDITIVES for a in additives):
        score -= 10
    if processing_level is not None and 1 <= processing_level <= 4:
        score -= 5 * (processing_level - 1)
    if _has_label(labels, ORGANIC_LABELS):
        score += 5
    if _has_label(labels, QUALITY_LABELS):
        score += 3
    return int(clamp(score, 0, 100))
