# allergen synonym tables and matching logic

import re
from typing import Optional

# the nine major allergen classes
MAJOR_ALLERGENS = {
    "milk": ["milk", "whey", "casein", "caseinate", "lactose", "butter", "cream", "cheese", "yogurt", "ghee"],
    "egg": ["egg", "albumin", "albumen", "ovalbumin", "lysozyme"],
    "fish": ["fish", "anchovy", "bass", "cod", "haddock", "hake", "herring", "pollock", "salmon",
             "sardine", "tilapia", "trout", "tuna"],
    "shellfish": ["shellfish", "shrimp", "prawn", "crab", "lobster", "crayfish", "scallop", "clam",
                  "oyster", "mussel", "crustacean"],
    "tree nut": ["almond", "cashew", "walnut", "hazelnut", "pecan", "pistachio", "macadamia",
                 "brazil nut", "pine nut", "tree nut"],
    "peanut": ["peanut", "groundnut", "arachis"],
    "wheat": ["wheat", "spelt", "semolina", "durum", "farina", "gluten"],
    "soy": ["soy", "soya", "soybean", "tofu", "edamame"],
    "sesame": ["sesame", "tahini"],
}

# regulated in some markets, weaker evidence of severe reactions
SECONDARY_ALLERGENS = {
    "mustard": ["mustard"],
    "celery": ["celery", "celeriac"],
    "lupin": ["lupin", "lupine"],
    "sulfite": ["sulfite", "sulphite", "sulfur dioxide", "sulphur dioxide", "metabisulfite"],
    "cereal": ["barley", "rye", "oat", "malt"],
}

# terms that can hide an allergen without naming it
UNDECLARED_HINTS = ["flavour", "flavor", "spice", "natural extract", "seasoning"]

_PATTERN_CACHE = {}


def _contains_term(text: str, term: str) -> bool:
    pattern = _PATTERN_CACHE.get(term)
    if pattern is None:
        pattern = re.compile(r"\b" + re.escape(term) + r"(?:e?s)?\b")
        _PATTERN_CACHE[term] = pattern
    return pattern.search(text) is not None


def major_allergen_class(ingredient: str) -> Optional[str]:
    """
    Returns the major allergen class an ingredient belongs to, or None.
    Matching is on whole words and their plurals, so "eggs" counts and "eggplant" does not.
    """
    key = ingredient.lower().strip()
    for allergen, synonyms in MAJOR_ALLERGENS.items():
        for syn in synonyms:
            if _contains_term(key, syn):
                return allergen
    return None


def secondary_allergen_class(ingredient: str) -> Optional[str]:
    key = ingredient.lower().strip()
    for allergen, synonyms in SECONDARY_ALLERGENS.items():
        for syn in synonyms:
            if _contains_term(key, syn):
                return allergen
    return None


def may_hide_allergen(ingredient: str) -> bool:
    key = ingredient.lower()
    return any(hint in key for hint in UNDECLARED_HINTS)
