"""
EcoFood Ingredient Parser
=========================

Turns label text into ingredient entries:
- splits ingredient statements on top-level commas/semicolons
- drops administrative boilerplate ("may contain traces of ...")
- normalizes E-numbers and INS numbers
- classifies additive codes by numeric range
"""

import re
from typing import List, Optional

from ecofood.models import RawIngredientRecord

E_NUMBER_RE = re.compile(r"^(?:en:)?(?:e|ins)\s*-?\s*(\d{3,4}[a-z]?)(?:\s*\([ivx]+\))?$", re.I)
E_NUMBER_SEARCH_RE = re.compile(r"\b(?:e|ins)\s*-?\s*(\d{3,4}[a-d]?)\b", re.I)

BOILERPLATE_PATTERNS = [
    re.compile(p, re.I) for p in (
        r"contains?\s+(?:less|not\s+more)\s+than\s+\d+(?:\.\d+)?\s*%",
        r"\d+(?:\.\d+)?\s*%\s+or\s+less\s+of",
        r"\bmanufactured\s+(?:in|on|by)\b",
        r"\b(?:produced|processed|packed|made)\s+in\s+a\s+(?:facility|factory|plant)\b",
        r"\bmay\s+contain\b",
        r"\bcontains?\s+traces?\s+of\b",
        r"\bfor\s+allergens\b",
        r"\bsee\s+ingredients\s+in\s+bold\b",
        r"\bpacked\s+(?:in|under)\s+a?\s*protective\s+atmosphere\b",
        r"^ingredients?\s*:?\s*$",
        r"^allergy\s+advice\b",
    )
]

# "contains 2% or less of: salt" introduces real ingredients after the colon
LEAD_IN_RE = re.compile(r"^.*?(?:less\s+than|or\s+less\s+of)[^:]*:\s*", re.I)


def normalize_e_number(ingredient: str) -> Optional[str]:
    """Normalize E-numbers and INS numbers (E-330, e 330, INS 330, en:e330) to 'e330'."""
    match = E_NUMBER_RE.match(ingredient.strip())
    if match:
        return f"e{match.group(1).lower()}"
    return None


def find_e_number(text: str) -> Optional[str]:
    code = normalize_e_number(text)
    if code:
        return code
    match = E_NUMBER_SEARCH_RE.search(text)
    if match:
        return f"e{match.group(1).lower()}"
    return None


def is_boilerplate(text: str) -> bool:
    """Administrative label text that is not an ingredient."""
    stripped = text.strip()
    if not stripped:
        return True
    return any(p.search(stripped) for p in BOILERPLATE_PATTERNS)


def split_ingredients_text(text: str) -> List[str]:
    """Split on commas/semicolons that are not inside parentheses or brackets."""
    tokens, depth, current = [], 0, []
    for ch in text or "":
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth = max(0, depth - 1)
        if ch in ",;" and depth == 0:
            tokens.append("".join(current))
            current = []
            continue
        current.append(ch)
    tokens.append("".join(current))
    cleaned = []
    for token in tokens:
        token = re.sub(r"\s+", " ", token).strip(" .*_\t\n")
        token = re.sub(r"^ingredients?\s*:\s*", "", token, flags=re.I)
        token = LEAD_IN_RE.sub("", token)
        if token:
            cleaned.append(token)
    return cleaned


def filter_ingredients(ingredients: List[RawIngredientRecord]) -> List[RawIngredientRecord]:
    """Drop boilerplate and nameless entries, keeping declared order."""
    return [ing for ing in ingredients if ing.name and not is_boilerplate(ing.name)]


def get_additive_type_info(code: str) -> Optional[dict]:
    """Determine the type of food additive from its E-number/INS number range."""
    number_match = re.search(r"(\d{3,4})", code.lower())
    if not number_match:
        return None

    number = int(number_match.group(1))

    if 100 <= number <= 199:
        return {"category": "Colours", "purpose": "Add or restore colour"}
    elif 200 <= number <= 299:
        return {"category": "Preservatives", "purpose": "Prevent spoilage and extend shelf life"}
    elif 300 <= number <= 399:
        return {"category": "Antioxidants & Acidity Regulators", "purpose": "Prevent oxidation and control pH levels"}
    elif 400 <= number <= 499:
        return {"category": "Stabilizers, Thickeners & Emulsifiers", "purpose": "Improve texture and consistency"}
    elif 500 <= number <= 599:
        return {"category": "Acidity Regulators & Anti-caking Agents", "purpose": "Control pH and prevent clumping"}
    elif 600 <= number <= 699:
        return {"category": "Flavor Enhancers", "purpose": "Enhance taste and aroma"}
    elif 700 <= number <= 799:
        return {"category": "Antibiotics & Preservatives", "purpose": "Antimicrobial protection"}
    elif 900 <= number <= 999:
        return {"category": "Glazing Agents & Sweeteners", "purpose": "Surface treatment and sweetening"}
    return {"category": "Food Additive", "purpose": "Regulatory approved food ingredient"}
