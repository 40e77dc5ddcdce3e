import json
import os
from typing import Optional

from fuzzywuzzy import fuzz, process

# Get the directory of the current script
script_dir = os.path.dirname(os.path.abspath(__file__))
db_path = os.path.join(script_dir, "data", "ingredient_db.json")
synonym_path = os.path.join(script_dir, "data", "synonym_map.json")

with open(db_path, "r", encoding="utf-8") as f:
    ING_DB = json.load(f)

with open(synonym_path, "r", encoding="utf-8") as f:
    SYNONYM_MAP = json.load(f)

FUZZY_THRESHOLD = 90


def canonical_name(ingredient: str) -> str:
    ing = " ".join(ingredient.lower().replace("_", " ").split())
    return SYNONYM_MAP.get(ing, ing)


def get_best_match(ingredient: str) -> Optional[str]:
    """
    Find the curated-table key for an ingredient name.
    Order: synonym map, exact key, prefix/substring, fuzzy match.
    """
    ing = canonical_name(ingredient)
    if not ing:
        return None

    # Exact match in DB
    if ing in ING_DB:
        return ing

    # Prefix match, then the longest key contained in the name
    prefixed = sorted(k for k in ING_DB if ing.startswith(k + " ") or (len(ing) >= 4 and k.startswith(ing)))
    if prefixed:
        return max(prefixed, key=len)
    contained = [k for k in ING_DB if f" {k} " in f" {ing} "]
    if contained:
        return max(sorted(contained), key=len)

    # Fuzzy match
    match = process.extractOne(ing, sorted(ING_DB.keys()), scorer=fuzz.ratio)
    if match and match[1] >= FUZZY_THRESHOLD:
        return match[0]

    return None  # Not found
