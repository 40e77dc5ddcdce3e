from typing import Iterable

from ecofood.models import Category

# first matching group wins, keep the order
CATEGORY_KEYWORDS = [
    (Category.BEVERAGES, ["beverage", "drink", "water", "juice", "soda", "beer", "wine", "alcohol"]),
    (Category.SNACKS, ["snack", "chips", "cookie", "biscuit", "candy", "chocolate", "bar"]),
    (Category.DAIRY, ["dairy", "milk", "cheese", "yogurt", "butter", "cream"]),
    (Category.MEAT, ["meat", "beef", "pork", "chicken", "poultry", "lamb", "fish", "seafood"]),
    (Category.VEGETABLES, ["vegetable", "legume", "salad"]),
    (Category.FRUITS, ["fruit", "berry", "citrus"]),
    (Category.GRAINS, ["grain", "bread", "pasta", "rice", "cereal", "wheat", "flour"]),
    (Category.SEAFOOD, ["shrimp", "prawn", "crustacean", "mollusc", "mussel", "oyster"]),
    (Category.PLANT_BASED, ["plant-based", "plant based", "vegan", "tofu", "meat-substitute", "meat-analogue"]),
    (Category.PROCESSED_FOODS, ["ready-meal", "frozen", "instant", "processed", "sauce"]),
]

INGREDIENT_FALLBACK = [Category.DAIRY, Category.MEAT, Category.GRAINS]


def _match(blob: str, groups) -> Category:
    for category, keywords in groups:
        if any(word in blob for word in keywords):
            return category
    return Category.DEFAULT


def estimate_category(categories_tags: Iterable[str], ingredients_text: str = "") -> Category:
    """Classify a product from its category tags, then its ingredient text. Never fails."""
    blob = " ".join(tag for tag in (categories_tags or []) if tag).lower()
    category = _match(blob, CATEGORY_KEYWORDS)
    if category is not Category.DEFAULT:
        return category

    ingredients_blob = (ingredients_text or "").lower()
    fallback = [group for group in CATEGORY_KEYWORDS if group[0] in INGREDIENT_FALLBACK]
    return _match(ingredients_blob, fallback)
