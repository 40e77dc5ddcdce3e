from ecofood.ingredients.classifier import classify_ingredient
from ecofood.ingredients.enricher import IngredientEnricher

__all__ = ["classify_ingredient", "IngredientEnricher"]
