"""
Ingredient definitions.

Resolution order: provider description, remote lookups, curated table,
then a sentence assembled from the ingredient's classification. The last
step always produces a usable definition.
"""

import logging
from typing import Callable, Iterable, List, Optional, Tuple

import requests

from ecofood.errors import EnrichmentDegraded
from ecofood.ingredients.classifier import IngredientClassification
from ecofood.ingredients.fuzzy_matcher import ING_DB, get_best_match
from ecofood.ingredients.ingredient_parser import get_additive_type_info, normalize_e_number
from ecofood.ingredients.openfood_api import OFFIngredientLookup, WikipediaDefinitionLookup, clean_text
from ecofood.models import Allergenicity, GMOStatus, ProcessingLevel, Sustainability

logger = logging.getLogger(__name__)

MIN_LENGTH = 30
MAX_LENGTH = 300

DefinitionLookup = Callable[[str], Optional[str]]

KEYWORD_TEMPLATES = [
    (("preservative",), "a food preservative that helps prevent spoilage by inhibiting the growth of bacteria, "
                        "mold, and yeast, thereby extending the shelf life of food products"),
    (("sweetener", "sweetening"), "a sweetening agent used to add sweetness to food products and enhance "
                                  "flavor profiles"),
    (("thickener", "thickening", "gum"), "a thickening agent used to increase viscosity and improve the "
                                         "texture and mouthfeel of food products"),
    (("color", "colour", "coloring", "colouring"), "a coloring agent used to enhance or modify the visual "
                                                   "appearance of food products"),
    (("emulsifier",), "an emulsifier that keeps oil and water phases blended and stabilises texture"),
]

PROCESSING_PHRASES = {
    ProcessingLevel.MINIMAL: "a minimally processed food ingredient",
    ProcessingLevel.MODERATE: "a food ingredient with specific functional properties used in food processing "
                              "and formulation",
    ProcessingLevel.HIGH: "an industrially processed ingredient used to adjust the texture, flavor, or shelf "
                          "life of food products",
}

GMO_PHRASES = {
    GMOStatus.GMO_FREE: "It is not expected to be derived from genetically modified crops.",
    GMOStatus.LIKELY_GMO: "It may be derived from genetically modified crops.",
    GMOStatus.CONTAINS_GMO: "It is derived from genetically modified crops.",
}

SUSTAINABILITY_PHRASES = {
    Sustainability.HIGH: "Its supply chain is generally considered sustainable.",
    Sustainability.MEDIUM: "",
    Sustainability.LOW: "Its production is associated with a high environmental footprint.",
}

ALLERGEN_PHRASES = {
    Allergenicity.HIGH: "It is a common allergen.",
    Allergenicity.MEDIUM: "It can trigger allergic reactions in sensitive people.",
    Allergenicity.LOW: "It may contain undeclared allergenic components.",
    Allergenicity.NONE: "",
}


def format_definition(text: Optional[str]) -> Optional[str]:
    """Clean, capitalise and truncate a definition; None when too short to be useful."""
    if not text:
        return None
    definition = clean_text(text)
    if len(definition) < MIN_LENGTH:
        return None
    definition = definition[0].upper() + definition[1:]
    if len(definition) > MAX_LENGTH:
        definition = definition[:MAX_LENGTH].rstrip() + "..."
    return definition


def curated_definition(name: str) -> Optional[str]:
    key = normalize_e_number(name) or name
    match = get_best_match(key)
    if match is None:
        return None
    return format_definition(ING_DB[match]["description"])


def template_definition(name: str, classification: IngredientClassification) -> str:
    display = name.strip() or "This ingredient"
    display = display[0].upper() + display[1:]
    lowered = display.lower()

    code = normalize_e_number(lowered)
    additive = get_additive_type_info(code) if code else None
    if additive:
        lead = (f"{display.upper()} is a regulatory-approved food additive in the "
                f"{additive['category'].lower()} group ({additive['purpose'].lower()})")
    else:
        phrase = next((text for words, text in KEYWORD_TEMPLATES if any(w in lowered for w in words)), None)
        lead = f"{display} is {phrase or PROCESSING_PHRASES[classification.processing_level]}"

    parts = [lead + ".", GMO_PHRASES[classification.gmo_status],
             SUSTAINABILITY_PHRASES[classification.sustainability],
             ALLERGEN_PHRASES[classification.allergenicity]]
    definition = " ".join(p for p in parts if p)
    if len(definition) > MAX_LENGTH:
        definition = definition[:MAX_LENGTH].rstrip() + "..."
    return definition


class DefinitionResolver:
    """Fallback chain of definition capabilities, evaluated lazily."""

    def __init__(self, lookups: Iterable[DefinitionLookup] = ()):
        self.lookups = list(lookups)

    def resolve(self, name: str, classification: IngredientClassification,
                provider_description: Optional[str] = None) -> Tuple[str, Optional[str], bool]:
        """
        Returns (definition, source name or None, degraded).
        degraded is True when a remote lookup failed on the way.
        """
        definition = format_definition(provider_description)
        if definition:
            return definition, None, False

        degraded = False
        for lookup in self.lookups:
            try:
                definition = format_definition(lookup(name))
            except (EnrichmentDegraded, requests.exceptions.RequestException) as e:
                logger.warning(f"Definition lookup degraded for {name}: {e}")
                degraded = True
                continue
            if definition:
                return definition, getattr(lookup, "name", None), degraded

        definition = curated_definition(name)
        if definition:
            return definition, None, degraded
        return template_definition(name, classification), None, degraded


def default_lookups(settings) -> List[DefinitionLookup]:
    if not settings.REMOTE_LOOKUPS:
        return []
    return [WikipediaDefinitionLookup(), OFFIngredientLookup(timeout=settings.LOOKUP_TIMEOUT)]
