import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ecofood.ingredients.classifier import classify_ingredient
from ecofood.ingredients.definitions import DefinitionResolver, default_lookups
from ecofood.ingredients.ingredient_parser import filter_ingredients
from ecofood.ingredients.openfood_api import PubMedReferenceLookup
from ecofood.ingredients.references import ReferenceResolver
from ecofood.models import IngredientAnalysis, RawIngredientRecord

logger = logging.getLogger(__name__)


@dataclass
class EnrichedIngredient:
    analysis: IngredientAnalysis
    sources: List[str] = field(default_factory=list)
    degraded: bool = False


@dataclass
class EnrichmentReport:
    ingredients: List[IngredientAnalysis]
    sources: List[str]
    degraded: bool


class IngredientEnricher:
    """
    Classifies and enriches every ingredient of a product.

    Ingredients are independent, so they are processed on a thread pool;
    results are collected by index and keep the declared order.
    """

    def __init__(self, definitions: Optional[DefinitionResolver] = None,
                 references: Optional[ReferenceResolver] = None, max_workers: int = 1):
        self.definitions = definitions or DefinitionResolver()
        self.references = references or ReferenceResolver()
        self.max_workers = max(1, max_workers)

    @classmethod
    def from_settings(cls, settings) -> "IngredientEnricher":
        ref_lookups = [PubMedReferenceLookup(timeout=settings.LOOKUP_TIMEOUT)] if settings.REMOTE_LOOKUPS else []
        return cls(
            definitions=DefinitionResolver(default_lookups(settings)),
            references=ReferenceResolver(ref_lookups),
            max_workers=settings.ENRICH_WORKERS,
        )

    def enrich_one(self, ingredient: RawIngredientRecord, labels=()) -> EnrichedIngredient:
        classification = classify_ingredient(ingredient, labels)
        description, def_source, def_degraded = self.definitions.resolve(
            classification.name, classification, ingredient.description)
        refs, ref_source, ref_degraded = self.references.resolve(
            classification.name, classification.risk_level, ingredient.scientific_references)

        analysis = IngredientAnalysis(
            name=classification.name,
            risk_level=classification.risk_level,
            description=description,
            concerns=list(classification.concerns) or None,
            scientific_references=refs or None,
            gmo_status=classification.gmo_status,
            gmo_confidence=classification.gmo_confidence,
            sustainability=classification.sustainability,
            allergenicity=classification.allergenicity,
            processing_level=classification.processing_level,
        )
        sources = [s for s in (def_source, ref_source) if s]
        return EnrichedIngredient(analysis, sources, def_degraded or ref_degraded)

    def enrich(self, ingredients: Iterable[RawIngredientRecord], labels: Iterable[str] = ()) -> EnrichmentReport:
        entries = filter_ingredients(list(ingredients))
        labels = tuple(labels or ())

        if self.max_workers > 1 and len(entries) > 1:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(entries))) as pool:
                # map yields in submission order, not completion order
                results = list(pool.map(lambda ing: self.enrich_one(ing, labels), entries))
        else:
            results = [self.enrich_one(ing, labels) for ing in entries]

        sources = []
        for result in results:
            for source in result.sources:
                if source not in sources:
                    sources.append(source)
        degraded = any(r.degraded for r in results)
        if degraded:
            logger.warning("Ingredient enrichment degraded; fallback content used for some ingredients")
        return EnrichmentReport([r.analysis for r in results], sources, degraded)
