import json
import logging
import os
from typing import Callable, Iterable, List, Optional, Tuple
from urllib.parse import quote_plus

import requests

from ecofood.errors import EnrichmentDegraded
from ecofood.ingredients.fuzzy_matcher import canonical_name
from ecofood.models import RiskLevel, ScientificReference

logger = logging.getLogger(__name__)

MAX_REFERENCES = 3

ReferenceLookup = Callable[[str], List[ScientificReference]]

script_dir = os.path.dirname(os.path.abspath(__file__))
with open(os.path.join(script_dir, "data", "references.json"), "r", encoding="utf-8") as f:
    CURATED_REFERENCES = {
        key: [ScientificReference(**ref) for ref in refs]
        for key, refs in json.load(f).items()
    }


def curated_references(name: str) -> List[ScientificReference]:
    key = canonical_name(name)
    for ingredient, refs in CURATED_REFERENCES.items():
        if ingredient in key:
            return refs[:MAX_REFERENCES]
    return []


def synthesized_references(name: str, risk: RiskLevel) -> List[ScientificReference]:
    """Generic regulatory-body citations keyed by risk level."""
    q = quote_plus(name.strip().lower())
    if risk is RiskLevel.SAFE:
        return [
            ScientificReference(
                title="GRAS Notice Inventory",
                url=f"https://www.cfsanappsexternal.fda.gov/scripts/fdcc/?set=GRASNotices&search={q}",
                summary=f"FDA inventory of Generally Recognized as Safe notices relevant to {name}.",
                confidence=70, peer_reviewed=False, source="FDA"),
            ScientificReference(
                title="EFSA OpenFoodTox chemical hazards database",
                url="https://www.efsa.europa.eu/en/data-report/chemical-hazards-database-openfoodtox",
                summary="EFSA database of hazard assessments for substances in the food chain.",
                confidence=65, peer_reviewed=False, source="EFSA"),
        ]
    if risk is RiskLevel.HIGH:
        return [
            ScientificReference(
                title="IARC Monographs on the Identification of Carcinogenic Hazards to Humans",
                url="https://monographs.iarc.who.int/agents-classified-by-the-iarc/",
                summary=f"IARC classification list for agents including those related to {name}.",
                confidence=80, peer_reviewed=True, source="IARC"),
            ScientificReference(
                title=f"Toxicology literature for {name}",
                url=f"https://pubmed.ncbi.nlm.nih.gov/?term={q}+toxicity",
                summary=f"Peer-reviewed toxicology studies indexed for {name}.",
                confidence=60, peer_reviewed=True, source="PubMed"),
        ]
    if risk is RiskLevel.MODERATE:
        return [
            ScientificReference(
                title="EFSA scientific opinions on food additives",
                url=f"https://www.efsa.europa.eu/en/search?s={q}",
                summary=f"EFSA re-evaluations and exposure assessments mentioning {name}.",
                confidence=70, peer_reviewed=True, source="EFSA"),
            ScientificReference(
                title=f"Risk assessment studies for {name}",
                url=f"https://pubmed.ncbi.nlm.nih.gov/?term={q}+risk+assessment",
                summary=f"Peer-reviewed risk-assessment literature indexed for {name}.",
                confidence=60, peer_reviewed=True, source="PubMed"),
        ]
    return [
        ScientificReference(
            title=f"Risk assessment studies for {name}",
            url=f"https://pubmed.ncbi.nlm.nih.gov/?term={q}+risk+assessment",
            summary=f"Peer-reviewed risk-assessment literature indexed for {name}.",
            confidence=55, peer_reviewed=True, source="PubMed"),
    ]


class ReferenceResolver:
    """Provider references, then curated table, then remote lookups, then synthesis."""

    def __init__(self, lookups: Iterable[ReferenceLookup] = ()):
        self.lookups = list(lookups)

    def resolve(self, name: str, risk: RiskLevel,
                provider_refs: Optional[List[ScientificReference]] = None
                ) -> Tuple[List[ScientificReference], Optional[str], bool]:
        if provider_refs:
            return list(provider_refs)[:MAX_REFERENCES], None, False

        curated = curated_references(name)
        if curated:
            return curated, None, False

        degraded = False
        for lookup in self.lookups:
            try:
                found = lookup(name)
            except (EnrichmentDegraded, requests.exceptions.RequestException) as e:
                logger.warning(f"Reference lookup degraded for {name}: {e}")
                degraded = True
                continue
            if found:
                return list(found)[:MAX_REFERENCES], getattr(lookup, "name", None), degraded

        return synthesized_references(name, risk), None, degraded
