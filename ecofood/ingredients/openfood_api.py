"""
Remote ingredient-information lookups: Wikipedia summaries, the Open Food Facts
ingredient taxonomy and PubMed citations.

Each lookup returns None (or an empty list) when the source simply has nothing,
and raises EnrichmentDegraded when the source could not be reached.
"""

import logging
import re
from typing import List, Optional

import requests
import wikipedia

from ecofood.errors import EnrichmentDegraded
from ecofood.models import ScientificReference

logger = logging.getLogger(__name__)

FOOD_KEYWORDS = [
    "food", "ingredient", "edible", "cooking", "cuisine", "culinary", "consumed", "nutrition",
    "vegetable", "fruit", "spice", "herb", "dairy", "meat", "grain", "legume", "nut",
    "flavor", "flavour", "seasoning", "additive", "preservative", "sweetener", "emulsifier",
]
NEGATIVE_KEYWORDS = [
    "board game", "video game", "software", "building", "storey",
    "band", "album", "company", "corporation", "film", "movie", "tv series",
]


def clean_text(text: str) -> str:
    """Remove markup, citation marks and parenthetical asides, and standardize whitespace."""
    if not text:
        return ""
    text = re.sub(r"<.*?>", "", text)
    text = re.sub(r"\[\d+\]", "", text)
    text = re.sub(r"\s*\([^)]*\)", "", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def is_food_summary(text: str, ingredient: str) -> bool:
    text_lower = text.lower()
    if any(nk in text_lower for nk in NEGATIVE_KEYWORDS):
        return False
    return ingredient.lower() in text_lower or any(word in text_lower for word in FOOD_KEYWORDS)


class WikipediaDefinitionLookup:
    """Definition capability backed by the `wikipedia` package."""

    name = "Wikipedia"

    # everything but a missing page
    FAILURES = (
        requests.exceptions.RequestException,
        wikipedia.exceptions.WikipediaException,
        KeyError,
        ValueError,
    )

    def __init__(self, sentences: int = 3, lang: str = "en"):
        self.sentences = sentences
        self.lang = lang
        wikipedia.set_lang(lang)

    def __call__(self, ingredient_name: str) -> Optional[str]:
        base = ingredient_name.strip()
        # Bias queries toward food context to avoid disambiguation like Flour/Floor
        queries = [f"{base} (food)", f"{base} food additive", base]
        try:
            for q in queries:
                try:
                    summary = wikipedia.summary(q, sentences=self.sentences, auto_suggest=False, redirect=True)
                except wikipedia.exceptions.DisambiguationError as e:
                    preferred = [opt for opt in e.options if any(k in opt.lower() for k in ("food", "ingredient"))]
                    summary = self._first_food_option(preferred, base)
                except wikipedia.exceptions.PageError:
                    continue
                if summary and is_food_summary(summary, base):
                    return clean_text(summary)
        except self.FAILURES as e:
            raise EnrichmentDegraded(f"Wikipedia unavailable for {ingredient_name}: {e}") from e
        return None

    def _first_food_option(self, options: List[str], base: str) -> Optional[str]:
        for option in options[:3]:
            try:
                summary = wikipedia.summary(option, sentences=self.sentences, auto_suggest=False)
            except (wikipedia.exceptions.DisambiguationError, wikipedia.exceptions.PageError):
                continue
            if summary and is_food_summary(summary, base):
                return summary
        return None


class OFFIngredientLookup:
    """Definition capability backed by the Open Food Facts ingredient taxonomy."""

    name = "Open Food Facts"

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 5,
                 base_url: str = "https://world.openfoodfacts.org"):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")

    @staticmethod
    def to_slug(name: str) -> str:
        return name.strip().lower().replace(" ", "-")

    @staticmethod
    def to_singular(name: str) -> str:
        key = name.strip().lower()
        if key.endswith("es") and not key.endswith("ses"):
            return key[:-2]
        if key.endswith("s") and not key.endswith("ss"):
            return key[:-1]
        return key

    def __call__(self, ingredient_name: str) -> Optional[str]:
        seen = set()
        for cand in (ingredient_name, self.to_singular(ingredient_name)):
            slug = self.to_slug(cand)
            if slug in seen:
                continue
            seen.add(slug)
            url = f"{self.base_url}/ingredient/{slug}.json"
            try:
                resp = self.session.get(url, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                raise EnrichmentDegraded(f"Open Food Facts taxonomy unavailable: {e}") from e
            if resp.status_code != 200:
                continue
            try:
                data = resp.json() or {}
            except ValueError:
                continue
            raw_desc = data.get("description") or data.get("text")
            if isinstance(raw_desc, dict):
                # prefer English if present, else first value
                raw_desc = raw_desc.get("en") or next(iter(raw_desc.values()), None)
            if isinstance(raw_desc, str) and raw_desc.strip():
                return clean_text(raw_desc)
        return None


class PubMedReferenceLookup:
    """Reference capability backed by the NCBI E-utilities search API."""

    name = "PubMed"
    ESEARCH = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/esearch.fcgi"
    ESUMMARY = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/esummary.fcgi"

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 5, max_results: int = 2):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_results = max_results

    def __call__(self, ingredient_name: str) -> List[ScientificReference]:
        term = f"{ingredient_name} food safety"
        try:
            search = self.session.get(
                self.ESEARCH,
                params={"db": "pubmed", "term": term, "retmode": "json", "retmax": self.max_results},
                timeout=self.timeout,
            )
            ids = (search.json().get("esearchresult") or {}).get("idlist") or []
            if not ids:
                return []
            summary = self.session.get(
                self.ESUMMARY,
                params={"db": "pubmed", "id": ",".join(ids), "retmode": "json"},
                timeout=self.timeout,
            )
            result = summary.json().get("result") or {}
        except (requests.exceptions.RequestException, ValueError) as e:
            raise EnrichmentDegraded(f"PubMed unavailable for {ingredient_name}: {e}") from e

        references = []
        for pmid in ids:
            item = result.get(pmid) or {}
            title = item.get("title")
            if not title:
                continue
            year = re.match(r"(\d{4})", item.get("pubdate") or "")
            references.append(ScientificReference(
                title=title.rstrip("."),
                url=f"https://pubmed.ncbi.nlm.nih.gov/{pmid}/",
                summary=f"{item.get('source', 'PubMed')} article indexed for {ingredient_name}",
                confidence=70,
                peer_reviewed=True,
                source="PubMed",
                publication_year=int(year.group(1)) if year else None,
            ))
        return references
