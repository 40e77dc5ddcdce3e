import pytest
import requests
import wikipedia

from ecofood.analysis import AnalysisBuilder
from ecofood.config import Settings
from ecofood.errors import EnrichmentDegraded
from ecofood.ingredients.definitions import DefinitionResolver
from ecofood.ingredients.enricher import IngredientEnricher
from ecofood.ingredients.openfood_api import (
    OFFIngredientLookup,
    PubMedReferenceLookup,
    WikipediaDefinitionLookup,
    clean_text,
)
from ecofood.ingredients.references import ReferenceResolver
from ecofood.resolver import MultiSourceResolver
from ecofood.sources import EFSAClient, OpenFoodFactsClient, USDAClient, default_clients


def test_settings_defaults(monkeypatch):
    for name in ("REMOTE_LOOKUPS", "ENRICH_WORKERS", "USDA_API_KEY", "RATE_LIMIT_MAX"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings()
    assert settings.REMOTE_LOOKUPS is True
    assert settings.ENRICH_WORKERS == 4
    assert settings.USDA_API_KEY == "DEMO_KEY"
    assert settings.RATE_LIMIT_MAX == 10


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("REMOTE_LOOKUPS", "false")
    monkeypatch.setenv("ENRICH_WORKERS", "1")
    monkeypatch.setenv("REQUEST_TIMEOUT", "2.5")
    settings = Settings()
    assert settings.REMOTE_LOOKUPS is False
    assert settings.ENRICH_WORKERS == 1
    assert settings.REQUEST_TIMEOUT == 2.5


def test_wiring_from_settings(monkeypatch, stub_session):
    monkeypatch.setenv("REMOTE_LOOKUPS", "false")
    monkeypatch.setenv("USDA_API_KEY", "SECRET")
    settings = Settings()

    enricher = IngredientEnricher.from_settings(settings)
    assert enricher.definitions.lookups == []
    assert enricher.references.lookups == []

    clients = default_clients(settings, session=stub_session())
    assert [type(c) for c in clients] == [OpenFoodFactsClient, USDAClient, EFSAClient]
    assert clients[1].api_key == "SECRET"

    resolver = MultiSourceResolver.from_settings(settings, session=stub_session())
    assert [c.name for c in resolver.clients] == ["Open Food Facts", "USDA FoodData Central", "EFSA"]


def test_clean_text():
    assert clean_text("<b>Salt</b> (sodium chloride) is a mineral[1].") == "Salt is a mineral."


def test_off_ingredient_lookup_prefers_english(stub_session, stub_response):
    payload = {"description": {"fr": "Le sel de table", "en": "Table salt used for seasoning and preserving food."}}
    session = stub_session(stub_response(200, payload))
    lookup = OFFIngredientLookup(session=session)
    assert lookup("Salt") == "Table salt used for seasoning and preserving food."
    assert session.calls[0]["url"].endswith("/ingredient/salt.json")


def test_off_ingredient_lookup_missing(stub_session, stub_response):
    lookup = OFFIngredientLookup(session=stub_session(stub_response(404)))
    assert lookup("Tomatoes") is None


def test_off_ingredient_lookup_unreachable(stub_session):
    lookup = OFFIngredientLookup(session=stub_session(error=requests.exceptions.ConnectionError("down")))
    with pytest.raises(EnrichmentDegraded):
        lookup("Salt")


class PubMedSession:
    def __init__(self, search, summary):
        self.responses = [search, summary]

    def get(self, url, params=None, timeout=None):
        return self.responses.pop(0)


def test_pubmed_lookup(stub_response):
    search = stub_response(200, {"esearchresult": {"idlist": ["123"]}})
    summary = stub_response(200, {"result": {"123": {"title": "Aspartame intake and health.",
                                                     "pubdate": "2021 Mar", "source": "Nutrients"}}})
    refs = PubMedReferenceLookup(session=PubMedSession(search, summary))("Aspartame")
    assert len(refs) == 1
    assert refs[0].title == "Aspartame intake and health"
    assert refs[0].publication_year == 2021
    assert refs[0].url == "https://pubmed.ncbi.nlm.nih.gov/123/"


def test_pubmed_lookup_no_hits(stub_response):
    search = stub_response(200, {"esearchresult": {"idlist": []}})
    assert PubMedReferenceLookup(session=PubMedSession(search, None))("Zorblax") == []


# Wikipedia

def fake_summary(pages, queries=None):
    """wikipedia.summary replacement: a page is a summary string or an exception to raise."""
    def summary(query, sentences=3, auto_suggest=True, redirect=True):
        if queries is not None:
            queries.append(query)
        page = pages.get(query)
        if page is None:
            raise wikipedia.exceptions.PageError(query)
        if isinstance(page, Exception):
            raise page
        return page
    return summary


def test_wikipedia_lookup_skips_missing_pages(monkeypatch):
    queries = []
    pages = {"Salt": "Salt is a mineral (sodium chloride) used to season food[2]."}
    monkeypatch.setattr(wikipedia, "summary", fake_summary(pages, queries))
    assert WikipediaDefinitionLookup()("Salt") == "Salt is a mineral used to season food."
    assert queries == ["Salt (food)", "Salt food additive", "Salt"]


def test_wikipedia_lookup_follows_food_disambiguation(monkeypatch):
    pages = {
        "Flour (food)": wikipedia.exceptions.DisambiguationError("Flour", ["Floor", "Wheat flour (food)"]),
        "Wheat flour (food)": "Wheat flour is a powder made by grinding wheat for human consumption.",
    }
    monkeypatch.setattr(wikipedia, "summary", fake_summary(pages))
    assert WikipediaDefinitionLookup()("Flour") == "Wheat flour is a powder made by grinding wheat for human consumption."


def test_wikipedia_lookup_rejects_non_food_summaries(monkeypatch):
    pages = {
        "Oats (food)": "Oats is the debut album by an indie band.",
        "Oats": "Oats are a cereal grain grown for their seed.",
        "Monopoly": "Monopoly is a board game.",
    }
    monkeypatch.setattr(wikipedia, "summary", fake_summary(pages))
    lookup = WikipediaDefinitionLookup()
    assert lookup("Oats") == "Oats are a cereal grain grown for their seed."
    assert lookup("Monopoly") is None


def test_wikipedia_language_is_set_once(monkeypatch):
    langs = []
    monkeypatch.setattr(wikipedia, "set_lang", langs.append)
    lookup = WikipediaDefinitionLookup(lang="de")
    monkeypatch.setattr(wikipedia, "summary", fake_summary({"Salz": "Salz ist ein Gewuerz fuer food."}))
    lookup("Salz")
    lookup("Salz")
    assert langs == ["de"]


def timeout_after_disambiguation(query, sentences=3, auto_suggest=True, redirect=True):
    if query.endswith("(food)"):
        raise wikipedia.exceptions.DisambiguationError(query, ["Table food item"])
    raise wikipedia.exceptions.HTTPTimeoutError(query)


WIKIPEDIA_FAILURES = [
    fake_summary({"Sugar (food)": wikipedia.exceptions.WikipediaException("Search is currently too busy")}),
    fake_summary({"Sugar (food)": KeyError("query")}),
    fake_summary({"Sugar (food)": ValueError("bad payload")}),
    fake_summary({"Sugar (food)": requests.exceptions.ConnectionError("down")}),
    timeout_after_disambiguation,
]


@pytest.mark.parametrize("summary", WIKIPEDIA_FAILURES)
def test_wikipedia_failures_degrade(monkeypatch, summary):
    monkeypatch.setattr(wikipedia, "summary", summary)
    with pytest.raises(EnrichmentDegraded):
        WikipediaDefinitionLookup()("Sugar")


@pytest.mark.parametrize("summary", WIKIPEDIA_FAILURES)
def test_wikipedia_failures_fall_back_during_analysis(monkeypatch, spread_record, summary):
    monkeypatch.setattr(wikipedia, "summary", summary)
    enricher = IngredientEnricher(DefinitionResolver([WikipediaDefinitionLookup()]), ReferenceResolver())
    result = AnalysisBuilder(enricher).build(spread_record)
    assert result.trust_score == 75
    assert all(i.description for i in result.ingredients)
