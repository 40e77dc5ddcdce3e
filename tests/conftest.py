from datetime import date

import pytest

from ecofood.analysis import AnalysisBuilder
from ecofood.ingredients.definitions import DefinitionResolver
from ecofood.ingredients.enricher import IngredientEnricher
from ecofood.ingredients.references import ReferenceResolver
from ecofood.models import Nutriments, RawIngredientRecord, RawProductRecord

FIXED_TODAY = date(2026, 1, 15)


class FakeSourceClient:
    """Stands in for a source tier: returns a record, None, or raises."""

    def __init__(self, name, result=None, error=None):
        self.name = name
        self.result = result
        self.error = error
        self.calls = []

    def fetch_product(self, barcode):
        self.calls.append(barcode)
        if self.error is not None:
            raise self.error
        return self.result


class StubResponse:
    def __init__(self, status_code=200, payload=None, json_error=False):
        self.status_code = status_code
        self._payload = payload
        self._json_error = json_error

    def json(self):
        if self._json_error:
            raise ValueError("not json")
        return self._payload


class StubSession:
    """requests.Session replacement that replays canned responses and records calls."""

    def __init__(self, response=None, error=None):
        self.response = response or StubResponse()
        self.error = error
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def make_record():
    def factory(**overrides):
        fields = {
            "code": "3017620422003",
            "product_name": "Hazelnut Spread",
            "brands": "Acme",
            "source": "Open Food Facts",
        }
        fields.update(overrides)
        return RawProductRecord(**fields)
    return factory


@pytest.fixture
def spread_record(make_record):
    """A fully populated primary-tier record."""
    return make_record(
        image_url="https://images.example/spread.jpg",
        categories_tags=["en:spreads", "en:sweet-spreads"],
        countries_tags=["en:france", "en:united-states"],
        packaging="plastic jar",
        nutriments=Nutriments(energy_kcal=539, sugars=56.3, salt=0.107, saturated_fat=10.6, fiber=0),
        nutriscore_grade="e",
        nova_group=4,
        ingredients=[
            RawIngredientRecord(text="Sugar", id="en:sugar", vegan=True, vegetarian=True),
            RawIngredientRecord(text="Palm Oil", id="en:palm-oil", vegan=True, vegetarian=True,
                                from_palm_oil=True),
            RawIngredientRecord(text="Hazelnuts", id="en:hazelnut", vegan=True, vegetarian=True),
            RawIngredientRecord(text="Skim Milk Powder", id="en:skimmed-milk-powder", vegan=False,
                                vegetarian=True),
            RawIngredientRecord(text="Soy Lecithin", id="en:soya-lecithin", vegan=True, vegetarian=True),
        ],
        ingredients_text="Sugar, Palm Oil, Hazelnuts 13%, Skim Milk Powder 8.7%, Soy Lecithin",
        additives_tags=["en:e322"],
        allergens_tags=["en:milk", "en:nuts", "en:soybeans"],
        ingredients_analysis_tags=["en:palm-oil", "en:non-vegan", "en:vegetarian"],
        data_quality_score=80,
        last_updated=date(2025, 12, 20),
    )


@pytest.fixture
def enricher():
    return IngredientEnricher(DefinitionResolver(), ReferenceResolver())


@pytest.fixture
def builder(enricher):
    return AnalysisBuilder(enricher, today=lambda: FIXED_TODAY)


@pytest.fixture
def fake_client():
    return FakeSourceClient


@pytest.fixture
def stub_session():
    return StubSession


@pytest.fixture
def stub_response():
    return StubResponse
