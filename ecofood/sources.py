"""
Source tiers.

One client per upstream provider, each exposing ``fetch_product(barcode)``:
a normalized RawProductRecord, ``None`` when the provider does not know the
barcode, FetchError on transport failure and MalformedRecordError when the
payload has no usable identity.
"""

import logging
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from ecofood.errors import FetchError, MalformedRecordError
from ecofood.ingredients.ingredient_parser import split_ingredients_text
from ecofood.models import (
    Nutriments,
    ProviderEnvironmentalData,
    RawIngredientRecord,
    RawProductRecord,
    ScientificReference,
    clamp,
)

logger = logging.getLogger(__name__)

OFF_SOURCE = "Open Food Facts"
USDA_SOURCE = "USDA FoodData Central"
EFSA_SOURCE = "EFSA"

OFF_FIELDS = (
    "code,product_name,product_name_en,generic_name,generic_name_en,brands,image_front_url,image_url,"
    "categories,categories_tags,countries_tags,packaging,packaging_text,nutriments,nutriscore_grade,"
    "ecoscore_grade,nova_group,ingredients,ingredients_text,ingredients_text_en,additives_tags,"
    "allergens_tags,labels_tags,origins_tags,ingredients_analysis_tags,manufacturing_places,"
    "environmental_data,data_quality_score,last_modified_t"
)

# Category life-cycle reference data, matched against the first category tag
CATEGORY_IMPACT_DATA = [
    (("dairy", "dairies"), ProviderEnvironmentalData(carbon_footprint_score=2.8, water_usage=628,
                                                     data_reliability=85, source="Agribalyse")),
    (("meat",), ProviderEnvironmentalData(carbon_footprint_score=27.0, water_usage=15415,
                                          data_reliability=90, source="Agribalyse")),
    (("vegetable",), ProviderEnvironmentalData(carbon_footprint_score=0.5, water_usage=322,
                                               data_reliability=75, source="Agribalyse")),
]

# FDC nutrient id -> (field, legacy nutrient number)
USDA_NUTRIENTS = {
    1008: ("energy_kcal", "208"),
    2000: ("sugars", "269"),
    1093: ("sodium", "307"),
    1258: ("saturated_fat", "606"),
    1079: ("fiber", "291"),
}

TRISTATE = {"yes": True, "no": False, "maybe": None}


def calculate_data_quality_score(record: RawProductRecord, today: Optional[date] = None) -> int:
    """Completeness and recency of a provider record, 0-100."""
    score = 50.0
    if record.product_name:
        score += 5
    if record.brands:
        score += 5
    if record.image_url:
        score += 5
    if record.ingredients:
        score += 10
    if record.nutriscore_grade:
        score += 10
    if not record.nutriments.is_empty():
        score += 5
    if record.environmental_data and record.environmental_data.data_reliability:
        score += record.environmental_data.data_reliability / 10

    if record.last_updated:
        today = today or datetime.now(timezone.utc).date()
        days = (today - record.last_updated).days
        if days < 30:
            score += 10
        elif days < 90:
            score += 5
        elif days > 365:
            score -= 10

    return int(round(clamp(score, 0, 100)))


def category_impact_data(categories_tags: List[str]) -> Optional[ProviderEnvironmentalData]:
    if not categories_tags:
        return None
    main = categories_tags[0].lower()
    for words, data in CATEGORY_IMPACT_DATA:
        if any(word in main for word in words):
            return data
    return None


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value: Any) -> Optional[int]:
    number = _to_float(value)
    return int(number) if number is not None else None


def _tristate(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return TRISTATE.get(value.strip().lower())
    return None


def _str_list(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(v) for v in value if v]
    if isinstance(value, str) and value.strip():
        return [v.strip() for v in value.split(",") if v.strip()]
    return []


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc).date()
    text = str(value).strip()
    if text.isdigit():
        return datetime.fromtimestamp(int(text), tz=timezone.utc).date()
    for fmt in ("%Y-%m-%d", "%m/%d/%Y"):
        try:
            return datetime.strptime(text[:10], fmt).date()
        except ValueError:
            continue
    return None


def _references(value: Any) -> Optional[List[ScientificReference]]:
    if not isinstance(value, list):
        return None
    refs = []
    for item in value:
        if isinstance(item, dict) and item.get("title") and item.get("url"):
            refs.append(ScientificReference(**{k: v for k, v in item.items()
                                               if k in ScientificReference.model_fields}))
    return refs or None


def _text_ingredients(text: str) -> List[RawIngredientRecord]:
    return [RawIngredientRecord(text=token) for token in split_ingredients_text(text)]


def _off_ingredient(item: Dict[str, Any]) -> RawIngredientRecord:
    from_palm_oil = _tristate(item.get("from_palm_oil"))
    concerns = item.get("health_concerns")
    if from_palm_oil and not concerns:
        concerns = ["Environmental impact", "Potential health risks"]
    return RawIngredientRecord(
        text=str(item.get("text") or ""),
        id=item.get("id"),
        description=item.get("description"),
        vegan=_tristate(item.get("vegan")),
        vegetarian=_tristate(item.get("vegetarian")),
        organic=_tristate(item.get("organic")),
        from_palm_oil=from_palm_oil,
        scientific_references=_references(item.get("scientific_references")),
        health_concerns=concerns or None,
        gmo_risk=item.get("gmo_risk"),
    )


def _off_environmental_data(value: Any) -> Optional[ProviderEnvironmentalData]:
    if not isinstance(value, dict):
        return None
    return ProviderEnvironmentalData(
        carbon_footprint=_to_float(value.get("carbon_footprint", value.get("carbonFootprint"))),
        carbon_footprint_score=_to_float(value.get("carbon_footprint_score", value.get("carbonFootprintScore"))),
        water_usage=_to_float(value.get("water_usage", value.get("waterUsage"))),
        packaging_score=_to_int(value.get("packaging_score", value.get("packagingScore"))),
        transport_score=_to_int(value.get("transport_score", value.get("transportScore"))),
        data_reliability=_to_float(value.get("data_reliability", value.get("dataReliability"))),
        source=value.get("source"),
    )


def _with_quality(record: RawProductRecord, today: Optional[date]) -> RawProductRecord:
    if record.data_quality_score is not None:
        return record
    return record.model_copy(update={"data_quality_score": calculate_data_quality_score(record, today)})


def normalize_off_product(product: Dict[str, Any], attach_impact_data: bool = False,
                          today: Optional[date] = None) -> RawProductRecord:
    """Open Food Facts ``product`` object -> RawProductRecord."""
    if not isinstance(product, dict):
        raise MalformedRecordError("Open Food Facts product is not an object")

    code = str(product.get("code") or product.get("_id") or "").strip()
    categories_tags = _str_list(product.get("categories_tags"))
    brands = str(product.get("brands") or "").strip()
    name = str(
        product.get("product_name") or product.get("product_name_en")
        or product.get("generic_name_en") or product.get("generic_name") or ""
    ).strip()
    if not name and brands:
        categories = str(product.get("categories") or "").split(",")[0].strip()
        name = f"{brands} {categories}".strip()
    if not code and not name:
        raise MalformedRecordError("Open Food Facts product has neither code nor name")

    ingredients_text = str(product.get("ingredients_text_en") or product.get("ingredients_text") or "")
    raw_ingredients = product.get("ingredients")
    if isinstance(raw_ingredients, list) and raw_ingredients:
        ingredients = [_off_ingredient(i) for i in raw_ingredients if isinstance(i, dict)]
    else:
        ingredients = _text_ingredients(ingredients_text)

    facts = product.get("nutriments") or {}
    if not isinstance(facts, dict):
        raise MalformedRecordError("Open Food Facts nutriments is not an object")
    nutriments = Nutriments(
        energy_kcal=_to_float(facts.get("energy-kcal_100g")),
        sugars=_to_float(facts.get("sugars_100g")),
        salt=_to_float(facts.get("salt_100g")),
        saturated_fat=_to_float(facts.get("saturated-fat_100g")),
        fiber=_to_float(facts.get("fiber_100g")),
    )

    environmental_data = _off_environmental_data(product.get("environmental_data"))
    if environmental_data is None and attach_impact_data:
        environmental_data = category_impact_data(categories_tags)

    record = RawProductRecord(
        code=code,
        product_name=name,
        brands=brands,
        image_url=str(product.get("image_front_url") or product.get("image_url") or ""),
        categories_tags=categories_tags,
        countries_tags=_str_list(product.get("countries_tags")),
        packaging=str(product.get("packaging") or product.get("packaging_text") or ""),
        nutriments=nutriments,
        nutriscore_grade=product.get("nutriscore_grade") or None,
        ecoscore_grade=product.get("ecoscore_grade") or None,
        nova_group=_to_int(product.get("nova_group")),
        ingredients=ingredients,
        ingredients_text=ingredients_text,
        additives_tags=_str_list(product.get("additives_tags")),
        allergens_tags=_str_list(product.get("allergens_tags")),
        labels_tags=_str_list(product.get("labels_tags")),
        origins_tags=_str_list(product.get("origins_tags")),
        ingredients_analysis_tags=_str_list(product.get("ingredients_analysis_tags")),
        manufacturing_places=str(product.get("manufacturing_places") or ""),
        environmental_data=environmental_data,
        data_quality_score=_to_float(product.get("data_quality_score")),
        last_updated=_parse_date(product.get("last_modified_t") or product.get("last_updated")),
        source=OFF_SOURCE,
    )
    return _with_quality(record, today)


def _usda_nutrients(food_nutrients: Any) -> Dict[int, float]:
    found = {}
    legacy = {number: nid for nid, (_, number) in USDA_NUTRIENTS.items()}
    if not isinstance(food_nutrients, list):
        return found
    for item in food_nutrients:
        if not isinstance(item, dict):
            continue
        nested = item.get("nutrient") if isinstance(item.get("nutrient"), dict) else {}
        nid = _to_int(item.get("nutrientId") or nested.get("id"))
        number = str(item.get("nutrientNumber") or nested.get("number") or "")
        if nid not in USDA_NUTRIENTS:
            nid = legacy.get(number)
        value = _to_float(item.get("value", item.get("amount")))
        if nid is not None and value is not None and nid not in found:
            found[nid] = value
    return found


def normalize_usda_food(food: Dict[str, Any], today: Optional[date] = None) -> RawProductRecord:
    """First food of a FoodData Central search -> RawProductRecord."""
    if not isinstance(food, dict):
        raise MalformedRecordError("USDA food is not an object")

    code = str(food.get("gtinUpc") or food.get("fdcId") or "").strip()
    name = str(food.get("description") or "").strip()
    if not code and not name:
        raise MalformedRecordError("USDA food has neither code nor description")

    values = _usda_nutrients(food.get("foodNutrients"))
    fields = {field: values.get(nid) for nid, (field, _) in USDA_NUTRIENTS.items()}
    sodium_mg = fields.pop("sodium")
    fields["salt"] = round(sodium_mg * 2.5 / 1000, 3) if sodium_mg is not None else None

    category = food.get("foodCategory")
    if isinstance(category, dict):
        category = category.get("description")
    ingredients_text = str(food.get("ingredients") or "")

    record = RawProductRecord(
        code=code,
        product_name=name,
        brands=str(food.get("brandOwner") or food.get("brandName") or "").strip(),
        categories_tags=[f"en:{_slug(category)}"] if category else [],
        countries_tags=["en:united-states"],
        nutriments=Nutriments(**fields),
        ingredients=_text_ingredients(ingredients_text),
        ingredients_text=ingredients_text,
        last_updated=_parse_date(food.get("modifiedDate") or food.get("publishedDate")),
        source=USDA_SOURCE,
    )
    return _with_quality(record, today)


def normalize_efsa_item(item: Dict[str, Any], today: Optional[date] = None) -> RawProductRecord:
    """First EFSA search result -> RawProductRecord."""
    if not isinstance(item, dict):
        raise MalformedRecordError("EFSA result is not an object")

    code = str(item.get("identifier") or "").strip()
    name = str(item.get("name") or "").strip()
    if not code and not name:
        raise MalformedRecordError("EFSA result has neither identifier nor name")

    ingredients = item.get("ingredients")
    if isinstance(ingredients, list):
        ingredients_text = ", ".join(str(i) for i in ingredients if i)
    else:
        ingredients_text = str(ingredients or "")
    category = str(item.get("category") or "")

    record = RawProductRecord(
        code=code,
        product_name=name,
        brands=str(item.get("brand") or "").strip(),
        categories_tags=[f"en:{_slug(category)}"] if category else [],
        countries_tags=_str_list(item.get("countries")),
        ingredients=_text_ingredients(ingredients_text),
        ingredients_text=ingredients_text,
        last_updated=_parse_date(item.get("last_updated") or item.get("lastUpdated")),
        source=EFSA_SOURCE,
    )
    return _with_quality(record, today)


class SourceClient:
    """Base HTTP client for one source tier; maps provider status codes to errors."""

    name = ""

    def __init__(self, base_url: str, session: Optional[requests.Session] = None,
                 timeout: float = 10, user_agent: str = "EcoFood/1.0"):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.headers = {"User-Agent": user_agent}

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            resp = self.session.get(url, params=params, headers=self.headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning(f"{self.name}: request to {url} failed: {e}")
            raise FetchError("Network error. Please check your connection", source=self.name) from e

        status = resp.status_code
        if status == 404:
            return None
        if status == 429:
            raise FetchError("Too many requests. Please try again later", self.name, status)
        if status == 401:
            raise FetchError("Authentication error. Please check API credentials", self.name, status)
        if status == 403:
            raise FetchError("Access denied. You may need additional permissions", self.name, status)
        if not 200 <= status < 300:
            raise FetchError(f"Server error: {status}", self.name, status)

        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedRecordError(f"{self.name} returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise MalformedRecordError(f"{self.name} returned an unexpected payload")
        return data

    def fetch_product(self, barcode: str) -> Optional[RawProductRecord]:
        raise NotImplementedError


class OpenFoodFactsClient(SourceClient):
    name = OFF_SOURCE

    def __init__(self, base_url: str = "https://world.openfoodfacts.org/api/v2",
                 attach_impact_data: bool = True, **kwargs):
        super().__init__(base_url, **kwargs)
        self.attach_impact_data = attach_impact_data

    def fetch_product(self, barcode: str) -> Optional[RawProductRecord]:
        data = self._get(f"/product/{barcode}", params={"fields": OFF_FIELDS})
        if not data:
            return None
        product = data.get("product")
        if data.get("status") == 0 or not product:
            logger.info(f"{self.name}: product {barcode} not found")
            return None
        if not isinstance(product, dict):
            raise MalformedRecordError(f"{self.name} returned a product that is not an object")
        if not product.get("code"):
            product = dict(product, code=data.get("code") or barcode)
        return normalize_off_product(product, attach_impact_data=self.attach_impact_data)


class USDAClient(SourceClient):
    name = USDA_SOURCE

    def __init__(self, base_url: str = "https://api.nal.usda.gov/fdc/v1", api_key: str = "DEMO_KEY", **kwargs):
        super().__init__(base_url, **kwargs)
        self.api_key = api_key

    def fetch_product(self, barcode: str) -> Optional[RawProductRecord]:
        # FDC stores 12-digit UPCs, so drop the EAN-13 leading zero
        query = barcode[1:] if barcode.startswith("0") else barcode
        data = self._get("/foods/search", params={"query": query, "pageSize": 1, "api_key": self.api_key})
        foods = (data or {}).get("foods") or []
        if not isinstance(foods, list):
            raise MalformedRecordError(f"{self.name} returned foods that are not a list")
        if not foods:
            logger.info(f"{self.name}: product {barcode} not found")
            return None
        return normalize_usda_food(foods[0])


class EFSAClient(SourceClient):
    name = EFSA_SOURCE

    def __init__(self, base_url: str = "https://data.efsa.europa.eu/api/v1", **kwargs):
        super().__init__(base_url, **kwargs)

    def fetch_product(self, barcode: str) -> Optional[RawProductRecord]:
        data = self._get("/food-products/search", params={"identifier": barcode, "limit": 1})
        results = (data or {}).get("results") or []
        if not isinstance(results, list):
            raise MalformedRecordError(f"{self.name} returned results that are not a list")
        if not results:
            logger.info(f"{self.name}: product {barcode} not found")
            return None
        return normalize_efsa_item(results[0])


def default_clients(settings, session: Optional[requests.Session] = None) -> List[SourceClient]:
    """Primary, secondary and tertiary clients, in tier order."""
    session = session or requests.Session()
    common = {"session": session, "timeout": settings.REQUEST_TIMEOUT, "user_agent": settings.USER_AGENT}
    return [
        OpenFoodFactsClient(settings.OFF_BASE_URL, attach_impact_data=settings.ATTACH_IMPACT_DATA, **common),
        USDAClient(settings.USDA_BASE_URL, api_key=settings.USDA_API_KEY, **common),
        EFSAClient(settings.EFSA_BASE_URL, **common),
    ]
