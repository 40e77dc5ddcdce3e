from datetime import date
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class Category(str, Enum):
    BEVERAGES = "beverages"
    SNACKS = "snacks"
    DAIRY = "dairy"
    MEAT = "meat"
    VEGETABLES = "vegetables"
    FRUITS = "fruits"
    GRAINS = "grains"
    PROCESSED_FOODS = "processed-foods"
    PLANT_BASED = "plant-based"
    SEAFOOD = "seafood"
    DEFAULT = "default"


class RiskLevel(str, Enum):
    SAFE = "safe"
    CAUTION = "caution"
    MODERATE = "moderate"
    HIGH = "high"


class GMOStatus(str, Enum):
    GMO_FREE = "gmo-free"
    LIKELY_GMO = "likely-gmo"
    CONTAINS_GMO = "contains-gmo"


class Sustainability(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Allergenicity(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProcessingLevel(str, Enum):
    MINIMAL = "minimal"
    MODERATE = "moderate"
    HIGH = "high"


class ScientificReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    summary: str = ""
    confidence: int = 80
    peer_reviewed: bool = True
    source: str = "OTHER"
    publication_year: Optional[int] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _scale_confidence(cls, value):
        # providers send either a 0-1 fraction or a 0-100 percentage
        if value is None:
            return 80
        value = float(value)
        if 0 < value <= 1:
            value *= 100
        return int(round(clamp(value, 0, 100)))


class ProviderEnvironmentalData(BaseModel):
    """Environmental metrics a provider attached to the product, all optional."""
    model_config = ConfigDict(frozen=True)

    carbon_footprint: Optional[float] = None
    carbon_footprint_score: Optional[float] = None
    water_usage: Optional[float] = None
    packaging_score: Optional[int] = None
    transport_score: Optional[int] = None
    data_reliability: Optional[float] = None
    source: Optional[str] = None


class Nutriments(BaseModel):
    model_config = ConfigDict(frozen=True)

    energy_kcal: Optional[float] = None
    sugars: Optional[float] = None
    salt: Optional[float] = None
    saturated_fat: Optional[float] = None
    fiber: Optional[float] = None

    def is_empty(self) -> bool:
        return all(v is None for v in self.model_dump().values())


class RawIngredientRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = ""
    id: Optional[str] = None
    description: Optional[str] = None
    vegan: Optional[bool] = None
    vegetarian: Optional[bool] = None
    organic: Optional[bool] = None
    from_palm_oil: Optional[bool] = None
    scientific_references: Optional[List[ScientificReference]] = None
    health_concerns: Optional[List[str]] = None
    gmo_risk: Optional[str] = None

    @property
    def name(self) -> str:
        if self.text and self.text.strip():
            return self.text.strip()
        if self.id:
            return self.id.split(":", 1)[-1].replace("-", " ").strip()
        return ""


class RawProductRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str = ""
    product_name: str = ""
    brands: str = ""
    image_url: str = ""
    categories_tags: List[str] = Field(default_factory=list)
    countries_tags: List[str] = Field(default_factory=list)
    packaging: str = ""
    nutriments: Nutriments = Field(default_factory=Nutriments)
    nutriscore_grade: Optional[str] = None
    ecoscore_grade: Optional[str] = None
    nova_group: Optional[int] = None
    ingredients: List[RawIngredientRecord] = Field(default_factory=list)
    ingredients_text: str = ""
    additives_tags: List[str] = Field(default_factory=list)
    allergens_tags: List[str] = Field(default_factory=list)
    labels_tags: List[str] = Field(default_factory=list)
    origins_tags: List[str] = Field(default_factory=list)
    ingredients_analysis_tags: List[str] = Field(default_factory=list)
    manufacturing_places: str = ""
    environmental_data: Optional[ProviderEnvironmentalData] = None
    data_quality_score: Optional[float] = None
    last_updated: Optional[date] = None
    source: str = "Open Food Facts"


class IngredientAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    risk_level: RiskLevel
    description: str
    concerns: Optional[List[str]] = None
    scientific_references: Optional[List[ScientificReference]] = None
    gmo_status: GMOStatus
    gmo_confidence: int
    sustainability: Sustainability
    allergenicity: Allergenicity
    processing_level: ProcessingLevel


class EnvironmentalProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    carbon_footprint: float
    water_footprint: float
    packaging_score: int
    transport_score: int
    land_use_score: float
    biodiversity_impact: float
    deforestation_risk: float
    confidence_score: int
    methodology: str


class NutritionalProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    grade: Optional[str] = None
    calories: float = 0
    sugar: float = 0
    salt: float = 0
    saturated_fat: float = 0
    fiber: float = 0


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    barcode: str
    product_name: str
    brand: str = ""
    image_url: str = ""
    overall_score: int
    environmental_score: int
    nutritional_score: int
    safety_score: int
    gmo_free: bool
    concerns: List[str]
    ingredients: List[IngredientAnalysis]
    environmental_data: EnvironmentalProfile
    nutritional_data: NutritionalProfile
    data_source: str
    last_updated: date
    trust_score: int
    available_in: List[str] = Field(default_factory=list)
