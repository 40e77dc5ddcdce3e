import logging
from functools import lru_cache
from typing import Any, Dict

from fastapi import Body, Depends, FastAPI, HTTPException, Request

from ecofood import __version__
from ecofood.analysis import AnalysisBuilder
from ecofood.api.validation import RateLimiter, sanitize_barcode, validate_barcode
from ecofood.config import get_settings
from ecofood.errors import FetchError, MalformedRecordError, NotFoundError
from ecofood.ingredients.enricher import IngredientEnricher
from ecofood.models import AnalysisResult
from ecofood.resolver import MultiSourceResolver
from ecofood.sources import normalize_off_product

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_resolver() -> MultiSourceResolver:
    return MultiSourceResolver.from_settings(settings)


@lru_cache(maxsize=1)
def get_builder() -> AnalysisBuilder:
    return AnalysisBuilder(IngredientEnricher.from_settings(settings))


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    return RateLimiter(settings.RATE_LIMIT_MAX, settings.RATE_LIMIT_WINDOW)


app = FastAPI(title="EcoFood", version=__version__)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/scan/barcode/{barcode}", response_model=AnalysisResult)
def scan_barcode(barcode: str, request: Request,
                 resolver: MultiSourceResolver = Depends(get_resolver),
                 limiter: RateLimiter = Depends(get_rate_limiter)):
    client = request.client.host if request.client else "anonymous"
    if not limiter.is_allowed(client):
        raise HTTPException(status_code=429, detail="Too many scans. Please wait a moment and try again")

    clean = sanitize_barcode(barcode)
    if not validate_barcode(clean):
        raise HTTPException(status_code=400, detail=f"Invalid barcode: {barcode!r}")

    try:
        return resolver.analyze(clean)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except FetchError as e:
        logger.warning(f"Upstream failure for {clean}: {e}")
        raise HTTPException(status_code=502, detail=str(e))


@app.post("/analyze/product", response_model=AnalysisResult)
def analyze_product(product: Dict[str, Any] = Body(...),
                    builder: AnalysisBuilder = Depends(get_builder)):
    """Analyze an Open Food Facts style product object supplied by the caller."""
    try:
        record = normalize_off_product(product, attach_impact_data=settings.ATTACH_IMPACT_DATA)
    except MalformedRecordError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return builder.build(record)
