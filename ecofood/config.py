"""
Runtime settings.

Values come from environment variables (a local .env file is loaded first).
Example: export REMOTE_LOOKUPS=false
"""
import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings:
    def __init__(self):
        # Source tiers
        self.OFF_BASE_URL = os.getenv("OFF_BASE_URL", "https://world.openfoodfacts.org/api/v2")
        self.USDA_BASE_URL = os.getenv("USDA_BASE_URL", "https://api.nal.usda.gov/fdc/v1")
        self.USDA_API_KEY = os.getenv("USDA_API_KEY", "DEMO_KEY")
        self.EFSA_BASE_URL = os.getenv("EFSA_BASE_URL", "https://data.efsa.europa.eu/api/v1")
        self.REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "10"))
        self.USER_AGENT = os.getenv("USER_AGENT", "EcoFood/1.0 (+ingredient-analyzer)")

        # Attach category life-cycle data to primary records
        self.ATTACH_IMPACT_DATA = _flag("ATTACH_IMPACT_DATA", "true")

        # Ingredient enrichment
        self.REMOTE_LOOKUPS = _flag("REMOTE_LOOKUPS", "true")
        self.LOOKUP_TIMEOUT = float(os.getenv("LOOKUP_TIMEOUT", "5"))
        self.ENRICH_WORKERS = int(os.getenv("ENRICH_WORKERS", "4"))

        # HTTP shell
        self.RATE_LIMIT_MAX = int(os.getenv("RATE_LIMIT_MAX", "10"))
        self.RATE_LIMIT_WINDOW = float(os.getenv("RATE_LIMIT_WINDOW", "60"))
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
