from typing import Optional


class EcoFoodError(Exception):
    pass


class NotFoundError(EcoFoodError):
    """Barcode absent from every source tier."""

    def __init__(self, barcode: str, message: str = "No data available for this product"):
        super().__init__(f"{message}: {barcode}")
        self.barcode = barcode


class FetchError(EcoFoodError):
    """Transport-level failure talking to an upstream provider."""

    def __init__(self, message: str, source: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.source = source
        self.status_code = status_code


class MalformedRecordError(EcoFoodError):
    pass


class EnrichmentDegraded(EcoFoodError):
    """A definition or reference lookup could not be completed."""
