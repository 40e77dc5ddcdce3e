import logging
from typing import List, Optional, Sequence

from ecofood.analysis import AnalysisBuilder, SourceTier
from ecofood.errors import FetchError, MalformedRecordError, NotFoundError
from ecofood.ingredients.enricher import IngredientEnricher
from ecofood.models import AnalysisResult
from ecofood.sources import SourceClient, default_clients

logger = logging.getLogger(__name__)

TIERS = [SourceTier.PRIMARY, SourceTier.SECONDARY, SourceTier.TERTIARY]


class MultiSourceResolver:
    """
    Tries the source tiers one after another and builds the analysis from the
    first tier that returns a record.

    A tier that reports not-found, returns a malformed record or fails at the
    transport level hands over to the next tier. When every tier came up empty
    the barcode is reported as not found; if the last tier failed with a
    transport error that error is raised instead.
    """

    def __init__(self, clients: Sequence[SourceClient], builder: Optional[AnalysisBuilder] = None):
        if not clients or len(clients) > len(TIERS):
            raise ValueError(f"expected 1 to {len(TIERS)} source clients, got {len(clients)}")
        self.clients = list(clients)
        self.builder = builder or AnalysisBuilder()

    @classmethod
    def from_settings(cls, settings, session=None) -> "MultiSourceResolver":
        builder = AnalysisBuilder(IngredientEnricher.from_settings(settings))
        return cls(default_clients(settings, session=session), builder)

    def analyze(self, barcode: str) -> AnalysisResult:
        last_error: Optional[FetchError] = None
        attempted: List[str] = []

        for tier, client in zip(TIERS, self.clients):
            attempted.append(client.name)
            last_error = None
            try:
                record = client.fetch_product(barcode)
            except FetchError as e:
                logger.warning(f"{client.name} ({tier.value}) failed for {barcode}: {e}")
                last_error = e
                continue
            except MalformedRecordError as e:
                logger.info(f"{client.name} ({tier.value}) returned a malformed record for {barcode}: {e}")
                continue

            if record is None:
                logger.info(f"{client.name} ({tier.value}) has no record for {barcode}")
                continue

            logger.info(f"Resolved {barcode} from {client.name} ({tier.value})")
            if tier is SourceTier.PRIMARY:
                return self.builder.build(record, tier)
            return self.builder.build_reduced(record, tier)

        if last_error is not None:
            raise last_error
        logger.info(f"No data for {barcode} in {', '.join(attempted)}")
        raise NotFoundError(barcode)
