"""Fetch today's Korea Exim rates and upsert the tracked currencies."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from fx_fetcher.db.base_backend import BackendStrategy, PersistenceResult
from fx_fetcher.ingestion.koreaexim import KoreaEximClient, normalise_rates
from fx_fetcher.utils.date_range import format_search_date
from fx_fetcher.utils.logger import get_logger

LOGGER = get_logger(__name__)

__all__ = ["RatesOutcome", "populate_fx_rates"]


@dataclass(slots=True)
class RatesOutcome:
    """Result of the exchange-rate pipeline; only built when it succeeded."""

    search_date: date
    written: PersistenceResult

    @property
    def search_date_label(self) -> str:
        return format_search_date(self.search_date)


def populate_fx_rates(
    search_date: date,
    *,
    client: KoreaEximClient,
    backend: BackendStrategy,
) -> RatesOutcome:
    """Run fetch → normalise → upsert for ``search_date``.

    Every failure propagates: exchange rates are the function's primary
    deliverable, so there is no partial result to report.
    """

    observations = client.fetch(search_date)
    records = normalise_rates(observations, search_date)
    written = backend.upsert_rates(records)
    LOGGER.info(
        "fx_rates for %s → inserted %s rows, updated %s rows (total %s)",
        search_date,
        written.inserted,
        written.updated,
        written.total,
    )
    return RatesOutcome(search_date=search_date, written=written)
