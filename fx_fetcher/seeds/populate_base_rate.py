"""Fetch the latest Bank of Korea base rate and store it, best effort."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from fx_fetcher.db.base_backend import BackendStrategy, PersistenceResult
from fx_fetcher.errors import PersistenceFailure
from fx_fetcher.ingestion.ecos import EcosClient, reconcile_policy_rate
from fx_fetcher.ingestion.models import PolicyRateRecord
from fx_fetcher.utils.date_range import trailing_window
from fx_fetcher.utils.logger import get_logger

LOGGER = get_logger(__name__)

__all__ = [
    "ECOS_SKIPPED_MESSAGE",
    "PolicyRateOutcome",
    "persist_policy_rate",
    "populate_base_rate",
]

ECOS_SKIPPED_MESSAGE = "ECOS_API_KEY environment variable is not set; base-rate fetch skipped."
SEARCH_WINDOW_DAYS = 7


@dataclass(slots=True)
class PolicyRateOutcome:
    """Result of the base-rate pipeline; failures are carried in ``error``."""

    attempted: bool
    written: PersistenceResult = field(default_factory=PersistenceResult)
    error: str | None = None


def persist_policy_rate(record: PolicyRateRecord, backend: BackendStrategy) -> PersistenceResult:
    """Insert ``record``, retrying once as an upsert if the row already exists."""

    try:
        return backend.insert_policy_rate(record)
    except PersistenceFailure as exc:
        if not exc.is_unique_violation:
            raise
        LOGGER.info(
            "ecos_base_rate %s/%s already stored; retrying as upsert",
            record.stat_code,
            record.time_period,
        )
    return backend.upsert_policy_rate(record)


def populate_base_rate(
    search_date: date,
    *,
    client: EcosClient | None,
    backend: BackendStrategy,
    window_days: int = SEARCH_WINDOW_DAYS,
) -> PolicyRateOutcome:
    """Run fetch → reconcile → persist over the week ending on ``search_date``.

    Nothing raised here reaches the caller; the error text is returned on the
    outcome instead. ``client`` is ``None`` when no ECOS key is configured.
    """

    if client is None:
        LOGGER.warning(ECOS_SKIPPED_MESSAGE)
        return PolicyRateOutcome(attempted=False, error=ECOS_SKIPPED_MESSAGE)

    try:
        observations = client.fetch(trailing_window(search_date, window_days))
        record = reconcile_policy_rate(observations, cycle=client.cycle)
        if record is None:
            LOGGER.info("No ECOS observations in the %s days up to %s", window_days, search_date)
            return PolicyRateOutcome(attempted=True)
        written = persist_policy_rate(record, backend)
    except Exception as exc:
        LOGGER.exception("ECOS base-rate pipeline failed")
        return PolicyRateOutcome(attempted=True, error=str(exc) or type(exc).__name__)

    LOGGER.info("ecos_base_rate: %s rows written", written.total)
    return PolicyRateOutcome(attempted=True, written=written)
