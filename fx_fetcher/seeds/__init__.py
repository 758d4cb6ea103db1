"""Ingestion pipelines that populate the fx_rates and ecos_base_rate tables."""

from __future__ import annotations

from fx_fetcher.seeds.populate_base_rate import PolicyRateOutcome, populate_base_rate
from fx_fetcher.seeds.populate_fx_rates import RatesOutcome, populate_fx_rates

__all__ = ["PolicyRateOutcome", "RatesOutcome", "populate_base_rate", "populate_fx_rates"]
