"""Backend strategy interfaces for fx_fetcher."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Sequence

from fx_fetcher.ingestion.models import PolicyRateRecord, RateRecord


@dataclass(slots=True)
class PersistenceResult:
    """Represents how many rows were inserted or updated in a batch."""

    inserted: int = 0
    updated: int = 0

    @property
    def total(self) -> int:
        """Return the total number of affected rows."""

        return self.inserted + self.updated


class BackendStrategy(ABC):
    """Common interface implemented by every database backend.

    Write methods raise :class:`fx_fetcher.errors.PersistenceFailure`; a
    uniqueness violation is reported with ``code == "23505"`` whatever the
    engine.
    """

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create required tables and verify connectivity."""

    @abstractmethod
    def upsert_rates(self, rows: Sequence[RateRecord]) -> PersistenceResult:
        """Insert or overwrite rates keyed by (base_date, currency_code, provider)."""

    @abstractmethod
    def insert_policy_rate(self, record: PolicyRateRecord) -> PersistenceResult:
        """Insert one policy-rate row, failing on a (stat_code, time_period) clash."""

    @abstractmethod
    def upsert_policy_rate(self, record: PolicyRateRecord) -> PersistenceResult:
        """Insert or overwrite one policy-rate row keyed by (stat_code, time_period)."""

    @abstractmethod
    def fetch_rates(
        self,
        start: date | None = None,
        end: date | None = None,
        *,
        provider: str | None = None,
    ) -> list[RateRecord]:
        """Return stored rates constrained by the provided dates."""

    @abstractmethod
    def fetch_policy_rates(self, stat_code: str | None = None) -> list[PolicyRateRecord]:
        """Return stored policy-rate rows ordered by period."""

    def close(self) -> None:  # pragma: no cover - optional cleanup hook
        """Backends may override to release connections/resources."""

    def __enter__(self) -> "BackendStrategy":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["BackendStrategy", "PersistenceResult"]
