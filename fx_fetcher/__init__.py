"""Public interface for the fx_fetcher package."""

from __future__ import annotations

from importlib import metadata as importlib_metadata

from fx_fetcher.config import Settings
from fx_fetcher.db.base_backend import BackendStrategy, PersistenceResult
from fx_fetcher.errors import FxFetcherError
from fx_fetcher.ingestion.models import PolicyRateRecord, RateRecord

__all__ = [
    "__version__",
    "BackendStrategy",
    "FxFetcherError",
    "PersistenceResult",
    "PolicyRateRecord",
    "RateRecord",
    "Settings",
    "handle_invocation",
    "run_fx_fetch",
]

try:
    __version__ = importlib_metadata.version("fx-fetcher")
except importlib_metadata.PackageNotFoundError:  # pragma: no cover - fallback for local runs
    __version__ = "0.1.0"


def run_fx_fetch(*args, **kwargs):
    from fx_fetcher.handler import run_fx_fetch as _run_fx_fetch

    return _run_fx_fetch(*args, **kwargs)


def handle_invocation(*args, **kwargs):
    from fx_fetcher.handler import handle_invocation as _handle_invocation

    return _handle_invocation(*args, **kwargs)
