"""Persistence backends for fx_fetcher."""

from __future__ import annotations

from fx_fetcher.config import DatabaseConnectionInfo
from fx_fetcher.db.base_backend import BackendStrategy, PersistenceResult
from fx_fetcher.db.relational_backend import RelationalBackend

__all__ = ["BackendStrategy", "PersistenceResult", "RelationalBackend", "create_backend"]


def create_backend(connection: DatabaseConnectionInfo | str) -> BackendStrategy:
    """Return the backend strategy for a parsed connection or a raw URL."""

    if isinstance(connection, str):
        connection = DatabaseConnectionInfo.from_url(connection)
    return RelationalBackend(connection.url)
