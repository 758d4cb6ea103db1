"""Exception hierarchy shared by the ingestion pipelines and entry points."""

from __future__ import annotations

from typing import Any, Mapping


class FxFetcherError(Exception):
    """Base class for every failure the fetcher reports to its caller.

    ``status_code`` is the HTTP status the entry points answer with when the
    error aborts an invocation.
    """

    status_code = 500

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ConfigurationError(FxFetcherError):
    """A required setting (API key, database URL) is missing or invalid."""


class UpstreamUnavailable(FxFetcherError):
    """The provider could not be reached or answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        merged = dict(details or {})
        if status is not None:
            merged.setdefault("status", status)
        super().__init__(message, details=merged)
        self.status = status


class MalformedUpstreamResponse(FxFetcherError):
    status_code = 400


class UpstreamLogicalError(FxFetcherError):
    """The provider answered, but with an explicit error result code."""

    status_code = 400


class NoTrackedCurrencyData(FxFetcherError):
    status_code = 400


UNIQUE_VIOLATION = "23505"


class PersistenceFailure(FxFetcherError):
    """A storage write failed.

    ``code`` holds the SQLSTATE when the backend could determine one.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        self.code = code

    @property
    def is_unique_violation(self) -> bool:
        return self.code == UNIQUE_VIOLATION or "duplicate" in self.message.lower()


__all__ = [
    "ConfigurationError",
    "FxFetcherError",
    "MalformedUpstreamResponse",
    "NoTrackedCurrencyData",
    "PersistenceFailure",
    "UNIQUE_VIOLATION",
    "UpstreamLogicalError",
    "UpstreamUnavailable",
]
