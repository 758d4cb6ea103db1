"""Runtime configuration read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping
from urllib.parse import urlparse, urlunparse

from fx_fetcher.errors import ConfigurationError
from fx_fetcher.ingestion.base import DEFAULT_TIMEOUT
from fx_fetcher.ingestion.ecos import ECOS_URL
from fx_fetcher.ingestion.koreaexim import KOREA_EXIM_URL

KOREA_EXIM_KEY_ENV = "KOREA_EXIM_API_KEY"
ECOS_KEY_ENV = "ECOS_API_KEY"
DATABASE_URL_ENVS = ("DATABASE_URL", "SUPABASE_DB_URL")


class DatabaseBackend(str, Enum):
    """Supported database engines for fx_fetcher."""

    SQLITE = "sqlite"
    MYSQL = "mysql"
    POSTGRES = "postgres"

    @classmethod
    def resolve_backend_and_scheme(cls, scheme: str) -> tuple["DatabaseBackend", str]:
        """Return backend enum + canonical scheme used in connection URLs."""

        if not scheme:
            raise ConfigurationError("DATABASE_URL must include a scheme (e.g. postgresql://)")
        scheme_lower = scheme.lower()
        base_scheme, _, driver = scheme_lower.partition("+")
        if base_scheme in {"postgresql", "postgres", "postgressql"}:
            # Keep driver hints such as ``postgresql+psycopg``.
            canonical_scheme = f"postgresql+{driver}" if driver else "postgresql"
            return cls.POSTGRES, canonical_scheme
        if base_scheme == "sqlite":
            return cls.SQLITE, scheme_lower
        if base_scheme == "mysql":
            canonical_scheme = scheme_lower if driver else "mysql"
            return cls.MYSQL, canonical_scheme
        raise ConfigurationError(
            "Unsupported database backend. Supported values are SQLite, MySQL, and Postgres."
        )


@dataclass(slots=True)
class DatabaseConnectionInfo:
    """Represents how fx_fetcher should talk to the persistence layer."""

    backend: DatabaseBackend
    url: str
    name: str | None
    host: str | None

    @classmethod
    def from_url(cls, url: str) -> "DatabaseConnectionInfo":
        """Create a connection object by parsing a database URL/DSN."""

        parsed = urlparse(url)
        if not parsed.scheme:
            raise ConfigurationError("DATABASE_URL must include a scheme (e.g. postgresql://)")
        backend, canonical_scheme = DatabaseBackend.resolve_backend_and_scheme(parsed.scheme)
        cleaned_url = url
        if parsed.scheme != canonical_scheme:
            parsed = parsed._replace(scheme=canonical_scheme)
            cleaned_url = urlunparse(parsed)
        name = parsed.path[1:] if parsed.path and parsed.path != "/" else None
        return cls(backend=backend, url=cleaned_url, name=name, host=parsed.hostname)


@dataclass(slots=True)
class Settings:
    """Credentials, endpoints and limits for one fetcher deployment."""

    koreaexim_api_key: str
    database: DatabaseConnectionInfo
    ecos_api_key: str | None = None
    koreaexim_url: str = KOREA_EXIM_URL
    ecos_url: str = ECOS_URL
    http_timeout: float = DEFAULT_TIMEOUT
    ensure_schema: bool = False

    @property
    def ecos_enabled(self) -> bool:
        return bool(self.ecos_api_key)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables.

        ``KOREA_EXIM_API_KEY`` and a database URL are required; ``ECOS_API_KEY``
        is optional and its absence only disables the policy-rate fetch.
        """

        env = os.environ if environ is None else environ
        koreaexim_key = (env.get(KOREA_EXIM_KEY_ENV) or "").strip()
        if not koreaexim_key:
            raise ConfigurationError(f"{KOREA_EXIM_KEY_ENV} environment variable is not set.")
        database_url = next(
            (env[name].strip() for name in DATABASE_URL_ENVS if (env.get(name) or "").strip()),
            None,
        )
        if not database_url:
            raise ConfigurationError(
                f"Database URL is not set; define one of {', '.join(DATABASE_URL_ENVS)}."
            )
        timeout_raw = env.get("FX_FETCHER_HTTP_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT
        except ValueError as exc:
            raise ConfigurationError(
                f"FX_FETCHER_HTTP_TIMEOUT must be a number of seconds, got {timeout_raw!r}"
            ) from exc
        if timeout <= 0:
            raise ConfigurationError("FX_FETCHER_HTTP_TIMEOUT must be positive")
        return cls(
            koreaexim_api_key=koreaexim_key,
            database=DatabaseConnectionInfo.from_url(database_url),
            ecos_api_key=(env.get(ECOS_KEY_ENV) or "").strip() or None,
            koreaexim_url=env.get("KOREA_EXIM_API_URL") or KOREA_EXIM_URL,
            ecos_url=env.get("ECOS_API_URL") or ECOS_URL,
            http_timeout=timeout,
            ensure_schema=_env_flag(env.get("FX_FETCHER_ENSURE_SCHEMA")),
        )


def _env_flag(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


__all__ = ["DatabaseBackend", "DatabaseConnectionInfo", "Settings"]
