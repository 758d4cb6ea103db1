"""Single-invocation entry point: run both pipelines and compose the reply."""

from __future__ import annotations

import argparse
import json
import os
from dataclasses import asdict, dataclass, replace
from datetime import date, datetime
from typing import Any

import requests

from fx_fetcher.config import Settings
from fx_fetcher.db import create_backend
from fx_fetcher.db.base_backend import BackendStrategy
from fx_fetcher.errors import FxFetcherError
from fx_fetcher.ingestion.ecos import EcosClient
from fx_fetcher.ingestion.koreaexim import KoreaEximClient
from fx_fetcher.seeds.populate_base_rate import PolicyRateOutcome, populate_base_rate
from fx_fetcher.seeds.populate_fx_rates import RatesOutcome, populate_fx_rates
from fx_fetcher.utils.date_range import kst_today, parse_date
from fx_fetcher.utils.logger import get_logger

LOGGER = get_logger(__name__)

__all__ = [
    "InvocationResult",
    "compose_result",
    "handle_invocation",
    "main",
    "parse_args",
    "run_fx_fetch",
]

SUCCESS_MESSAGE = "Exchange rate data was stored successfully."


@dataclass(slots=True)
class InvocationResult:
    """JSON body returned to the caller when the rate pipeline succeeded."""

    success: bool
    message: str
    inserted_count: int
    search_date: str
    ecos_api_called: bool
    ecos_inserted_count: int
    ecos_error: str | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def compose_result(rates: RatesOutcome, policy: PolicyRateOutcome) -> InvocationResult:
    """Merge both outcomes; the base-rate outcome never changes ``success``."""

    return InvocationResult(
        success=True,
        message=SUCCESS_MESSAGE,
        inserted_count=rates.written.total,
        search_date=rates.search_date_label,
        ecos_api_called=policy.attempted,
        ecos_inserted_count=policy.written.total,
        ecos_error=policy.error,
    )


def run_fx_fetch(
    settings: Settings,
    *,
    backend: BackendStrategy | None = None,
    session: requests.Session | None = None,
    search_date: date | None = None,
    now: datetime | None = None,
) -> InvocationResult:
    """Fetch, normalise and store rates, then the base rate, for one day.

    ``search_date`` defaults to today in KST. Errors from the rate pipeline
    propagate as :class:`FxFetcherError` subclasses.
    """

    day = search_date or kst_today(now)
    owns_backend = backend is None
    store = backend if backend is not None else create_backend(settings.database)
    rate_client = KoreaEximClient(
        settings.koreaexim_api_key,
        base_url=settings.koreaexim_url,
        timeout=settings.http_timeout,
        session=session,
    )
    ecos_client = (
        EcosClient(
            settings.ecos_api_key,
            base_url=settings.ecos_url,
            timeout=settings.http_timeout,
            session=session,
        )
        if settings.ecos_enabled
        else None
    )
    try:
        if settings.ensure_schema:
            store.ensure_schema()
        rates = populate_fx_rates(day, client=rate_client, backend=store)
        policy = populate_base_rate(day, client=ecos_client, backend=store)
    finally:
        if session is None:
            rate_client.close()
            if ecos_client is not None:
                ecos_client.close()
        if owns_backend:
            store.close()
    result = compose_result(rates, policy)
    LOGGER.info("Final response: %s", json.dumps(result.to_dict(), ensure_ascii=False))
    return result


def handle_invocation(
    settings: Settings | None = None,
    **kwargs: Any,
) -> tuple[int, dict[str, Any]]:
    """Run one invocation and map the outcome to ``(status, json_body)``."""

    try:
        resolved = settings if settings is not None else Settings.from_env()
        result = run_fx_fetch(resolved, **kwargs)
    except FxFetcherError as exc:
        LOGGER.error("Fx fetch aborted (%s): %s", type(exc).__name__, exc.message)
        return exc.status_code, exc.to_dict()
    except Exception as exc:
        LOGGER.exception("Unexpected error during fx fetch")
        return 500, {"error": "server error", "details": str(exc)}
    return 200, result.to_dict()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--date",
        dest="search_date",
        type=parse_date,
        help="Search date (YYYY-MM-DD); defaults to today in KST",
    )
    parser.add_argument(
        "--db",
        dest="database_url",
        help="Database URL overriding DATABASE_URL",
    )
    parser.add_argument(
        "--ensure-schema",
        dest="ensure_schema",
        action="store_true",
        default=False,
        help="Create the fx_rates and ecos_base_rate tables when missing",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    environ = dict(os.environ)
    if args.database_url:
        environ["DATABASE_URL"] = args.database_url
    try:
        settings = Settings.from_env(environ)
    except FxFetcherError as exc:
        print(json.dumps(exc.to_dict(), ensure_ascii=False, indent=2))
        return 1
    if args.ensure_schema:
        settings = replace(settings, ensure_schema=True)
    status, body = handle_invocation(settings, search_date=args.search_date)
    print(json.dumps(body, ensure_ascii=False, indent=2))
    return 0 if status == 200 else 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
