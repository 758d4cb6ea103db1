"""Bank of Korea ECOS ``StatisticSearch`` client and policy-rate reconciler."""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Sequence

import requests

from fx_fetcher.errors import MalformedUpstreamResponse, UpstreamLogicalError
from fx_fetcher.ingestion.base import DEFAULT_TIMEOUT, JSONSourceClient
from fx_fetcher.ingestion.models import PolicyRateRecord, RawPolicyObservation
from fx_fetcher.utils.date_range import DateRange, format_search_date
from fx_fetcher.utils.logger import get_logger

LOGGER = get_logger(__name__)

ECOS_URL = "https://ecos.bok.or.kr/api/StatisticSearch"

BASE_RATE_STAT_CODE = "722Y001"
BASE_RATE_ITEM_CODE = "0101000"
DAILY_CYCLE = "D"

# ECOS reports "no rows in the requested range" with this informational code.
NO_DATA_RESULT = "정보-200"


class EcosClient(JSONSourceClient):
    """Query one ECOS statistic series over a date window."""

    provider = "ECOS API"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = ECOS_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
        stat_code: str = BASE_RATE_STAT_CODE,
        item_code: str = BASE_RATE_ITEM_CODE,
        cycle: str = DAILY_CYCLE,
        first_row: int = 1,
        last_row: int = 10,
    ) -> None:
        super().__init__(api_key, timeout=timeout, session=session)
        self.base_url = base_url.rstrip("/")
        self.stat_code = stat_code
        self.item_code = item_code
        self.cycle = cycle
        self.first_row = first_row
        self.last_row = last_row

    def build_url(self, window: DateRange) -> str:
        segments = [
            self.api_key,
            "json",
            "kr",
            str(self.first_row),
            str(self.last_row),
            self.stat_code,
            self.cycle,
            format_search_date(window.start),
            format_search_date(window.end),
            self.item_code,
            "?",
            "?",
            "?",
        ]
        return f"{self.base_url}/" + "/".join(segments)

    def fetch(self, window: DateRange) -> list[RawPolicyObservation]:
        LOGGER.info(
            "Requesting ECOS series stat_code=%s item_code=%s cycle=%s from %s to %s",
            self.stat_code,
            self.item_code,
            self.cycle,
            window.start,
            window.end,
        )
        payload = self._get_json(self.build_url(window))
        return interpret_statistic_search(payload)


def interpret_statistic_search(payload: Any) -> list[RawPolicyObservation]:
    """Turn an ECOS response into observations.

    Missing containers and the ``정보-200`` code mean "no data" and yield an
    empty list; any other result code raises :class:`UpstreamLogicalError`.
    """

    if not isinstance(payload, Mapping):
        raise MalformedUpstreamResponse(
            "ECOS API response is not a JSON object", details={"data": payload}
        )
    search = payload.get("StatisticSearch")
    if not isinstance(search, Mapping):
        LOGGER.warning(
            "ECOS response has no StatisticSearch container (keys=%s, RESULT=%s); treating as no data",
            sorted(payload.keys()),
            payload.get("RESULT"),
        )
        return []

    result_code, result_message = _unpack_result(search)
    if result_code and result_code != NO_DATA_RESULT:
        error_message = result_message or result_code or search.get("CODE")
        raise UpstreamLogicalError(
            f"ECOS API error: {error_message}", details={"result": result_code}
        )

    row = search.get("row")
    if result_code == NO_DATA_RESULT or not row or search.get("list_total_count") == 0:
        LOGGER.info(
            "ECOS returned no rows (list_total_count=%s, RESULT=%s, MESSAGE=%s)",
            search.get("list_total_count"),
            result_code,
            result_message,
        )
        return []

    return [RawPolicyObservation.from_payload(item) for item in as_row_list(row)]


def _unpack_result(search: Mapping[str, Any]) -> tuple[str | None, str | None]:
    result = search.get("RESULT")
    message = search.get("MESSAGE")
    if isinstance(result, Mapping):
        message = message or result.get("MESSAGE")
        result = result.get("CODE")
    return (str(result) if result else None, str(message) if message else None)


def as_row_list(row: Any) -> list[Mapping[str, Any]]:
    """ECOS returns a bare object when a query matches one row."""

    rows: Sequence[Any] = row if isinstance(row, list) else [row]
    if not all(isinstance(item, Mapping) for item in rows):
        raise MalformedUpstreamResponse("ECOS API rows must be JSON objects", details={"row": row})
    return list(rows)


def parse_data_value(value: str | None) -> Decimal | None:
    if value is None or not str(value).strip():
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        LOGGER.warning("Ignoring unparsable ECOS DATA_VALUE %r", value)
        return None
    return number if number.is_finite() else None


def latest_observation(
    observations: Iterable[RawPolicyObservation],
) -> RawPolicyObservation | None:
    """Return the observation with the greatest period label, if any.

    Period labels are fixed-width and zero-padded, so string order is time
    order. ``max`` keeps the first of equal labels.
    """

    return max(observations, key=lambda item: item.time_period, default=None)


def reconcile_policy_rate(
    observations: Iterable[RawPolicyObservation], *, cycle: str = DAILY_CYCLE
) -> PolicyRateRecord | None:
    latest = latest_observation(observations)
    if latest is None:
        return None
    LOGGER.info(
        "Selected latest ECOS observation TIME=%s DATA_VALUE=%s",
        latest.time_period,
        latest.data_value,
    )
    return PolicyRateRecord(
        stat_code=latest.stat_code,
        stat_name=latest.stat_name or None,
        cycle=cycle,
        unit_name=latest.unit_name or None,
        time_period=latest.time_period,
        data_value=parse_data_value(latest.data_value),
        raw=latest.raw,
    )


__all__ = [
    "BASE_RATE_ITEM_CODE",
    "BASE_RATE_STAT_CODE",
    "DAILY_CYCLE",
    "ECOS_URL",
    "EcosClient",
    "NO_DATA_RESULT",
    "as_row_list",
    "interpret_statistic_search",
    "latest_observation",
    "parse_data_value",
    "reconcile_policy_rate",
]
