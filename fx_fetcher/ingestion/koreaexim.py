"""Korea Exim AP01 (current exchange rate) client and normaliser."""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

import requests

from fx_fetcher.errors import MalformedUpstreamResponse, NoTrackedCurrencyData, UpstreamLogicalError
from fx_fetcher.ingestion.base import DEFAULT_TIMEOUT, JSONSourceClient
from fx_fetcher.ingestion.models import KOREA_EXIM_PROVIDER, RateRecord, RawRateObservation
from fx_fetcher.utils.date_range import format_search_date
from fx_fetcher.utils.logger import get_logger

LOGGER = get_logger(__name__)

KOREA_EXIM_URL = "https://oapi.koreaexim.go.kr/site/program/financial/exchangeJSON"

RESULT_SUCCESS = 1
RESULT_MESSAGES: dict[int, str] = {
    2: "Korea Exim API error: no exchange rate data for the requested date.",
    3: "Korea Exim API error: invalid authentication key or provider server error.",
}

# The AP01 feed has published Chinese yuan under more than one unit code, so the
# display name is checked as well.
TRACKED_CURRENCIES = frozenset({"USD", "JPY(100)", "CNY", "CNH"})
CHINESE_NAME_MARKERS = ("중국", "위안")

_PLACEHOLDERS = frozenset({"", "-"})


class KoreaEximClient(JSONSourceClient):
    """Fetch the AP01 rate table for one search date."""

    provider = "Korea Exim API"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = KOREA_EXIM_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(api_key, timeout=timeout, session=session)
        self.base_url = base_url

    def fetch(self, search_date: date) -> list[RawRateObservation]:
        params = {
            "authkey": self.api_key,
            "data": "AP01",
            "searchdate": format_search_date(search_date),
        }
        LOGGER.info("Requesting AP01 rates for searchdate=%s", params["searchdate"])
        payload = self._get_json(self.base_url, params=params)
        return parse_rate_payload(payload)


def parse_rate_payload(payload: Any) -> list[RawRateObservation]:
    """Validate an AP01 body and return its rows.

    The provider signals success through the ``result`` field of every row, so
    the first row decides whether the whole response is usable.
    """

    if not isinstance(payload, list) or not payload:
        raise MalformedUpstreamResponse(
            "Korea Exim API returned an empty or non-array response", details={"data": payload}
        )
    if not all(isinstance(item, Mapping) for item in payload):
        raise MalformedUpstreamResponse(
            "Korea Exim API response contains non-object rows", details={"data": payload}
        )
    observations = [RawRateObservation.from_payload(item) for item in payload]
    first_result = observations[0].raw.get("result")
    if observations[0].result != RESULT_SUCCESS:
        message = RESULT_MESSAGES.get(
            observations[0].result, f"Korea Exim API error: result={first_result}"
        )
        raise UpstreamLogicalError(message, details={"result": first_result, "data": payload})
    return observations


def parse_numeric(value: str | None, *, field_name: str = "value") -> Decimal:
    """Convert a comma-grouped rate string into a :class:`Decimal`.

    ``None``, ``""`` and ``"-"`` mean "no quote" and become zero; anything else
    that does not parse raises instead of being zeroed.
    """

    if value is None or value in _PLACEHOLDERS:
        return Decimal(0)
    text = str(value).strip()
    try:
        number = Decimal(text.replace(",", ""))
    except InvalidOperation as exc:
        raise MalformedUpstreamResponse(
            f"Unparsable numeric value for {field_name}: {value!r}"
        ) from exc
    if not number.is_finite():
        raise MalformedUpstreamResponse(f"Unparsable numeric value for {field_name}: {value!r}")
    return number


def is_tracked_currency(observation: RawRateObservation) -> bool:
    unit = observation.cur_unit
    if not unit:
        return False
    if unit in TRACKED_CURRENCIES:
        return True
    name = observation.cur_nm or ""
    return any(marker in name for marker in CHINESE_NAME_MARKERS)


def normalise_rates(
    observations: Iterable[RawRateObservation], search_date: date
) -> list[RateRecord]:
    """Filter to tracked currencies and build one :class:`RateRecord` per row."""

    retained = [
        item
        for item in observations
        if item.result == RESULT_SUCCESS and is_tracked_currency(item)
    ]
    if not retained:
        raise NoTrackedCurrencyData(
            "No tracked currency rates in the Korea Exim response",
            details={"search_date": format_search_date(search_date)},
        )

    records: list[RateRecord] = []
    for item in retained:
        code = item.cur_unit or ""
        records.append(
            RateRecord(
                base_date=search_date,
                currency_code=code,
                currency_name=item.cur_nm or None,
                deal_bas_r=parse_numeric(item.deal_bas_r, field_name=f"{code}.deal_bas_r"),
                ttb=parse_numeric(item.ttb, field_name=f"{code}.ttb"),
                tts=parse_numeric(item.tts, field_name=f"{code}.tts"),
                provider=KOREA_EXIM_PROVIDER,
                raw=item.raw,
            )
        )
    LOGGER.info("Normalised %s tracked currency rates", len(records))
    return records


__all__ = [
    "KOREA_EXIM_URL",
    "KoreaEximClient",
    "TRACKED_CURRENCIES",
    "is_tracked_currency",
    "normalise_rates",
    "parse_numeric",
    "parse_rate_payload",
]
