"""Data models shared across ingestion modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Mapping

KOREA_EXIM_PROVIDER = "KOREA_EXIM"


@dataclass(slots=True)
class RawRateObservation:
    """One Korea Exim AP01 row for a currency on the query date."""

    result: int | None
    cur_unit: str | None
    cur_nm: str | None
    deal_bas_r: str | None = None
    ttb: str | None = None
    tts: str | None = None
    bkpr: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RawRateObservation":
        result = payload.get("result")
        return cls(
            result=result if isinstance(result, int) else None,
            cur_unit=payload.get("cur_unit"),
            cur_nm=payload.get("cur_nm"),
            deal_bas_r=payload.get("deal_bas_r"),
            ttb=payload.get("ttb"),
            tts=payload.get("tts"),
            bkpr=payload.get("bkpr"),
            raw=dict(payload),
        )


@dataclass(slots=True)
class RateRecord:
    """Representation of a single ``fx_rates`` row."""

    base_date: date
    currency_code: str
    currency_name: str | None
    deal_bas_r: Decimal
    ttb: Decimal
    tts: Decimal
    provider: str = KOREA_EXIM_PROVIDER
    base_time: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class RawPolicyObservation:
    """One ECOS ``StatisticSearch`` row for the tracked series."""

    stat_code: str
    stat_name: str | None
    unit_name: str | None
    time_period: str
    data_value: str | None
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RawPolicyObservation":
        return cls(
            stat_code=str(payload.get("STAT_CODE") or ""),
            stat_name=payload.get("STAT_NAME"),
            unit_name=payload.get("UNIT_NAME"),
            time_period=str(payload.get("TIME") or ""),
            data_value=payload.get("DATA_VALUE"),
            raw=dict(payload),
        )


@dataclass(slots=True)
class PolicyRateRecord:
    """Representation of a single ``ecos_base_rate`` row."""

    stat_code: str
    stat_name: str | None
    cycle: str
    unit_name: str | None
    time_period: str
    data_value: Decimal | None
    raw: dict[str, Any] = field(default_factory=dict)
