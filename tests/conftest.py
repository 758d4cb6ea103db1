"""Shared fixtures: fake HTTP sessions, provider payloads and SQLite backends."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest
import requests

from fx_fetcher.config import DatabaseConnectionInfo, Settings
from fx_fetcher.db.relational_backend import RelationalBackend


class FakeResponse:
    def __init__(
        self,
        payload: Any = None,
        *,
        status_code: int = 200,
        text: str | None = None,
        reason: str = "OK",
    ) -> None:
        self.status_code = status_code
        self.reason = reason
        self.text = text if text is not None else json.dumps(payload, ensure_ascii=False)

    def json(self) -> Any:
        return json.loads(self.text)

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} {self.reason}", response=self)


class FakeSession:
    """Answers GETs by matching a URL fragment; records every call."""

    def __init__(self, routes: dict[str, Any]) -> None:
        self.routes = routes
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def get(self, url: str, params: dict[str, str] | None = None, timeout: float | None = None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        for fragment, outcome in self.routes.items():
            if fragment in url:
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
        raise AssertionError(f"Unexpected URL requested: {url}")

    def close(self) -> None:
        self.closed = True


def _ap01_row(cur_unit: str, cur_nm: str, deal_bas_r: str, ttb: str, tts: str) -> dict[str, Any]:
    return {
        "result": 1,
        "cur_unit": cur_unit,
        "cur_nm": cur_nm,
        "deal_bas_r": deal_bas_r,
        "ttb": ttb,
        "tts": tts,
        "bkpr": deal_bas_r.split(".")[0],
        "yy_efee_r": "0",
        "ten_dd_efee_r": "0",
        "kftc_bkpr": deal_bas_r.split(".")[0],
        "kftc_deal_bas_r": deal_bas_r,
    }


@pytest.fixture
def ap01_rows() -> list[dict[str, Any]]:
    return [
        _ap01_row("AED", "아랍에미리트 디르함", "361.23", "357.61", "364.84"),
        _ap01_row("CNH", "위안화", "182.15", "180.33", "183.97"),
        _ap01_row("EUR", "유로", "1,432.10", "1,417.78", "1,446.42"),
        _ap01_row("JPY(100)", "일본 옌", "917.54", "908.37", "926.72"),
        _ap01_row("USD", "미국 달러", "1,326.50", "1,313.24", "1,339.77"),
    ]


@pytest.fixture
def ecos_row() -> Callable[..., dict[str, Any]]:
    def _build(time_period: str, value: str = "3.5") -> dict[str, Any]:
        return {
            "STAT_CODE": "722Y001",
            "STAT_NAME": "1.3.1. 한국은행 기준금리 및 여수신금리",
            "ITEM_CODE1": "0101000",
            "ITEM_NAME1": "한국은행 기준금리",
            "UNIT_NAME": "연%",
            "TIME": time_period,
            "DATA_VALUE": value,
        }

    return _build


@pytest.fixture
def fake_response() -> type[FakeResponse]:
    return FakeResponse


@pytest.fixture
def fake_session() -> type[FakeSession]:
    return FakeSession


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'fx.db'}"


@pytest.fixture
def backend(sqlite_url: str) -> Iterator[RelationalBackend]:
    store = RelationalBackend(sqlite_url)
    store.ensure_schema()
    try:
        yield store
    finally:
        store.close()


@pytest.fixture
def settings(sqlite_url: str) -> Settings:
    return Settings(
        koreaexim_api_key="exim-key",
        database=DatabaseConnectionInfo.from_url(sqlite_url),
        ecos_api_key="ecos-key",
        ensure_schema=True,
    )
