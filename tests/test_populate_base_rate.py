from __future__ import annotations

from datetime import date
from decimal import Decimal

from fx_fetcher.db.base_backend import PersistenceResult
from fx_fetcher.db.relational_backend import RelationalBackend
from fx_fetcher.errors import UNIQUE_VIOLATION, PersistenceFailure
from fx_fetcher.ingestion.ecos import EcosClient
from fx_fetcher.ingestion.models import PolicyRateRecord
from fx_fetcher.seeds.populate_base_rate import (
    ECOS_SKIPPED_MESSAGE,
    persist_policy_rate,
    populate_base_rate,
)


class RecordingBackend(RelationalBackend):
    """SQLite backend whose policy-rate writes can be forced to fail."""

    def __init__(self, url: str, *, insert_error=None, upsert_error=None) -> None:
        super().__init__(url)
        self.insert_error = insert_error
        self.upsert_error = upsert_error
        self.calls: list[str] = []

    def insert_policy_rate(self, record: PolicyRateRecord) -> PersistenceResult:
        self.calls.append("insert")
        if self.insert_error is not None:
            raise self.insert_error
        return super().insert_policy_rate(record)

    def upsert_policy_rate(self, record: PolicyRateRecord) -> PersistenceResult:
        self.calls.append("upsert")
        if self.upsert_error is not None:
            raise self.upsert_error
        return super().upsert_policy_rate(record)


def _ecos_client(fake_session, fake_response, payload) -> EcosClient:
    return EcosClient("ecos-key", session=fake_session({"ecos.bok": fake_response(payload)}))


def test_skipped_without_client(backend) -> None:
    outcome = populate_base_rate(date(2024, 1, 3), client=None, backend=backend)

    assert not outcome.attempted
    assert outcome.written.total == 0
    assert outcome.error == ECOS_SKIPPED_MESSAGE


def test_latest_observation_is_inserted(backend, fake_session, fake_response, ecos_row) -> None:
    payload = {
        "StatisticSearch": {
            "list_total_count": 3,
            "row": [ecos_row("20240101"), ecos_row("20240103", "3.25"), ecos_row("20240102")],
        }
    }

    outcome = populate_base_rate(
        date(2024, 1, 3),
        client=_ecos_client(fake_session, fake_response, payload),
        backend=backend,
    )

    assert outcome.attempted
    assert outcome.error is None
    assert outcome.written.inserted == 1
    stored = backend.fetch_policy_rates()
    assert [(row.time_period, row.data_value) for row in stored] == [("20240103", Decimal("3.25"))]


def test_no_data_sentinel_writes_nothing(backend, fake_session, fake_response) -> None:
    payload = {"StatisticSearch": {"RESULT": "정보-200", "MESSAGE": "해당하는 데이터가 없습니다."}}

    outcome = populate_base_rate(
        date(2024, 1, 3),
        client=_ecos_client(fake_session, fake_response, payload),
        backend=backend,
    )

    assert outcome.attempted
    assert outcome.error is None
    assert outcome.written.total == 0
    assert backend.fetch_policy_rates() == []


def test_upstream_errors_are_absorbed(backend, fake_session, fake_response) -> None:
    payload = {"StatisticSearch": {"RESULT": "에러-100", "MESSAGE": "인증키가 유효하지 않습니다."}}

    outcome = populate_base_rate(
        date(2024, 1, 3),
        client=_ecos_client(fake_session, fake_response, payload),
        backend=backend,
    )

    assert outcome.attempted
    assert outcome.error == "ECOS API error: 인증키가 유효하지 않습니다."


def test_unparsable_body_is_absorbed(backend, fake_session, fake_response) -> None:
    client = EcosClient(
        "ecos-key", session=fake_session({"ecos.bok": fake_response(text="<xml/>")})
    )

    outcome = populate_base_rate(date(2024, 1, 3), client=client, backend=backend)

    assert outcome.error is not None
    assert outcome.written.total == 0


def test_duplicate_insert_is_retried_as_upsert(backend) -> None:
    record = PolicyRateRecord(
        stat_code="722Y001",
        stat_name=None,
        cycle="D",
        unit_name=None,
        time_period="20240103",
        data_value=Decimal("3.5"),
    )
    backend.insert_policy_rate(record)
    record.data_value = Decimal("3.25")

    result = persist_policy_rate(record, backend)

    assert result.updated == 1
    assert backend.fetch_policy_rates()[0].data_value == Decimal("3.25")


def test_failed_upsert_retry_is_reported(sqlite_url, fake_session, fake_response, ecos_row) -> None:
    backend = RecordingBackend(
        sqlite_url,
        insert_error=PersistenceFailure("insert clashed", code=UNIQUE_VIOLATION),
        upsert_error=PersistenceFailure("upsert failed"),
    )
    backend.ensure_schema()
    payload = {"StatisticSearch": {"list_total_count": 1, "row": ecos_row("20240103")}}
    try:
        outcome = populate_base_rate(
            date(2024, 1, 3),
            client=_ecos_client(fake_session, fake_response, payload),
            backend=backend,
        )
    finally:
        backend.close()

    assert backend.calls == ["insert", "upsert"]
    assert outcome.attempted
    assert outcome.error == "upsert failed"
    assert outcome.written.total == 0


def test_duplicate_message_without_code_also_retries(sqlite_url, ecos_row, fake_session, fake_response) -> None:
    backend = RecordingBackend(
        sqlite_url, insert_error=PersistenceFailure("duplicate key value violates unique constraint")
    )
    backend.ensure_schema()
    payload = {"StatisticSearch": {"list_total_count": 1, "row": [ecos_row("20240103")]}}
    try:
        outcome = populate_base_rate(
            date(2024, 1, 3),
            client=_ecos_client(fake_session, fake_response, payload),
            backend=backend,
        )
    finally:
        backend.close()

    assert backend.calls == ["insert", "upsert"]
    assert outcome.error is None
    assert outcome.written.inserted == 1


def test_other_insert_failures_are_not_retried(sqlite_url, ecos_row, fake_session, fake_response) -> None:
    backend = RecordingBackend(sqlite_url, insert_error=PersistenceFailure("connection reset"))
    backend.ensure_schema()
    payload = {"StatisticSearch": {"list_total_count": 1, "row": [ecos_row("20240103")]}}
    try:
        outcome = populate_base_rate(
            date(2024, 1, 3),
            client=_ecos_client(fake_session, fake_response, payload),
            backend=backend,
        )
    finally:
        backend.close()

    assert backend.calls == ["insert"]
    assert outcome.error == "connection reset"
