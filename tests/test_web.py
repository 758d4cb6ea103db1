from __future__ import annotations

from fastapi.testclient import TestClient

from fx_fetcher.web import create_app


def _ecos_payload(ecos_row):
    return {"StatisticSearch": {"list_total_count": 1, "row": ecos_row("20240103")}}


def test_post_root_runs_invocation(
    settings, backend, fake_session, fake_response, ap01_rows, ecos_row
) -> None:
    session = fake_session(
        {"koreaexim": fake_response(ap01_rows), "ecos.bok": fake_response(_ecos_payload(ecos_row))}
    )
    client = TestClient(create_app(settings, backend=backend, session=session))

    response = client.post("/")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["inserted_count"] == 3
    assert body["ecos_inserted_count"] == 1
    assert len(backend.fetch_rates()) == 3


def test_legacy_path_and_get_are_accepted(
    settings, backend, fake_session, fake_response, ap01_rows
) -> None:
    session = fake_session(
        {"koreaexim": fake_response(ap01_rows), "ecos.bok": fake_response({"RESULT": {"CODE": "정보-200"}})}
    )
    client = TestClient(create_app(settings, backend=backend, session=session))

    assert client.post("/fx_fetcher").status_code == 200
    second = client.get("/")
    assert second.status_code == 200
    assert second.json()["ecos_inserted_count"] == 0
    assert second.json()["ecos_error"] is None


def test_upstream_error_code_answers_400(settings, backend, fake_session, fake_response) -> None:
    session = fake_session({"koreaexim": fake_response([{"result": 3}])})
    client = TestClient(create_app(settings, backend=backend, session=session))

    response = client.post("/")

    assert response.status_code == 400
    assert response.json()["details"]["result"] == 3


def test_missing_environment_answers_500(monkeypatch) -> None:
    monkeypatch.delenv("KOREA_EXIM_API_KEY", raising=False)
    client = TestClient(create_app())

    response = client.post("/")

    assert response.status_code == 500
    assert "KOREA_EXIM_API_KEY" in response.json()["error"]


def test_health() -> None:
    client = TestClient(create_app())

    assert client.get("/health").json() == {"status": "ok"}
