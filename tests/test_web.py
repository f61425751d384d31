from __future__ import annotations

import pytest

pytest.importorskip("httpx")
from fastapi.testclient import TestClient

from furiganizer.annotator import AnnotationServiceError, AnnotationServiceUnavailableError
from furiganizer.config import CLIENT_ID_ENV, FuriganaConfig
from furiganizer.web import WebConfig, create_app
from furiganizer.words import AnnotatedWord


class _FakeClient:
    instances: list["_FakeClient"] = []

    def __init__(self, client_id: str, config: FuriganaConfig, error: Exception | None = None) -> None:
        self.client_id = client_id
        self.config = config
        self.error = error
        self.closed = False
        _FakeClient.instances.append(self)

    def request_raw(self, text: str, grade: int) -> dict:
        if self.error is not None:
            raise self.error
        return {"id": "1", "jsonrpc": "2.0", "result": {"word": [{"surface": text, "furigana": "かんじ"}]}}

    def __call__(self, text: str, grade: int) -> list[AnnotatedWord]:
        if self.error is not None:
            raise self.error
        return [AnnotatedWord("漢字", "かんじ")] * text.count("漢字")

    def close(self) -> None:
        self.closed = True


def _app(monkeypatch, error: Exception | None = None, **defaults: object) -> TestClient:
    monkeypatch.delenv(CLIENT_ID_ENV, raising=False)
    _FakeClient.instances = []
    config = WebConfig(
        defaults=FuriganaConfig(**defaults),  # type: ignore[arg-type]
        client_factory=lambda client_id, run_config: _FakeClient(client_id, run_config, error),  # type: ignore[return-value]
    )
    return TestClient(create_app(config))


def test_health(monkeypatch) -> None:
    client = _app(monkeypatch)
    assert client.get("/api/health").json() == {"status": "ok"}


def test_proxy_forwards_service_payload(monkeypatch) -> None:
    client = _app(monkeypatch)
    resp = client.post("/api/furigana", json={"text": "漢字", "clientId": "abc", "grade": 2})
    assert resp.status_code == 200
    assert resp.json()["result"]["word"][0] == {"surface": "漢字", "furigana": "かんじ"}
    fake = _FakeClient.instances[0]
    assert fake.client_id == "abc"
    assert fake.config.grade == 2
    assert fake.closed


def test_proxy_requires_text_and_client_id(monkeypatch) -> None:
    client = _app(monkeypatch)
    assert client.post("/api/furigana", json={"clientId": "abc"}).status_code == 400
    resp = client.post("/api/furigana", json={"text": "漢字"})
    assert resp.status_code == 400
    assert "clientId" in resp.json()["detail"]


def test_proxy_uses_server_default_client_id(monkeypatch) -> None:
    client = _app(monkeypatch, client_id="server-id")
    assert client.post("/api/furigana", json={"text": "漢字"}).status_code == 200
    assert _FakeClient.instances[0].client_id == "server-id"


def test_proxy_maps_service_errors(monkeypatch) -> None:
    client = _app(monkeypatch, error=AnnotationServiceError("API Error: bad", code=-32602))
    resp = client.post("/api/furigana", json={"text": "漢字", "clientId": "abc"})
    assert resp.status_code == 400
    assert "bad" in resp.json()["detail"]

    client = _app(monkeypatch, error=AnnotationServiceUnavailableError("down"))
    resp = client.post("/api/furigana", json={"text": "漢字", "clientId": "abc"})
    assert resp.status_code == 502


def test_invalid_grade_is_rejected(monkeypatch) -> None:
    client = _app(monkeypatch)
    resp = client.post("/api/ruby", json={"text": "漢字", "clientId": "abc", "grade": 12})
    assert resp.status_code == 400


def test_ruby_endpoint_renders_document(monkeypatch) -> None:
    client = _app(monkeypatch)
    resp = client.post(
        "/api/ruby",
        json={
            "text": "漢字と漢字｛改頁｝漢字",
            "clientId": "abc",
            "skipLength": 10,
            "rubyStyle": "XHTML",
        },
    )
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["text"] == (
        "<ruby>漢字<rt>かんじ</rt></ruby>と漢字｛改頁｝<ruby>漢字<rt>かんじ</rt></ruby>"
    )
    assert payload["chunks"] == 2
    assert payload["diagnostics"] == []


def test_ruby_endpoint_reports_failed_chunks(monkeypatch) -> None:
    client = _app(monkeypatch, error=AnnotationServiceError("quota exceeded", code=429))
    resp = client.post("/api/ruby", json={"text": "漢字", "clientId": "abc"})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["text"] == "漢字"
    assert payload["diagnostics"][0]["kind"] == "annotation_error"
    assert "quota exceeded" in payload["diagnostics"][0]["message"]


@pytest.mark.parametrize("status", [401, 403, 503])
def test_proxy_passes_upstream_http_status_through(monkeypatch, status: int) -> None:
    error = AnnotationServiceError(f"Furigana service failed with status {status}", code=status)
    client = _app(monkeypatch, error=error)
    resp = client.post("/api/furigana", json={"text": "漢字", "clientId": "abc"})
    assert resp.status_code == status
