from __future__ import annotations

from typing import Any

import pytest
import requests

import services.scoring_client as scoring_client
from config import Config
from factories import seed_candidate
from utils import ApiError


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None, text: str | None = None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ("" if payload is None else str(payload))

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


def _cfg(monkeypatch, url: str = "https://scoring.example.test/score") -> Config:
    monkeypatch.setenv("SCORING_SERVICE_URL", url)
    monkeypatch.setenv("SCORING_API_KEY", "k-123")
    monkeypatch.setenv("SCORING_TIMEOUT_SECONDS", "3")
    return Config()


@pytest.mark.parametrize(
    "payload",
    [
        {"score": 82, "accuracy": 0.82, "completed": True},
        {"data": {"score": 82, "accuracy": 0.82, "completed": True}},
        {"ok": True, "result": {"score": 82, "accuracy": 0.82, "completed": True}},
    ],
)
def test_score_envelopes_decode_the_same(monkeypatch, payload):
    cfg = _cfg(monkeypatch)
    captured = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        captured.update(url=url, json=json, headers=headers, timeout=timeout)
        return FakeResponse(200, payload)

    monkeypatch.setattr(requests, "post", fake_post)

    out = scoring_client.fetch_candidate_score(cfg=cfg, candidate_id="C1")
    assert out == {"score": 82, "accuracy": 0.82, "completed": True, "candidateId": "C1"}
    assert captured["json"] == {"candidateId": "C1"}
    assert captured["headers"] == {"X-Api-Key": "k-123"}
    assert captured["timeout"] == 3.0


def test_score_errors_become_api_errors(monkeypatch):
    cfg = _cfg(monkeypatch)

    monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse(500, None, text="boom"))
    with pytest.raises(ApiError) as exc:
        scoring_client.fetch_candidate_score(cfg=cfg, candidate_id="C1")
    assert exc.value.http_status == 502
    assert "HTTP 500" in exc.value.message

    monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse(404, {"error": "none"}))
    with pytest.raises(ApiError) as exc:
        scoring_client.fetch_candidate_score(cfg=cfg, candidate_id="C1")
    assert exc.value.code == "NOT_FOUND"

    monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse(200, None, text=""))
    with pytest.raises(ApiError):
        scoring_client.fetch_candidate_score(cfg=cfg, candidate_id="C1")

    def timeout(*_a, **_kw):
        raise requests.Timeout("read timed out")

    monkeypatch.setattr(requests, "post", timeout)
    with pytest.raises(ApiError) as exc:
        scoring_client.fetch_candidate_score(cfg=cfg, candidate_id="C1")
    assert "read timed out" in exc.value.message


def test_unconfigured_service(monkeypatch):
    monkeypatch.delenv("SCORING_SERVICE_URL", raising=False)
    with pytest.raises(ApiError):
        scoring_client.fetch_candidate_score(cfg=Config(), candidate_id="C1")


def test_score_route(app_client, monkeypatch):
    app, client = app_client
    seed_candidate("C1", test_id="T1")

    cfg = app.config["CFG"]
    monkeypatch.setattr(cfg, "SCORING_SERVICE_URL", "https://scoring.example.test/score")
    monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse(200, {"data": {"score": 70, "accuracy": 0.7}}))

    res = client.get("/api/v1/candidates/C1/score")
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["testId"] == "T1"
    assert data["score"] == {"score": 70, "accuracy": 0.7, "candidateId": "C1"}

    res = client.get("/api/v1/candidates/ghost/score")
    assert res.status_code == 404
