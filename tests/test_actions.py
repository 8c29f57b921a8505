from __future__ import annotations

import json
import logging

from sqlalchemy.orm import Session

from actions import ACTION_HANDLERS, MUTATING_ACTIONS
from factories import api, seed_question, seed_stage, seed_test


def test_every_mutating_action_is_registered() -> None:
    assert MUTATING_ACTIONS <= set(ACTION_HANDLERS)
    assert all(k == k.upper().strip() for k in ACTION_HANDLERS)


def test_only_mutating_actions_commit_the_request_session(app_client, monkeypatch):
    _app, client = app_client
    seed_stage("S1")
    seed_stage("S2")
    seed_question("S1-Q", "S1", ["a"])
    seed_test("T1", ["S1"])

    commits = []
    original_commit = Session.commit

    def counting_commit(self):
        commits.append(1)
        return original_commit(self)

    monkeypatch.setattr(Session, "commit", counting_commit)

    res = api(client, action="STAGE_QUESTIONS_GET", data={"stageRef": "1", "testId": "T1"})
    assert res.status_code == 200
    assert commits == []

    res = api(client, action="TEST_STAGE_ATTACH", data={"testId": "T1", "stageId": "S2"})
    assert res.status_code == 200
    assert commits == [1]


def test_unknown_action_is_bad_request(app_client):
    _app, client = app_client
    res = api(client, action="NOPE")
    body = res.get_json()
    assert res.status_code == 400
    assert body["ok"] is False
    assert body["error"]["code"] == "BAD_REQUEST"
    assert body["request_id"]


def test_missing_action_and_bad_bodies(app_client):
    _app, client = app_client

    res = client.post("/api", json={"data": {}})
    assert res.status_code == 400

    res = client.post("/api", data="not json", content_type="application/json")
    assert res.status_code == 400

    res = client.post("/api", json={"action": "STAGE_QUESTIONS_GET", "data": ["x"]})
    assert res.status_code == 400


def test_action_names_are_case_insensitive(app_client):
    _app, client = app_client
    seed_stage("S1")
    seed_question("S1-Q", "S1", ["a"])
    seed_test("T1", ["S1"])

    res = api(client, action="stage_questions_get", data={"stageRef": "1", "testId": "T1"})
    assert res.status_code == 200


def test_unknown_endpoint_uses_error_envelope(app_client):
    _app, client = app_client
    res = client.get("/api/v1/nowhere")
    assert res.status_code == 404
    body = res.get_json()
    assert body["ok"] is False
    assert body["error"]["code"] == "NOT_FOUND"


def test_trace_telemetry_is_logged(app_client, caplog):
    _app, client = app_client
    seed_stage("S1")
    seed_test("T1", ["S1"])

    with caplog.at_level(logging.INFO, logger="assessment.trace"):
        api(client, action="STAGE_QUESTIONS_GET", data={"stageRef": "1", "testId": "T1"})
        api(client, action="STAGE_QUESTIONS_GET", data={"stageRef": "ghost"})

    lines = [json.loads(r.getMessage()) for r in caplog.records if r.name == "assessment.trace"]
    assert [line["outcome"] for line in lines] == ["resolved", "not_found"]
    assert all(line["request_id"] for line in lines)
    assert lines[0]["trace"][0]["action"] == "request_start"
