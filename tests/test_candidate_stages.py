from __future__ import annotations

from factories import api, candidate_test_id, seed_candidate, seed_process, seed_stage, seed_test


def _seed() -> None:
    for sid in ("S1", "S2", "S3"):
        seed_stage(sid)
    seed_test("T1", ["S1", "S2", "S3"])


def test_stage_list_for_associated_candidate(app_client):
    _app, client = app_client
    _seed()
    seed_candidate("C1", test_id="T1")

    res = client.get("/api/v1/candidates/C1/stages")
    body = res.get_json()
    assert res.status_code == 200
    data = body["data"]
    assert data["testId"] == "T1"
    assert data["totalStages"] == 3
    assert [(s["id"], s["order"], s["ref"]) for s in data["stages"]] == [("S1", 0, "1"), ("S2", 1, "2"), ("S3", 2, "3")]


def test_stage_list_heals_missing_association(app_client):
    _app, client = app_client
    _seed()
    seed_process("P1", [None, "T1"])
    seed_candidate("C2", process_id="P1")

    data = api(client, action="CANDIDATE_STAGES_LIST", data={"candidateId": "C2"}).get_json()["data"]
    assert data["testId"] == "T1"
    assert data["totalStages"] == 3
    assert candidate_test_id("C2") == "T1"


def test_stage_list_without_any_test_is_empty(app_client):
    _app, client = app_client
    seed_candidate("C3")

    data = api(client, action="CANDIDATE_STAGES_LIST", data={"candidateId": "C3"}).get_json()["data"]
    assert data == {"stages": [], "testId": None, "totalStages": 0}


def test_unknown_candidate_is_not_found(app_client):
    _app, client = app_client
    res = client.get("/api/v1/candidates/ghost/stages")
    assert res.status_code == 404
    assert res.get_json()["error"]["code"] == "NOT_FOUND"


def test_next_stage_walks_the_test(app_client):
    _app, client = app_client
    _seed()
    seed_candidate("C1", test_id="T1")

    data = client.get("/api/v1/candidates/C1/stages/next?currentStage=1").get_json()["data"]
    assert data["hasNextStage"] is True
    assert data["nextStageRef"] == "2"
    assert data["nextStageId"] == "S2"
    assert data["currentStageIndex"] == 0
    assert data["totalStages"] == 3

    data = client.get("/api/v1/candidates/C1/stages/next?currentStage=S2").get_json()["data"]
    assert data["nextStageId"] == "S3"

    data = client.get("/api/v1/candidates/C1/stages/next?currentStage=3").get_json()["data"]
    assert data["hasNextStage"] is False
    assert data["currentStageIndex"] == 2


def test_next_stage_for_stage_outside_the_test(app_client):
    _app, client = app_client
    _seed()
    seed_stage("OTHER")
    seed_candidate("C1", test_id="T1")

    res = client.get("/api/v1/candidates/C1/stages/next?currentStage=OTHER")
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["hasNextStage"] is False
    assert data["currentStageIndex"] == -1


def test_next_stage_requires_current_stage(app_client):
    _app, client = app_client
    _seed()
    seed_candidate("C1", test_id="T1")

    res = client.get("/api/v1/candidates/C1/stages/next")
    assert res.status_code == 400


def test_next_stage_with_huge_ordinal_on_empty_test(app_client):
    _app, client = app_client
    seed_stage("S1")
    seed_test("T0", [])
    seed_candidate("C1", test_id="T0")

    res = client.get("/api/v1/candidates/C1/stages/next?currentStage=99999999999999999999")
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["hasNextStage"] is False
    assert data["currentStageIndex"] == -1
    assert data["resolutionTrace"][-1]["action"] == "stage_not_found"
