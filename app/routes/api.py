from __future__ import annotations

import logging
from typing import Any

from flask import Blueprint, current_app, g, request

from actions import MUTATING_ACTIONS, dispatch
from db import SessionLocal
from utils import ValidationError, ok

log = logging.getLogger("api")

api_bp = Blueprint("api", __name__)
rest_api = Blueprint("rest_api", __name__)


def _json_body() -> dict[str, Any]:
    if not request.get_data(cache=True):
        return {}
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def run_action(action: str, data: dict[str, Any]):
    """One session per action: commit writes on success, roll back on any error, always close."""
    cfg = current_app.config["CFG"]
    action_u = str(action or "").upper().strip()
    g.action = action_u

    db = SessionLocal()
    try:
        out = dispatch(action_u, data or {}, db, cfg)
        if action_u in MUTATING_ACTIONS:
            db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    log.debug("request_id=%s action=%s ok", getattr(g, "request_id", ""), action_u)
    return ok(out)[0]


@api_bp.post("/api")
def api_route():
    body = _json_body()
    action = str(body.get("action") or "").strip()
    if not action:
        raise ValidationError("Missing action")
    data = body.get("data") or {}
    if not isinstance(data, dict):
        raise ValidationError("data must be an object")
    return run_action(action, data)


@rest_api.get("/questions")
def questions_get():
    return run_action(
        "STAGE_QUESTIONS_GET",
        {
            "stageRef": request.args.get("stageRef") or request.args.get("stageId"),
            "candidateId": request.args.get("candidateId"),
            "testId": request.args.get("testId"),
        },
    )


@rest_api.get("/candidates/<candidate_id>/stages")
def candidate_stages(candidate_id: str):
    return run_action("CANDIDATE_STAGES_LIST", {"candidateId": candidate_id})


@rest_api.get("/candidates/<candidate_id>/stages/next")
def candidate_next_stage(candidate_id: str):
    return run_action(
        "CANDIDATE_NEXT_STAGE",
        {"candidateId": candidate_id, "currentStage": request.args.get("currentStage")},
    )


@rest_api.get("/candidates/<candidate_id>/score")
def candidate_score(candidate_id: str):
    return run_action("CANDIDATE_SCORE_GET", {"candidateId": candidate_id})


@rest_api.post("/tests/<test_id>/stages")
def test_stage_attach(test_id: str):
    data = _json_body()
    data["testId"] = test_id
    return run_action("TEST_STAGE_ATTACH", data)


@rest_api.delete("/tests/<test_id>/stages/<stage_id>")
def test_stage_detach(test_id: str, stage_id: str):
    return run_action("TEST_STAGE_DETACH", {"testId": test_id, "stageId": stage_id})


@rest_api.patch("/tests/<test_id>/stages/order")
def test_stages_reorder(test_id: str):
    data = _json_body()
    data["testId"] = test_id
    return run_action("TEST_STAGES_REORDER", data)


@rest_api.get("/tests/<test_id>/trait-groups")
def trait_groups(test_id: str):
    return run_action(
        "TRAIT_GROUPS_GET",
        {"testId": test_id, "processStageId": request.args.get("processStageId")},
    )


@rest_api.post("/traits/apply")
def trait_edit_apply():
    return run_action("TRAIT_EDIT_APPLY", _json_body())


@rest_api.get("/process-stages/<process_stage_id>/personality-traits")
def personality_traits_get(process_stage_id: str):
    return run_action("PERSONALITY_TRAITS_GET", {"processStageId": process_stage_id})


@rest_api.put("/process-stages/<process_stage_id>/personality-traits")
def personality_traits_save(process_stage_id: str):
    data = _json_body()
    data["processStageId"] = process_stage_id
    return run_action("PERSONALITY_TRAITS_SAVE", data)
