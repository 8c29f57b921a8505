from __future__ import annotations

import random
from typing import Any, Optional

from flask import g, has_request_context

from actions.candidate_repo import find_candidate, get_candidate, heal_candidate_test
from actions.helpers import optional_str, require_str
from actions.question_repo import fetch_stage_questions
from actions.stage_resolver import load_test_stages, resolve_stage
from models import QUESTION_TYPE_OPINION_MULTIPLE
from resolution_trace import ResolutionTrace
from shuffle import shuffle_question_options
from stage_ref import external_ref_for_order, parse_stage_ref, ref_mode
from utils import NotFoundError


def resolve_stage_questions(
    db,
    *,
    stage_ref: str,
    candidate_id: Optional[str] = None,
    test_id: Optional[str] = None,
    rng: Optional[random.Random] = None,
    trace: Optional[ResolutionTrace] = None,
) -> dict[str, Any]:
    """Stage + questions a candidate should see for ``stage_ref``.

    Raises NotFoundError (with the trace in details) only when no strategy
    yields a stage; every other fallback is recorded in the trace.
    """
    trace = trace if trace is not None else ResolutionTrace()
    trace.add("request_start", stageRef=stage_ref, candidateId=candidate_id, testId=test_id)

    candidate = None
    had_association = False
    heal_attempted = False

    if candidate_id:
        candidate = find_candidate(db, candidate_id)
        if candidate is None:
            trace.add("candidate_not_found", candidateId=candidate_id)
        elif candidate.testId:
            had_association = True
            trace.add(
                "found_test_id",
                candidateId=candidate_id,
                testId=candidate.testId,
                requestTestId=test_id,
                inviteCode=candidate.inviteCode,
            )
            test_id = candidate.testId
        else:
            trace.add("no_test_id", candidateId=candidate_id, inviteCode=candidate.inviteCode)
            if not test_id:
                heal_attempted = True
                test_id = heal_candidate_test(db, candidate, trace)

    ref = parse_stage_ref(stage_ref)
    trace.add("stage_ref_decoded", stageRef=stage_ref, mode=ref_mode(ref))

    stage = resolve_stage(db, ref, test_id, trace)
    if stage is None:
        raise NotFoundError("Stage not found", details={"resolutionTrace": trace.to_list()})

    questions = fetch_stage_questions(db, stage, trace)

    if not questions and candidate is not None and test_id and not had_association and not heal_attempted:
        heal_attempted = True
        trace.add("questions_retry_after_heal", stageId=stage.stageId, candidateId=candidate_id, testId=test_id)
        healed = heal_candidate_test(db, candidate, trace)
        if healed:
            test_id = healed
            retried = resolve_stage(db, ref, healed, trace)
            if retried is not None:
                stage = retried
                questions = fetch_stage_questions(db, stage, trace)

    if questions and stage.questionType == QUESTION_TYPE_OPINION_MULTIPLE:
        questions = shuffle_question_options(questions, rng)
        trace.add("options_shuffled", stageType=stage.questionType, questionCount=len(questions))

    return {
        "stageId": stage.stageId,
        "stageTitle": stage.title or "",
        "stageDescription": stage.description or "",
        "questionType": stage.questionType,
        "questions": questions,
        "testId": test_id,
        "resolutionTrace": trace.to_list(),
    }


def _request_id() -> str:
    return str(getattr(g, "request_id", "") or "") if has_request_context() else ""


def stage_questions_get(data, db, cfg):
    stage_ref = require_str({"stageRef": (data or {}).get("stageRef") or (data or {}).get("stageId")}, "stageRef")
    trace = ResolutionTrace()
    try:
        out = resolve_stage_questions(
            db,
            stage_ref=stage_ref,
            candidate_id=optional_str(data, "candidateId"),
            test_id=optional_str(data, "testId"),
            trace=trace,
        )
    except NotFoundError:
        if getattr(cfg, "TRACE_TELEMETRY", False):
            trace.emit(outcome="not_found", request_id=_request_id())
        raise
    if getattr(cfg, "TRACE_TELEMETRY", False):
        trace.emit(outcome="resolved", request_id=_request_id())
    return out


def _candidate_test_id(db, candidate, trace: ResolutionTrace) -> Optional[str]:
    if candidate.testId:
        return candidate.testId
    return heal_candidate_test(db, candidate, trace)


def candidate_stages_list(data, db, cfg):
    candidate_id = require_str(data, "candidateId")
    cand = get_candidate(db, candidate_id)
    trace = ResolutionTrace()
    test_id = _candidate_test_id(db, cand, trace)
    if not test_id:
        return {"stages": [], "testId": None, "totalStages": 0}

    stages = [
        {
            "id": ts.link.stageId,
            "order": ts.order,
            "ref": external_ref_for_order(ts.order),
            "title": ts.stage.title or "",
            "description": ts.stage.description or "",
            "questionType": ts.stage.questionType,
        }
        for ts in load_test_stages(db, test_id)
    ]
    return {"stages": stages, "testId": test_id, "totalStages": len(stages)}


def candidate_next_stage(data, db, cfg):
    candidate_id = require_str(data, "candidateId")
    current = require_str(data, "currentStage")
    cand = get_candidate(db, candidate_id)
    trace = ResolutionTrace()
    test_id = _candidate_test_id(db, cand, trace)
    if not test_id:
        return {"hasNextStage": False, "testId": None, "totalStages": 0}

    stages = load_test_stages(db, test_id)
    stage = resolve_stage(db, parse_stage_ref(current), test_id, trace)
    idx = -1
    if stage is not None:
        idx = next((i for i, ts in enumerate(stages) if ts.link.stageId == stage.stageId), -1)

    out: dict[str, Any] = {
        "hasNextStage": False,
        "testId": test_id,
        "currentStageIndex": idx,
        "totalStages": len(stages),
        "resolutionTrace": trace.to_list(),
    }
    if idx == -1:
        out["message"] = "Current stage is not part of the candidate's test"
        return out

    if idx < len(stages) - 1:
        nxt = stages[idx + 1]
        out["hasNextStage"] = True
        out["nextStageRef"] = external_ref_for_order(nxt.order)
        out["nextStageId"] = nxt.link.stageId
    return out
