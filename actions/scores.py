from __future__ import annotations

from actions.candidate_repo import get_candidate
from actions.helpers import require_str
from services.scoring_client import fetch_candidate_score


def candidate_score_get(data, db, cfg):
    candidate_id = require_str(data, "candidateId")
    cand = get_candidate(db, candidate_id)
    score = fetch_candidate_score(cfg=cfg, candidate_id=cand.candidateId)
    return {"candidateId": cand.candidateId, "testId": cand.testId, "score": score}
