from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from models import Candidate, ProcessStage
from resolution_trace import ResolutionTrace
from utils import NotFoundError, PersistenceError, iso_utc_now

log = logging.getLogger(__name__)


def find_candidate(db, candidate_id: str) -> Optional[Candidate]:
    return db.execute(select(Candidate).where(Candidate.candidateId == str(candidate_id))).scalar_one_or_none()


def get_candidate(db, candidate_id: str) -> Candidate:
    cand = find_candidate(db, candidate_id)
    if not cand:
        raise NotFoundError("Candidate not found", details={"candidateId": candidate_id})
    return cand


def load_process_stages(db, process_id: str) -> list[ProcessStage]:
    return list(
        db.execute(
            select(ProcessStage)
            .where(ProcessStage.processId == str(process_id))
            .order_by(ProcessStage.position.asc(), ProcessStage.processStageId.asc())
        )
        .scalars()
        .all()
    )


def infer_test_id_from_process(db, candidate: Candidate) -> Optional[str]:
    """First test id carried by the candidate's enrollment process, in stage order."""
    process_id = str(candidate.processId or "").strip()
    if not process_id:
        return None
    for ps in load_process_stages(db, process_id):
        test_id = str(ps.testId or "").strip()
        if test_id:
            return test_id
    return None


def persist_candidate_test(db, candidate: Candidate, test_id: str) -> None:
    # Single unguarded write: concurrent heals infer the same value from the same rows.
    try:
        candidate.testId = test_id
        candidate.updatedAt = iso_utc_now()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"failed to persist testId for candidate {candidate.candidateId}") from e


def heal_candidate_test(db, candidate: Candidate, trace: ResolutionTrace) -> Optional[str]:
    """Infer a missing candidate→test association and persist it.

    Returns the inferred test id (also when persisting failed, so the current
    request can still use it) or None when the process carries no test.
    """
    candidate_id = candidate.candidateId
    process_id = candidate.processId
    inferred = infer_test_id_from_process(db, candidate)
    if not inferred:
        trace.add("heal_skipped", candidateId=candidate_id, processId=process_id, reason="no_process_test")
        return None

    try:
        persist_candidate_test(db, candidate, inferred)
    except PersistenceError as e:
        log.warning("candidate test heal not persisted candidate=%s test=%s: %s", candidate_id, inferred, e)
        trace.add(
            "heal_persist_failed",
            candidateId=candidate_id,
            testId=inferred,
            error=str(e.__cause__ or e),
        )
        return inferred

    log.info("candidate test healed candidate=%s process=%s test=%s", candidate_id, process_id, inferred)
    trace.add("test_healed", candidateId=candidate_id, processId=process_id, testId=inferred)
    return inferred
