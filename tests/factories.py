from __future__ import annotations

from typing import Any, Optional, Sequence, Union

from db import SessionLocal
from models import (
    QUESTION_TYPE_MULTIPLE_CHOICE,
    Candidate,
    Option,
    ProcessStage,
    Question,
    QuestionCategory,
    SelectionProcess,
    Stage,
    Test,
    TestStage,
)
from utils import iso_utc_now


def api(client, *, action: str, data: Optional[dict[str, Any]] = None):
    return client.post("/api", json={"action": action, "data": data or {}})


def _commit(*rows) -> None:
    db = SessionLocal()
    try:
        for row in rows:
            db.add(row)
        db.commit()
    finally:
        db.close()


def seed_stage(
    stage_id: str,
    *,
    title: Optional[str] = None,
    question_type: str = QUESTION_TYPE_MULTIPLE_CHOICE,
    legacy_order: Optional[int] = None,
) -> None:
    now = iso_utc_now()
    _commit(
        Stage(
            stageId=stage_id,
            title=title if title is not None else f"Stage {stage_id}",
            description=f"About {stage_id}",
            questionType=question_type,
            order=legacy_order,
            createdAt=now,
            updatedAt=now,
        )
    )


def seed_test(test_id: str, stage_ids: Sequence[str], *, orders: Optional[Sequence[int]] = None) -> None:
    """Test plus its stage links; orders default to 0..N-1 in list order."""
    now = iso_utc_now()
    orders = list(orders) if orders is not None else list(range(len(stage_ids)))
    rows: list[Any] = [Test(testId=test_id, title=f"Test {test_id}", description="", createdAt=now, updatedAt=now)]
    for stage_id, order in zip(stage_ids, orders):
        rows.append(TestStage(testId=test_id, stageId=stage_id, order=order, updatedAt=now))
    _commit(*rows)


def seed_question(
    question_id: str,
    stage_id: str,
    options: Sequence[Union[str, dict[str, Any]]],
    *,
    text: Optional[str] = None,
    position: int = 0,
    categories: Sequence[str] = (),
) -> None:
    rows: list[Any] = [
        Question(
            questionId=question_id,
            stageId=stage_id,
            text=text if text is not None else f"Question {question_id}",
            position=position,
            createdAt=iso_utc_now(),
        )
    ]
    for i, opt in enumerate(options):
        fields = {"text": opt} if isinstance(opt, str) else dict(opt)
        rows.append(
            Option(
                optionId=f"{question_id}-O{i}",
                questionId=question_id,
                text=fields.get("text", ""),
                position=i,
                categoryId=fields.get("categoryId"),
                categoryName=fields.get("categoryName"),
                isCorrect=bool(fields.get("isCorrect", False)),
            )
        )
    for i, name in enumerate(categories):
        rows.append(QuestionCategory(questionId=question_id, categoryId=f"{question_id}-C{i}", name=name))
    _commit(*rows)


def seed_process(process_id: str, stage_test_ids: Sequence[Optional[str]]) -> list[str]:
    rows: list[Any] = [SelectionProcess(processId=process_id, name=f"Process {process_id}", createdAt=iso_utc_now())]
    ids = []
    for i, test_id in enumerate(stage_test_ids):
        ps_id = f"{process_id}-PS{i}"
        ids.append(ps_id)
        rows.append(
            ProcessStage(processStageId=ps_id, processId=process_id, title=f"Step {i + 1}", position=i, testId=test_id)
        )
    _commit(*rows)
    return ids


def seed_candidate(
    candidate_id: str,
    *,
    test_id: Optional[str] = None,
    process_id: Optional[str] = None,
    invite_code: Optional[str] = None,
) -> None:
    now = iso_utc_now()
    _commit(
        Candidate(
            candidateId=candidate_id,
            name=f"Candidate {candidate_id}",
            inviteCode=invite_code,
            testId=test_id,
            processId=process_id,
            createdAt=now,
            updatedAt=now,
        )
    )


def candidate_test_id(candidate_id: str) -> Optional[str]:
    db = SessionLocal()
    try:
        cand = db.get(Candidate, candidate_id)
        return cand.testId if cand else None
    finally:
        db.close()
