from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from models import QUESTION_TYPE_OPINION_MULTIPLE, Option, Question, QuestionCategory, Stage
from resolution_trace import ResolutionTrace
from utils import UpstreamFetchError

log = logging.getLogger(__name__)


def option_to_dict(o: Option) -> dict[str, Any]:
    return {
        "id": o.optionId,
        "text": o.text or "",
        "categoryId": o.categoryId,
        "categoryName": o.categoryName,
    }


def question_to_dict(q: Question, options: list[Option]) -> dict[str, Any]:
    return {
        "id": q.questionId,
        "stageId": q.stageId,
        "text": q.text or "",
        "options": [option_to_dict(o) for o in options],
    }


def _load_options(db, question_ids: list[str]) -> dict[str, list[Option]]:
    out: dict[str, list[Option]] = {qid: [] for qid in question_ids}
    if not question_ids:
        return out
    rows = (
        db.execute(
            select(Option)
            .where(Option.questionId.in_(question_ids))
            .order_by(Option.position.asc(), Option.optionId.asc())
        )
        .scalars()
        .all()
    )
    for o in rows:
        out.setdefault(o.questionId, []).append(o)
    return out


def load_categories(db, question_ids: list[str]) -> dict[str, list[dict[str, str]]]:
    if not question_ids:
        return {}
    try:
        rows = (
            db.execute(
                select(QuestionCategory)
                .where(QuestionCategory.questionId.in_(question_ids))
                .order_by(QuestionCategory.id.asc())
            )
            .scalars()
            .all()
        )
    except SQLAlchemyError as e:
        raise UpstreamFetchError(f"question categories unavailable: {e}") from e

    out: dict[str, list[dict[str, str]]] = {}
    for c in rows:
        out.setdefault(c.questionId, []).append({"id": c.categoryId, "name": c.name or ""})
    return out


def fetch_stage_questions(db, stage: Stage, trace: ResolutionTrace) -> list[dict[str, Any]]:
    """Questions of ``stage`` with options in stored order; empty is a valid answer."""
    questions = (
        db.execute(
            select(Question)
            .where(Question.stageId == stage.stageId)
            .order_by(Question.position.asc(), Question.questionId.asc())
        )
        .scalars()
        .all()
    )
    question_ids = [q.questionId for q in questions]
    options = _load_options(db, question_ids)
    items = [question_to_dict(q, options.get(q.questionId, [])) for q in questions]

    if items and stage.questionType == QUESTION_TYPE_OPINION_MULTIPLE:
        try:
            categories = load_categories(db, question_ids)
        except UpstreamFetchError as e:
            log.warning("stage=%s %s", stage.stageId, e)
            trace.add("categories_unavailable", stageId=stage.stageId, error=str(e))
            categories = {}
        for item in items:
            item["categories"] = categories.get(item["id"], [])

    trace.add("questions_found", stageId=stage.stageId, questionCount=len(items))
    return items
