from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from actions.helpers import actor_of, append_audit, optional_str, require_str
from actions.stage_resolver import load_test_stages
from envelopes import unwrap_items
from models import QUESTION_TYPE_OPINION_MULTIPLE, Option, ProcessStage, Question, Test
from models import PersonalityTrait as PersonalityTraitRow
from trait_config import TraitConfigSession, TraitGroup, new_trait_id
from trait_weights import PersonalityTrait, normalize_traits
from utils import ApiError, NotFoundError, UpstreamFetchError, ValidationError, iso_utc_now

log = logging.getLogger(__name__)

GROUP_NAME_MAX = 50
_TRAILING_PARENS = re.compile(r"\(([^()]+)\)\s*$")


def group_name_for(text: str) -> str:
    text = str(text or "").strip()
    if len(text) > GROUP_NAME_MAX:
        return text[:GROUP_NAME_MAX] + "..."
    return text


def trait_name_of(option: Option) -> Optional[str]:
    name = str(option.categoryName or "").strip()
    if name:
        return name
    m = _TRAILING_PARENS.search(str(option.text or ""))
    if m:
        return m.group(1).strip() or None
    return None


def _row_to_trait(row: PersonalityTraitRow) -> PersonalityTrait:
    return PersonalityTrait(
        id=row.traitId,
        traitName=row.traitName or "",
        weight=float(row.weight or 0),
        order=int(row.order or 0),
        groupId=row.groupId or "",
        groupName=row.groupName or "",
    )


def _get_process_stage(db, process_stage_id: str) -> ProcessStage:
    ps = db.execute(
        select(ProcessStage).where(ProcessStage.processStageId == process_stage_id)
    ).scalar_one_or_none()
    if not ps:
        raise NotFoundError("Process stage not found", details={"processStageId": process_stage_id})
    return ps


def load_selection(db, process_stage_id: str) -> list[PersonalityTrait]:
    try:
        rows = (
            db.execute(
                select(PersonalityTraitRow)
                .where(PersonalityTraitRow.processStageId == process_stage_id)
                .order_by(PersonalityTraitRow.groupId.asc(), PersonalityTraitRow.order.asc())
            )
            .scalars()
            .all()
        )
    except SQLAlchemyError as e:
        raise UpstreamFetchError(f"stored trait selection unavailable: {e}") from e
    return [_row_to_trait(r) for r in rows]


def replace_selection(db, process_stage_id: str, traits: list[PersonalityTrait]) -> list[PersonalityTrait]:
    normalized = normalize_traits(t if t.id else replace(t, id=new_trait_id()) for t in traits)
    now = iso_utc_now()
    db.execute(delete(PersonalityTraitRow).where(PersonalityTraitRow.processStageId == process_stage_id))
    db.flush()
    for t in normalized:
        db.add(
            PersonalityTraitRow(
                traitId=t.id,
                processStageId=process_stage_id,
                groupId=t.groupId,
                groupName=t.groupName,
                traitName=t.traitName,
                weight=t.weight,
                order=t.order,
                updatedAt=now,
            )
        )
    db.flush()
    return normalized


def discover_trait_groups(db, test_id: str) -> list[TraitGroup]:
    """One group per opinion question of the test; questions with no nameable option are skipped."""
    stage_ids = [
        ts.link.stageId for ts in load_test_stages(db, test_id) if ts.stage.questionType == QUESTION_TYPE_OPINION_MULTIPLE
    ]
    if not stage_ids:
        return []

    questions = (
        db.execute(
            select(Question)
            .where(Question.stageId.in_(stage_ids))
            .order_by(Question.stageId.asc(), Question.position.asc(), Question.questionId.asc())
        )
        .scalars()
        .all()
    )
    stage_rank = {sid: i for i, sid in enumerate(stage_ids)}
    questions = sorted(questions, key=lambda q: stage_rank.get(q.stageId, 0))

    options = (
        db.execute(select(Option).where(Option.questionId.in_([q.questionId for q in questions])))
        .scalars()
        .all()
    )
    pools: dict[str, set[str]] = {}
    for o in options:
        name = trait_name_of(o)
        if name:
            pools.setdefault(o.questionId, set()).add(name)

    groups = []
    for q in questions:
        pool = sorted(pools.get(q.questionId, set()))
        if not pool:
            continue
        groups.append(TraitGroup(id=q.questionId, name=group_name_for(q.text), traits=pool))
    return groups


def _traits_from_payload(raw: Any) -> list[PersonalityTrait]:
    traits = [PersonalityTrait.from_dict(x) for x in unwrap_items(raw) if isinstance(x, dict)]
    return [t if t.id else replace(t, id=new_trait_id()) for t in traits]


def trait_groups_get(data, db, cfg):
    test_id = require_str(data, "testId")
    process_stage_id = optional_str(data, "processStageId")
    if not db.execute(select(Test).where(Test.testId == test_id)).scalar_one_or_none():
        raise NotFoundError("Test not found", details={"testId": test_id})

    selection_error: Optional[str] = None

    def _loader() -> list[TraitGroup]:
        nonlocal selection_error
        groups = discover_trait_groups(db, test_id)
        if not process_stage_id:
            return groups
        try:
            stored = load_selection(db, process_stage_id)
        except UpstreamFetchError as e:
            log.warning("process_stage=%s %s", process_stage_id, e)
            selection_error = str(e)
            return groups
        by_group: dict[str, list[PersonalityTrait]] = {}
        for t in stored:
            by_group.setdefault(t.groupId, []).append(t)
        for g in groups:
            g.selected = by_group.get(g.id, [])
        return groups

    session = TraitConfigSession()
    if not session.load(_loader):
        raise ApiError("INTERNAL", "Trait groups unavailable", http_status=500, details={"error": session.last_error})

    return {
        "testId": test_id,
        "processStageId": process_stage_id,
        "groups": [g.to_dict() for g in session.groups],
        "selectionError": selection_error,
    }


def trait_edit_apply(data, db, cfg):
    op = require_str(data, "op", max_len=20)
    group_id = require_str(data, "groupId")
    process_stage_id = optional_str(data, "processStageId")

    session = TraitConfigSession.from_selection(_traits_from_payload((data or {}).get("traits")))
    pool = (data or {}).get("pool")
    session.ensure_group(group_id, optional_str(data, "groupName") or "", pool if isinstance(pool, list) else None)
    session.apply(
        op,
        group_id,
        traitName=(data or {}).get("traitName"),
        traitId=(data or {}).get("traitId"),
        traitIds=(data or {}).get("traitIds"),
    )

    persisted = False
    if process_stage_id:
        _get_process_stage(db, process_stage_id)
        persisted = session.sync(lambda selection: replace_selection(db, process_stage_id, selection))
        if persisted:
            append_audit(
                db,
                entityType="PROCESS_STAGE",
                entityId=process_stage_id,
                action="TRAIT_EDIT_APPLY",
                stageTag="PERSONALITY_TRAITS",
                actor=actor_of(data),
                meta={"op": op, "groupId": group_id},
            )

    return {
        "traits": [t.to_dict() for t in session.selection()],
        "groups": [g.to_dict() for g in session.groups],
        "persisted": persisted,
    }


def personality_traits_get(data, db, cfg):
    process_stage_id = require_str(data, "processStageId")
    _get_process_stage(db, process_stage_id)
    traits = normalize_traits(load_selection(db, process_stage_id))
    return {"processStageId": process_stage_id, "traits": [t.to_dict() for t in traits]}


def personality_traits_save(data, db, cfg):
    process_stage_id = require_str(data, "processStageId")
    _get_process_stage(db, process_stage_id)

    traits = _traits_from_payload((data or {}).get("traits"))
    seen: set[tuple[str, str]] = set()
    for t in traits:
        if not t.groupId or not t.traitName:
            raise ValidationError("Each trait needs groupId and traitName", details={"trait": t.to_dict()})
        key = (t.groupId, t.traitName.lower())
        if key in seen:
            raise ValidationError("Duplicate trait in group", details={"groupId": t.groupId, "traitName": t.traitName})
        seen.add(key)

    saved = replace_selection(db, process_stage_id, traits)
    append_audit(
        db,
        entityType="PROCESS_STAGE",
        entityId=process_stage_id,
        action="PERSONALITY_TRAITS_SAVE",
        stageTag="PERSONALITY_TRAITS",
        actor=actor_of(data),
        meta={"count": len(saved)},
    )
    log.info("personality traits saved process_stage=%s count=%s", process_stage_id, len(saved))
    return {"processStageId": process_stage_id, "traits": [t.to_dict() for t in saved]}
