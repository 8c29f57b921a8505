from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select

from actions.helpers import actor_of, append_audit, require_str
from actions.stage_resolver import ORDER_BASE, load_test_stages
from models import Stage, Test, TestStage
from stage_ref import external_ref_for_order
from utils import ApiError, NotFoundError, ValidationError, iso_utc_now

log = logging.getLogger(__name__)


def _get_test(db, test_id: str) -> Test:
    test = db.execute(select(Test).where(Test.testId == test_id)).scalar_one_or_none()
    if not test:
        raise NotFoundError("Test not found", details={"testId": test_id})
    return test


def _stage_rows(db, test_id: str) -> list[dict[str, Any]]:
    return [
        {"stageId": ts.link.stageId, "order": ts.order, "ref": external_ref_for_order(ts.order), "title": ts.stage.title or ""}
        for ts in load_test_stages(db, test_id)
    ]


def _assign_orders(db, links: list[TestStage], now: str) -> None:
    # (testId, order) is unique: park every row on a negative order first.
    for i, link in enumerate(links):
        link.order = -(i + 1)
    db.flush()
    for i, link in enumerate(links):
        link.order = ORDER_BASE + i
        link.updatedAt = now
    db.flush()


def attach_test_stage(data, db, cfg):
    test_id = require_str(data, "testId")
    stage_id = require_str(data, "stageId")
    _get_test(db, test_id)

    stage = db.execute(select(Stage).where(Stage.stageId == stage_id)).scalar_one_or_none()
    if not stage:
        raise NotFoundError("Stage not found", details={"stageId": stage_id})

    exists = db.execute(
        select(TestStage).where(TestStage.testId == test_id, TestStage.stageId == stage_id)
    ).scalar_one_or_none()
    if exists:
        raise ApiError("CONFLICT", "Stage already attached to test", http_status=409, details={"stageId": stage_id})

    count = int(db.execute(select(func.count()).select_from(TestStage).where(TestStage.testId == test_id)).scalar() or 0)
    now = iso_utc_now()
    order = ORDER_BASE + count
    db.add(TestStage(testId=test_id, stageId=stage_id, order=order, updatedAt=now))
    db.flush()

    append_audit(
        db,
        entityType="TEST",
        entityId=test_id,
        action="TEST_STAGE_ATTACH",
        stageTag="TEST_STAGES",
        actor=actor_of(data),
        toState=stage_id,
        meta={"stageId": stage_id, "order": order},
        at=now,
    )
    log.info("stage attached test=%s stage=%s order=%s", test_id, stage_id, order)
    return {"testId": test_id, "stages": _stage_rows(db, test_id)}


def detach_test_stage(data, db, cfg):
    test_id = require_str(data, "testId")
    stage_id = require_str(data, "stageId")
    _get_test(db, test_id)

    links = list(
        db.execute(select(TestStage).where(TestStage.testId == test_id).order_by(TestStage.order.asc()))
        .scalars()
        .all()
    )
    target = next((x for x in links if x.stageId == stage_id), None)
    if target is None:
        raise NotFoundError("Stage is not attached to test", details={"testId": test_id, "stageId": stage_id})

    db.delete(target)
    db.flush()
    now = iso_utc_now()
    _assign_orders(db, [x for x in links if x is not target], now)

    append_audit(
        db,
        entityType="TEST",
        entityId=test_id,
        action="TEST_STAGE_DETACH",
        stageTag="TEST_STAGES",
        actor=actor_of(data),
        fromState=stage_id,
        meta={"stageId": stage_id, "order": target.order},
        at=now,
    )
    log.info("stage detached test=%s stage=%s", test_id, stage_id)
    return {"testId": test_id, "stages": _stage_rows(db, test_id)}


def reorder_test_stages(data, db, cfg):
    test_id = require_str(data, "testId")
    _get_test(db, test_id)

    raw = data.get("stages") if isinstance(data, dict) else None
    if not isinstance(raw, list) or not all(isinstance(x, dict) for x in raw):
        raise ValidationError("stages must be a list of {stageId, order}", details={"field": "stages"})

    wanted: list[tuple[int, str]] = []
    for item in raw:
        try:
            order = int(item.get("order"))
        except (TypeError, ValueError):
            raise ValidationError("order must be an integer", details={"item": item})
        wanted.append((order, str(item.get("stageId") or "").strip()))

    links = list(
        db.execute(select(TestStage).where(TestStage.testId == test_id).order_by(TestStage.order.asc()))
        .scalars()
        .all()
    )
    by_stage = {x.stageId: x for x in links}
    stage_ids = [sid for _, sid in sorted(wanted)]
    orders = sorted(o for o, _ in wanted)

    if len(stage_ids) != len(set(stage_ids)) or set(stage_ids) != set(by_stage):
        raise ValidationError(
            "stages must list every attached stage exactly once",
            details={"expected": sorted(by_stage), "got": stage_ids},
        )
    if orders != list(range(ORDER_BASE, ORDER_BASE + len(links))):
        raise ValidationError(
            "orders must be dense and start at %d" % ORDER_BASE,
            details={"orders": orders},
        )

    before = [x.stageId for x in links]
    now = iso_utc_now()
    _assign_orders(db, [by_stage[sid] for sid in stage_ids], now)

    append_audit(
        db,
        entityType="TEST",
        entityId=test_id,
        action="TEST_STAGES_REORDER",
        stageTag="TEST_STAGES",
        actor=actor_of(data),
        meta={"before": before, "after": stage_ids},
        at=now,
    )
    return {"testId": test_id, "stages": _stage_rows(db, test_id)}
