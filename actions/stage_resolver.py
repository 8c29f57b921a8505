from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select

from models import Stage, TestStage
from resolution_trace import ResolutionTrace
from stage_ref import Ordinal, StableId, StageRef, ref_mode

# Internal TestStage.order numbering starts here; clients count from 1.
ORDER_BASE = 0

# Largest value a portable INTEGER column holds.
MAX_STORED_ORDER = 2**31 - 1


@dataclass(frozen=True)
class TestStageView:
    link: TestStage
    stage: Stage

    @property
    def order(self) -> int:
        return int(self.link.order)


def load_test_stages(db, test_id: str) -> list[TestStageView]:
    rows = db.execute(
        select(TestStage, Stage)
        .join(Stage, Stage.stageId == TestStage.stageId)
        .where(TestStage.testId == str(test_id))
        .order_by(TestStage.order.asc())
    ).all()
    return [TestStageView(link=ts, stage=st) for ts, st in rows]


def _find_by_order(stages: list[TestStageView], order: int) -> Optional[TestStageView]:
    for ts in stages:
        if ts.order == order:
            return ts
    return None


def _resolve_in_test(db, ref: StageRef, test_id: str, trace: ResolutionTrace) -> Optional[Stage]:
    stages = load_test_stages(db, test_id)
    trace.add("test_stages_found", testId=test_id, stageCount=len(stages))

    if isinstance(ref, StableId):
        hit = next((ts for ts in stages if ts.link.stageId == ref.stage_id), None)
        trace.add("stage_by_id", stageId=ref.stage_id, testId=test_id, stageFound=bool(hit))
        return hit.stage if hit else None

    target = ref.n - 1 + ORDER_BASE
    hit = None
    if ORDER_BASE <= target <= len(stages) - 1 + ORDER_BASE:
        hit = _find_by_order(stages, target)
        trace.add("stage_by_order", ordinal=ref.n, order=target, stageFound=bool(hit))
        if hit is None and target == 1:
            # Older tests were numbered so that ordinal "2" meant order 0 as well.
            hit = _find_by_order(stages, 0)
            trace.add("stage_by_order_legacy", ordinal=ref.n, order=0, stageFound=bool(hit))
    else:
        trace.add("stage_order_out_of_range", ordinal=ref.n, order=target, stageCount=len(stages))

    if hit is None and stages:
        hit = stages[0]
        trace.add("stage_first_fallback", ordinal=ref.n, order=hit.order, stageId=hit.link.stageId)

    return hit.stage if hit else None


def _resolve_global(db, ref: StageRef, trace: ResolutionTrace) -> Optional[Stage]:
    if isinstance(ref, Ordinal):
        order = ref.n - 1
        stage = None
        if 0 <= order <= MAX_STORED_ORDER:
            stage = (
                db.execute(select(Stage).where(Stage.order == order).order_by(Stage.stageId.asc()))
                .scalars()
                .first()
            )
    else:
        stage = db.execute(select(Stage).where(Stage.stageId == ref.stage_id)).scalar_one_or_none()

    trace.add(
        "fallback_stage_search",
        stageRef=ref.n if isinstance(ref, Ordinal) else ref.stage_id,
        mode=ref_mode(ref),
        stageFound=bool(stage),
        stageId=stage.stageId if stage else None,
    )
    return stage


def resolve_stage(db, ref: StageRef, test_id: Optional[str], trace: ResolutionTrace) -> Optional[Stage]:
    """Test-scoped lookup first, then the test-agnostic search; None when both miss."""
    stage = None
    if test_id:
        stage = _resolve_in_test(db, ref, test_id, trace)
    if stage is None:
        stage = _resolve_global(db, ref, trace)
    if stage is None:
        trace.add("stage_not_found", mode=ref_mode(ref), testId=test_id)
    return stage
