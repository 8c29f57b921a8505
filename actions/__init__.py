from __future__ import annotations

from typing import Any, Callable

from actions.assessment import candidate_next_stage, candidate_stages_list, stage_questions_get
from actions.scores import candidate_score_get
from actions.stage_links import attach_test_stage, detach_test_stage, reorder_test_stages
from actions.traits import personality_traits_get, personality_traits_save, trait_edit_apply, trait_groups_get
from utils import ApiError

Handler = Callable[[Any, Any, Any], Any]

ACTION_HANDLERS: dict[str, Handler] = {
    # candidate-facing
    "STAGE_QUESTIONS_GET": stage_questions_get,
    "CANDIDATE_STAGES_LIST": candidate_stages_list,
    "CANDIDATE_NEXT_STAGE": candidate_next_stage,
    "CANDIDATE_SCORE_GET": candidate_score_get,
    # test structure
    "TEST_STAGE_ATTACH": attach_test_stage,
    "TEST_STAGE_DETACH": detach_test_stage,
    "TEST_STAGES_REORDER": reorder_test_stages,
    # personality traits
    "TRAIT_GROUPS_GET": trait_groups_get,
    "TRAIT_EDIT_APPLY": trait_edit_apply,
    "PERSONALITY_TRAITS_GET": personality_traits_get,
    "PERSONALITY_TRAITS_SAVE": personality_traits_save,
}

# Actions whose session is committed; readers only commit their own healing write.
MUTATING_ACTIONS = {
    "TEST_STAGE_ATTACH",
    "TEST_STAGE_DETACH",
    "TEST_STAGES_REORDER",
    "TRAIT_EDIT_APPLY",
    "PERSONALITY_TRAITS_SAVE",
}


def dispatch(action: str, data: Any, db, cfg) -> Any:
    action_u = str(action or "").upper().strip()
    handler = ACTION_HANDLERS.get(action_u)
    if handler is None:
        raise ApiError("BAD_REQUEST", f"Unknown action: {action_u}", details={"action": action_u})
    return handler(data if isinstance(data, dict) else {}, db, cfg)
