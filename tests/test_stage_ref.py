from stage_ref import Ordinal, StableId, external_ref_for_order, parse_stage_ref, ref_mode


def test_all_digit_refs_are_ordinals() -> None:
    assert parse_stage_ref("1") == Ordinal(1)
    assert parse_stage_ref("007") == Ordinal(7)
    assert parse_stage_ref("0") == Ordinal(0)


def test_anything_else_is_a_stable_id() -> None:
    for raw in ("stage-1", "1a", "-1", "1.5", " 1", "cl9x0abc"):
        assert parse_stage_ref(raw) == StableId(raw)


def test_ordinal_target_order_is_zero_based() -> None:
    assert Ordinal(1).target_order == 0
    assert Ordinal(3).target_order == 2


def test_ref_mode_and_external_ref() -> None:
    assert ref_mode(Ordinal(2)) == "ordinal"
    assert ref_mode(StableId("x")) == "stable-id"
    assert external_ref_for_order(0) == "1"
    assert parse_stage_ref(external_ref_for_order(4)).target_order == 4
