from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

_ORDINAL_RE = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class Ordinal:
    """1-based position of a stage inside a test, as sent by clients."""

    n: int

    @property
    def target_order(self) -> int:
        return self.n - 1


@dataclass(frozen=True)
class StableId:
    stage_id: str


StageRef = Union[Ordinal, StableId]


def parse_stage_ref(value: str) -> StageRef:
    s = str(value)
    if _ORDINAL_RE.fullmatch(s):
        return Ordinal(int(s))
    return StableId(s)


def ref_mode(ref: StageRef) -> str:
    return "ordinal" if isinstance(ref, Ordinal) else "stable-id"


def external_ref_for_order(order: int) -> str:
    return str(int(order) + 1)
