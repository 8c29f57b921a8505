from __future__ import annotations

import random
from typing import Any, Optional, Sequence, TypeVar

_T = TypeVar("_T")


def fisher_yates(items: Sequence[_T], rng: Optional[random.Random] = None) -> list[_T]:
    """Uniform permutation of a copy of ``items``; the input is left untouched."""
    rng = rng or random.Random()
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def shuffle_question_options(
    questions: Sequence[dict[str, Any]], rng: Optional[random.Random] = None
) -> list[dict[str, Any]]:
    # One generator per call: every fetch reshuffles independently.
    rng = rng or random.Random()
    out: list[dict[str, Any]] = []
    for q in questions:
        shuffled = dict(q)
        shuffled["options"] = fisher_yates(q.get("options") or [], rng)
        out.append(shuffled)
    return out
