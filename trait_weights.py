from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable, Optional

W_MAX = 5.0
W_MIN = 1.0


@dataclass(frozen=True)
class PersonalityTrait:
    id: str
    traitName: str
    weight: float
    order: int
    groupId: str = ""
    groupName: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "traitName": self.traitName,
            "weight": self.weight,
            "order": self.order,
            "groupId": self.groupId,
            "groupName": self.groupName,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "PersonalityTrait":
        try:
            weight = float(raw.get("weight") or 0)
        except (TypeError, ValueError):
            weight = 0.0
        try:
            order = int(raw.get("order") or 0)
        except (TypeError, ValueError):
            order = 0
        return cls(
            id=str(raw.get("id") or "").strip(),
            traitName=str(raw.get("traitName") or "").strip(),
            weight=weight,
            order=order,
            groupId=str(raw.get("groupId") or "").strip(),
            groupName=str(raw.get("groupName") or "").strip(),
        )


def compute_weight(position: int, total: int) -> float:
    """Priority weight for a 1-based position among ``total`` traits of one group.

    Linear from W_MAX (position 1) down to W_MIN (last position), rounded to
    two decimals and clamped to [W_MIN, W_MAX]. A single trait gets W_MAX.
    """
    if total <= 1:
        return W_MAX
    raw = W_MAX - (position - 1) * (W_MAX - W_MIN) / (total - 1)
    return min(W_MAX, max(W_MIN, round(raw, 2)))


def normalize_group(traits: Iterable[PersonalityTrait]) -> list[PersonalityTrait]:
    """Reassign dense 1..N orders and weights following the current list order."""
    items = list(traits)
    total = len(items)
    return [replace(t, order=i, weight=compute_weight(i, total)) for i, t in enumerate(items, start=1)]


def normalize_traits(traits: Iterable[PersonalityTrait]) -> list[PersonalityTrait]:
    """Normalize each group independently, keeping groups in first-seen order.

    Within a group the incoming ``order`` decides priority; ties keep input order.
    """
    groups: dict[str, list[PersonalityTrait]] = {}
    for t in traits:
        groups.setdefault(t.groupId, []).append(t)

    out: list[PersonalityTrait] = []
    for items in groups.values():
        ranked = sorted(enumerate(items), key=lambda x: (x[1].order, x[0]))
        out.extend(normalize_group(t for _i, t in ranked))
    return out


def _index_of(traits: list[PersonalityTrait], trait_id: str) -> int:
    for i, t in enumerate(traits):
        if t.id == trait_id:
            return i
    return -1


def insert_trait(
    traits: list[PersonalityTrait], trait: PersonalityTrait, *, position: Optional[int] = None
) -> list[PersonalityTrait]:
    items = list(traits)
    if position is None or position > len(items):
        items.append(trait)
    else:
        items.insert(max(0, position - 1), trait)
    return normalize_group(items)


def remove_trait(traits: list[PersonalityTrait], trait_id: str) -> list[PersonalityTrait]:
    return normalize_group(t for t in traits if t.id != trait_id)


def move_up(traits: list[PersonalityTrait], trait_id: str) -> list[PersonalityTrait]:
    items = list(traits)
    idx = _index_of(items, trait_id)
    if idx > 0:
        items[idx - 1], items[idx] = items[idx], items[idx - 1]
    return normalize_group(items)


def move_down(traits: list[PersonalityTrait], trait_id: str) -> list[PersonalityTrait]:
    items = list(traits)
    idx = _index_of(items, trait_id)
    if 0 <= idx < len(items) - 1:
        items[idx + 1], items[idx] = items[idx], items[idx + 1]
    return normalize_group(items)


def reorder(traits: list[PersonalityTrait], trait_ids: list[str]) -> list[PersonalityTrait]:
    by_id = {t.id: t for t in traits}
    if sorted(by_id) != sorted(trait_ids) or len(trait_ids) != len(traits):
        raise ValueError("reorder ids must be a permutation of the group's trait ids")
    return normalize_group(by_id[i] for i in trait_ids)
