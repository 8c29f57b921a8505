from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from lifecycle import BUFFER_TRANSITIONS, FETCH_TRANSITIONS, BufferState, FetchState, advance
from trait_weights import PersonalityTrait, insert_trait, move_down, move_up, normalize_traits, remove_trait, reorder
from utils import ValidationError, new_uuid

log = logging.getLogger(__name__)

EDIT_OPS = {"add", "remove", "move_up", "move_down", "reorder"}


@dataclass
class TraitGroup:
    id: str
    name: str
    traits: list[str] = field(default_factory=list)
    selected: list[PersonalityTrait] = field(default_factory=list)

    def has_trait(self, trait_name: str) -> bool:
        key = str(trait_name or "").strip().lower()
        return any(t.traitName.lower() == key for t in self.selected)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "traits": list(self.traits),
            "selectedTraits": [t.to_dict() for t in self.selected],
        }


def new_trait_id() -> str:
    return f"trait-{new_uuid()}"


class TraitConfigSession:
    """Edit buffer over the trait groups of one configuration form.

    Edits re-normalize the whole affected group and mark the buffer dirty;
    nothing leaves the session until ``sync`` hands the flattened selection
    to a sink.
    """

    def __init__(self, groups: Optional[Iterable[TraitGroup]] = None):
        self._groups: dict[str, TraitGroup] = {}
        self.fetch_state = FetchState.IDLE
        self.buffer_state = BufferState.CLEAN
        self.last_error: Optional[str] = None
        if groups is not None:
            self._set_groups(groups)
            self.fetch_state = FetchState.LOADED

    @classmethod
    def from_selection(cls, traits: Iterable[PersonalityTrait]) -> "TraitConfigSession":
        groups: dict[str, TraitGroup] = {}
        for t in normalize_traits(traits):
            g = groups.setdefault(t.groupId, TraitGroup(id=t.groupId, name=t.groupName))
            g.selected.append(t)
        return cls(groups.values())

    def _set_groups(self, groups: Iterable[TraitGroup]) -> None:
        self._groups = {}
        for g in groups:
            g.selected = normalize_traits(g.selected)
            self._groups[g.id] = g

    @property
    def groups(self) -> list[TraitGroup]:
        return list(self._groups.values())

    @property
    def is_dirty(self) -> bool:
        return self.buffer_state is BufferState.DIRTY

    def load(self, loader: Callable[[], Iterable[TraitGroup]]) -> bool:
        self.fetch_state = advance(FETCH_TRANSITIONS, self.fetch_state, "start")
        try:
            groups = list(loader())
        except Exception as e:
            self.fetch_state = advance(FETCH_TRANSITIONS, self.fetch_state, "fail")
            self.last_error = str(e)
            log.warning("trait group load failed: %s", e)
            return False
        self._set_groups(groups)
        self.last_error = None
        self.fetch_state = advance(FETCH_TRANSITIONS, self.fetch_state, "succeed")
        return True

    def group(self, group_id: str) -> TraitGroup:
        g = self._groups.get(str(group_id or ""))
        if g is None:
            raise ValidationError("Unknown trait group", details={"groupId": group_id})
        return g

    def ensure_group(self, group_id: str, name: str = "", pool: Optional[Iterable[str]] = None) -> TraitGroup:
        group_id = str(group_id or "").strip()
        if not group_id:
            raise ValidationError("groupId is required")
        g = self._groups.get(group_id)
        if g is None:
            g = self._groups[group_id] = TraitGroup(id=group_id, name=str(name or ""))
        if pool is not None:
            g.traits = [str(x) for x in pool if str(x or "").strip()]
        return g

    def _edited(self, group: TraitGroup, selected: list[PersonalityTrait]) -> None:
        self.buffer_state = advance(BUFFER_TRANSITIONS, self.buffer_state, "edit")
        group.selected = selected

    def add(self, group_id: str, trait_name: str) -> Optional[PersonalityTrait]:
        g = self.group(group_id)
        name = str(trait_name or "").strip()
        if not name:
            raise ValidationError("traitName is required")
        if g.traits and name.lower() not in {t.lower() for t in g.traits}:
            raise ValidationError("Trait is not available in this group", details={"traitName": name})
        if g.has_trait(name):
            return None
        trait = PersonalityTrait(
            id=new_trait_id(), traitName=name, weight=0.0, order=0, groupId=g.id, groupName=g.name
        )
        self._edited(g, insert_trait(g.selected, trait))
        return next(t for t in g.selected if t.id == trait.id)

    def remove(self, group_id: str, trait_id: str) -> None:
        g = self.group(group_id)
        self._edited(g, remove_trait(g.selected, trait_id))

    def move_up(self, group_id: str, trait_id: str) -> None:
        g = self.group(group_id)
        self._edited(g, move_up(g.selected, trait_id))

    def move_down(self, group_id: str, trait_id: str) -> None:
        g = self.group(group_id)
        self._edited(g, move_down(g.selected, trait_id))

    def reorder(self, group_id: str, trait_ids: list[str]) -> None:
        g = self.group(group_id)
        try:
            selected = reorder(g.selected, [str(x) for x in trait_ids])
        except ValueError as e:
            raise ValidationError(str(e)) from e
        self._edited(g, selected)

    def apply(self, op: str, group_id: str, **params) -> None:
        op = str(op or "").strip().lower()
        if op == "add":
            self.add(group_id, params.get("traitName"))
        elif op == "remove":
            self.remove(group_id, str(params.get("traitId") or ""))
        elif op == "move_up":
            self.move_up(group_id, str(params.get("traitId") or ""))
        elif op == "move_down":
            self.move_down(group_id, str(params.get("traitId") or ""))
        elif op == "reorder":
            self.reorder(group_id, list(params.get("traitIds") or []))
        else:
            raise ValidationError("Unknown trait edit op", details={"op": op, "allowed": sorted(EDIT_OPS)})

    def selection(self) -> list[PersonalityTrait]:
        return [t for g in self._groups.values() for t in g.selected]

    def sync(self, sink: Callable[[list[PersonalityTrait]], None]) -> bool:
        if self.buffer_state is BufferState.CLEAN:
            return False
        self.buffer_state = advance(BUFFER_TRANSITIONS, self.buffer_state, "sync")
        try:
            sink(self.selection())
        except Exception:
            self.buffer_state = advance(BUFFER_TRANSITIONS, self.buffer_state, "sync_failed")
            raise
        self.buffer_state = advance(BUFFER_TRANSITIONS, self.buffer_state, "synced")
        return True
