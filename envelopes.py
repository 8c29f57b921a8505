from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

# Keys collaborators have been seen wrapping their payload under.
WRAPPER_KEYS = ("data", "items", "results", "traits", "record", "result")


@dataclass(frozen=True)
class Envelope:
    """Decoded collaborator payload.

    kind is one of:
      - "list": a bare JSON array
      - "wrapped": an object carrying the payload under one of WRAPPER_KEYS
      - "record": a bare object that is itself the payload
      - "empty": null / empty body / anything unusable
    """

    kind: str
    items: list[Any] = field(default_factory=list)
    record: dict[str, Any] = field(default_factory=dict)
    key: Optional[str] = None


def decode_envelope(payload: Any, *, keys: tuple[str, ...] = WRAPPER_KEYS) -> Envelope:
    if isinstance(payload, list):
        return Envelope(kind="list", items=list(payload))

    if not isinstance(payload, dict) or not payload:
        return Envelope(kind="empty")

    for key in keys:
        if key not in payload:
            continue
        inner = payload[key]
        if isinstance(inner, list):
            return Envelope(kind="wrapped", items=list(inner), key=key)
        if isinstance(inner, dict):
            nested = decode_envelope(inner, keys=keys)
            if nested.kind in {"list", "wrapped"}:
                return Envelope(kind="wrapped", items=nested.items, key=key)
            return Envelope(kind="wrapped", record=dict(inner), items=[inner], key=key)

    return Envelope(kind="record", record=dict(payload), items=[payload])


def unwrap_items(payload: Any) -> list[Any]:
    return decode_envelope(payload).items


def unwrap_record(payload: Any) -> dict[str, Any]:
    env = decode_envelope(payload)
    if env.record:
        return env.record
    if env.items and isinstance(env.items[0], dict):
        return dict(env.items[0])
    return {}
