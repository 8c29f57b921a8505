from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from utils import iso_utc_now

telemetry_log = logging.getLogger("assessment.trace")


@dataclass(frozen=True)
class TraceEntry:
    timestamp: str
    action: str
    details: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "action": self.action, "details": dict(self.details)}


@dataclass
class ResolutionTrace:
    entries: list[TraceEntry] = field(default_factory=list)

    def add(self, action: str, **details: Any) -> TraceEntry:
        entry = TraceEntry(timestamp=iso_utc_now(), action=str(action), details=details)
        self.entries.append(entry)
        return entry

    def actions(self) -> list[str]:
        return [e.action for e in self.entries]

    def to_list(self) -> list[dict[str, Any]]:
        return [e.to_dict() for e in self.entries]

    def __len__(self) -> int:
        return len(self.entries)

    def emit(self, *, outcome: str, request_id: str = "") -> None:
        data = {
            "type": "resolution_trace",
            "outcome": outcome,
            "request_id": request_id,
            "trace": self.to_list(),
        }
        telemetry_log.info(json.dumps(data, separators=(",", ":"), default=str))
